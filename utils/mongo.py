"""
MongoDB helpers for request logs and booking events.

Logging here is best effort: when MongoDB is disabled or unreachable
every writer becomes a no-op and every reader returns an empty result.
"""
import logging
from datetime import datetime, timedelta, timezone

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.errors import PyMongoError
from django.conf import settings

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = '/api/trains/search/'

# MongoDB client singleton
_mongo_client = None
_mongo_db = None
_mongo_available = None


def _now():
    return datetime.now(timezone.utc)


def get_mongo_db():
    """Get MongoDB database instance (singleton pattern)."""
    global _mongo_client, _mongo_db, _mongo_available

    if not getattr(settings, 'MONGODB_ENABLED', True):
        return None
    # Already known to be down
    if _mongo_available is False:
        return None

    if _mongo_db is None:
        try:
            _mongo_client = MongoClient(
                settings.MONGODB_URI,
                serverSelectionTimeoutMS=3000,
                connectTimeoutMS=3000,
                tz_aware=True,
            )
            _mongo_client.admin.command('ping')
            _mongo_db = _mongo_client[settings.MONGODB_NAME]
            _mongo_available = True
            _ensure_indexes(_mongo_db)
        except PyMongoError as e:
            # Bad URI, rejected credentials or no server: stop logging, keep serving.
            logger.warning("MongoDB connection failed, request logging disabled: %s", e)
            if _mongo_client is not None:
                _mongo_client.close()
            _mongo_client = _mongo_db = None
            _mongo_available = False
            return None

    return _mongo_db


def reset_mongo_client():
    """Forget the cached client so the next call reconnects."""
    global _mongo_client, _mongo_db, _mongo_available
    if _mongo_client is not None:
        _mongo_client.close()
    _mongo_client = _mongo_db = _mongo_available = None


def _ensure_indexes(db):
    try:
        db.api_logs.create_index([("timestamp", DESCENDING)])
        db.api_logs.create_index([("endpoint", ASCENDING), ("timestamp", DESCENDING)])
        db.api_logs.create_index([
            ("request_params.source", ASCENDING),
            ("request_params.destination", ASCENDING)
        ])
        db.booking_events.create_index([("timestamp", DESCENDING)])
        db.booking_events.create_index([("train_id", ASCENDING), ("timestamp", DESCENDING)])
        db.booking_events.create_index([("event", ASCENDING)])
    except PyMongoError as e:
        logger.warning("Error creating MongoDB indexes: %s", e)


def log_api_request(endpoint, method, user_id, request_params,
                    response_status, execution_time_ms, results_count=None):
    """Store one API request in the api_logs collection."""
    db = get_mongo_db()
    if db is None:
        return

    log_entry = {
        "endpoint": endpoint,
        "method": method,
        "user_id": user_id,
        "request_params": request_params,
        "response_status": response_status,
        "execution_time_ms": execution_time_ms,
        "timestamp": _now(),
    }
    if results_count is not None:
        log_entry["results_count"] = results_count

    try:
        db.api_logs.insert_one(log_entry)
    except PyMongoError as e:
        logger.warning("Error logging API request to MongoDB: %s", e)


def log_booking_event(event, user_id, train_id=None, booking_id=None,
                      seat_number=None, message=None):
    """
    Record the outcome of an allocation or cancellation.

    event is one of 'booked', 'failed', 'cancelled', 'cancel_failed'.
    """
    db = get_mongo_db()
    if db is None:
        return

    try:
        db.booking_events.insert_one({
            "event": event,
            "user_id": user_id,
            "train_id": train_id,
            "booking_id": booking_id,
            "seat_number": seat_number,
            "message": message,
            "timestamp": _now(),
        })
    except PyMongoError as e:
        logger.warning("Error logging booking event to MongoDB: %s", e)


def get_top_routes(limit=5):
    """Most searched (source, destination) pairs."""
    db = get_mongo_db()
    if db is None:
        return []

    pipeline = [
        {"$match": {
            "endpoint": SEARCH_ENDPOINT,
            "request_params.source": {"$exists": True},
            "request_params.destination": {"$exists": True},
        }},
        {"$group": {
            "_id": {"source": "$request_params.source", "destination": "$request_params.destination"},
            "search_count": {"$sum": 1},
        }},
        {"$sort": {"search_count": -1}},
        {"$limit": limit},
        {"$project": {
            "_id": 0,
            "source": "$_id.source",
            "destination": "$_id.destination",
            "search_count": 1,
        }},
    ]

    try:
        return list(db.api_logs.aggregate(pipeline))
    except PyMongoError as e:
        logger.warning("Error getting top routes: %s", e)
        return []


def get_booking_events(limit=50, offset=0, event=None, train_id=None, user_id=None):
    """Newest booking events first, optionally filtered."""
    db = get_mongo_db()
    if db is None:
        return []

    query = {}
    if event:
        query["event"] = event
    if train_id:
        query["train_id"] = train_id
    if user_id:
        query["user_id"] = user_id

    try:
        cursor = db.booking_events.find(query).sort("timestamp", DESCENDING).skip(offset).limit(limit)
        results = []
        for doc in cursor:
            doc["_id"] = str(doc["_id"])
            if hasattr(doc.get("timestamp"), 'isoformat'):
                doc["timestamp"] = doc["timestamp"].isoformat()
            results.append(doc)
        return results
    except PyMongoError as e:
        logger.warning("Error getting booking events: %s", e)
        return []


def get_booking_stats(hours=24):
    """Counts of booking events per type over the last `hours`."""
    db = get_mongo_db()
    if db is None:
        return {'total_events': 0, 'error_message': 'MongoDB not available'}

    cutoff = _now() - timedelta(hours=hours)
    pipeline = [
        {"$match": {"timestamp": {"$gte": cutoff}}},
        {"$group": {"_id": "$event", "count": {"$sum": 1}}},
    ]

    try:
        by_event = {row["_id"]: row["count"] for row in db.booking_events.aggregate(pipeline)}
    except PyMongoError as e:
        logger.warning("Error getting booking stats: %s", e)
        return {'total_events': 0, 'error': str(e)}

    attempts = by_event.get('booked', 0) + by_event.get('failed', 0)
    return {
        'total_events': sum(by_event.values()),
        'by_event': by_event,
        'booking_success_rate': round(by_event.get('booked', 0) / attempts * 100, 2) if attempts else 0,
    }


def is_mongodb_available():
    """Check if MongoDB is available."""
    if _mongo_available is not None:
        return _mongo_available
    get_mongo_db()
    return _mongo_available or False
