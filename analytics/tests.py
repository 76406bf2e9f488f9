"""
Tests for analytics app with REAL MongoDB integration.
Tests cover: Top routes aggregation, booking event logs, API access control.

The real-MongoDB tests skip if MongoDB is unavailable.
To run with MongoDB:
    docker run -d -p 27017:27017 --name mongodb-test mongo:latest
    python manage.py test analytics
"""
import unittest
from unittest.mock import patch, MagicMock
from datetime import datetime, timedelta, timezone
from django.test import TestCase, override_settings
from django.contrib.auth import get_user_model
from pymongo.errors import OperationFailure, PyMongoError, ServerSelectionTimeoutError
from rest_framework.test import APITestCase
from rest_framework import status

import utils.mongo
from utils.mongo import (
    get_mongo_db, reset_mongo_client, log_api_request, log_booking_event,
    get_top_routes, get_booking_events, get_booking_stats,
)

User = get_user_model()

TEST_MONGODB_URI = 'mongodb://localhost:27017/'
TEST_MONGODB_NAME = 'railway_logs_test'


def mongodb_reachable():
    """Check if MongoDB is available for testing."""
    try:
        from pymongo import MongoClient
        client = MongoClient(TEST_MONGODB_URI, serverSelectionTimeoutMS=2000)
        client.admin.command('ping')
        client.close()
        return True
    except PyMongoError:
        return False


# Skip decorator for tests requiring MongoDB
requires_mongodb = unittest.skipUnless(
    mongodb_reachable(),
    "MongoDB is not available. Start MongoDB to run these tests."
)


# =============================================================================
# REAL MONGODB INTEGRATION TESTS
# =============================================================================

@requires_mongodb
@override_settings(MONGODB_ENABLED=True, MONGODB_URI=TEST_MONGODB_URI, MONGODB_NAME=TEST_MONGODB_NAME)
class RealMongoDBTests(TestCase):
    """
    Real integration tests with MongoDB.
    These tests actually connect to MongoDB and verify logging works.
    """

    def setUp(self):
        reset_mongo_client()
        self.db = get_mongo_db()
        self.db.api_logs.delete_many({})
        self.db.booking_events.delete_many({})

    def tearDown(self):
        self.db.client.drop_database(TEST_MONGODB_NAME)
        reset_mongo_client()

    def test_log_api_request_stores_data(self):
        """Test that log_api_request actually stores data in MongoDB."""
        log_api_request(
            endpoint='/api/trains/search/',
            method='GET',
            user_id=1,
            request_params={'source': 'Delhi', 'destination': 'Mumbai'},
            response_status=200,
            execution_time_ms=150.5,
            results_count=5
        )

        logs = list(self.db.api_logs.find({'endpoint': '/api/trains/search/'}))
        self.assertEqual(len(logs), 1)
        self.assertEqual(logs[0]['user_id'], 1)
        self.assertEqual(logs[0]['request_params']['source'], 'Delhi')
        self.assertEqual(logs[0]['results_count'], 5)

    def test_get_top_routes_aggregation(self):
        """Test that get_top_routes correctly aggregates search data."""
        now = datetime.now(timezone.utc)
        self.db.api_logs.insert_many(
            [{'endpoint': '/api/trains/search/',
              'request_params': {'source': 'Delhi', 'destination': 'Mumbai'},
              'timestamp': now} for _ in range(3)]
            + [{'endpoint': '/api/trains/search/',
                'request_params': {'source': 'Chennai', 'destination': 'Bangalore'},
                'timestamp': now},
               {'endpoint': '/api/bookings/', 'request_params': {}, 'timestamp': now}]
        )

        results = get_top_routes(limit=5)

        self.assertEqual(len(results), 2)
        self.assertEqual(results[0], {'source': 'Delhi', 'destination': 'Mumbai', 'search_count': 3})

    def test_booking_events_round_trip(self):
        log_booking_event('booked', user_id=7, train_id='t1', booking_id='b1', seat_number=1,
                          message='Booking successful')
        log_booking_event('failed', user_id=8, train_id='t1', message='No seats available')

        events = get_booking_events(event='booked')

        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]['seat_number'], 1)
        self.assertIsInstance(events[0]['_id'], str)
        self.assertEqual(len(get_booking_events(train_id='t1')), 2)

    def test_booking_stats(self):
        for event in ('booked', 'booked', 'booked', 'failed', 'cancelled'):
            log_booking_event(event, user_id=1)
        self.db.booking_events.insert_one({
            'event': 'booked', 'user_id': 1,
            'timestamp': datetime.now(timezone.utc) - timedelta(hours=48),
        })

        stats = get_booking_stats(hours=24)

        self.assertEqual(stats['total_events'], 5)
        self.assertEqual(stats['by_event']['booked'], 3)
        self.assertEqual(stats['booking_success_rate'], 75.0)

    def test_indexes_created(self):
        """Test that appropriate indexes exist."""
        self.assertIn('timestamp_-1', self.db.api_logs.index_information())
        self.assertIn('event_1', self.db.booking_events.index_information())


# =============================================================================
# MOCKED TESTS (fallback when MongoDB is unavailable)
# =============================================================================

class MockedMongoUtilityTests(TestCase):
    """Test MongoDB utility functions with mocks (when MongoDB unavailable)."""

    @patch('utils.mongo.get_mongo_db')
    def test_get_top_routes_returns_list(self, mock_get_db):
        """Test get_top_routes returns a list."""
        mock_db = MagicMock()
        mock_db.api_logs.aggregate.return_value = [
            {'source': 'Delhi', 'destination': 'Mumbai', 'search_count': 100},
            {'source': 'Chennai', 'destination': 'Bangalore', 'search_count': 50}
        ]
        mock_get_db.return_value = mock_db

        result = get_top_routes(limit=5)

        self.assertEqual(len(result), 2)
        pipeline = mock_db.api_logs.aggregate.call_args.args[0]
        self.assertIn({'$limit': 5}, pipeline)

    @patch('utils.mongo.get_mongo_db')
    def test_get_top_routes_handles_db_unavailable(self, mock_get_db):
        """Test get_top_routes returns empty when DB unavailable."""
        mock_get_db.return_value = None

        self.assertEqual(get_top_routes(), [])

    @patch('utils.mongo.get_mongo_db')
    def test_get_top_routes_handles_query_error(self, mock_get_db):
        mock_db = MagicMock()
        mock_db.api_logs.aggregate.side_effect = PyMongoError('cursor killed')
        mock_get_db.return_value = mock_db

        self.assertEqual(get_top_routes(), [])

    @patch('utils.mongo.get_mongo_db')
    def test_log_api_request_handles_db_unavailable(self, mock_get_db):
        """Test log_api_request gracefully handles DB unavailable."""
        mock_get_db.return_value = None

        # Should not raise exception
        log_api_request(
            endpoint='/api/trains/search/',
            method='GET',
            user_id=1,
            request_params={'source': 'Delhi', 'destination': 'Mumbai'},
            response_status=200,
            execution_time_ms=100.5
        )

    @patch('utils.mongo.get_mongo_db')
    def test_log_booking_event_swallows_write_errors(self, mock_get_db):
        mock_db = MagicMock()
        mock_db.booking_events.insert_one.side_effect = PyMongoError('not primary')
        mock_get_db.return_value = mock_db

        log_booking_event('booked', user_id=1, train_id='t1', booking_id='b1', seat_number=4)

        document = mock_db.booking_events.insert_one.call_args.args[0]
        self.assertEqual(document['event'], 'booked')
        self.assertEqual(document['seat_number'], 4)

    @patch('utils.mongo.get_mongo_db')
    def test_get_booking_events_builds_query(self, mock_get_db):
        mock_db = MagicMock()
        stamp = datetime(2026, 1, 8, tzinfo=timezone.utc)
        cursor = mock_db.booking_events.find.return_value.sort.return_value.skip.return_value.limit
        cursor.return_value = [{'_id': 'abc', 'event': 'failed', 'timestamp': stamp}]
        mock_get_db.return_value = mock_db

        events = get_booking_events(limit=10, offset=20, event='failed', user_id=3)

        mock_db.booking_events.find.assert_called_once_with({'event': 'failed', 'user_id': 3})
        mock_db.booking_events.find.return_value.sort.return_value.skip.assert_called_once_with(20)
        cursor.assert_called_once_with(10)
        self.assertEqual(events[0]['timestamp'], stamp.isoformat())

    @patch('utils.mongo.get_mongo_db')
    def test_get_booking_stats_success_rate(self, mock_get_db):
        mock_db = MagicMock()
        mock_db.booking_events.aggregate.return_value = [
            {'_id': 'booked', 'count': 3},
            {'_id': 'failed', 'count': 1},
            {'_id': 'cancelled', 'count': 2},
        ]
        mock_get_db.return_value = mock_db

        stats = get_booking_stats(hours=12)

        self.assertEqual(stats['total_events'], 6)
        self.assertEqual(stats['booking_success_rate'], 75.0)

    @patch('utils.mongo.get_mongo_db')
    def test_get_booking_stats_without_db(self, mock_get_db):
        mock_get_db.return_value = None

        self.assertEqual(get_booking_stats()['total_events'], 0)


class MongoConnectionTests(TestCase):
    """Connection handling of the MongoDB singleton."""

    def setUp(self):
        reset_mongo_client()

    def tearDown(self):
        reset_mongo_client()

    @override_settings(MONGODB_ENABLED=False)
    @patch('utils.mongo.MongoClient')
    def test_disabled_never_connects(self, mock_client):
        self.assertIsNone(get_mongo_db())
        mock_client.assert_not_called()

    @override_settings(MONGODB_ENABLED=True, MONGODB_URI='mongodb://unreachable:27017/', MONGODB_NAME='x')
    @patch('utils.mongo.MongoClient')
    def test_unreachable_server_disables_logging(self, mock_client):
        mock_client.return_value.admin.command.side_effect = ServerSelectionTimeoutError('timed out')

        self.assertIsNone(get_mongo_db())
        self.assertIsNone(get_mongo_db())

        # Second call does not retry the connection
        self.assertEqual(mock_client.call_count, 1)
        self.assertFalse(utils.mongo.is_mongodb_available())

    @override_settings(MONGODB_ENABLED=True, MONGODB_URI='http://x', MONGODB_NAME='x')
    def test_invalid_uri_disables_logging(self):
        self.assertIsNone(get_mongo_db())
        self.assertFalse(utils.mongo.is_mongodb_available())

        # Writers stay silent instead of raising
        log_booking_event('booked', user_id=1)
        log_api_request('/api/trains/search/', 'GET', None, {}, 200, 1.0)

    @override_settings(MONGODB_ENABLED=True, MONGODB_URI='mongodb://db:27017/', MONGODB_NAME='x')
    @patch('utils.mongo.MongoClient')
    def test_rejected_credentials_disable_logging(self, mock_client):
        mock_client.return_value.admin.command.side_effect = OperationFailure('Authentication failed.', code=18)

        self.assertIsNone(get_mongo_db())
        self.assertIsNone(get_mongo_db())

        self.assertEqual(mock_client.call_count, 1)
        mock_client.return_value.close.assert_called_once()
        self.assertFalse(utils.mongo.is_mongodb_available())

    @override_settings(MONGODB_ENABLED=True, MONGODB_URI='mongodb://db:27017/', MONGODB_NAME='railway_logs')
    @patch('utils.mongo.MongoClient')
    def test_connects_once_and_creates_indexes(self, mock_client):
        db = get_mongo_db()

        self.assertIs(db, mock_client.return_value['railway_logs'])
        self.assertIs(get_mongo_db(), db)
        mock_client.assert_called_once()
        self.assertTrue(db.booking_events.create_index.called)


# =============================================================================
# API TESTS (work with or without MongoDB)
# =============================================================================

class AnalyticsAPITests(APITestCase):
    """Integration tests for analytics endpoints."""

    def setUp(self):
        self.user = User.objects.create_user(
            email='user@example.com',
            password='UserPass123!',
            full_name='Test User'
        )
        self.admin = User.objects.create_admin(
            email='admin@example.com',
            password='AdminPass123!',
            full_name='Admin User'
        )

    def get_token(self, email, password):
        """Helper to get JWT token."""
        response = self.client.post('/api/login/', {
            'email': email,
            'password': password
        }, format='json')
        return response.data['tokens']['access']

    def login(self, email, password):
        token = self.get_token(email, password)
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    @patch('analytics.views.get_top_routes')
    def test_top_routes_authenticated(self, mock_top_routes):
        """Test top routes endpoint works for any signed-in user."""
        mock_top_routes.return_value = [
            {'source': 'Delhi', 'destination': 'Mumbai', 'search_count': 150},
            {'source': 'Chennai', 'destination': 'Bangalore', 'search_count': 75}
        ]
        self.login('user@example.com', 'UserPass123!')

        response = self.client.get('/api/analytics/top-routes/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual(response.data['results'][0]['source'], 'Delhi')

    @patch('analytics.views.get_top_routes')
    def test_top_routes_limit_is_clamped(self, mock_top_routes):
        mock_top_routes.return_value = []
        self.login('user@example.com', 'UserPass123!')

        self.client.get('/api/analytics/top-routes/', {'limit': 500})
        mock_top_routes.assert_called_with(limit=20)

        self.client.get('/api/analytics/top-routes/', {'limit': 'lots'})
        mock_top_routes.assert_called_with(limit=5)

    def test_top_routes_unauthenticated(self):
        """Test top routes returns 401 without authentication."""
        response = self.client.get('/api/analytics/top-routes/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    @patch('analytics.views.get_booking_events')
    def test_booking_events_admin_only(self, mock_events):
        """Test booking events endpoint is admin only."""
        mock_events.return_value = []
        self.login('user@example.com', 'UserPass123!')

        response = self.client.get('/api/analytics/booking-events/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        mock_events.assert_not_called()

    @patch('analytics.views.get_booking_events')
    def test_booking_events_admin_access(self, mock_events):
        """Test admin can read booking events with filters."""
        mock_events.return_value = [
            {'_id': '123', 'event': 'booked', 'user_id': 1, 'seat_number': 4,
             'timestamp': '2026-01-08T00:00:00+00:00'}
        ]
        self.login('admin@example.com', 'AdminPass123!')

        response = self.client.get('/api/analytics/booking-events/', {'event': 'booked', 'limit': 10})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        mock_events.assert_called_once_with(limit=10, offset=0, event='booked', train_id=None, user_id=None)

    @patch('analytics.views.get_booking_stats')
    def test_booking_stats_admin_access(self, mock_stats):
        mock_stats.return_value = {'total_events': 0, 'by_event': {}, 'booking_success_rate': 0}
        self.login('admin@example.com', 'AdminPass123!')

        response = self.client.get('/api/analytics/stats/', {'hours': 1000})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period_hours'], 168)
        mock_stats.assert_called_once_with(hours=168)

    def test_booking_stats_admin_only(self):
        self.login('user@example.com', 'UserPass123!')

        response = self.client.get('/api/analytics/stats/')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
