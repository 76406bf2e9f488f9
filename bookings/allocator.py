"""
Seat allocation and cancellation.

Both operations take a seat store (see `bookings.stores`) and run as one
atomic unit per call:

    with store.lock_train(train_id) as ledger:
        ...

`lock_train` serializes units for the same train, leaves other trains
alone, commits on a clean exit and rolls back if the block raises. The
functions here never raise; every outcome comes back as a result object
whose `reason` tells the caller which kind of failure happened.
"""
import logging
from dataclasses import dataclass, asdict
from typing import Optional

logger = logging.getLogger(__name__)

# Result reasons
OK = 'ok'
NOT_FOUND = 'not_found'
NO_SEATS = 'no_seats'
INVALID = 'invalid'
STORAGE_ERROR = 'storage_error'

MSG_BOOKED = 'Booking successful'
MSG_TRAIN_NOT_FOUND = 'Train not found'
MSG_NO_SEATS = 'No seats available'
MSG_CANCELLED = 'Booking cancelled successfully'
MSG_BOOKING_NOT_FOUND = 'Booking not found'

GENDERS = ('male', 'female', 'other')
MIN_AGE, MAX_AGE = 1, 120


@dataclass(frozen=True)
class AllocationResult:
    success: bool
    message: str
    booking_id: Optional[str] = None
    seat_number: Optional[int] = None
    reason: str = OK

    def as_dict(self):
        return asdict(self)


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    message: str
    reason: str = OK
    train_id: Optional[str] = None

    def as_dict(self):
        return asdict(self)


def validate_passenger(passenger_name, passenger_age, passenger_gender):
    """Return an error message for bad passenger details, or None."""
    if not isinstance(passenger_name, str) or not passenger_name.strip():
        return 'Passenger name is required'
    if isinstance(passenger_age, bool) or not isinstance(passenger_age, int):
        return 'Passenger age must be a whole number'
    if not MIN_AGE <= passenger_age <= MAX_AGE:
        return f'Passenger age must be between {MIN_AGE} and {MAX_AGE}'
    if passenger_gender not in GENDERS:
        return f"Passenger gender must be one of: {', '.join(GENDERS)}"
    return None


def next_seat_number(current_max):
    """Seats are issued in increasing order and never reused for a train."""
    return (current_max or 0) + 1


def allocate_seat(store, train_id, user_id, passenger_name, passenger_age, passenger_gender):
    """Reserve exactly one seat on `train_id` for one passenger."""
    problem = validate_passenger(passenger_name, passenger_age, passenger_gender)
    if problem:
        return AllocationResult(False, problem, reason=INVALID)

    try:
        with store.lock_train(train_id) as ledger:
            train = ledger.train
            if train is None:
                logger.warning("Allocation on unknown train %s", train_id)
                return AllocationResult(False, MSG_TRAIN_NOT_FOUND, reason=NOT_FOUND)
            if train.available_seats <= 0:
                logger.warning("Train %s is full", train_id)
                return AllocationResult(False, MSG_NO_SEATS, reason=NO_SEATS)

            seat_number = next_seat_number(ledger.max_seat_number())
            booking_id = ledger.create_booking(
                user_id=user_id,
                seat_number=seat_number,
                passenger_name=passenger_name.strip(),
                passenger_age=passenger_age,
                passenger_gender=passenger_gender,
            )
            ledger.decrement_available_seats()
    except Exception as exc:
        logger.exception("Allocation on train %s rolled back", train_id)
        return AllocationResult(False, f'Booking failed: {exc}', reason=STORAGE_ERROR)

    logger.info("Booked seat %s on train %s (booking %s)", seat_number, train_id, booking_id)
    return AllocationResult(True, MSG_BOOKED, booking_id=str(booking_id), seat_number=seat_number)


def cancel_booking(store, booking_id, user_id):
    """
    Delete one of `user_id`'s bookings and give its seat back to the train.

    The delete and the counter increment commit together or not at all.
    A booking owned by someone else is reported as not found.
    """
    try:
        train_id = store.find_booking_train_id(booking_id, user_id)
        if train_id is None:
            return CancellationResult(False, MSG_BOOKING_NOT_FOUND, reason=NOT_FOUND)

        with store.lock_train(train_id) as ledger:
            # Re-read under the lock: a concurrent cancel may have won.
            if ledger.train is None or ledger.get_booking(booking_id, user_id) is None:
                return CancellationResult(False, MSG_BOOKING_NOT_FOUND, reason=NOT_FOUND)
            ledger.delete_booking(booking_id)
            ledger.increment_available_seats()
    except Exception as exc:
        logger.exception("Cancellation of booking %s rolled back", booking_id)
        return CancellationResult(False, f'Cancellation failed: {exc}', reason=STORAGE_ERROR)

    logger.info("Cancelled booking %s on train %s", booking_id, train_id)
    return CancellationResult(True, MSG_CANCELLED, train_id=str(train_id))
