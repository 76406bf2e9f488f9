"""
Seat stores: the transactional handles the allocator runs against.

A store exposes

    find_booking_train_id(booking_id, user_id) -> train id or None
    lock_train(train_id) -> context manager yielding a ledger

and the ledger exposes the locked train snapshot (`ledger.train`, or None
when the train does not exist) plus the point reads and writes of one
unit of work: max_seat_number, create_booking, decrement_available_seats,
get_booking, delete_booking, increment_available_seats.
"""
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F, Max
from django.utils import timezone

from trains.models import Train
from utils.locks import train_lock, KeyedLockRegistry
from .models import Booking


class SeatConflictError(Exception):
    """A seat number was issued twice for the same train."""


class CapacityError(Exception):
    """The seat counter would leave the range 0..total_seats."""


class InjectedFault(Exception):
    """Raised by InMemorySeatStore at a step registered with inject_fault()."""


# =============================================================================
# Django ORM store
# =============================================================================

class DjangoLedger:
    """One unit of work against the relational database."""

    def __init__(self, train, using):
        self.train = train
        self.using = using

    def _bookings(self):
        return Booking.objects.using(self.using).filter(train_id=self.train.pk)

    def max_seat_number(self):
        top = self._bookings().aggregate(top=Max('seat_number'))['top'] or 0
        return max(top, self.train.last_issued_seat) or None

    def create_booking(self, user_id, seat_number, passenger_name, passenger_age, passenger_gender):
        booking = Booking.objects.using(self.using).create(
            user_id=user_id,
            train_id=self.train.pk,
            seat_number=seat_number,
            status=Booking.STATUS_CONFIRMED,
            passenger_name=passenger_name,
            passenger_age=passenger_age,
            passenger_gender=passenger_gender,
        )
        Train.objects.using(self.using).filter(
            pk=self.train.pk, last_issued_seat__lt=seat_number
        ).update(last_issued_seat=seat_number)
        self.train.last_issued_seat = max(self.train.last_issued_seat, seat_number)
        return booking.id

    def _shift_available_seats(self, delta):
        Train.objects.using(self.using).filter(pk=self.train.pk).update(
            available_seats=F('available_seats') + delta,
            updated_at=timezone.now(),
        )
        self.train.refresh_from_db(using=self.using, fields=['available_seats', 'updated_at'])

    def decrement_available_seats(self):
        self._shift_available_seats(-1)

    def increment_available_seats(self):
        self._shift_available_seats(1)

    def get_booking(self, booking_id, user_id):
        return self._bookings().filter(pk=booking_id, user_id=user_id).first()

    def delete_booking(self, booking_id):
        deleted, _ = self._bookings().filter(pk=booking_id).delete()
        return deleted


class DjangoSeatStore:
    """
    Store backed by the Django ORM.

    The per-train mutex serializes units inside this process;
    select_for_update() takes the row lock on PostgreSQL and MySQL so
    several worker processes are serialized as well.
    """

    def __init__(self, using='default'):
        self.using = using

    def find_booking_train_id(self, booking_id, user_id):
        try:
            return (
                Booking.objects.using(self.using)
                .filter(pk=booking_id, user_id=user_id)
                .values_list('train_id', flat=True)
                .first()
            )
        except (ValidationError, ValueError):
            return None

    def _locked_train(self, train_id):
        try:
            return Train.objects.using(self.using).select_for_update().get(pk=train_id)
        except (Train.DoesNotExist, ValidationError, ValueError):
            return None

    @contextmanager
    def lock_train(self, train_id):
        with train_lock(train_id):
            with transaction.atomic(using=self.using):
                yield DjangoLedger(self._locked_train(train_id), self.using)


# =============================================================================
# In-memory store
# =============================================================================

@dataclass
class TrainRecord:
    id: str
    train_number: str
    total_seats: int
    available_seats: int
    last_issued_seat: int = 0
    updated_at: datetime = field(default_factory=lambda: datetime.now(dt_timezone.utc))


@dataclass
class BookingRecord:
    id: str
    train_id: str
    user_id: str
    seat_number: int
    passenger_name: str
    passenger_age: int
    passenger_gender: str
    status: str = Booking.STATUS_CONFIRMED
    booking_date: datetime = field(default_factory=lambda: datetime.now(dt_timezone.utc))


class InMemoryLedger:
    """Stages writes; nothing reaches the store until commit()."""

    def __init__(self, store, train):
        self._store = store
        self.train = train
        self._created = []
        self._deleted = set()
        self._delta = 0

    def _visible_bookings(self):
        with self._store._data_guard:
            committed = [
                b for b in self._store._bookings.values()
                if b.train_id == self.train.id and b.id not in self._deleted
            ]
        return committed + self._created

    def max_seat_number(self):
        self._store._trip('max_seat_number')
        seats = [b.seat_number for b in self._visible_bookings()]
        return max(seats + [self.train.last_issued_seat]) or None

    def create_booking(self, user_id, seat_number, passenger_name, passenger_age, passenger_gender):
        self._store._pause()
        self._store._trip('create_booking')
        if any(b.seat_number == seat_number for b in self._visible_bookings()):
            raise SeatConflictError(f'Seat {seat_number} already issued on train {self.train.id}')
        record = BookingRecord(
            id=str(uuid.uuid4()),
            train_id=self.train.id,
            user_id=str(user_id),
            seat_number=seat_number,
            passenger_name=passenger_name,
            passenger_age=passenger_age,
            passenger_gender=passenger_gender,
        )
        self._created.append(record)
        self.train = replace(self.train, last_issued_seat=max(self.train.last_issued_seat, seat_number))
        return record.id

    def _shift(self, delta):
        new_value = self.train.available_seats + delta
        if not 0 <= new_value <= self.train.total_seats:
            raise CapacityError(f'available_seats would become {new_value}')
        self._delta += delta
        self.train = replace(self.train, available_seats=new_value)

    def decrement_available_seats(self):
        self._store._trip('decrement_available_seats')
        self._shift(-1)

    def increment_available_seats(self):
        self._store._trip('increment_available_seats')
        self._shift(1)

    def get_booking(self, booking_id, user_id):
        booking = self._store.get_booking(booking_id)
        if booking is None or booking.id in self._deleted:
            return None
        if booking.train_id != self.train.id or booking.user_id != str(user_id):
            return None
        return booking

    def delete_booking(self, booking_id):
        self._store._trip('delete_booking')
        booking_id = str(booking_id)
        if booking_id in self._store._bookings and booking_id not in self._deleted:
            self._deleted.add(booking_id)
            return 1
        return 0

    def commit(self):
        store = self._store
        with store._data_guard:
            current = store._trains[self.train.id]
            available = current.available_seats + self._delta
            if not 0 <= available <= current.total_seats:
                raise CapacityError(f'available_seats would become {available}')
            taken = {
                b.seat_number for b in store._bookings.values()
                if b.train_id == self.train.id and b.id not in self._deleted
            }
            for record in self._created:
                if record.seat_number in taken:
                    raise SeatConflictError(f'Seat {record.seat_number} already issued on train {self.train.id}')
                taken.add(record.seat_number)

            for booking_id in self._deleted:
                store._bookings.pop(booking_id, None)
            for record in self._created:
                store._bookings[record.id] = record
            if self._delta or self._created:
                store._trains[self.train.id] = replace(
                    current,
                    available_seats=available,
                    last_issued_seat=max(current.last_issued_seat, self.train.last_issued_seat),
                    updated_at=datetime.now(dt_timezone.utc),
                )


class InMemorySeatStore:
    """
    Dict-backed store with the same locking and rollback behaviour as
    DjangoSeatStore, for tests and tooling that must not touch a database.

    `inject_fault(step)` makes the named ledger step raise InjectedFault;
    `critical_section_delay` sleeps inside the unit to widen race windows.
    """

    def __init__(self, critical_section_delay=0.0):
        self._trains = {}
        self._bookings = {}
        self._data_guard = threading.Lock()
        self._locks = KeyedLockRegistry()
        self._faults = set()
        self.critical_section_delay = critical_section_delay

    # Fixtures and inspection

    def add_train(self, total_seats, available_seats=None, train_number=None, train_id=None) -> TrainRecord:
        train_id = str(train_id or uuid.uuid4())
        record = TrainRecord(
            id=train_id,
            train_number=train_number or train_id[:8].upper(),
            total_seats=total_seats,
            available_seats=total_seats if available_seats is None else available_seats,
        )
        with self._data_guard:
            self._trains[train_id] = record
        return replace(record)

    def get_train(self, train_id) -> Optional[TrainRecord]:
        with self._data_guard:
            record = self._trains.get(str(train_id))
            return replace(record) if record else None

    def get_booking(self, booking_id) -> Optional[BookingRecord]:
        with self._data_guard:
            record = self._bookings.get(str(booking_id))
            return replace(record) if record else None

    def bookings_for(self, train_id):
        with self._data_guard:
            return sorted(
                (replace(b) for b in self._bookings.values() if b.train_id == str(train_id)),
                key=lambda b: b.seat_number,
            )

    def inject_fault(self, step):
        self._faults.add(step)

    def clear_faults(self):
        self._faults.clear()

    def _trip(self, step):
        if step in self._faults:
            raise InjectedFault(f'Injected fault at {step}')

    def _pause(self):
        if self.critical_section_delay:
            time.sleep(self.critical_section_delay)

    # Store interface

    def find_booking_train_id(self, booking_id, user_id):
        booking = self.get_booking(booking_id)
        if booking is None or booking.user_id != str(user_id):
            return None
        return booking.train_id

    @contextmanager
    def lock_train(self, train_id):
        with self._locks.hold(train_id):
            train = self.get_train(train_id)
            ledger = InMemoryLedger(self, train)
            yield ledger
            if train is not None:
                ledger.commit()
