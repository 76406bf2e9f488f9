"""
Tests for bookings app.
Tests cover: Seat allocator and cancellation against the in-memory and ORM
stores, concurrency, rollback on failure, and the booking API.
"""
import threading
import uuid
from datetime import date, time, timedelta
from decimal import Decimal
from unittest import mock

from django.db import IntegrityError, connection, transaction
from django.test import SimpleTestCase, TestCase, TransactionTestCase, override_settings
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status

from trains.models import Train
from utils.locks import train_lock
from utils.mongo import is_mongodb_available, reset_mongo_client
from bookings import allocator
from bookings.allocator import allocate_seat, cancel_booking
from bookings.models import Booking
from bookings.stores import DjangoLedger, DjangoSeatStore, InMemorySeatStore

User = get_user_model()


def book(store, train_id, user_id='u1', name='Passenger', age=30, gender='male'):
    return allocate_seat(store, train_id, user_id, name, age, gender)


def run_concurrently(count, target):
    """Start `count` threads on `target(index)` behind a barrier; return results by index."""
    barrier = threading.Barrier(count)
    results = [None] * count

    def worker(index):
        barrier.wait()
        results[index] = target(index)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    return results


def make_train(number='12345', total_seats=10, available_seats=None, **extra):
    fields = {
        'train_name': 'Test Express',
        'source': 'Delhi',
        'destination': 'Mumbai',
        'departure_time': time(6, 0),
        'arrival_time': time(20, 0),
        'journey_date': date.today() + timedelta(days=7),
        'price': Decimal('500.00'),
    }
    fields.update(extra)
    return Train.objects.create(
        train_number=number,
        total_seats=total_seats,
        available_seats=total_seats if available_seats is None else available_seats,
        **fields
    )


# =============================================================================
# UNIT TESTS - Allocator against the in-memory store
# =============================================================================

class PassengerValidationTests(SimpleTestCase):
    """Passenger details are checked before any unit of work opens."""

    def setUp(self):
        self.store = InMemorySeatStore()
        self.train = self.store.add_train(total_seats=3)

    def test_blank_name_rejected(self):
        result = book(self.store, self.train.id, name='   ')
        self.assertFalse(result.success)
        self.assertEqual(result.reason, allocator.INVALID)

    def test_age_out_of_range_rejected(self):
        for age in (0, 121, -4):
            result = book(self.store, self.train.id, age=age)
            self.assertEqual(result.reason, allocator.INVALID, age)

    def test_non_integer_age_rejected(self):
        self.assertEqual(book(self.store, self.train.id, age='30').reason, allocator.INVALID)
        self.assertEqual(book(self.store, self.train.id, age=True).reason, allocator.INVALID)

    def test_unknown_gender_rejected(self):
        result = book(self.store, self.train.id, gender='robot')
        self.assertEqual(result.reason, allocator.INVALID)

    def test_rejection_has_no_side_effects(self):
        book(self.store, self.train.id, name='')
        self.assertEqual(self.store.get_train(self.train.id).available_seats, 3)
        self.assertEqual(self.store.bookings_for(self.train.id), [])


class SeatAllocatorTests(SimpleTestCase):
    """Sequential behaviour of allocate_seat / cancel_booking."""

    def setUp(self):
        self.store = InMemorySeatStore()
        self.train = self.store.add_train(total_seats=3)

    def test_first_booking_gets_seat_one(self):
        result = book(self.store, self.train.id)

        self.assertTrue(result.success)
        self.assertEqual(result.message, 'Booking successful')
        self.assertEqual(result.seat_number, 1)
        self.assertIsNotNone(result.booking_id)
        self.assertEqual(self.store.get_train(self.train.id).available_seats, 2)

        booking = self.store.get_booking(result.booking_id)
        self.assertEqual(booking.status, 'confirmed')
        self.assertEqual(booking.passenger_name, 'Passenger')

    def test_unknown_train(self):
        result = book(self.store, 'no-such-train')

        self.assertFalse(result.success)
        self.assertEqual(result.message, 'Train not found')
        self.assertEqual(result.reason, allocator.NOT_FOUND)

    def test_full_train(self):
        for _ in range(3):
            self.assertTrue(book(self.store, self.train.id).success)

        result = book(self.store, self.train.id)

        self.assertFalse(result.success)
        self.assertEqual(result.message, 'No seats available')
        self.assertEqual(result.reason, allocator.NO_SEATS)
        self.assertEqual(self.store.get_train(self.train.id).available_seats, 0)
        self.assertEqual(len(self.store.bookings_for(self.train.id)), 3)

    def test_train_with_zero_counter_is_full(self):
        train = self.store.add_train(total_seats=5, available_seats=0)
        self.assertEqual(book(self.store, train.id).reason, allocator.NO_SEATS)

    def test_monotonic_issuance_across_cancellations(self):
        """Cancelled seat numbers are never handed out again."""
        store = InMemorySeatStore()
        train = store.add_train(total_seats=5)
        issued = [book(store, train.id) for _ in range(3)]
        self.assertEqual([r.seat_number for r in issued], [1, 2, 3])

        cancelled = cancel_booking(store, issued[1].booking_id, 'u1')
        self.assertTrue(cancelled.success)
        self.assertEqual(store.get_train(train.id).available_seats, 3)

        self.assertEqual(book(store, train.id).seat_number, 4)
        cancel_booking(store, issued[2].booking_id, 'u1')
        self.assertEqual(book(store, train.id).seat_number, 5)

    def test_cancelling_highest_seat_does_not_reissue_it(self):
        results = [book(self.store, self.train.id) for _ in range(2)]
        cancel_booking(self.store, results[1].booking_id, 'u1')

        self.assertEqual(self.store.get_train(self.train.id).last_issued_seat, 2)
        self.assertEqual(book(self.store, self.train.id).seat_number, 3)

    def test_cancelling_every_booking_keeps_numbering(self):
        result = book(self.store, self.train.id)
        cancel_booking(self.store, result.booking_id, 'u1')

        self.assertEqual(book(self.store, self.train.id).seat_number, 2)

    def test_cancellation_symmetry(self):
        result = book(self.store, self.train.id)
        before = self.store.get_train(self.train.id).available_seats

        cancelled = cancel_booking(self.store, result.booking_id, 'u1')

        self.assertTrue(cancelled.success)
        self.assertEqual(cancelled.message, 'Booking cancelled successfully')
        self.assertEqual(self.store.get_train(self.train.id).available_seats, before + 1)
        self.assertIsNone(self.store.get_booking(result.booking_id))

        again = cancel_booking(self.store, result.booking_id, 'u1')
        self.assertFalse(again.success)
        self.assertEqual(again.reason, allocator.NOT_FOUND)

    def test_cancel_other_users_booking(self):
        result = book(self.store, self.train.id, user_id='owner')

        attempt = cancel_booking(self.store, result.booking_id, 'intruder')

        self.assertFalse(attempt.success)
        self.assertEqual(attempt.message, 'Booking not found')
        self.assertIsNotNone(self.store.get_booking(result.booking_id))
        self.assertEqual(self.store.get_train(self.train.id).available_seats, 2)

    def test_seat_numbers_are_per_train(self):
        other = self.store.add_train(total_seats=3)
        book(self.store, self.train.id)
        book(self.store, self.train.id)
        self.assertEqual(book(self.store, other.id).seat_number, 1)


class AllocatorAtomicityTests(SimpleTestCase):
    """A failure inside the unit leaves counter and bookings untouched."""

    def setUp(self):
        self.store = InMemorySeatStore()
        self.train = self.store.add_train(total_seats=4)
        book(self.store, self.train.id)

    def assert_unchanged(self):
        self.assertEqual(self.store.get_train(self.train.id).available_seats, 3)
        self.assertEqual([b.seat_number for b in self.store.bookings_for(self.train.id)], [1])

    def test_fault_after_seat_computation(self):
        self.store.inject_fault('create_booking')

        result = book(self.store, self.train.id)

        self.assertFalse(result.success)
        self.assertEqual(result.reason, allocator.STORAGE_ERROR)
        self.assertTrue(result.message.startswith('Booking failed: '))
        self.assertIn('create_booking', result.message)
        self.assert_unchanged()

    def test_fault_after_insert_before_commit(self):
        self.store.inject_fault('decrement_available_seats')

        result = book(self.store, self.train.id)

        self.assertFalse(result.success)
        self.assertIsNone(result.booking_id)
        self.assert_unchanged()

    def test_store_recovers_after_fault(self):
        self.store.inject_fault('decrement_available_seats')
        book(self.store, self.train.id)
        self.store.clear_faults()

        result = book(self.store, self.train.id)

        self.assertTrue(result.success)
        self.assertEqual(result.seat_number, 2)

    def test_cancellation_fault_keeps_booking(self):
        booking = self.store.bookings_for(self.train.id)[0]
        self.store.inject_fault('increment_available_seats')

        result = cancel_booking(self.store, booking.id, 'u1')

        self.assertFalse(result.success)
        self.assertEqual(result.reason, allocator.STORAGE_ERROR)
        self.assertTrue(result.message.startswith('Cancellation failed: '))
        self.assert_unchanged()

    def test_result_serializes_to_dict(self):
        payload = book(self.store, self.train.id).as_dict()
        self.assertEqual(set(payload), {'success', 'message', 'booking_id', 'seat_number', 'reason'})


class AllocatorConcurrencyTests(SimpleTestCase):
    """Threads racing for the same train against the in-memory store."""

    def test_no_double_allocation(self):
        seats, extra = 5, 4
        store = InMemorySeatStore(critical_section_delay=0.002)
        train = store.add_train(total_seats=seats)

        results = run_concurrently(seats + extra, lambda i: book(store, train.id, user_id=f'u{i}'))

        successes = [r for r in results if r.success]
        failures = [r for r in results if not r.success]
        self.assertEqual(len(successes), seats)
        self.assertEqual(len(failures), extra)
        self.assertTrue(all(r.message == 'No seats available' for r in failures))
        self.assertEqual(store.get_train(train.id).available_seats, 0)
        self.assertEqual(sorted(r.seat_number for r in successes), list(range(1, seats + 1)))

    def test_last_seat_scenario(self):
        store = InMemorySeatStore(critical_section_delay=0.002)
        train = store.add_train(total_seats=1)

        results = run_concurrently(2, lambda i: book(store, train.id, user_id=f'u{i}'))

        winners = [r for r in results if r.success]
        losers = [r for r in results if not r.success]
        self.assertEqual(len(winners), 1)
        self.assertEqual(winners[0].seat_number, 1)
        self.assertEqual(losers[0].message, 'No seats available')
        self.assertEqual(store.get_train(train.id).available_seats, 0)
        self.assertEqual([b.seat_number for b in store.bookings_for(train.id)], [1])

    def test_seat_uniqueness_under_mixed_load(self):
        store = InMemorySeatStore(critical_section_delay=0.001)
        train = store.add_train(total_seats=30)
        first = [book(store, train.id, user_id='u0') for _ in range(10)]

        def work(index):
            if index < 10:
                return cancel_booking(store, first[index].booking_id, 'u0')
            return book(store, train.id, user_id=f'u{index}')

        run_concurrently(30, work)

        bookings = store.bookings_for(train.id)
        seats = [b.seat_number for b in bookings]
        self.assertEqual(len(seats), len(set(seats)))
        self.assertEqual(len(bookings), 20)
        self.assertEqual(store.get_train(train.id).available_seats, 10)
        self.assertTrue(min(seats) > 10)

    def test_different_trains_do_not_block_each_other(self):
        store = InMemorySeatStore()
        busy = store.add_train(total_seats=1)
        free = store.add_train(total_seats=1)
        entered, release = threading.Event(), threading.Event()

        def hold_busy_train():
            with store.lock_train(busy.id):
                entered.set()
                release.wait(5)

        holder = threading.Thread(target=hold_busy_train)
        holder.start()
        try:
            self.assertTrue(entered.wait(5))
            result = book(store, free.id)
            self.assertTrue(result.success)
        finally:
            release.set()
            holder.join()


# =============================================================================
# UNIT TESTS - Allocator against the Django ORM store
# =============================================================================

class DjangoSeatStoreTests(TestCase):
    """Allocator semantics on the relational schema."""

    def setUp(self):
        self.store = DjangoSeatStore()
        self.user = User.objects.create_user(email='user@example.com', password='test123', full_name='Test User')
        self.train = make_train(total_seats=3)

    def test_allocation_writes_booking_and_counter(self):
        result = book(self.store, self.train.id, user_id=self.user.id, name='Asha', gender='female')

        self.assertTrue(result.success)
        booking = Booking.objects.get(pk=result.booking_id)
        self.assertEqual(booking.seat_number, 1)
        self.assertEqual(booking.status, Booking.STATUS_CONFIRMED)
        self.assertEqual(booking.user, self.user)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)

    def test_allocation_refreshes_updated_at(self):
        before = self.train.updated_at
        book(self.store, self.train.id, user_id=self.user.id)
        self.train.refresh_from_db()
        self.assertGreaterEqual(self.train.updated_at, before)

    def test_unknown_and_malformed_train_ids(self):
        self.assertEqual(book(self.store, uuid.uuid4(), user_id=self.user.id).reason, allocator.NOT_FOUND)
        self.assertEqual(book(self.store, 'not-a-uuid', user_id=self.user.id).reason, allocator.NOT_FOUND)

    def test_scenario_cancel_middle_seat_then_book(self):
        """Seats {1,2,3}, cancel 2: counter +1, next seat is 4."""
        self.train.total_seats = 4
        self.train.available_seats = 4
        self.train.save()
        issued = [book(self.store, self.train.id, user_id=self.user.id) for _ in range(3)]

        result = cancel_booking(self.store, issued[1].booking_id, self.user.id)
        self.assertTrue(result.success)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)
        self.assertFalse(Booking.objects.filter(pk=issued[1].booking_id).exists())

        self.assertEqual(book(self.store, self.train.id, user_id=self.user.id).seat_number, 4)

    def test_highest_seat_stays_retired_after_cancellation(self):
        first = book(self.store, self.train.id, user_id=self.user.id)
        cancel_booking(self.store, first.booking_id, self.user.id)

        self.train.refresh_from_db()
        self.assertEqual(self.train.last_issued_seat, 1)
        self.assertEqual(book(self.store, self.train.id, user_id=self.user.id).seat_number, 2)

    def test_fault_before_commit_rolls_back(self):
        book(self.store, self.train.id, user_id=self.user.id)

        with mock.patch.object(DjangoLedger, 'decrement_available_seats', side_effect=RuntimeError('disk full')):
            result = book(self.store, self.train.id, user_id=self.user.id)

        self.assertFalse(result.success)
        self.assertEqual(result.message, 'Booking failed: disk full')
        self.assertEqual(Booking.objects.filter(train=self.train).count(), 1)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)

    def test_unique_constraint_is_last_line_of_defence(self):
        book(self.store, self.train.id, user_id=self.user.id)

        with mock.patch.object(DjangoLedger, 'max_seat_number', return_value=0):
            result = book(self.store, self.train.id, user_id=self.user.id)

        self.assertFalse(result.success)
        self.assertEqual(result.reason, allocator.STORAGE_ERROR)
        self.assertEqual(Booking.objects.filter(train=self.train).count(), 1)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)

    def test_duplicate_seat_rejected_by_database(self):
        Booking.objects.create(user=self.user, train=self.train, seat_number=1,
                               passenger_name='A', passenger_age=30, passenger_gender='male')
        with self.assertRaises(IntegrityError), transaction.atomic():
            Booking.objects.create(user=self.user, train=self.train, seat_number=1,
                                   passenger_name='B', passenger_age=30, passenger_gender='male')

    def test_cancellation_fault_rolls_back_delete(self):
        issued = book(self.store, self.train.id, user_id=self.user.id)

        with mock.patch.object(DjangoLedger, 'increment_available_seats', side_effect=RuntimeError('lost connection')):
            result = cancel_booking(self.store, issued.booking_id, self.user.id)

        self.assertFalse(result.success)
        self.assertTrue(Booking.objects.filter(pk=issued.booking_id).exists())
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)

    def test_cancel_requires_owner(self):
        other = User.objects.create_user(email='other@example.com', password='test123', full_name='Other')
        issued = book(self.store, self.train.id, user_id=self.user.id)

        result = cancel_booking(self.store, issued.booking_id, other.id)

        self.assertEqual(result.reason, allocator.NOT_FOUND)
        self.assertTrue(Booking.objects.filter(pk=issued.booking_id).exists())

    def test_cancel_malformed_id(self):
        self.assertEqual(cancel_booking(self.store, 'garbage', self.user.id).reason, allocator.NOT_FOUND)


class DjangoSeatStoreConcurrencyTests(TransactionTestCase):
    """
    Threads racing through the ORM store.
    Uses TransactionTestCase so each thread commits on its own connection.
    """

    def setUp(self):
        self.user = User.objects.create_user(email='racer@example.com', password='test123', full_name='Racer')

    def race(self, train, attempts):
        store = DjangoSeatStore()

        def attempt(index):
            try:
                return book(store, train.id, user_id=self.user.id, name=f'P{index}')
            finally:
                connection.close()

        return run_concurrently(attempts, attempt)

    def test_last_seat_goes_to_exactly_one_caller(self):
        train = make_train(number='RACE001', total_seats=1)

        results = self.race(train, 2)

        self.assertEqual(sorted(r.success for r in results), [False, True])
        winner = next(r for r in results if r.success)
        loser = next(r for r in results if not r.success)
        self.assertEqual(winner.seat_number, 1)
        self.assertEqual(loser.message, 'No seats available')
        train.refresh_from_db()
        self.assertEqual(train.available_seats, 0)
        self.assertEqual(list(Booking.objects.filter(train=train).values_list('seat_number', flat=True)), [1])

    def test_no_overselling(self):
        train = make_train(number='RACE002', total_seats=3)

        results = self.race(train, 5)

        self.assertEqual(sum(r.success for r in results), 3)
        train.refresh_from_db()
        self.assertEqual(train.available_seats, 0)
        seats = sorted(Booking.objects.filter(train=train).values_list('seat_number', flat=True))
        self.assertEqual(seats, [1, 2, 3])

    def test_other_train_proceeds_while_one_is_locked(self):
        busy = make_train(number='BUSY01', total_seats=1)
        free = make_train(number='FREE01', total_seats=1)
        entered, release = threading.Event(), threading.Event()

        def hold():
            with train_lock(busy.id):
                entered.set()
                release.wait(5)

        holder = threading.Thread(target=hold)
        holder.start()
        try:
            self.assertTrue(entered.wait(5))
            result = book(DjangoSeatStore(), free.id, user_id=self.user.id)
            self.assertTrue(result.success)
        finally:
            release.set()
            holder.join()


# =============================================================================
# INTEGRATION TESTS - Booking API
# =============================================================================

@override_settings(MONGODB_ENABLED=False)
class BookingAPITests(APITestCase):
    """Integration tests for the booking endpoints."""

    def setUp(self):
        self.user = User.objects.create_user(
            email='user@example.com',
            password='UserPass123!',
            full_name='Test User'
        )
        self.train = make_train(total_seats=2)
        self.login('user@example.com', 'UserPass123!')

    def login(self, email, password):
        response = self.client.post('/api/login/', {'email': email, 'password': password}, format='json')
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['tokens']['access']}")

    def payload(self, **overrides):
        data = {
            'train_id': str(self.train.id),
            'passenger_name': 'John Doe',
            'passenger_age': 30,
            'passenger_gender': 'male',
        }
        data.update(overrides)
        return data

    def test_create_booking_success(self):
        response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Booking successful')
        self.assertEqual(response.data['seat_number'], 1)
        self.assertEqual(response.data['booking']['status'], 'confirmed')
        self.assertEqual(response.data['booking']['train_details']['train_number'], '12345')
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 1)

    @override_settings(MONGODB_ENABLED=True, MONGODB_URI='http://x')
    def test_bad_mongodb_uri_does_not_fail_committed_booking(self):
        reset_mongo_client()
        self.addCleanup(reset_mongo_client)

        response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Booking.objects.filter(train=self.train).count(), 1)
        self.assertFalse(is_mongodb_available())

        # Logging stays off; the next booking goes through as well.
        response = self.client.post('/api/bookings/', self.payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['seat_number'], 2)

    def test_booking_cancelled_before_response_still_returns_201(self):
        def cancel_right_away(event, user_id, booking_id=None, **kwargs):
            Booking.objects.filter(pk=booking_id).delete()

        with mock.patch('bookings.views.log_booking_event', side_effect=cancel_right_away):
            response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['seat_number'], 1)
        self.assertNotIn('booking', response.data)
        self.assertIsNotNone(response.data['booking_id'])

    def test_gender_is_case_insensitive(self):
        response = self.client.post('/api/bookings/', self.payload(passenger_gender='Female'), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['booking']['passenger_gender'], 'female')

    def test_missing_fields_rejected(self):
        response = self.client.post('/api/bookings/', {'train_id': str(self.train.id)}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('passenger_name', response.data)
        self.assertFalse(Booking.objects.exists())

    def test_invalid_age_rejected(self):
        response = self.client.post('/api/bookings/', self.payload(passenger_age=150), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_unknown_train_returns_404(self):
        response = self.client.post('/api/bookings/', self.payload(train_id=str(uuid.uuid4())), format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Train not found')

    def test_full_train_returns_400(self):
        self.client.post('/api/bookings/', self.payload(), format='json')
        self.client.post('/api/bookings/', self.payload(), format='json')

        response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'No seats available')

    def test_storage_failure_returns_500(self):
        with mock.patch.object(DjangoLedger, 'create_booking', side_effect=RuntimeError('boom')):
            response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(response.data['error'], 'Booking failed: boom')
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)

    def test_get_my_bookings(self):
        self.client.post('/api/bookings/', self.payload(), format='json')
        self.client.post('/api/bookings/', self.payload(passenger_name='Jane Doe'), format='json')

        response = self.client.get('/api/bookings/my/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertIn('train_details', response.data['results'][0])
        self.assertEqual(response.data['results'][0]['train_details']['source'], 'Delhi')

    def test_get_booking_detail(self):
        created = self.client.post('/api/bookings/', self.payload(), format='json')

        response = self.client.get(f"/api/bookings/{created.data['booking_id']}/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['seat_number'], 1)

    def test_other_users_booking_is_hidden(self):
        created = self.client.post('/api/bookings/', self.payload(), format='json')
        User.objects.create_user(email='other@example.com', password='OtherPass123!', full_name='Other')
        self.login('other@example.com', 'OtherPass123!')

        self.assertEqual(self.client.get(f"/api/bookings/{created.data['booking_id']}/").status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(f"/api/bookings/{created.data['booking_id']}/").status_code, status.HTTP_404_NOT_FOUND)
        self.assertTrue(Booking.objects.filter(pk=created.data['booking_id']).exists())

    def test_cancel_booking(self):
        created = self.client.post('/api/bookings/', self.payload(), format='json')
        url = f"/api/bookings/{created.data['booking_id']}/"

        response = self.client.delete(url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Booking cancelled successfully')
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 2)
        self.assertEqual(self.client.get(url).status_code, status.HTTP_404_NOT_FOUND)

    def test_booking_unauthenticated(self):
        self.client.credentials()

        response = self.client.post('/api/bookings/', self.payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_booking_events_are_logged(self):
        with mock.patch('bookings.views.log_booking_event') as log_event:
            self.client.post('/api/bookings/', self.payload(), format='json')

        log_event.assert_called_once()
        self.assertEqual(log_event.call_args.args[0], 'booked')
        self.assertEqual(log_event.call_args.kwargs['seat_number'], 1)
