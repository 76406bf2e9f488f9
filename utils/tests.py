"""
Tests for shared utilities: per-train locks and request logging middleware.
"""
import threading
import uuid
from datetime import date, time, timedelta
from decimal import Decimal
from unittest.mock import patch

from django.test import SimpleTestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase

from trains.models import Train
from utils.locks import KeyedLockRegistry

User = get_user_model()


class KeyedLockRegistryTests(SimpleTestCase):

    def test_same_key_is_exclusive(self):
        registry = KeyedLockRegistry()
        holding, release, second_entered = threading.Event(), threading.Event(), threading.Event()

        def first():
            with registry.hold('train-1'):
                holding.set()
                release.wait(5)

        def second():
            holding.wait(5)
            with registry.hold('train-1'):
                second_entered.set()

        threads = [threading.Thread(target=first), threading.Thread(target=second)]
        for thread in threads:
            thread.start()

        self.assertTrue(holding.wait(5))
        self.assertFalse(second_entered.wait(0.2))
        release.set()
        self.assertTrue(second_entered.wait(5))
        for thread in threads:
            thread.join()

    def test_different_keys_do_not_wait(self):
        registry = KeyedLockRegistry()
        acquired = []

        def other_train():
            with registry.hold('train-2'):
                acquired.append(True)

        with registry.hold('train-1'):
            worker = threading.Thread(target=other_train)
            worker.start()
            worker.join(2)
            self.assertFalse(worker.is_alive())
            self.assertEqual(len(acquired), 1)

    def test_uuid_and_string_share_a_lock(self):
        registry = KeyedLockRegistry()
        key = uuid.uuid4()
        with registry.hold(key):
            self.assertEqual(registry.active_keys(), {str(key)})

    def test_entries_are_dropped_after_use(self):
        registry = KeyedLockRegistry()
        with registry.hold('a'):
            with registry.hold('b'):
                self.assertEqual(registry.active_keys(), {'a', 'b'})
        self.assertEqual(registry.active_keys(), set())

    def test_lock_released_when_block_raises(self):
        registry = KeyedLockRegistry()
        with self.assertRaises(RuntimeError):
            with registry.hold('a'):
                raise RuntimeError('boom')

        with registry.hold('a'):
            pass
        self.assertEqual(registry.active_keys(), set())


class APILoggingMiddlewareTests(APITestCase):
    """The middleware hands search and booking requests to the MongoDB logger."""

    def setUp(self):
        self.user = User.objects.create_user(email='user@example.com', password='UserPass123!', full_name='User')
        self.client.force_authenticate(user=self.user)
        Train.objects.create(
            train_number='LOG001', train_name='Logger Express', source='Delhi', destination='Mumbai',
            departure_time=time(6, 0), arrival_time=time(12, 0),
            journey_date=date.today() + timedelta(days=3),
            total_seats=10, available_seats=10, price=Decimal('100.00'),
        )

    @patch('utils.middleware.log_api_request')
    def test_search_request_is_logged(self, mock_log):
        self.client.get('/api/trains/search/', {'source': ' delhi', 'destination': 'MUMBAI'})

        mock_log.assert_called_once()
        kwargs = mock_log.call_args.kwargs
        self.assertEqual(kwargs['endpoint'], '/api/trains/search/')
        self.assertEqual(kwargs['method'], 'GET')
        self.assertEqual(kwargs['user_id'], self.user.id)
        self.assertEqual(kwargs['request_params'], {'source': 'Delhi', 'destination': 'Mumbai'})
        self.assertEqual(kwargs['response_status'], 200)
        self.assertEqual(kwargs['results_count'], 1)

    @patch('utils.middleware.log_api_request')
    def test_booking_body_is_not_logged(self, mock_log):
        self.client.post('/api/bookings/', {'passenger_name': 'Secret'}, format='json')

        mock_log.assert_called_once()
        self.assertEqual(mock_log.call_args.kwargs['request_params'], {})
        self.assertEqual(mock_log.call_args.kwargs['response_status'], 400)

    @patch('utils.middleware.log_api_request')
    def test_other_paths_are_not_logged(self, mock_log):
        self.client.get('/api/trains/')
        self.client.get('/api/profile/')

        mock_log.assert_not_called()

    @patch('utils.middleware.log_api_request', side_effect=RuntimeError('log store down'))
    def test_logging_error_does_not_change_response(self, mock_log):
        response = self.client.get('/api/trains/search/', {'source': 'Delhi', 'destination': 'Mumbai'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.data['results']), 1)
        mock_log.assert_called_once()
