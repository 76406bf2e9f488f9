"""
Comprehensive tests for trains app.
Tests cover: Model constraints, Search API, Admin-only access, Seat-count changes.
"""
import uuid
from unittest.mock import patch
from decimal import Decimal
from datetime import date, time, timedelta

from django.db import IntegrityError, transaction
from django.test import TestCase, override_settings
from django.utils import timezone
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import serializers, status

from trains.models import Train
from trains.serializers import TrainWriteSerializer
from bookings.allocator import allocate_seat
from bookings.stores import DjangoSeatStore

User = get_user_model()


def create_train(train_number='12951', **overrides):
    fields = {
        'train_name': 'Mumbai Rajdhani',
        'source': 'Delhi',
        'destination': 'Mumbai',
        'departure_time': time(16, 55),
        'arrival_time': time(8, 35),
        'journey_date': date.today() + timedelta(days=7),
        'total_seats': 500,
        'price': Decimal('2500.00'),
    }
    fields.update(overrides)
    fields.setdefault('available_seats', fields['total_seats'])
    return Train.objects.create(train_number=train_number, **fields)


def train_payload(**overrides):
    data = {
        'train_number': '12345',
        'train_name': 'Test Train',
        'source': 'Delhi',
        'destination': 'Mumbai',
        'departure_time': '10:00:00',
        'arrival_time': '18:00:00',
        'journey_date': (date.today() + timedelta(days=7)).isoformat(),
        'total_seats': 100,
        'price': '1000.00',
    }
    data.update(overrides)
    return data


# UNIT TESTS - Models

class TrainModelTests(TestCase):
    """Test Train model constraints."""

    def test_create_train(self):
        """Test creating a train is successful."""
        train = create_train(total_seats=100)

        self.assertEqual(train.train_number, '12951')
        self.assertEqual(train.total_seats, 100)
        self.assertEqual(train.available_seats, 100)
        self.assertEqual(train.booked_seats, 0)
        self.assertEqual(train.last_issued_seat, 0)
        self.assertTrue(train.has_seats())

    def test_train_number_unique(self):
        """Test train number must be unique."""
        create_train('UNIQUE001')

        with self.assertRaises(IntegrityError), transaction.atomic():
            create_train('UNIQUE001', train_name='Train 2')

    def test_available_seats_cannot_exceed_total(self):
        """Test the check constraint keeps the counter within capacity."""
        with self.assertRaises(IntegrityError), transaction.atomic():
            create_train('OVER01', total_seats=5, available_seats=6)

    def test_full_train_has_no_seats(self):
        train = create_train(total_seats=5, available_seats=0)

        self.assertFalse(train.has_seats())
        self.assertEqual(train.booked_seats, 5)

    def test_train_string_representation(self):
        """Test Train __str__ format."""
        train = create_train('12951')

        self.assertEqual(str(train), '12951 - Mumbai Rajdhani')


# INTEGRATION TESTS - Search

@override_settings(MONGODB_ENABLED=False)
class TrainSearchAPITests(APITestCase):
    """Integration tests for train search API."""

    def setUp(self):
        self.user = User.objects.create_user(
            email='user@example.com',
            password='UserPass123!',
            full_name='Regular User'
        )
        self.train = create_train('12951')

        # Login and get token
        response = self.client.post('/api/login/', {
            'email': 'user@example.com',
            'password': 'UserPass123!'
        }, format='json')
        self.token = response.data['tokens']['access']
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {self.token}')

    def test_search_trains_success(self):
        """Test searching trains between stations."""
        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['train_number'], '12951')
        self.assertEqual(response.data['results'][0]['available_seats'], 500)

    def test_search_trains_case_insensitive_substring(self):
        """Test search is a case insensitive partial match."""
        response = self.client.get('/api/trains/search/', {
            'source': 'DEL',
            'destination': 'mum'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_search_trains_no_results(self):
        """Test search with no matching trains."""
        response = self.client.get('/api/trains/search/', {
            'source': 'Chennai',
            'destination': 'Kolkata'
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 0)

    def test_search_hides_full_trains(self):
        """Test trains without free seats are not offered."""
        create_train('FULL01', total_seats=10, available_seats=0)

        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai'
        })

        numbers = [t['train_number'] for t in response.data['results']]
        self.assertEqual(numbers, ['12951'])

    def test_search_trains_missing_params(self):
        """Test search fails without required params."""
        response = self.client.get('/api/trains/search/', {'source': 'Delhi'})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Source and destination are required')

    def test_search_with_date_filter(self):
        """Test search with date filter."""
        create_train('OTHER1', journey_date=date.today() + timedelta(days=8))
        future_date = (date.today() + timedelta(days=7)).isoformat()

        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai',
            'date': future_date
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['journey_date'], future_date)

    def test_search_with_bad_date(self):
        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai',
            'date': '15/01/2026'
        })

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_search_with_pagination(self):
        """Test search pagination with limit and offset."""
        for i in range(3):
            create_train(f'PAGE{i}', departure_time=time(5 + i, 0))

        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai',
            'limit': 2,
            'offset': 1
        })

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 4)
        self.assertEqual(response.data['limit'], 2)
        self.assertEqual(response.data['offset'], 1)
        self.assertEqual([t['train_number'] for t in response.data['results']], ['PAGE1', 'PAGE2'])

    def test_search_unauthenticated(self):
        """Test search fails without authentication."""
        self.client.credentials()  # Remove credentials
        response = self.client.get('/api/trains/search/', {
            'source': 'Delhi',
            'destination': 'Mumbai'
        })

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_today_trains(self):
        create_train('TODAY1', journey_date=timezone.localdate())

        response = self.client.get('/api/trains/today/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([t['train_number'] for t in response.data['results']], ['TODAY1'])

    def test_train_detail(self):
        response = self.client.get(f'/api/trains/{self.train.id}/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['train_name'], 'Mumbai Rajdhani')

    def test_train_detail_not_found(self):
        response = self.client.get(f'/api/trains/{uuid.uuid4()}/')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Train not found')


# INTEGRATION TESTS - Admin Only Access

class AdminOnlyAPITests(APITestCase):
    """Test admin-only route access control."""

    def setUp(self):
        self.regular_user = User.objects.create_user(
            email='user@example.com',
            password='UserPass123!',
            full_name='Regular User'
        )
        self.admin_user = User.objects.create_admin(
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

    def login_admin(self):
        token = self.get_token('admin@example.com', 'AdminPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

    def test_regular_user_cannot_create_train(self):
        """Test regular user gets 403 on admin route."""
        token = self.get_token('user@example.com', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.post('/api/trains/', train_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Train.objects.exists())

    def test_regular_user_can_list_trains(self):
        create_train()
        token = self.get_token('user@example.com', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.get('/api/trains/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_admin_can_create_train(self):
        """Test admin user can create train; it starts with every seat free."""
        self.login_admin()

        response = self.client.post('/api/trains/', train_payload(
            train_number='ab-123', source=' new delhi ', destination='mumbai'
        ), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['message'], 'Train added successfully')
        self.assertEqual(response.data['train']['train_number'], 'AB-123')
        self.assertEqual(response.data['train']['source'], 'New Delhi')
        self.assertEqual(response.data['train']['destination'], 'Mumbai')
        self.assertEqual(response.data['train']['available_seats'], 100)

    def test_available_seats_cannot_be_set_on_create(self):
        self.login_admin()

        response = self.client.post('/api/trains/', train_payload(available_seats=3), format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['train']['available_seats'], 100)

    def test_duplicate_train_number_any_case(self):
        create_train('RJ100')
        self.login_admin()

        response = self.client.post('/api/trains/', train_payload(train_number='rj100'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('train_number', response.data)

    def test_duplicate_created_after_validation(self):
        """A number taken between validation and insert is still a 400."""
        serializer = TrainWriteSerializer(data=train_payload(train_number='RACE01'))
        self.assertTrue(serializer.is_valid(), serializer.errors)
        create_train('RACE01')

        with self.assertRaises(serializers.ValidationError) as ctx:
            serializer.save()

        self.assertIn('train_number', ctx.exception.detail)
        self.assertEqual(Train.objects.filter(train_number='RACE01').count(), 1)

    def test_concurrent_duplicate_create_returns_400(self):
        create_train('RACE02')
        self.login_admin()

        # Uniqueness pre-check passes as it would for the losing request of a race
        with patch.object(TrainWriteSerializer, 'validate_train_number', lambda self, value: value):
            response = self.client.post('/api/trains/', train_payload(train_number='RACE02'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('train_number', response.data)
        self.assertEqual(Train.objects.count(), 1)

    def test_source_and_destination_must_differ(self):
        self.login_admin()

        response = self.client.post('/api/trains/', train_payload(destination='delhi'), format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('destination', response.data)

    def test_invalid_train_fields(self):
        self.login_admin()

        for override in ({'total_seats': 0}, {'price': '-1.00'}, {'train_number': 'no spaces!'}):
            response = self.client.post('/api/trains/', train_payload(**override), format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, override)

    def test_admin_can_list_trains(self):
        """Test admin can list all trains."""
        create_train('99999', train_name='Existing Train', total_seats=200)
        self.login_admin()

        response = self.client.get('/api/trains/')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('results', response.data)

    def test_unauthenticated_cannot_access_admin_route(self):
        """Test unauthenticated request gets 401."""
        response = self.client.post('/api/trains/', {}, format='json')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_regular_user_cannot_update_train(self):
        train = create_train()
        token = self.get_token('user@example.com', 'UserPass123!')
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.client.patch(f'/api/trains/{train.id}/', {'train_name': 'Hijacked'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_update_unknown_train(self):
        self.login_admin()

        response = self.client.put(f'/api/trains/{uuid.uuid4()}/', train_payload(), format='json')

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TrainSeatCountUpdateTests(APITestCase):
    """Changing total_seats moves available_seats by the same amount."""

    def setUp(self):
        admin = User.objects.create_admin(email='admin@example.com', password='AdminPass123!', full_name='Admin')
        passenger = User.objects.create_user(email='p@example.com', password='Pass123!', full_name='Passenger')
        self.client.force_authenticate(user=admin)
        self.train = create_train('SEAT01', total_seats=10)
        store = DjangoSeatStore()
        for _ in range(3):
            allocate_seat(store, self.train.id, passenger.id, 'Passenger', 30, 'male')
        self.url = f'/api/trains/{self.train.id}/'

    def test_increase_total_seats(self):
        response = self.client.patch(self.url, {'total_seats': 15}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['message'], 'Train updated successfully')
        self.train.refresh_from_db()
        self.assertEqual(self.train.total_seats, 15)
        self.assertEqual(self.train.available_seats, 12)

    def test_shrink_to_booked_count(self):
        response = self.client.patch(self.url, {'total_seats': 3}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.train.refresh_from_db()
        self.assertEqual(self.train.available_seats, 0)

    def test_cannot_shrink_below_booked(self):
        response = self.client.patch(self.url, {'total_seats': 2}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('total_seats', response.data)
        self.train.refresh_from_db()
        self.assertEqual(self.train.total_seats, 10)
        self.assertEqual(self.train.available_seats, 7)

    def test_other_fields_leave_counter_alone(self):
        response = self.client.patch(self.url, {'train_name': 'Renamed Express', 'price': '999.00'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.train.refresh_from_db()
        self.assertEqual(self.train.train_name, 'Renamed Express')
        self.assertEqual(self.train.available_seats, 7)

    def test_keep_own_train_number(self):
        response = self.client.patch(self.url, {'train_number': 'seat01'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_rename_onto_number_taken_after_validation(self):
        create_train('TAKEN1')

        with patch.object(TrainWriteSerializer, 'validate_train_number', lambda self, value: value):
            response = self.client.patch(self.url, {'train_number': 'TAKEN1', 'total_seats': 12}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('train_number', response.data)
        self.train.refresh_from_db()
        self.assertEqual(self.train.train_number, 'SEAT01')
        self.assertEqual((self.train.total_seats, self.train.available_seats), (10, 7))

    def test_patch_destination_equal_to_existing_source(self):
        response = self.client.patch(self.url, {'destination': 'DELHI'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
