"""
Comprehensive tests for core app - User authentication.
Tests cover: Model constraints, Serializer validation, Auth flow integration.
"""
from django.test import TestCase
from django.contrib.auth import get_user_model
from rest_framework.test import APITestCase
from rest_framework import status

User = get_user_model()


# =============================================================================
# UNIT TESTS - Models
# =============================================================================

class UserModelTests(TestCase):
    """Test User model constraints and methods."""

    def test_create_user_with_email(self):
        """Test creating a user with email is successful."""
        email = 'test@example.com'
        password = 'testpass123'
        user = User.objects.create_user(
            email=email,
            password=password,
            full_name='Test User'
        )

        self.assertEqual(user.email, email)
        self.assertEqual(user.full_name, 'Test User')
        self.assertTrue(user.check_password(password))
        self.assertFalse(user.is_admin)
        self.assertTrue(user.is_active)

    def test_email_domain_is_normalized(self):
        """Test email domain is normalized to lowercase."""
        user = User.objects.create_user(
            email='Test@EXAMPLE.COM',
            password='test123',
            full_name='Test'
        )
        # Django's normalize_email only lowercases the domain part
        self.assertEqual(user.email, 'Test@example.com')

    def test_email_is_unique(self):
        """Test that duplicate emails raise error."""
        User.objects.create_user(
            email='unique@example.com',
            password='test123',
            full_name='First User'
        )

        with self.assertRaises(Exception):
            User.objects.create_user(
                email='unique@example.com',
                password='test123',
                full_name='Second User'
            )

    def test_create_user_without_email_raises_error(self):
        """Test creating user without email raises ValueError."""
        with self.assertRaises(ValueError):
            User.objects.create_user(
                email='',
                password='test123',
                full_name='Test'
            )

    def test_create_admin(self):
        """Test create_admin grants the train-management capability only."""
        user = User.objects.create_admin(
            email='ops@example.com',
            password='admin123',
            full_name='Ops'
        )

        self.assertTrue(user.is_admin)
        self.assertFalse(user.is_superuser)
        self.assertFalse(user.is_staff)

    def test_create_superuser(self):
        """Test creating a superuser."""
        user = User.objects.create_superuser(
            email='admin@example.com',
            password='admin123',
            full_name='Admin'
        )

        self.assertTrue(user.is_superuser)
        self.assertTrue(user.is_staff)
        self.assertTrue(user.is_admin)

    def test_user_string_representation(self):
        """Test User __str__ returns email."""
        user = User.objects.create_user(
            email='test@example.com',
            password='test123',
            full_name='Test User'
        )
        self.assertEqual(str(user), 'test@example.com')
        self.assertEqual(user.get_short_name(), 'Test')


# =============================================================================
# UNIT TESTS - Serializers
# =============================================================================

class UserSerializerTests(TestCase):
    """Test User serializers validation."""

    def test_registration_password_mismatch(self):
        """Test registration fails when passwords don't match."""
        from core.serializers import UserRegistrationSerializer

        data = {
            'email': 'test@example.com',
            'full_name': 'Test User',
            'password': 'StrongPass123!',
            'password_confirm': 'DifferentPass123!'
        }
        serializer = UserRegistrationSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn('password_confirm', serializer.errors)

    def test_registration_weak_password(self):
        """Test registration fails with weak password."""
        from core.serializers import UserRegistrationSerializer

        data = {
            'email': 'test@example.com',
            'full_name': 'Test User',
            'password': '123',  # Too weak
            'password_confirm': '123'
        }
        serializer = UserRegistrationSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn('password', serializer.errors)

    def test_registration_duplicate_email_any_case(self):
        """Test registration fails with existing email, ignoring case."""
        from core.serializers import UserRegistrationSerializer

        User.objects.create_user(
            email='existing@example.com',
            password='test123',
            full_name='Existing'
        )

        data = {
            'email': 'Existing@Example.com',
            'full_name': 'New User',
            'password': 'StrongPass123!',
            'password_confirm': 'StrongPass123!'
        }
        serializer = UserRegistrationSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn('email', serializer.errors)

    def test_registration_blank_full_name(self):
        """Test registration fails when the name is only whitespace."""
        from core.serializers import UserRegistrationSerializer

        data = {
            'email': 'blank@example.com',
            'full_name': '   ',
            'password': 'StrongPass123!',
            'password_confirm': 'StrongPass123!'
        }
        serializer = UserRegistrationSerializer(data=data)

        self.assertFalse(serializer.is_valid())
        self.assertIn('full_name', serializer.errors)

    def test_registration_lowercases_email(self):
        """Test the stored email is lowercased."""
        from core.serializers import UserRegistrationSerializer

        serializer = UserRegistrationSerializer(data={
            'email': 'Mixed.Case@Example.com',
            'full_name': '  Mixed Case  ',
            'password': 'StrongPass123!',
            'password_confirm': 'StrongPass123!'
        })

        self.assertTrue(serializer.is_valid(), serializer.errors)
        user = serializer.save()
        self.assertEqual(user.email, 'mixed.case@example.com')
        self.assertEqual(user.full_name, 'Mixed Case')

    def test_login_invalid_credentials(self):
        """Test login fails with invalid credentials."""
        from core.serializers import UserLoginSerializer

        User.objects.create_user(
            email='test@example.com',
            password='correctpass',
            full_name='Test'
        )

        serializer = UserLoginSerializer(data={
            'email': 'test@example.com',
            'password': 'wrongpass'
        })

        self.assertFalse(serializer.is_valid())

    def test_login_inactive_user(self):
        """Test inactive accounts cannot log in."""
        from core.serializers import UserLoginSerializer

        User.objects.create_user(
            email='gone@example.com',
            password='correctpass',
            full_name='Gone',
            is_active=False
        )

        serializer = UserLoginSerializer(data={
            'email': 'gone@example.com',
            'password': 'correctpass'
        })

        self.assertFalse(serializer.is_valid())


# =============================================================================
# INTEGRATION TESTS - API Flow
# =============================================================================

class AuthenticationAPITests(APITestCase):
    """Integration tests for authentication flow."""

    def test_register_returns_jwt_tokens(self):
        """Test registration returns access and refresh tokens."""
        data = {
            'email': 'newuser@example.com',
            'full_name': 'New User',
            'password': 'SecurePass123!',
            'password_confirm': 'SecurePass123!',
            'phone': '9876543210'
        }

        response = self.client.post('/api/register/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('access', response.data['tokens'])
        self.assertIn('refresh', response.data['tokens'])
        self.assertEqual(response.data['user']['email'], 'newuser@example.com')
        self.assertEqual(response.data['user']['phone'], '9876543210')
        self.assertFalse(response.data['user']['is_admin'])

    def test_register_cannot_self_grant_admin(self):
        """Test is_admin in the request body is ignored."""
        data = {
            'email': 'sneaky@example.com',
            'full_name': 'Sneaky',
            'password': 'SecurePass123!',
            'password_confirm': 'SecurePass123!',
            'is_admin': True
        }

        response = self.client.post('/api/register/', data, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(User.objects.get(email='sneaky@example.com').is_admin)

    def test_login_returns_jwt_tokens(self):
        """Test login returns access and refresh tokens."""
        User.objects.create_user(
            email='test@example.com',
            password='TestPass123!',
            full_name='Test'
        )

        response = self.client.post('/api/login/', {
            'email': 'test@example.com',
            'password': 'TestPass123!'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data['tokens'])
        self.assertIsNotNone(User.objects.get(email='test@example.com').last_login)

    def test_login_wrong_password(self):
        User.objects.create_user(email='test@example.com', password='TestPass123!', full_name='Test')

        response = self.client.post('/api/login/', {
            'email': 'test@example.com',
            'password': 'nope'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_full_auth_flow(self):
        """Test complete flow: register -> login -> access protected route."""
        # Step 1: Register
        register_response = self.client.post('/api/register/', {
            'email': 'flowtest@example.com',
            'full_name': 'Flow Test',
            'password': 'FlowPass123!',
            'password_confirm': 'FlowPass123!'
        }, format='json')
        self.assertEqual(register_response.status_code, status.HTTP_201_CREATED)

        # Step 2: Login, email case does not matter
        login_response = self.client.post('/api/login/', {
            'email': 'FlowTest@Example.com',
            'password': 'FlowPass123!'
        }, format='json')
        self.assertEqual(login_response.status_code, status.HTTP_200_OK)

        access_token = login_response.data['tokens']['access']

        # Step 3: Access protected route
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {access_token}')

        profile_response = self.client.get('/api/profile/')
        self.assertEqual(profile_response.status_code, status.HTTP_200_OK)
        self.assertEqual(profile_response.data['email'], 'flowtest@example.com')
        self.assertEqual(profile_response.data['full_name'], 'Flow Test')

    def test_refresh_token(self):
        """Test a refresh token yields a new access token."""
        User.objects.create_user(email='test@example.com', password='TestPass123!', full_name='Test')
        login = self.client.post('/api/login/', {
            'email': 'test@example.com',
            'password': 'TestPass123!'
        }, format='json')

        response = self.client.post('/api/token/refresh/', {
            'refresh': login.data['tokens']['refresh']
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn('access', response.data)

    def test_protected_route_without_token(self):
        """Test protected route returns 401 without token."""
        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_protected_route_with_invalid_token(self):
        """Test protected route returns 401 with invalid token."""
        self.client.credentials(HTTP_AUTHORIZATION='Bearer invalid_token_here')

        response = self.client.get('/api/profile/')

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProfileAPITests(APITestCase):
    """Profile reads and updates."""

    def setUp(self):
        self.user = User.objects.create_user(
            email='profile@example.com',
            password='ProfilePass123!',
            full_name='Profile User'
        )
        self.client.force_authenticate(user=self.user)

    def test_update_name_and_phone(self):
        response = self.client.patch('/api/profile/', {
            'full_name': 'Renamed User',
            'phone': '9999999999'
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.full_name, 'Renamed User')
        self.assertEqual(self.user.phone, '9999999999')

    def test_email_and_admin_flag_are_read_only(self):
        response = self.client.patch('/api/profile/', {
            'email': 'other@example.com',
            'is_admin': True
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'profile@example.com')
        self.assertFalse(self.user.is_admin)


# =============================================================================
# MANAGEMENT COMMANDS
# =============================================================================

class SeedCommandTests(TestCase):
    """seed_db creates sample data through the seat allocator."""

    def run_seed(self, *args):
        from io import StringIO
        from django.core.management import call_command

        out = StringIO()
        call_command('seed_db', *args, stdout=out)
        return out.getvalue()

    def test_seed_creates_sample_data(self):
        from trains.models import Train
        from bookings.models import Booking

        output = self.run_seed()

        self.assertIn('Database seeded successfully!', output)
        self.assertTrue(User.objects.get(email='admin@railway.local').is_admin)
        self.assertEqual(Train.objects.count(), 5)
        self.assertEqual(Booking.objects.count(), 2)
        train = Booking.objects.first().train
        self.assertEqual(train.available_seats, train.total_seats - 1)

    def test_seed_is_idempotent(self):
        from bookings.models import Booking

        self.run_seed()
        self.run_seed()

        self.assertEqual(User.objects.count(), 3)
        self.assertEqual(Booking.objects.count(), 2)

    def test_seed_clear_rebuilds(self):
        from bookings.models import Booking

        self.run_seed()
        self.run_seed('--clear')

        self.assertEqual(Booking.objects.count(), 2)
        self.assertEqual(set(Booking.objects.values_list('seat_number', flat=True)), {1})
