"""Views for registration, login and the current user's profile."""
import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth.models import update_last_login
from drf_spectacular.utils import extend_schema, OpenApiExample
from rest_framework import serializers as drf_serializers

from .serializers import UserRegistrationSerializer, UserLoginSerializer, UserSerializer

logger = logging.getLogger(__name__)


# Response serializers for Swagger documentation
class TokenResponseSerializer(drf_serializers.Serializer):
    refresh = drf_serializers.CharField()
    access = drf_serializers.CharField()


class AuthResponseSerializer(drf_serializers.Serializer):
    message = drf_serializers.CharField()
    user = UserSerializer()
    tokens = TokenResponseSerializer()


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    return {'refresh': str(refresh), 'access': str(refresh.access_token)}


class RegisterView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Register a new passenger account",
        description="Creates the account together with its profile and returns a JWT pair.",
        request=UserRegistrationSerializer,
        responses={201: AuthResponseSerializer},
        examples=[
            OpenApiExample(
                "Register Example",
                value={
                    "email": "asha@example.com",
                    "full_name": "Asha Verma",
                    "password": "SecurePass123!",
                    "password_confirm": "SecurePass123!",
                    "phone": "9876543210"
                },
                request_only=True
            )
        ],
        tags=["Authentication"]
    )
    def post(self, request):
        serializer = UserRegistrationSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.save()
        logger.info("Registered user %s", user.id)
        return Response({
            'message': 'User registered successfully',
            'user': UserSerializer(user).data,
            'tokens': issue_tokens(user),
        }, status=status.HTTP_201_CREATED)


class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    @extend_schema(
        summary="Login",
        description="Authenticate with email and password to receive a JWT pair.",
        request=UserLoginSerializer,
        responses={200: AuthResponseSerializer},
        examples=[
            OpenApiExample(
                "Login Example",
                value={"email": "admin@railway.local", "password": "Admin@123"},
                request_only=True
            )
        ],
        tags=["Authentication"]
    )
    def post(self, request):
        serializer = UserLoginSerializer(data=request.data, context={'request': request})
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        user = serializer.validated_data['user']
        update_last_login(None, user)
        return Response({
            'message': 'Login successful',
            'user': UserSerializer(user).data,
            'tokens': issue_tokens(user),
        }, status=status.HTTP_200_OK)


class ProfileView(APIView):
    @extend_schema(
        summary="Get current user profile",
        responses={200: UserSerializer},
        tags=["Authentication"]
    )
    def get(self, request):
        return Response(UserSerializer(request.user).data)

    @extend_schema(
        summary="Update current user profile",
        description="Only full_name and phone can be changed.",
        request=UserSerializer,
        responses={200: UserSerializer},
        tags=["Authentication"]
    )
    def patch(self, request):
        serializer = UserSerializer(request.user, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
        serializer.save()
        return Response(serializer.data)
