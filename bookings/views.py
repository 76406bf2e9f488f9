"""Views for booking, viewing and cancelling seats."""
import logging

from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema, OpenApiParameter, OpenApiExample, inline_serializer
from rest_framework import serializers as drf_serializers

from utils.mongo import log_booking_event
from . import allocator
from .models import Booking
from .serializers import BookingSerializer, BookingCreateSerializer
from .stores import DjangoSeatStore

logger = logging.getLogger(__name__)

seat_store = DjangoSeatStore()

FAILURE_STATUS = {
    allocator.INVALID: status.HTTP_400_BAD_REQUEST,
    allocator.NO_SEATS: status.HTTP_400_BAD_REQUEST,
    allocator.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    allocator.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


# Response serializers for Swagger
class BookingResponseSerializer(drf_serializers.Serializer):
    message = drf_serializers.CharField()
    booking_id = drf_serializers.UUIDField()
    seat_number = drf_serializers.IntegerField()
    booking = BookingSerializer(required=False)


class BookingListResponseSerializer(drf_serializers.Serializer):
    count = drf_serializers.IntegerField()
    results = BookingSerializer(many=True)


ErrorSerializer = inline_serializer(name='BookingError', fields={'error': drf_serializers.CharField()})


def failure_response(result):
    return Response({'error': result.message}, status=FAILURE_STATUS.get(result.reason, status.HTTP_400_BAD_REQUEST))


def own_bookings(user):
    return Booking.objects.filter(user=user).select_related('train')


class BookingCreateView(APIView):
    """Book one seat for one passenger."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Book a seat on a train",
        description="Atomically assigns the next seat number on the train and decrements its available seats.",
        request=BookingCreateSerializer,
        responses={201: BookingResponseSerializer, 400: ErrorSerializer, 404: ErrorSerializer, 500: ErrorSerializer},
        examples=[
            OpenApiExample(
                "Book a seat",
                value={
                    "train_id": "4f0c5d7e-1d2a-4c38-9a5e-2b1b1f9e6a11",
                    "passenger_name": "Asha Verma",
                    "passenger_age": 34,
                    "passenger_gender": "female"
                },
                request_only=True
            )
        ],
        tags=["Bookings"]
    )
    def post(self, request):
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        data = serializer.validated_data
        result = allocator.allocate_seat(
            seat_store,
            train_id=data['train_id'],
            user_id=request.user.id,
            passenger_name=data['passenger_name'],
            passenger_age=data['passenger_age'],
            passenger_gender=data['passenger_gender'],
        )
        log_booking_event(
            'booked' if result.success else 'failed',
            user_id=request.user.id,
            train_id=str(data['train_id']),
            booking_id=result.booking_id,
            seat_number=result.seat_number,
            message=result.message,
        )
        if not result.success:
            return failure_response(result)

        response_data = {
            'message': result.message,
            'booking_id': result.booking_id,
            'seat_number': result.seat_number,
        }
        # The seat is committed; a cancel may already have removed the row.
        booking = own_bookings(request.user).filter(pk=result.booking_id).first()
        if booking is not None:
            response_data['booking'] = BookingSerializer(booking).data
        return Response(response_data, status=status.HTTP_201_CREATED)


class MyBookingsView(APIView):
    """The caller's bookings, newest first."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get my bookings",
        description="Returns all bookings of the authenticated user with train details",
        responses={200: BookingListResponseSerializer},
        tags=["Bookings"]
    )
    def get(self, request):
        bookings = own_bookings(request.user).order_by('-booking_date')
        return Response({
            'count': bookings.count(),
            'results': BookingSerializer(bookings, many=True).data
        })


class BookingDetailView(APIView):
    """View or cancel one of the caller's bookings."""
    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Get booking by id",
        description="Users can only view their own bookings.",
        parameters=[
            OpenApiParameter(name='booking_id', type=str, location='path', description='Booking UUID')
        ],
        responses={200: BookingSerializer, 404: ErrorSerializer},
        tags=["Bookings"]
    )
    def get(self, request, booking_id):
        try:
            booking = own_bookings(request.user).get(pk=booking_id)
        except Booking.DoesNotExist:
            return Response({'error': allocator.MSG_BOOKING_NOT_FOUND}, status=status.HTTP_404_NOT_FOUND)
        return Response(BookingSerializer(booking).data)

    @extend_schema(
        summary="Cancel booking",
        description="Deletes the booking and returns its seat to the train in one transaction.",
        parameters=[
            OpenApiParameter(name='booking_id', type=str, location='path', description='Booking UUID')
        ],
        responses={
            200: inline_serializer(name='CancelResponse', fields={'message': drf_serializers.CharField()}),
            404: ErrorSerializer,
            500: ErrorSerializer,
        },
        tags=["Bookings"]
    )
    def delete(self, request, booking_id):
        result = allocator.cancel_booking(seat_store, booking_id=booking_id, user_id=request.user.id)
        log_booking_event(
            'cancelled' if result.success else 'cancel_failed',
            user_id=request.user.id,
            train_id=result.train_id,
            booking_id=str(booking_id),
            message=result.message,
        )
        if not result.success:
            return failure_response(result)
        return Response({'message': result.message})
