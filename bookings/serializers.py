"""
Serializers for booking management.
"""
from rest_framework import serializers

from .allocator import GENDERS, MIN_AGE, MAX_AGE
from .models import Booking


class BookingCreateSerializer(serializers.Serializer):
    """Request body of POST /api/bookings/. Seat checks happen in the allocator."""
    train_id = serializers.UUIDField()
    passenger_name = serializers.CharField(max_length=100)
    passenger_age = serializers.IntegerField(min_value=MIN_AGE, max_value=MAX_AGE)
    passenger_gender = serializers.ChoiceField(choices=GENDERS)

    def validate_passenger_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("Passenger name is required.")
        return value

    def to_internal_value(self, data):
        # Accept 'Male', ' FEMALE ' etc. before the choice check runs.
        if hasattr(data, 'get') and isinstance(data.get('passenger_gender'), str):
            data = data.copy()
            data['passenger_gender'] = data['passenger_gender'].strip().lower()
        return super().to_internal_value(data)


class BookingSerializer(serializers.ModelSerializer):
    """Booking with the joined train details."""
    train_id = serializers.UUIDField(source='train.id', read_only=True)
    train_details = serializers.SerializerMethodField()

    class Meta:
        model = Booking
        fields = [
            'id', 'train_id', 'seat_number', 'status',
            'passenger_name', 'passenger_age', 'passenger_gender',
            'booking_date', 'train_details'
        ]

    def get_train_details(self, obj):
        train = obj.train
        return {
            'train_number': train.train_number,
            'train_name': train.train_name,
            'source': train.source,
            'destination': train.destination,
            'departure_time': str(train.departure_time),
            'arrival_time': str(train.arrival_time),
            'journey_date': str(train.journey_date),
            'price': str(train.price),
        }
