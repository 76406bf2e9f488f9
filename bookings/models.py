"""Booking model: one passenger on one seat of one train run."""
import uuid

from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

from core.models import User
from trains.models import Train


class Booking(models.Model):
    STATUS_CONFIRMED = 'confirmed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = [(STATUS_CONFIRMED, 'Confirmed'), (STATUS_CANCELLED, 'Cancelled')]
    GENDER_CHOICES = [('male', 'Male'), ('female', 'Female'), ('other', 'Other')]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='bookings')
    train = models.ForeignKey(Train, on_delete=models.CASCADE, related_name='bookings')
    seat_number = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_CONFIRMED)
    passenger_name = models.CharField(max_length=100)
    passenger_age = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(120)])
    passenger_gender = models.CharField(max_length=10, choices=GENDER_CHOICES)
    booking_date = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'bookings'
        ordering = ['-booking_date']
        constraints = [
            # Last line of defence if seat numbering ever goes wrong.
            models.UniqueConstraint(fields=['train', 'seat_number'], name='bookings_unique_train_seat'),
        ]
        indexes = [
            models.Index(fields=['user'], name='idx_bookings_user_id'),
            models.Index(fields=['train'], name='idx_bookings_train_id'),
            models.Index(fields=['booking_date'], name='idx_bookings_date'),
        ]

    def __str__(self):
        return f"Seat {self.seat_number} on {self.train.train_number} - {self.passenger_name}"
