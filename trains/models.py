"""
Train run model.
"""
import uuid
from decimal import Decimal

from django.db import models
from django.core.validators import MinValueValidator


class Train(models.Model):
    """
    One scheduled run of a train on a journey date.
    Maps to the 'trains' table.

    `available_seats` is written only by the seat allocator, cancellation
    and the admin resize path, always under the per-train lock.
    `last_issued_seat` only ever grows, so cancelled seat numbers stay retired.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    train_number = models.CharField(max_length=20, unique=True)
    train_name = models.CharField(max_length=100)
    source = models.CharField(max_length=100)
    destination = models.CharField(max_length=100)
    departure_time = models.TimeField()
    arrival_time = models.TimeField()
    journey_date = models.DateField()
    total_seats = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    available_seats = models.PositiveIntegerField(default=0)
    last_issued_seat = models.PositiveIntegerField(default=0, editable=False)
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal('0.00'),
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'trains'
        ordering = ['journey_date', 'departure_time']
        indexes = [
            models.Index(fields=['source', 'destination'], name='idx_trains_source_destination'),
            models.Index(fields=['journey_date'], name='idx_trains_journey_date'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(available_seats__gte=0),
                name='trains_available_seats_non_negative',
            ),
            models.CheckConstraint(
                condition=models.Q(available_seats__lte=models.F('total_seats')),
                name='trains_available_within_total',
            ),
        ]

    def __str__(self):
        return f"{self.train_number} - {self.train_name}"

    @property
    def booked_seats(self):
        return self.total_seats - self.available_seats

    def has_seats(self):
        return self.available_seats > 0
