from decimal import Decimal

import django.core.validators
from django.db import migrations, models
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Train',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('train_number', models.CharField(max_length=20, unique=True)),
                ('train_name', models.CharField(max_length=100)),
                ('source', models.CharField(max_length=100)),
                ('destination', models.CharField(max_length=100)),
                ('departure_time', models.TimeField()),
                ('arrival_time', models.TimeField()),
                ('journey_date', models.DateField()),
                ('total_seats', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('available_seats', models.PositiveIntegerField(default=0)),
                ('last_issued_seat', models.PositiveIntegerField(default=0, editable=False)),
                ('price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'trains',
                'ordering': ['journey_date', 'departure_time'],
                'indexes': [
                    models.Index(fields=['source', 'destination'], name='idx_trains_source_destination'),
                    models.Index(fields=['journey_date'], name='idx_trains_journey_date'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(available_seats__gte=0), name='trains_available_seats_non_negative'),
                    models.CheckConstraint(condition=models.Q(available_seats__lte=models.F('total_seats')), name='trains_available_within_total'),
                ],
            },
        ),
    ]
