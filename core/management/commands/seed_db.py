"""
Management command to seed the database with sample data.

Usage:
    python manage.py seed_db           # Seed with default data
    python manage.py seed_db --clear   # Clear existing data first
"""
from datetime import date, time, timedelta
from decimal import Decimal
from django.core.management.base import BaseCommand, CommandError

from core.models import User
from trains.models import Train
from bookings.models import Booking
from bookings.allocator import allocate_seat
from bookings.stores import DjangoSeatStore

ADMIN_EMAIL, ADMIN_PASSWORD = 'admin@railway.local', 'Admin@123'

SAMPLE_USERS = [
    ('asha@example.com', 'Asha Verma', 'User@123', 'female'),
    ('rahul@example.com', 'Rahul Mehta', 'User@123', 'male'),
]

# (number, name, source, destination, seats, departs, arrives, day offset, price)
SAMPLE_TRAINS = [
    ('12345', 'Rajdhani Express', 'Delhi', 'Mumbai', 100, time(6, 0), time(20, 0), 1, Decimal('2500.00')),
    ('67890', 'Shatabdi Express', 'Delhi', 'Chandigarh', 80, time(7, 0), time(11, 0), 1, Decimal('800.00')),
    ('11111', 'Duronto Express', 'Mumbai', 'Kolkata', 120, time(22, 0), time(18, 0), 2, Decimal('3200.00')),
    ('22222', 'Garib Rath', 'Delhi', 'Kolkata', 90, time(23, 0), time(17, 0), 2, Decimal('1800.00')),
    ('33333', 'Humsafar Express', 'Mumbai', 'Delhi', 100, time(5, 30), time(19, 30), 1, Decimal('2800.00')),
]


class Command(BaseCommand):
    help = 'Seed the database with sample users, trains and bookings'

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear existing data before seeding',
        )

    def handle(self, *args, **options):
        if options['clear']:
            self.stdout.write('Clearing existing data...')
            self.clear_data()

        self.stdout.write('Seeding database...')
        users = self.create_users()
        trains = self.create_trains()
        self.create_sample_bookings(users, trains)

        self.stdout.write(self.style.SUCCESS('Database seeded successfully!'))
        self.print_summary()

    def clear_data(self):
        Booking.objects.all().delete()
        Train.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write(self.style.WARNING('  Cleared all non-superuser data'))

    def create_users(self):
        admin, created = User.objects.get_or_create(
            email=ADMIN_EMAIL,
            defaults={'full_name': 'Railway Admin', 'is_admin': True, 'is_staff': True}
        )
        if created:
            admin.set_password(ADMIN_PASSWORD)
            admin.save()
            self.stdout.write(f'  Created admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}')

        users = []
        for email, full_name, password, gender in SAMPLE_USERS:
            user, created = User.objects.get_or_create(email=email, defaults={'full_name': full_name})
            if created:
                user.set_password(password)
                user.save()
                self.stdout.write(f'  Created user: {email} / {password}')
            users.append((user, gender))
        return users

    def create_trains(self):
        today = date.today()
        trains = []
        for number, name, source, destination, seats, departs, arrives, offset, price in SAMPLE_TRAINS:
            train, created = Train.objects.get_or_create(
                train_number=number,
                defaults={
                    'train_name': name,
                    'source': source,
                    'destination': destination,
                    'total_seats': seats,
                    'available_seats': seats,
                    'departure_time': departs,
                    'arrival_time': arrives,
                    'journey_date': today + timedelta(days=offset),
                    'price': price,
                }
            )
            if created:
                self.stdout.write(f'  Created train: {number} - {name}')
            trains.append(train)
        return trains

    def create_sample_bookings(self, users, trains):
        if Booking.objects.exists():
            return

        store = DjangoSeatStore()
        booked = 0
        for (user, gender), train in zip(users, trains):
            result = allocate_seat(store, train.id, user.id, user.full_name, 30, gender)
            if not result.success:
                raise CommandError(f'Sample booking failed: {result.message}')
            booked += 1
        self.stdout.write(f'  Created {booked} sample bookings')

    def print_summary(self):
        self.stdout.write('\n' + '=' * 50)
        self.stdout.write('Database Summary:')
        self.stdout.write(f'  Users: {User.objects.count()}')
        self.stdout.write(f'  Trains: {Train.objects.count()}')
        self.stdout.write(f'  Bookings: {Booking.objects.count()}')
        self.stdout.write('=' * 50)
        self.stdout.write('\nTest Credentials:')
        self.stdout.write(f'  Admin: {ADMIN_EMAIL} / {ADMIN_PASSWORD}')
        self.stdout.write(f'  User:  {SAMPLE_USERS[0][0]} / {SAMPLE_USERS[0][2]}')
        self.stdout.write('=' * 50 + '\n')
