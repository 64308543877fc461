"""
Django management command to seed doctors for development.

Usage:
    python manage.py seed_doctors
    python manage.py seed_doctors --with-hours

Creates five doctors (idempotent by name). With --with-hours each doctor
also gets a Monday-Friday weekly table (09:00-12:00, 14:00-17:00).

FOR DEVELOPMENT ONLY - DO NOT USE IN PRODUCTION
"""
from datetime import time

from django.core.management.base import BaseCommand
from django.db import transaction

from apps.doctors.models import Doctor, DoctorAvailability, WeekdayChoices


SEED_DOCTORS = [
    ('Dr. Ananya Sharma', 'Cardiology'),
    ('Dr. Rohit Verma', 'Orthopedics'),
    ('Dr. Pooja Mehta', 'Dermatology'),
    ('Dr. Arjun Patel', 'Neurology'),
    ('Dr. Neha Kulkarni', 'General Physician'),
]

WEEKDAY_WINDOWS = [(time(9, 0), time(12, 0)), (time(14, 0), time(17, 0))]


class Command(BaseCommand):
    help = 'Seed development doctors (optionally with weekly working hours)'

    def add_arguments(self, parser):
        parser.add_argument(
            '--with-hours',
            action='store_true',
            help='Also create Monday-Friday working-hours rows',
        )

    @transaction.atomic
    def handle(self, *args, **options):
        for name, specialty in SEED_DOCTORS:
            slug = name.split()[-1].lower()
            doctor, created = Doctor.objects.get_or_create(
                name=name,
                defaults={
                    'specialty': specialty,
                    'email': f'{slug}@hospital.example',
                    'hospital_name': 'City Care Hospital',
                    'hospital_address': '12 MG Road, Pune',
                }
            )
            verb = 'Created' if created else 'Found'
            self.stdout.write(self.style.SUCCESS(f'{verb} doctor "{doctor.name}" (id={doctor.id})'))

            if options['with_hours'] and not doctor.availability.exists():
                for day in [WeekdayChoices.MONDAY, WeekdayChoices.TUESDAY, WeekdayChoices.WEDNESDAY,
                            WeekdayChoices.THURSDAY, WeekdayChoices.FRIDAY]:
                    for start, end in WEEKDAY_WINDOWS:
                        DoctorAvailability.objects.create(
                            doctor=doctor,
                            day_of_week=day,
                            start_time=start,
                            end_time=end,
                        )
                self.stdout.write(f'  weekly hours added for "{doctor.name}"')
