"""
Doctor directory models: doctor, doctor_availability

The scheduling engine only reads from here: doctor display fields for
bookings and listings, and the weekly working-hours table used to derive
offerable slots.
"""
from django.db import models


class WeekdayChoices(models.IntegerChoices):
    """Day of week, Monday first (matches date.weekday())"""
    MONDAY = 0, 'Monday'
    TUESDAY = 1, 'Tuesday'
    WEDNESDAY = 2, 'Wednesday'
    THURSDAY = 3, 'Thursday'
    FRIDAY = 4, 'Friday'
    SATURDAY = 5, 'Saturday'
    SUNDAY = 6, 'Sunday'


class Doctor(models.Model):
    """
    Bookable doctor.

    Fields:
    - id: integer PK
    - name, email, specialty
    - hospital_name, hospital_address: default location for in-person visits
    - is_active: inactive doctors cannot be booked
    - created_at, updated_at
    """
    name = models.CharField(max_length=255)
    email = models.EmailField(blank=True, null=True)
    specialty = models.CharField(max_length=120, blank=True)
    hospital_name = models.CharField(max_length=255, blank=True, null=True)
    hospital_address = models.TextField(blank=True, null=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'doctor'
        verbose_name = 'Doctor'
        verbose_name_plural = 'Doctors'
        ordering = ['name']
        indexes = [
            models.Index(fields=['specialty'], name='idx_doctor_specialty'),
            models.Index(fields=['is_active'], name='idx_doctor_active'),
        ]

    def __str__(self):
        return self.name


class DoctorAvailability(models.Model):
    """
    Weekly working-hours window for a doctor.

    A doctor with at least one row gets slots derived from these windows;
    a doctor with none falls back to the configured slot template.
    """
    doctor = models.ForeignKey(
        Doctor,
        on_delete=models.CASCADE,
        related_name='availability'
    )
    day_of_week = models.PositiveSmallIntegerField(choices=WeekdayChoices.choices)
    start_time = models.TimeField()
    end_time = models.TimeField()
    is_available = models.BooleanField(default=True)

    class Meta:
        db_table = 'doctor_availability'
        verbose_name = 'Doctor Availability'
        verbose_name_plural = 'Doctor Availability'
        ordering = ['doctor', 'day_of_week', 'start_time']
        indexes = [
            models.Index(fields=['doctor', 'day_of_week'], name='idx_doctor_avail_day'),
        ]

    def __str__(self):
        return f"{self.doctor} {self.get_day_of_week_display()} {self.start_time:%H:%M}-{self.end_time:%H:%M}"

    def clean(self):
        from django.core.exceptions import ValidationError

        if self.start_time and self.end_time and self.end_time <= self.start_time:
            raise ValidationError({'end_time': 'End time must be after start time'})
