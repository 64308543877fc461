"""
Appointment model: appointment

One row per booking. Timestamps are stored in UTC; scheduled_end is derived
from scheduled_for + duration_minutes on every save so overlap queries can
run against indexed columns.
"""
import uuid
from datetime import timedelta

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q

from apps.appointments.exceptions import InvalidTransition
from apps.appointments.meetings.base import MeetingResource


class AppointmentKindChoices(models.TextChoices):
    VIDEO = 'video', 'Video'
    IN_PERSON = 'in_person', 'In person'


class AppointmentStatusChoices(models.TextChoices):
    SCHEDULED = 'scheduled', 'Scheduled'
    CONFIRMED = 'confirmed', 'Confirmed'
    CANCELLED = 'cancelled', 'Cancelled'
    COMPLETED = 'completed', 'Completed'


# Statuses that occupy the doctor's calendar
ACTIVE_STATUSES = [
    AppointmentStatusChoices.SCHEDULED,
    AppointmentStatusChoices.CONFIRMED,
]


def default_duration_minutes():
    return settings.SCHEDULING_DEFAULT_DURATION_MINUTES


class Appointment(models.Model):
    """
    Booked consultation between a patient and a doctor.

    Fields:
    - id: UUID PK
    - patient: FK -> auth_user
    - doctor: FK -> doctor
    - kind: video | in_person
    - scheduled_for: start instant (UTC)
    - duration_minutes: > 0
    - scheduled_end: derived, not editable
    - status: scheduled | confirmed | cancelled | completed
    - meeting_*: meeting resource, set only for video appointments
    - hospital_*: location, set only for in-person appointments
    - reason, symptoms: free text from the patient
    - request_token: client idempotency key, unique per patient
    - cancelled_at
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    patient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='appointments'
    )
    doctor = models.ForeignKey(
        'doctors.Doctor',
        on_delete=models.PROTECT,
        related_name='appointments'
    )
    kind = models.CharField(
        max_length=20,
        choices=AppointmentKindChoices.choices,
        default=AppointmentKindChoices.VIDEO
    )
    scheduled_for = models.DateTimeField()
    duration_minutes = models.PositiveIntegerField(
        default=default_duration_minutes,
        validators=[MinValueValidator(1)]
    )
    scheduled_end = models.DateTimeField(editable=False)
    status = models.CharField(
        max_length=20,
        choices=AppointmentStatusChoices.choices,
        default=AppointmentStatusChoices.SCHEDULED
    )

    # Meeting resource (video only)
    meeting_external_id = models.CharField(max_length=255, blank=True, null=True)
    meeting_join_url = models.URLField(max_length=500, blank=True, null=True)
    meeting_is_real = models.BooleanField(blank=True, null=True)

    # Location (in-person only)
    hospital_name = models.CharField(max_length=255, blank=True, null=True)
    hospital_address = models.TextField(blank=True, null=True)

    reason = models.TextField(blank=True, default='')
    symptoms = models.TextField(blank=True, default='')

    request_token = models.CharField(max_length=128, blank=True, null=True)
    cancelled_at = models.DateTimeField(blank=True, null=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'appointment'
        verbose_name = 'Appointment'
        verbose_name_plural = 'Appointments'
        ordering = ['-scheduled_for']
        indexes = [
            models.Index(fields=['patient', 'scheduled_for'], name='idx_appointment_patient'),
            models.Index(fields=['doctor', 'status', 'scheduled_for'], name='idx_appointment_doctor'),
            models.Index(fields=['scheduled_for'], name='idx_appointment_start'),
            models.Index(fields=['status'], name='idx_appointment_status'),
        ]
        constraints = [
            # One booking per (patient, request_token); rows without a token are unconstrained
            models.UniqueConstraint(
                fields=['patient', 'request_token'],
                condition=Q(request_token__isnull=False),
                name='uniq_appointment_request_token'
            ),
        ]

    # BUSINESS RULE: Allowed status transitions
    _ALLOWED_TRANSITIONS = {
        'scheduled': ['confirmed', 'cancelled'],
        'confirmed': ['completed', 'cancelled'],
        'cancelled': [],  # Terminal state
        'completed': [],  # Terminal state
    }

    def __str__(self):
        return f"Appointment {self.scheduled_for:%Y-%m-%d %H:%M} - {self.doctor_id}"

    def save(self, *args, **kwargs):
        if self.scheduled_for is not None and self.duration_minutes:
            self.scheduled_end = self.scheduled_for + timedelta(minutes=self.duration_minutes)
        super().save(*args, **kwargs)

    @property
    def is_active(self):
        return self.status in ACTIVE_STATUSES

    @property
    def meeting_resource(self):
        """MeetingResource for video appointments, None otherwise."""
        if not self.meeting_join_url:
            return None
        return MeetingResource(
            external_id=self.meeting_external_id or '',
            join_url=self.meeting_join_url,
            is_real=bool(self.meeting_is_real),
        )

    def can_transition_to(self, new_status):
        return new_status in self._ALLOWED_TRANSITIONS.get(self.status, [])

    def transition_status(self, new_status):
        """
        Move to new_status, or raise InvalidTransition.

        Does not save; callers persist through the appointment store.
        """
        if not self.can_transition_to(new_status):
            allowed = self._ALLOWED_TRANSITIONS.get(self.status, [])
            raise InvalidTransition(
                f"Cannot transition from '{self.status}' to '{new_status}'. "
                f"Allowed transitions: {', '.join(allowed) if allowed else 'none (terminal state)'}"
            )
        self.status = new_status
