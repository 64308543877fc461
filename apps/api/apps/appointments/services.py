"""
Appointment services: booking lifecycle and slot queries.

Booking is check-then-insert. The availability pre-check runs unlocked so
conflicts are rejected before the (slow) meeting provider call; the
authoritative re-check runs after the doctor row is locked, in the same
transaction as the insert.
"""
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional

import pytz
from django.conf import settings
from django.db import transaction
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from apps.appointments.availability import is_available, validate_duration
from apps.appointments.exceptions import (
    BookingValidationError,
    DoctorNotFound,
    DuplicateRequest,
    InvalidTransition,
    SlotConflict,
)
from apps.appointments.meetings import get_meeting_provider
from apps.appointments.models import Appointment, AppointmentKindChoices, AppointmentStatusChoices
from apps.appointments.notifications import BookingNotifier
from apps.appointments.store import AppointmentStore
from apps.core.observability import metrics
from apps.core.observability.events import (
    log_appointment_booked,
    log_booking_conflict,
    log_idempotent_replay,
    log_status_transition,
)
from apps.doctors.services import DoctorDirectory

logger = logging.getLogger(__name__)

MAX_REQUEST_TOKEN_LENGTH = 128


def get_display_timezone():
    return pytz.timezone(settings.SCHEDULING_TIME_ZONE)


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are read as display-zone wall clock."""
    if timezone.is_naive(value):
        value = get_display_timezone().localize(value)
    return value.astimezone(pytz.UTC)


def _parse_int(value, field):
    if isinstance(value, bool):
        raise BookingValidationError(f'{field} must be an integer', field=field)
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise BookingValidationError(f'{field} must be an integer', field=field)
        value = int(value)
    if not isinstance(value, int):
        raise BookingValidationError(f'{field} must be an integer', field=field)
    return value


def _clean_text(value):
    return str(value).strip() if value is not None else ''


@dataclass
class BookingRequest:
    """Validated booking input. scheduled_for is always UTC-aware."""
    doctor_id: int
    scheduled_for: datetime
    kind: str = AppointmentKindChoices.VIDEO
    duration_minutes: int = 30
    reason: str = ''
    symptoms: str = ''
    hospital_name: Optional[str] = None
    hospital_address: Optional[str] = None
    request_token: Optional[str] = None

    @property
    def scheduled_end(self):
        return self.scheduled_for + timedelta(minutes=self.duration_minutes)

    @classmethod
    def from_payload(cls, payload) -> 'BookingRequest':
        """
        Build from a request body.

        Raises BookingValidationError naming the first offending field.
        """
        if not isinstance(payload, Mapping):
            raise BookingValidationError('Request body must be an object')

        doctor_id = payload.get('doctor_id')
        if doctor_id in (None, ''):
            raise BookingValidationError('Doctor ID is required', field='doctor_id')
        doctor_id = _parse_int(doctor_id, 'doctor_id')

        raw_start = payload.get('scheduled_for')
        if raw_start in (None, ''):
            raise BookingValidationError('Scheduled date and time are required', field='scheduled_for')
        if isinstance(raw_start, datetime):
            scheduled_for = raw_start
        else:
            try:
                scheduled_for = parse_datetime(str(raw_start).strip())
            except ValueError:
                scheduled_for = None
            if scheduled_for is None:
                raise BookingValidationError(
                    'Scheduled date and time must be an ISO-8601 datetime',
                    field='scheduled_for'
                )

        kind = payload.get('kind') or AppointmentKindChoices.VIDEO
        if kind not in AppointmentKindChoices.values:
            raise BookingValidationError(
                f"Kind must be one of: {', '.join(AppointmentKindChoices.values)}",
                field='kind'
            )

        duration = payload.get('duration_minutes')
        if duration in (None, ''):
            duration = settings.SCHEDULING_DEFAULT_DURATION_MINUTES
        duration = _parse_int(duration, 'duration_minutes')
        validate_duration(duration)

        request_token = payload.get('request_token') or None
        if request_token is not None:
            request_token = str(request_token).strip() or None
        if request_token and len(request_token) > MAX_REQUEST_TOKEN_LENGTH:
            raise BookingValidationError(
                f'Request token must be at most {MAX_REQUEST_TOKEN_LENGTH} characters',
                field='request_token'
            )

        return cls(
            doctor_id=doctor_id,
            scheduled_for=to_utc(scheduled_for),
            kind=kind,
            duration_minutes=duration,
            reason=_clean_text(payload.get('reason')),
            symptoms=_clean_text(payload.get('symptoms')),
            hospital_name=_clean_text(payload.get('hospital_name')) or None,
            hospital_address=_clean_text(payload.get('hospital_address')) or None,
            request_token=request_token,
        )


class AppointmentService:
    """
    Appointment lifecycle: book, cancel, confirm, complete, list.

    Collaborators are injectable; defaults are the ORM-backed store, the
    doctor directory, the process-wide meeting provider and the e-mail
    notifier.
    """

    def __init__(self, store=None, doctors=None, meeting_provider=None, notifier=None):
        self.store = store or AppointmentStore()
        self.doctors = doctors or DoctorDirectory()
        self._meeting_provider = meeting_provider
        self.notifier = notifier or BookingNotifier()

    @property
    def meeting_provider(self):
        if self._meeting_provider is None:
            self._meeting_provider = get_meeting_provider()
        return self._meeting_provider

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def book(self, patient, payload) -> Appointment:
        """
        Book an appointment for patient.

        Raises:
            BookingValidationError, DoctorNotFound, SlotConflict, StoreError

        A repeated request_token returns the appointment created by the
        first request instead of booking again.
        """
        started = time.monotonic()
        kind_label = 'unknown'
        result = 'error'
        try:
            request = payload if isinstance(payload, BookingRequest) else BookingRequest.from_payload(payload)
            kind_label = request.kind
            appointment, result = self._book(patient, request)
            return appointment
        except BookingValidationError:
            result = 'invalid'
            raise
        except DoctorNotFound:
            result = 'not_found'
            raise
        except SlotConflict:
            result = 'conflict'
            raise
        finally:
            metrics.appointment_bookings_total.labels(kind=kind_label, result=result).inc()
            metrics.appointment_booking_duration_seconds.observe(time.monotonic() - started)

    def _book(self, patient, request: BookingRequest):
        replayed = self.store.get_by_request_token(patient.pk, request.request_token)
        if replayed is not None:
            log_idempotent_replay(replayed, request.request_token)
            return replayed, 'replayed'

        doctor = self.doctors.get_doctor(request.doctor_id)
        if doctor is None:
            raise DoctorNotFound()

        data = {
            'patient': patient,
            'doctor': doctor,
            'kind': request.kind,
            'scheduled_for': request.scheduled_for,
            'duration_minutes': request.duration_minutes,
            'reason': request.reason,
            'symptoms': request.symptoms,
            'request_token': request.request_token,
        }
        data.update(self._resolve_location(doctor, request))

        if not is_available(doctor.pk, request.scheduled_for, request.duration_minutes, store=self.store):
            log_booking_conflict(doctor.pk, request.scheduled_for, request.duration_minutes, stage='precheck')
            raise SlotConflict()

        if request.kind == AppointmentKindChoices.VIDEO:
            meeting = self._create_meeting(patient, doctor, request)
            data.update({
                'meeting_external_id': meeting.external_id,
                'meeting_join_url': meeting.join_url,
                'meeting_is_real': meeting.is_real,
            })

        try:
            with transaction.atomic():
                self.store.lock_doctor(doctor.pk)
                if not is_available(doctor.pk, request.scheduled_for, request.duration_minutes, store=self.store):
                    # Lost the race between pre-check and lock
                    log_booking_conflict(doctor.pk, request.scheduled_for, request.duration_minutes, stage='locked')
                    if data.get('meeting_external_id'):
                        logger.warning(
                            'Meeting resource orphaned by booking conflict',
                            extra={'external_id': data['meeting_external_id']}
                        )
                    raise SlotConflict()
                appointment = self.store.insert_appointment(data)
                transaction.on_commit(lambda: self.notifier.booking_confirmed(appointment))
        except DuplicateRequest as exc:
            # Concurrent request with the same token committed first
            log_idempotent_replay(exc.appointment, request.request_token)
            return exc.appointment, 'replayed'

        log_appointment_booked(appointment)
        return appointment, 'success'

    def _resolve_location(self, doctor, request: BookingRequest) -> dict:
        if request.kind != AppointmentKindChoices.IN_PERSON:
            return {'hospital_name': None, 'hospital_address': None}

        hospital_name = request.hospital_name or doctor.hospital_name
        hospital_address = request.hospital_address or doctor.hospital_address
        if not hospital_name or not hospital_address:
            raise BookingValidationError(
                'In-person appointments need a hospital name and address',
                field='hospital_name' if not hospital_name else 'hospital_address'
            )
        return {'hospital_name': hospital_name, 'hospital_address': hospital_address}

    def _create_meeting(self, patient, doctor, request: BookingRequest):
        description_lines = [f'Medical consultation with {doctor.name}']
        if doctor.specialty:
            description_lines.append(f'Specialty: {doctor.specialty}')
        description_lines.append(f'Reason: {request.reason or "General checkup"}')
        if request.symptoms:
            description_lines.append(f'Symptoms: {request.symptoms}')

        return self.meeting_provider.create_meeting(
            summary=f'Appointment with {doctor.name}',
            description='\n'.join(description_lines),
            start=request.scheduled_for,
            end=request.scheduled_end,
            attendees=[email for email in (patient.email, doctor.email) if email],
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def cancel(self, appointment_id) -> Appointment:
        """
        Cancel an appointment. Cancelling a cancelled appointment is a no-op;
        cancelling a completed one raises InvalidTransition.
        """
        return self._transition(appointment_id, AppointmentStatusChoices.CANCELLED)

    def confirm(self, appointment_id) -> Appointment:
        return self._transition(appointment_id, AppointmentStatusChoices.CONFIRMED)

    def complete(self, appointment_id) -> Appointment:
        return self._transition(appointment_id, AppointmentStatusChoices.COMPLETED)

    def _transition(self, appointment_id, to_status) -> Appointment:
        with transaction.atomic():
            appointment = self.store.get(appointment_id, for_update=True)
            from_status = appointment.status

            if from_status == to_status == AppointmentStatusChoices.CANCELLED:
                log_status_transition(appointment, from_status, to_status, result='duplicate')
                metrics.appointment_transitions_total.labels(
                    from_status=from_status, to_status=to_status, result='duplicate'
                ).inc()
                return self.store.get(appointment_id)

            try:
                appointment.transition_status(to_status)
            except InvalidTransition:
                log_status_transition(appointment, from_status, to_status, result='blocked')
                metrics.appointment_transitions_total.labels(
                    from_status=from_status, to_status=to_status, result='rejected'
                ).inc()
                raise

            fields = {}
            if to_status == AppointmentStatusChoices.CANCELLED:
                fields['cancelled_at'] = timezone.now()
            updated = self.store.update_status(appointment_id, to_status, **fields)

            if to_status == AppointmentStatusChoices.CANCELLED:
                transaction.on_commit(lambda: self.notifier.booking_cancelled(updated))

        log_status_transition(updated, from_status, to_status)
        metrics.appointment_transitions_total.labels(
            from_status=from_status, to_status=to_status, result='success'
        ).inc()
        return updated

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_for_patient(self, patient_id) -> List[Appointment]:
        """All of the patient's appointments, most recent scheduled_for first."""
        return self.store.query_by_patient(patient_id)


class AvailabilityService:
    """
    Offerable start times for one doctor on one local calendar date.

    Candidates come from the doctor's weekly availability rows when the
    doctor has any (one slot every SCHEDULING_SLOT_INTERVAL_MINUTES that fits
    inside a window), else from SCHEDULING_SLOT_TEMPLATE. A candidate is
    dropped when an active appointment starts at that time of day.
    """

    def __init__(self, store=None, doctors=None):
        self.store = store or AppointmentStore()
        self.doctors = doctors or DoctorDirectory()

    @staticmethod
    def parse_date(value) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        try:
            parsed = parse_date(str(value or '').strip())
        except ValueError:
            parsed = None
        if parsed is None:
            raise BookingValidationError('Date must be in YYYY-MM-DD format', field='date')
        return parsed

    @staticmethod
    def template_slots() -> List[str]:
        slots = []
        for value in settings.SCHEDULING_SLOT_TEMPLATE:
            parsed = datetime.strptime(value, '%H:%M')
            slots.append(parsed.strftime('%H:%M'))
        return sorted(set(slots))

    @staticmethod
    def derive_slots(windows, interval_minutes: int) -> List[str]:
        """Start times every interval_minutes such that the slot ends inside its window."""
        step = timedelta(minutes=interval_minutes)
        slots = set()
        anchor = date(2000, 1, 3)
        for window in windows:
            cursor = datetime.combine(anchor, window.start_time)
            window_end = datetime.combine(anchor, window.end_time)
            while cursor + step <= window_end:
                slots.add(cursor.strftime('%H:%M'))
                cursor += step
        return sorted(slots)

    def candidate_slots(self, doctor_id, target_date: date) -> List[str]:
        windows = self.doctors.get_weekly_windows(doctor_id, target_date.weekday())
        if windows is None:
            return self.template_slots()
        return self.derive_slots(windows, settings.SCHEDULING_SLOT_INTERVAL_MINUTES)

    def booked_starts(self, doctor_id, target_date: date) -> List[str]:
        tz = get_display_timezone()
        starts = self.store.booked_starts_on(doctor_id, target_date, tz)
        return [start.astimezone(tz).strftime('%H:%M') for start in starts]

    def available_slots(self, doctor_id, target_date) -> dict:
        """
        Returns:
            {
                "doctor_id": 7,
                "date": "YYYY-MM-DD",
                "available_slots": ["09:00", "09:30"],
                "booked_starts": ["10:00"]
            }
        """
        target_date = self.parse_date(target_date)
        if self.doctors.get_doctor(doctor_id) is None:
            raise DoctorNotFound()
        booked = self.booked_starts(doctor_id, target_date)
        booked_set = set(booked)
        return {
            'doctor_id': doctor_id,
            'date': target_date.isoformat(),
            'available_slots': [slot for slot in self.candidate_slots(doctor_id, target_date) if slot not in booked_set],
            'booked_starts': booked,
        }


def get_appointment_service() -> AppointmentService:
    return AppointmentService()
