"""
Appointment store.

All appointment persistence goes through here. Database failures surface as
StoreError; a request-token collision surfaces as DuplicateRequest carrying
the appointment that won.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import List, Optional, Sequence, Tuple

import pytz
from django.core.exceptions import ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.appointments.availability import BookedInterval
from apps.appointments.exceptions import AppointmentNotFound, DoctorNotFound, DuplicateRequest, StoreError
from apps.appointments.models import ACTIVE_STATUSES, Appointment
from apps.core.observability import metrics
from apps.doctors.models import Doctor

logger = logging.getLogger(__name__)


def _store_error(operation, exc):
    metrics.exceptions_total.labels(
        exception_type=type(exc).__name__,
        location=f'appointment_store.{operation}'
    ).inc()
    logger.error(
        'Appointment store failure',
        extra={'operation': operation, 'error_type': type(exc).__name__}
    )
    return StoreError(f'Could not {operation.replace("_", " ")}')


class AppointmentStore:
    active_statuses = ACTIVE_STATUSES

    def insert_appointment(self, data: dict) -> Appointment:
        """
        Insert one appointment.

        Runs in its own savepoint so a rejected insert leaves the caller's
        transaction usable.
        """
        try:
            with transaction.atomic():
                return Appointment.objects.create(**data)
        except IntegrityError as exc:
            token = data.get('request_token')
            patient_id = data.get('patient_id') or getattr(data.get('patient'), 'pk', None)
            if token:
                existing = self.get_by_request_token(patient_id, token)
                if existing is not None:
                    raise DuplicateRequest(existing) from exc
            raise _store_error('insert_appointment', exc) from exc
        except DatabaseError as exc:
            raise _store_error('insert_appointment', exc) from exc

    def get(self, appointment_id, for_update=False) -> Appointment:
        try:
            if for_update:
                queryset = Appointment.objects.select_for_update()
            else:
                queryset = Appointment.objects.select_related('doctor', 'patient')
            return queryset.get(pk=appointment_id)
        except (Appointment.DoesNotExist, ValidationError, ValueError):
            raise AppointmentNotFound()
        except DatabaseError as exc:
            raise _store_error('get_appointment', exc) from exc

    def update_status(self, appointment_id, status: str, **fields) -> Appointment:
        """Set status (and any extra columns). Raises AppointmentNotFound."""
        try:
            updated = Appointment.objects.filter(pk=appointment_id).update(
                status=status,
                updated_at=timezone.now(),
                **fields
            )
        except (ValidationError, ValueError):
            raise AppointmentNotFound()
        except DatabaseError as exc:
            raise _store_error('update_status', exc) from exc
        if not updated:
            raise AppointmentNotFound()
        return self.get(appointment_id)

    def query_by_doctor_and_status(
        self,
        doctor_id,
        statuses: Sequence[str],
        window: Optional[Tuple[datetime, datetime]] = None,
    ) -> List[BookedInterval]:
        """
        Booked intervals of the doctor in the given statuses.

        window narrows the scan to rows that can overlap [start, end).
        """
        queryset = Appointment.objects.filter(doctor_id=doctor_id, status__in=list(statuses))
        if window is not None:
            start, end = window
            queryset = queryset.filter(scheduled_for__lt=end, scheduled_end__gt=start)
        try:
            rows = list(queryset.order_by('scheduled_for').values_list('scheduled_for', 'duration_minutes'))
        except DatabaseError as exc:
            raise _store_error('query_bookings', exc) from exc
        return [BookedInterval(start=start, duration_minutes=duration) for start, duration in rows]

    def query_by_patient(self, patient_id) -> List[Appointment]:
        """Patient's appointments, most recent first, with doctor display fields."""
        queryset = (
            Appointment.objects
            .filter(patient_id=patient_id)
            .select_related('doctor')
            .annotate(
                doctor_name=F('doctor__name'),
                doctor_specialty=F('doctor__specialty'),
                doctor_email=F('doctor__email'),
            )
            .order_by('-scheduled_for')
        )
        try:
            return list(queryset)
        except DatabaseError as exc:
            raise _store_error('query_patient_appointments', exc) from exc

    def get_by_request_token(self, patient_id, request_token) -> Optional[Appointment]:
        if not request_token:
            return None
        try:
            return (
                Appointment.objects
                .select_related('doctor')
                .filter(patient_id=patient_id, request_token=request_token)
                .first()
            )
        except DatabaseError as exc:
            raise _store_error('get_by_request_token', exc) from exc

    def booked_starts_on(self, doctor_id, local_date: date, tz) -> List[datetime]:
        """
        Start instants of active appointments that begin on local_date, where
        the day runs midnight to midnight in tz.
        """
        start = tz.localize(datetime.combine(local_date, time.min)).astimezone(pytz.UTC)
        end = tz.localize(datetime.combine(local_date + timedelta(days=1), time.min)).astimezone(pytz.UTC)
        try:
            return list(
                Appointment.objects
                .filter(
                    doctor_id=doctor_id,
                    status__in=self.active_statuses,
                    scheduled_for__gte=start,
                    scheduled_for__lt=end,
                )
                .order_by('scheduled_for')
                .values_list('scheduled_for', flat=True)
            )
        except DatabaseError as exc:
            raise _store_error('query_booked_starts', exc) from exc

    def lock_doctor(self, doctor_id) -> Doctor:
        """
        Row-lock the doctor until the surrounding transaction ends.

        Serializes bookings per doctor so the availability re-check and the
        insert cannot interleave with another booking for the same doctor.
        Must be called inside transaction.atomic().
        """
        try:
            return Doctor.objects.select_for_update().get(pk=doctor_id)
        except Doctor.DoesNotExist:
            raise DoctorNotFound()
        except DatabaseError as exc:
            raise _store_error('lock_doctor', exc) from exc
