"""
Availability checker.

Intervals are half-open: [start, start + duration). Two intervals conflict
iff each starts before the other ends, so back-to-back bookings never
conflict.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List

from django.conf import settings

from apps.appointments.exceptions import BookingValidationError


@dataclass(frozen=True)
class BookedInterval:
    """Time occupied by an active appointment."""
    start: datetime
    duration_minutes: int

    @property
    def end(self):
        return self.start + timedelta(minutes=self.duration_minutes)


def validate_duration(duration_minutes):
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int) or duration_minutes <= 0:
        raise BookingValidationError('Duration must be a positive number of minutes', field='duration_minutes')
    maximum = settings.SCHEDULING_MAX_DURATION_MINUTES
    if duration_minutes > maximum:
        raise BookingValidationError(
            f'Duration must be at most {maximum} minutes',
            field='duration_minutes'
        )


def find_conflicts(bookings: Iterable[BookedInterval], start: datetime, duration_minutes: int) -> List[BookedInterval]:
    """Bookings overlapping [start, start + duration_minutes)."""
    validate_duration(duration_minutes)
    end = start + timedelta(minutes=duration_minutes)
    return [booking for booking in bookings if booking.start < end and booking.end > start]


def is_available(doctor_id, start: datetime, duration_minutes: int, store=None) -> bool:
    """
    True iff no active appointment of the doctor overlaps the interval.

    Callers that act on the answer must hold the doctor lock (see
    AppointmentStore.lock_doctor) or re-check under it.
    """
    validate_duration(duration_minutes)
    if store is None:
        from apps.appointments.store import AppointmentStore
        store = AppointmentStore()

    end = start + timedelta(minutes=duration_minutes)
    bookings = store.query_by_doctor_and_status(
        doctor_id,
        store.active_statuses,
        window=(start, end),
    )
    return not find_conflicts(bookings, start, duration_minutes)
