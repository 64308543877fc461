"""
Doctor directory lookups used by the scheduling engine.
"""
from typing import List, Optional

from apps.doctors.models import Doctor, DoctorAvailability


def get_doctor(doctor_id) -> Optional[Doctor]:
    """Return the active doctor with this id, or None."""
    try:
        return Doctor.objects.filter(pk=doctor_id, is_active=True).first()
    except (TypeError, ValueError):
        # Non-numeric ids cannot match an integer primary key
        return None


def get_weekly_windows(doctor_id, day_of_week: int) -> Optional[List[DoctorAvailability]]:
    """
    Working-hours windows for one weekday.

    Returns None when the doctor has no weekly table at all, so callers can
    tell "not configured" apart from "not working that day" (empty list).
    """
    rows = DoctorAvailability.objects.filter(doctor_id=doctor_id)
    if not rows.exists():
        return None
    return list(
        rows.filter(day_of_week=day_of_week, is_available=True).order_by('start_time')
    )


class DoctorDirectory:
    """Doctor lookups as an injectable collaborator of the scheduling services."""

    def get_doctor(self, doctor_id) -> Optional[Doctor]:
        return get_doctor(doctor_id)

    def get_weekly_windows(self, doctor_id, day_of_week: int) -> Optional[List[DoctorAvailability]]:
        return get_weekly_windows(doctor_id, day_of_week)
