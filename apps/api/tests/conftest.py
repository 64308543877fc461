"""
Global test fixtures for pytest.

Provides reusable fixtures for API testing:
- Authenticated API clients by role (patient, staff)
- Model instances (Doctor, Appointment)
- In-memory collaborators for the appointment service
"""
from datetime import datetime, timedelta

import pytest
import pytz
from rest_framework.test import APIClient

from apps.appointments.meetings import MeetingResource, MeetingResourceProvider, reset_meeting_provider
from apps.appointments.models import Appointment
from apps.appointments.services import AppointmentService
from apps.authz.models import User
from apps.doctors.models import Doctor


# ============================================================================
# Collaborator fakes
# ============================================================================

class RecordingMeetingProvider(MeetingResourceProvider):
    """Returns a fixed real-looking resource and records every call."""
    name = 'recording'

    def __init__(self, is_real=True):
        self.is_real = is_real
        self.calls = []

    def create_meeting(self, summary, description, start, end, attendees):
        self.calls.append({
            'summary': summary,
            'description': description,
            'start': start,
            'end': end,
            'attendees': list(attendees),
        })
        return MeetingResource(
            external_id=f'evt-{len(self.calls)}',
            join_url=f'https://meet.google.com/abc-defg-hi{len(self.calls)}',
            is_real=self.is_real,
        )


class RecordingNotifier:
    def __init__(self):
        self.confirmed = []
        self.cancelled = []

    def booking_confirmed(self, appointment):
        self.confirmed.append(appointment)

    def booking_cancelled(self, appointment):
        self.cancelled.append(appointment)


def utc(*args):
    return datetime(*args, tzinfo=pytz.UTC)


# ============================================================================
# Process-wide state
# ============================================================================

@pytest.fixture(autouse=True)
def _reset_meeting_provider():
    """Each test resolves the meeting provider from its own settings."""
    reset_meeting_provider()
    yield
    reset_meeting_provider()


# ============================================================================
# Users and API clients
# ============================================================================

@pytest.fixture
def api_client():
    """Unauthenticated DRF API client."""
    return APIClient()


@pytest.fixture
def patient(db):
    return User.objects.create_user(
        email='patient@test.com',
        password='testpass123',
        first_name='Asha',
        last_name='Rao',
    )


@pytest.fixture
def other_patient(db):
    return User.objects.create_user(email='other@test.com', password='testpass123')


@pytest.fixture
def staff_user(db):
    return User.objects.create_user(email='staff@test.com', password='testpass123', is_staff=True)


@pytest.fixture
def patient_client(patient):
    client = APIClient()
    client.force_authenticate(user=patient)
    return client


@pytest.fixture
def other_patient_client(other_patient):
    client = APIClient()
    client.force_authenticate(user=other_patient)
    return client


@pytest.fixture
def staff_client(staff_user):
    client = APIClient()
    client.force_authenticate(user=staff_user)
    return client


# ============================================================================
# Doctors and appointments
# ============================================================================

@pytest.fixture
def doctor(db):
    return Doctor.objects.create(
        id=7,
        name='Dr. Priya Sharma',
        email='priya.sharma@test.com',
        specialty='Cardiology',
        hospital_name='City Heart Institute',
        hospital_address='12 MG Road, Bengaluru',
    )


@pytest.fixture
def second_doctor(db):
    return Doctor.objects.create(id=8, name='Dr. Arjun Mehta', specialty='Dermatology')


@pytest.fixture
def make_appointment(patient, doctor):
    """Insert an appointment directly, bypassing the booking flow."""
    def _make(scheduled_for, duration_minutes=30, status='scheduled', **fields):
        fields.setdefault('patient', patient)
        fields.setdefault('doctor', doctor)
        return Appointment.objects.create(
            scheduled_for=scheduled_for,
            duration_minutes=duration_minutes,
            status=status,
            **fields
        )
    return _make


# ============================================================================
# Service under test
# ============================================================================

@pytest.fixture
def meeting_provider():
    return RecordingMeetingProvider()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(meeting_provider, notifier):
    return AppointmentService(meeting_provider=meeting_provider, notifier=notifier)


@pytest.fixture
def booking_payload(doctor):
    start = utc(2024, 5, 1, 10, 0)
    return {
        'doctor_id': doctor.id,
        'scheduled_for': start.isoformat(),
        'kind': 'video',
        'duration_minutes': 30,
        'reason': 'Chest pain follow-up',
    }


@pytest.fixture
def later(booking_payload):
    """Shift helper: ISO start N minutes after the default booking start."""
    base = datetime.fromisoformat(booking_payload['scheduled_for'])

    def _later(minutes):
        return (base + timedelta(minutes=minutes)).isoformat()
    return _later
