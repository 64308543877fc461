"""
Tests for the appointments HTTP API.

Test Coverage:
1. Booking end to end: book, conflict, slot query, cancel, rebook
2. Error bodies carry {"error": {"code", "message"}} with mapped statuses
3. Patients only see and cancel their own appointments
4. Confirm/complete are staff only
5. Availability is public
"""
from datetime import datetime
from unittest.mock import patch

import pytest
import pytz
from django.core import mail
from django.db import DatabaseError
from django.db.models.query import QuerySet

from apps.appointments.models import Appointment


BOOK_URL = '/api/v1/appointments/'


def at(hour):
    return datetime(2024, 5, 1, hour, tzinfo=pytz.UTC)


def availability_url(doctor_id, day):
    return f'/api/v1/doctors/{doctor_id}/availability/?date={day}'


@pytest.fixture
def short_template(settings):
    settings.SCHEDULING_SLOT_TEMPLATE = ['09:00', '09:30', '10:00', '10:30']


@pytest.mark.django_db
class TestBookingFlow:

    def test_book_conflict_query_cancel(self, patient_client, other_patient_client, doctor, short_template):
        payload = {
            'doctor_id': doctor.id,
            'scheduled_for': '2024-05-01T10:00:00Z',
            'kind': 'video',
            'duration_minutes': 30,
        }

        response = patient_client.post(BOOK_URL, payload, format='json')

        assert response.status_code == 201
        appointment = response.data['appointment']
        assert appointment['status'] == 'scheduled'
        assert appointment['doctor_id'] == doctor.id
        assert appointment['doctor_name'] == 'Dr. Priya Sharma'
        assert appointment['meeting_resource']['join_url'].startswith('https://meet.google.com/')
        assert appointment['meeting_resource']['is_real'] is False

        conflict = other_patient_client.post(BOOK_URL, payload, format='json')

        assert conflict.status_code == 409
        assert conflict.data['error']['code'] == 'conflict'

        slots = patient_client.get(availability_url(doctor.id, '2024-05-01'))

        assert slots.status_code == 200
        assert slots.data['booked_starts'] == ['10:00']
        assert slots.data['available_slots'] == ['09:00', '09:30', '10:30']

        cancel = patient_client.post(f"{BOOK_URL}{appointment['id']}/cancel/")

        assert cancel.status_code == 200
        assert cancel.data['appointment']['status'] == 'cancelled'

        slots = patient_client.get(availability_url(doctor.id, '2024-05-01'))
        assert '10:00' in slots.data['available_slots']

        rebook = other_patient_client.post(BOOK_URL, payload, format='json')
        assert rebook.status_code == 201

    def test_book_doctor_seven_video(self, patient_client, doctor):
        response = patient_client.post(
            BOOK_URL,
            {
                'doctor_id': 7,
                'scheduled_for': '2025-03-10T09:00:00Z',
                'kind': 'video',
                'duration_minutes': 30,
            },
            format='json'
        )

        assert response.status_code == 201
        appointment = response.data['appointment']
        assert appointment['status'] == 'scheduled'
        assert appointment['kind'] == 'video'
        assert appointment['duration_minutes'] == 30
        assert appointment['meeting_resource']['join_url'].startswith('https://')
        assert Appointment.objects.get(pk=appointment['id']).scheduled_for == datetime(2025, 3, 10, 9, tzinfo=pytz.UTC)

    def test_book_via_doctor_route(self, patient_client, doctor):
        response = patient_client.post(
            f'/api/v1/doctors/{doctor.id}/book/',
            {'scheduled_for': '2024-05-01T11:00:00Z', 'kind': 'in_person'},
            format='json'
        )

        assert response.status_code == 201
        assert response.data['appointment']['doctor_id'] == doctor.id
        assert response.data['appointment']['hospital_name'] == 'City Heart Institute'
        assert response.data['appointment']['meeting_resource'] is None

    def test_request_token_replay(self, patient_client, doctor):
        payload = {
            'doctor_id': doctor.id,
            'scheduled_for': '2024-05-01T10:00:00Z',
            'request_token': 'retry-abc',
        }

        first = patient_client.post(BOOK_URL, payload, format='json')
        second = patient_client.post(BOOK_URL, payload, format='json')

        assert first.status_code == second.status_code == 201
        assert first.data['appointment']['id'] == second.data['appointment']['id']
        assert Appointment.objects.count() == 1

    def test_confirmation_email(self, patient_client, doctor, django_capture_on_commit_callbacks):
        with django_capture_on_commit_callbacks(execute=True):
            response = patient_client.post(
                BOOK_URL,
                {'doctor_id': doctor.id, 'scheduled_for': '2024-05-01T10:00:00Z'},
                format='json'
            )

        assert response.status_code == 201
        assert len(mail.outbox) == 1
        assert mail.outbox[0].to == ['patient@test.com']
        assert 'Dr. Priya Sharma' in mail.outbox[0].subject
        assert response.data['appointment']['meeting_resource']['join_url'] in mail.outbox[0].body

    def test_emails_disabled(self, patient_client, doctor, settings, django_capture_on_commit_callbacks):
        settings.APPOINTMENT_EMAILS_ENABLED = False

        with django_capture_on_commit_callbacks(execute=True):
            patient_client.post(
                BOOK_URL,
                {'doctor_id': doctor.id, 'scheduled_for': '2024-05-01T10:00:00Z'},
                format='json'
            )

        assert mail.outbox == []


@pytest.mark.django_db
class TestErrorResponses:

    def test_missing_fields(self, patient_client):
        response = patient_client.post(BOOK_URL, {}, format='json')

        assert response.status_code == 400
        assert response.data['error']['code'] == 'validation_error'
        assert response.data['error']['field'] == 'doctor_id'

    def test_unknown_doctor(self, patient_client, db):
        response = patient_client.post(
            BOOK_URL,
            {'doctor_id': 999, 'scheduled_for': '2024-05-01T10:00:00Z'},
            format='json'
        )

        assert response.status_code == 404
        assert response.data['error']['code'] == 'not_found'

    def test_cancel_completed(self, patient_client, make_appointment):
        appointment = make_appointment(at(10), status='completed')

        response = patient_client.post(f'{BOOK_URL}{appointment.id}/cancel/')

        assert response.status_code == 409
        assert response.data['error']['code'] == 'invalid_transition'

    def test_availability_requires_date(self, api_client, doctor):
        response = api_client.get(f'/api/v1/doctors/{doctor.id}/availability/')

        assert response.status_code == 400
        assert response.data['error']['field'] == 'date'

    def test_availability_unknown_doctor(self, api_client, db):
        response = api_client.get(availability_url(999, '2024-05-01'))

        assert response.status_code == 404


@pytest.mark.django_db
class TestAccess:

    def test_booking_requires_authentication(self, api_client, doctor):
        response = api_client.post(
            BOOK_URL,
            {'doctor_id': doctor.id, 'scheduled_for': '2024-05-01T10:00:00Z'},
            format='json'
        )

        assert response.status_code == 401

    def test_availability_is_public(self, api_client, doctor):
        response = api_client.get(availability_url(doctor.id, '2024-05-01'))

        assert response.status_code == 200
        assert response.data['doctor_id'] == doctor.id
        assert response.data['date'] == '2024-05-01'

    def test_list_only_own_appointments(self, patient_client, patient, other_patient, make_appointment):
        mine = make_appointment(at(10))
        make_appointment(at(11), patient=other_patient)

        response = patient_client.get(BOOK_URL)

        assert response.status_code == 200
        assert [a['id'] for a in response.data['appointments']] == [str(mine.id)]
        assert response.data['appointments'][0]['doctor_specialty'] == 'Cardiology'

    def test_cannot_cancel_someone_elses(self, other_patient_client, make_appointment):
        appointment = make_appointment(at(10))

        response = other_patient_client.post(f'{BOOK_URL}{appointment.id}/cancel/')

        assert response.status_code == 404
        assert Appointment.objects.get(pk=appointment.id).status == 'scheduled'

    def test_staff_can_cancel_any(self, staff_client, make_appointment):
        appointment = make_appointment(at(10))

        response = staff_client.post(f'{BOOK_URL}{appointment.id}/cancel/')

        assert response.status_code == 200

    def test_patient_cannot_confirm(self, patient_client, make_appointment):
        appointment = make_appointment(at(10))

        response = patient_client.post(f'{BOOK_URL}{appointment.id}/confirm/')

        assert response.status_code == 403

    def test_staff_confirm_and_complete(self, staff_client, make_appointment):
        appointment = make_appointment(at(10))

        confirm = staff_client.post(f'{BOOK_URL}{appointment.id}/confirm/')
        complete = staff_client.post(f'{BOOK_URL}{appointment.id}/complete/')

        assert confirm.data['appointment']['status'] == 'confirmed'
        assert complete.data['appointment']['status'] == 'completed'

    def test_unknown_appointment_id(self, staff_client, db):
        response = staff_client.post(f'{BOOK_URL}00000000-0000-0000-0000-000000000000/cancel/')

        assert response.status_code == 404


@pytest.mark.django_db
class TestMalformedRequests:

    def test_body_must_be_an_object(self, patient_client, doctor):
        response = patient_client.post(BOOK_URL, ['x'], format='json')

        assert response.status_code == 400
        assert response.data['error']['code'] == 'validation_error'
        assert not Appointment.objects.exists()

    def test_duration_above_maximum(self, patient_client, doctor):
        response = patient_client.post(
            BOOK_URL,
            {
                'doctor_id': doctor.id,
                'scheduled_for': '2024-05-01T10:00:00Z',
                'duration_minutes': '99999999999999',
            },
            format='json'
        )

        assert response.status_code == 400
        assert response.data['error']['field'] == 'duration_minutes'

    def test_database_failure_is_store_error(self, patient_client, doctor):
        with patch.object(QuerySet, 'create', side_effect=DatabaseError('disk full')):
            response = patient_client.post(
                BOOK_URL,
                {'doctor_id': doctor.id, 'scheduled_for': '2024-05-01T10:00:00Z'},
                format='json'
            )

        assert response.status_code == 500
        assert response.data['error']['code'] == 'store_error'
        assert not Appointment.objects.exists()
