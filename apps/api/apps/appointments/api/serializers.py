"""
Appointment API serializers (output only).

Booking input is validated by BookingRequest so the rules live in one place
for every caller, not only HTTP.
"""
import pytz
from django.conf import settings
from rest_framework import serializers

from apps.appointments.models import Appointment


class MeetingResourceSerializer(serializers.Serializer):
    external_id = serializers.CharField()
    join_url = serializers.URLField()
    is_real = serializers.BooleanField()


class AppointmentSerializer(serializers.ModelSerializer):
    """
    Appointment with doctor display fields.

    scheduled_for_local renders the start in the scheduling display zone.
    """
    patient_id = serializers.UUIDField(read_only=True)
    doctor_id = serializers.IntegerField(read_only=True)
    doctor_name = serializers.SerializerMethodField()
    doctor_specialty = serializers.SerializerMethodField()
    scheduled_for_local = serializers.SerializerMethodField()
    meeting_resource = serializers.SerializerMethodField()

    class Meta:
        model = Appointment
        fields = [
            'id',
            'patient_id',
            'doctor_id',
            'doctor_name',
            'doctor_specialty',
            'kind',
            'status',
            'scheduled_for',
            'scheduled_for_local',
            'scheduled_end',
            'duration_minutes',
            'meeting_resource',
            'hospital_name',
            'hospital_address',
            'reason',
            'symptoms',
            'request_token',
            'cancelled_at',
            'created_at',
            'updated_at',
        ]
        read_only_fields = fields

    def get_doctor_name(self, obj):
        # Annotated by the store's patient listing; fall back to the relation
        return getattr(obj, 'doctor_name', None) or obj.doctor.name

    def get_doctor_specialty(self, obj):
        specialty = getattr(obj, 'doctor_specialty', None)
        return specialty if specialty is not None else obj.doctor.specialty

    def get_scheduled_for_local(self, obj):
        tz = pytz.timezone(settings.SCHEDULING_TIME_ZONE)
        return obj.scheduled_for.astimezone(tz).isoformat()

    def get_meeting_resource(self, obj):
        resource = obj.meeting_resource
        if resource is None:
            return None
        return MeetingResourceSerializer(resource).data


class DoctorAvailabilitySerializer(serializers.Serializer):
    doctor_id = serializers.IntegerField()
    date = serializers.DateField()
    available_slots = serializers.ListField(child=serializers.CharField())
    booked_starts = serializers.ListField(child=serializers.CharField())
