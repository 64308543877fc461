"""
Appointment API views.

Endpoints:
- GET  /api/v1/appointments/                      caller's appointments
- POST /api/v1/appointments/                      book
- POST /api/v1/appointments/{id}/cancel/          owner or staff
- POST /api/v1/appointments/{id}/confirm/         staff
- POST /api/v1/appointments/{id}/complete/        staff
- POST /api/v1/doctors/{doctor_id}/book/          book (doctor from path)
- GET  /api/v1/doctors/{doctor_id}/availability/  public
"""
from django.core.exceptions import ValidationError
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.appointments.api.serializers import AppointmentSerializer, DoctorAvailabilitySerializer
from apps.appointments.exceptions import AppointmentNotFound, BookingValidationError
from apps.appointments.models import Appointment
from apps.appointments.services import AvailabilityService, get_appointment_service


class AppointmentViewSet(viewsets.ViewSet):
    """
    Appointment lifecycle for the authenticated caller.

    Patients see and cancel only their own appointments; other patients'
    appointments answer 404. Staff may act on any appointment.
    """
    permission_classes = [IsAuthenticated]
    lookup_value_regex = '[0-9a-fA-F-]{32,36}'

    def get_service(self):
        return get_appointment_service()

    def get_permissions(self):
        if self.action in ('confirm', 'complete'):
            return [IsAuthenticated(), IsAdminUser()]
        return super().get_permissions()

    def _check_access(self, pk):
        if self.request.user.is_staff:
            return
        try:
            owned = Appointment.objects.filter(pk=pk, patient=self.request.user).exists()
        except ValidationError:
            owned = False
        if not owned:
            raise AppointmentNotFound()

    def list(self, request):
        appointments = self.get_service().list_for_patient(request.user.pk)
        return Response({'appointments': AppointmentSerializer(appointments, many=True).data})

    def create(self, request):
        appointment = self.get_service().book(request.user, request.data)
        return Response(
            {'appointment': AppointmentSerializer(appointment).data},
            status=status.HTTP_201_CREATED
        )

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        self._check_access(pk)
        appointment = self.get_service().cancel(pk)
        return Response({'appointment': AppointmentSerializer(appointment).data})

    @action(detail=True, methods=['post'])
    def confirm(self, request, pk=None):
        appointment = self.get_service().confirm(pk)
        return Response({'appointment': AppointmentSerializer(appointment).data})

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        appointment = self.get_service().complete(pk)
        return Response({'appointment': AppointmentSerializer(appointment).data})


class DoctorBookingView(APIView):
    """POST /api/v1/doctors/{doctor_id}/book/"""
    permission_classes = [IsAuthenticated]

    def post(self, request, doctor_id):
        payload = dict(request.data.items()) if hasattr(request.data, 'items') else {}
        payload['doctor_id'] = doctor_id
        appointment = get_appointment_service().book(request.user, payload)
        return Response(
            {'appointment': AppointmentSerializer(appointment).data},
            status=status.HTTP_201_CREATED
        )


class DoctorAvailabilityView(APIView):
    """
    GET /api/v1/doctors/{doctor_id}/availability/?date=YYYY-MM-DD

    Public: anyone may look at free slots before signing in.
    """
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, doctor_id):
        target_date = request.query_params.get('date')
        if not target_date:
            raise BookingValidationError('Date is required', field='date')
        result = AvailabilityService().available_slots(doctor_id, target_date)
        return Response(DoctorAvailabilitySerializer(result).data)
