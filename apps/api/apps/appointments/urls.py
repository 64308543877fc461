"""
URL configuration for the appointments API.
"""
from django.urls import include, path
from rest_framework.routers import DefaultRouter

from apps.appointments.api.views import AppointmentViewSet, DoctorAvailabilityView, DoctorBookingView

router = DefaultRouter()
router.register(r'appointments', AppointmentViewSet, basename='appointment')

urlpatterns = [
    path('doctors/<int:doctor_id>/availability/', DoctorAvailabilityView.as_view(), name='doctor-availability'),
    path('doctors/<int:doctor_id>/book/', DoctorBookingView.as_view(), name='doctor-book'),
    path('', include(router.urls)),
]
