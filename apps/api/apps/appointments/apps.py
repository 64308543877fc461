"""Appointments app configuration."""
from django.apps import AppConfig


class AppointmentsConfig(AppConfig):
    """Appointment scheduling engine."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.appointments'
    verbose_name = 'Appointments'
