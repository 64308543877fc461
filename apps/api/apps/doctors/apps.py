"""Doctors app configuration."""
from django.apps import AppConfig


class DoctorsConfig(AppConfig):
    """Doctor directory consumed by the scheduling engine."""
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.doctors'
    verbose_name = 'Doctors'
