from django.contrib import admin

from apps.appointments.models import Appointment


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ['scheduled_for', 'doctor', 'patient', 'kind', 'status', 'meeting_is_real']
    list_filter = ['status', 'kind', 'meeting_is_real']
    search_fields = ['doctor__name', 'patient__email']
    date_hierarchy = 'scheduled_for'
    raw_id_fields = ['patient', 'doctor']
    readonly_fields = ['id', 'scheduled_end', 'request_token', 'cancelled_at', 'created_at', 'updated_at']
