from django.contrib import admin
from .models import Doctor, DoctorAvailability


class DoctorAvailabilityInline(admin.TabularInline):
    model = DoctorAvailability
    extra = 0


@admin.register(Doctor)
class DoctorAdmin(admin.ModelAdmin):
    list_display = ['name', 'specialty', 'hospital_name', 'is_active', 'created_at']
    list_filter = ['is_active', 'specialty']
    search_fields = ['name', 'email', 'specialty']
    readonly_fields = ['created_at', 'updated_at']
    inlines = [DoctorAvailabilityInline]
