import uuid

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import apps.appointments.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ('doctors', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Appointment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('video', 'Video'), ('in_person', 'In person')], default='video', max_length=20)),
                ('scheduled_for', models.DateTimeField()),
                ('duration_minutes', models.PositiveIntegerField(default=apps.appointments.models.default_duration_minutes, validators=[django.core.validators.MinValueValidator(1)])),
                ('scheduled_end', models.DateTimeField(editable=False)),
                ('status', models.CharField(choices=[('scheduled', 'Scheduled'), ('confirmed', 'Confirmed'), ('cancelled', 'Cancelled'), ('completed', 'Completed')], default='scheduled', max_length=20)),
                ('meeting_external_id', models.CharField(blank=True, max_length=255, null=True)),
                ('meeting_join_url', models.URLField(blank=True, max_length=500, null=True)),
                ('meeting_is_real', models.BooleanField(blank=True, null=True)),
                ('hospital_name', models.CharField(blank=True, max_length=255, null=True)),
                ('hospital_address', models.TextField(blank=True, null=True)),
                ('reason', models.TextField(blank=True, default='')),
                ('symptoms', models.TextField(blank=True, default='')),
                ('request_token', models.CharField(blank=True, max_length=128, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('doctor', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to='doctors.doctor')),
                ('patient', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='appointments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Appointment',
                'verbose_name_plural': 'Appointments',
                'db_table': 'appointment',
                'ordering': ['-scheduled_for'],
                'indexes': [
                    models.Index(fields=['patient', 'scheduled_for'], name='idx_appointment_patient'),
                    models.Index(fields=['doctor', 'status', 'scheduled_for'], name='idx_appointment_doctor'),
                    models.Index(fields=['scheduled_for'], name='idx_appointment_start'),
                    models.Index(fields=['status'], name='idx_appointment_status'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('request_token__isnull', False)), fields=('patient', 'request_token'), name='uniq_appointment_request_token'),
                ],
            },
        ),
    ]
