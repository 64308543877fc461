"""
Patient e-mail notifications.

Sent after the booking transaction commits. Delivery failures are logged and
never propagate: the appointment stands regardless of the mail server.
"""
import logging
from smtplib import SMTPException

import pytz
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

from apps.core.observability import metrics

logger = logging.getLogger(__name__)


class BookingNotifier:

    def booking_confirmed(self, appointment):
        self._send(appointment, 'booking_confirmed', f'Appointment confirmed with {appointment.doctor.name}')

    def booking_cancelled(self, appointment):
        self._send(appointment, 'booking_cancelled', f'Appointment cancelled with {appointment.doctor.name}')

    def _send(self, appointment, template, subject):
        if not settings.APPOINTMENT_EMAILS_ENABLED:
            return
        recipient = appointment.patient.email
        if not recipient:
            return

        local_start = appointment.scheduled_for.astimezone(pytz.timezone(settings.SCHEDULING_TIME_ZONE))
        context = {
            'appointment': appointment,
            'doctor': appointment.doctor,
            'patient': appointment.patient,
            'local_date': local_start.strftime('%A, %d %B %Y'),
            'local_time': local_start.strftime('%H:%M'),
            'time_zone': settings.SCHEDULING_TIME_ZONE,
        }
        body = render_to_string(f'appointments/email/{template}.txt', context)

        try:
            send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [recipient])
        except (SMTPException, OSError) as exc:
            metrics.exceptions_total.labels(
                exception_type=type(exc).__name__,
                location=f'notifications.{template}'
            ).inc()
            logger.warning(
                'Appointment e-mail not delivered',
                extra={'appointment_id': str(appointment.id), 'template': template, 'error_type': type(exc).__name__}
            )
            return

        logger.info('Appointment e-mail sent', extra={'appointment_id': str(appointment.id), 'template': template})
