"""
Domain events logging helpers.

Provides structured event logging for scheduling operations.
"""
from typing import Dict, Optional
from .logging import get_sanitized_logger, sanitize_dict

logger = get_sanitized_logger(__name__)


def log_domain_event(
    event_name: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    entity_ids: Optional[Dict[str, str]] = None,
    result: str = 'success',
    **extra_fields
):
    """
    Log a domain event with structured data.

    Args:
        event_name: Name of the event (e.g., 'appointment_booked')
        entity_type: Type of entity (e.g., 'Appointment')
        entity_id: ID of primary entity
        entity_ids: Dictionary of related entity IDs
        result: Result of operation (success, failure, degraded, etc.)
        **extra_fields: Additional fields to log (will be sanitized)

    Example:
        log_domain_event(
            'appointment_booked',
            entity_type='Appointment',
            entity_id=str(appointment.id),
            entity_ids={'doctor_id': str(appointment.doctor_id)},
            kind='video',
        )
    """
    event_data = {
        'event': event_name,
        'result': result,
    }

    if entity_type:
        event_data['entity_type'] = entity_type

    if entity_id:
        event_data['entity_id'] = entity_id

    if entity_ids:
        event_data.update(entity_ids)

    event_data.update(sanitize_dict(extra_fields))

    if result in ['failure', 'error']:
        logger.error(f'Domain event: {event_name}', extra=event_data)
    elif result in ['warning', 'blocked', 'degraded', 'duplicate']:
        logger.warning(f'Domain event: {event_name}', extra=event_data)
    else:
        logger.info(f'Domain event: {event_name}', extra=event_data)


def log_appointment_booked(appointment):
    """Log a successful booking."""
    log_domain_event(
        'appointment_booked',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={
            'doctor_id': str(appointment.doctor_id),
            'patient_id': str(appointment.patient_id),
        },
        kind=appointment.kind,
        scheduled_for=appointment.scheduled_for.isoformat(),
        duration_minutes=appointment.duration_minutes,
        meeting_is_real=appointment.meeting_is_real,
    )


def log_booking_conflict(doctor_id, scheduled_for, duration_minutes, stage):
    """Log a rejected booking; stage is 'precheck' or 'locked' (lost race)."""
    log_domain_event(
        'appointment_booking_conflict',
        entity_type='Doctor',
        entity_id=str(doctor_id),
        result='blocked',
        scheduled_for=scheduled_for.isoformat(),
        duration_minutes=duration_minutes,
        stage=stage,
    )


def log_status_transition(appointment, from_status, to_status, result='success'):
    """Log appointment status transition event."""
    log_domain_event(
        'appointment_status_changed',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={'doctor_id': str(appointment.doctor_id)},
        result=result,
        from_status=from_status,
        to_status=to_status,
    )


def log_idempotent_replay(appointment, request_token):
    """Log a booking request answered from an earlier one with the same token."""
    log_domain_event(
        'appointment_idempotent_replay',
        entity_type='Appointment',
        entity_id=str(appointment.id),
        entity_ids={'patient_id': str(appointment.patient_id)},
        result='duplicate',
        request_token=request_token,
    )


def log_meeting_provider_degraded(provider_name, failure_reason, **extra):
    """Log a meeting provider failure that was absorbed by the synthetic fallback."""
    log_domain_event(
        'meeting_provider_degraded',
        entity_type='MeetingResource',
        result='degraded',
        provider=provider_name,
        failure_reason=failure_reason,
        **extra
    )
