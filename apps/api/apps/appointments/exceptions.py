"""
Scheduling engine errors.

Every error the engine raises to its callers derives from SchedulingError and
carries a stable ``code`` the transport layer maps to a response status.
"""


class SchedulingError(Exception):
    """Base class for scheduling engine errors."""
    code = 'scheduling_error'
    default_message = 'Scheduling request failed'

    def __init__(self, message=None, field=None):
        self.message = message or self.default_message
        self.field = field
        super().__init__(self.message)

    def as_dict(self):
        data = {'code': self.code, 'message': self.message}
        if self.field:
            data['field'] = self.field
        return data


class BookingValidationError(SchedulingError):
    """Missing or malformed request field. Never retried."""
    code = 'validation_error'
    default_message = 'Invalid booking request'


class NotFound(SchedulingError):
    """Referenced doctor or appointment does not exist."""
    code = 'not_found'
    default_message = 'Resource not found'


class DoctorNotFound(NotFound):
    default_message = 'Doctor not found'


class AppointmentNotFound(NotFound):
    default_message = 'Appointment not found'


class SlotConflict(SchedulingError):
    """Requested slot overlaps an active booking. Re-prompt, do not retry."""
    code = 'conflict'
    default_message = 'Doctor is not available at this time. Please choose another time slot.'


class InvalidTransition(SchedulingError):
    """Status change not allowed from the current status."""
    code = 'invalid_transition'
    default_message = 'Status transition not allowed'


class StoreError(SchedulingError):
    """Persistence failure. Safe to retry only with a request token."""
    code = 'store_error'
    default_message = 'Could not persist appointment'


class ProviderDegraded(SchedulingError):
    """
    Meeting provider failure. Internal only: absorbed by the provider, which
    falls back to a synthetic meeting resource.
    """
    code = 'provider_degraded'
    default_message = 'Meeting provider unavailable'

    def __init__(self, failure_reason, message=None):
        self.failure_reason = failure_reason
        super().__init__(message or f'{self.default_message}: {failure_reason}')


class DuplicateRequest(SchedulingError):
    """
    Insert rejected because the patient already booked with this request
    token. Internal only: the lifecycle service answers with the original.
    """
    code = 'duplicate_request'
    default_message = 'Booking already recorded for this request token'

    def __init__(self, appointment):
        self.appointment = appointment
        super().__init__()
