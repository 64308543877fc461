"""
DRF exception handler for scheduling errors.

Renders every SchedulingError as {"error": {"code", "message"[, "field"]}}
with the status its class maps to. Anything else goes to DRF's default
handler.
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from apps.appointments.exceptions import (
    BookingValidationError,
    InvalidTransition,
    NotFound,
    SchedulingError,
    SlotConflict,
    StoreError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (BookingValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (SlotConflict, status.HTTP_409_CONFLICT),
    (InvalidTransition, status.HTTP_409_CONFLICT),
    (StoreError, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_for(exc):
    for error_class, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def scheduling_exception_handler(exc, context):
    if not isinstance(exc, SchedulingError):
        return exception_handler(exc, context)

    status_code = status_for(exc)
    if status_code >= 500:
        view = context.get('view')
        logger.error(
            'Scheduling request failed',
            extra={'error_code': exc.code, 'view': type(view).__name__ if view else None}
        )
    return Response({'error': exc.as_dict()}, status=status_code)
