"""
Meeting providers.

The provider is chosen once per process from configuration and credential
availability; call sites only ever see get_meeting_provider().
"""
import logging
import threading

from django.conf import settings

from .base import MeetingResource, MeetingResourceProvider
from .credentials import candidate_credential_paths, load_service_account_credentials
from .google_calendar import GoogleCalendarMeetingProvider
from .synthetic import SyntheticMeetingProvider

logger = logging.getLogger(__name__)

__all__ = [
    'MeetingResource',
    'MeetingResourceProvider',
    'GoogleCalendarMeetingProvider',
    'SyntheticMeetingProvider',
    'build_meeting_provider',
    'get_meeting_provider',
    'reset_meeting_provider',
]

_provider = None
_provider_lock = threading.Lock()


def build_meeting_provider():
    """Resolve the provider from settings and the credential probe."""
    fallback = SyntheticMeetingProvider()

    if not settings.MEETING_PROVIDER_ENABLED:
        logger.info('Meeting provider disabled, running in synthetic mode')
        return fallback

    paths = candidate_credential_paths(
        explicit_path=settings.GOOGLE_SERVICE_ACCOUNT_FILE or None,
        package_dir=settings.BASE_DIR,
    )
    credentials, path = load_service_account_credentials(
        paths,
        subject=settings.GOOGLE_CALENDAR_DELEGATED_USER or None,
    )
    if credentials is None:
        logger.warning(
            'No Google service account credentials found, running in synthetic mode',
            extra={'probed_paths': [str(p) for p in paths]}
        )
        return fallback

    return GoogleCalendarMeetingProvider(
        credentials,
        calendar_id=settings.GOOGLE_CALENDAR_ID,
        timeout=settings.MEETING_PROVIDER_TIMEOUT_SECONDS,
        time_zone=settings.SCHEDULING_TIME_ZONE,
        fallback=fallback,
    )


def get_meeting_provider():
    global _provider
    if _provider is None:
        with _provider_lock:
            if _provider is None:
                _provider = build_meeting_provider()
    return _provider


def reset_meeting_provider():
    """Forget the resolved provider (tests, settings reloads)."""
    global _provider
    with _provider_lock:
        _provider = None
