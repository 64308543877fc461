"""
Google Calendar meeting provider.

Creates a calendar event with a Google Meet conference attached and returns
its join URL. Every call runs under a wall-clock deadline; any failure
(network, auth, HTTP error, timeout, unusable response) is logged, counted
and answered with a synthetic resource from the fallback provider.
"""
import logging
import secrets
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import google_auth_httplib2
import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from apps.appointments.exceptions import ProviderDegraded
from apps.core.observability import metrics
from apps.core.observability.events import log_meeting_provider_degraded

from .base import MeetingResource, MeetingResourceProvider
from .synthetic import MEET_BASE_URL, SyntheticMeetingProvider

logger = logging.getLogger(__name__)

# Shared by all provider instances; calls are short and bounded by the deadline
_executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix='meeting-provider')

REMINDER_OVERRIDES = [
    {'method': 'email', 'minutes': 24 * 60},
    {'method': 'popup', 'minutes': 30},
]


def extract_join_url(event):
    """
    Join URL from an inserted event, or None.

    Preference: direct conference link, then the video entry point (any
    entry point if none is tagged video), then the event page, then a URL
    built from the conference id.
    """
    if event.get('hangoutLink'):
        return event['hangoutLink']

    conference = event.get('conferenceData') or {}
    entry_points = [ep for ep in conference.get('entryPoints') or [] if ep.get('uri')]
    for entry_point in entry_points:
        if entry_point.get('entryPointType') == 'video':
            return entry_point['uri']
    if entry_points:
        return entry_points[0]['uri']

    if event.get('htmlLink'):
        return event['htmlLink']

    if conference.get('conferenceId'):
        return f"{MEET_BASE_URL}{conference['conferenceId']}"

    return None


def classify_failure(exc):
    """Short failure reason used as a metric label."""
    if isinstance(exc, ProviderDegraded):
        return exc.failure_reason
    if isinstance(exc, FutureTimeoutError):
        return 'timeout'
    if isinstance(exc, HttpError):
        return f'http_{exc.resp.status}'
    if isinstance(exc, GoogleAuthError):
        return 'auth'
    if isinstance(exc, (httplib2.HttpLib2Error, OSError)):
        return 'network'
    return 'unexpected'


class GoogleCalendarMeetingProvider(MeetingResourceProvider):
    """
    Real provider backed by the Google Calendar API (v3).

    service_factory builds the calendar API client; tests pass a stub.
    """
    name = 'google_calendar'

    def __init__(
        self,
        credentials,
        calendar_id='primary',
        timeout=8.0,
        time_zone='UTC',
        fallback=None,
        service_factory=None,
    ):
        self.credentials = credentials
        self.calendar_id = calendar_id
        self.timeout = timeout
        self.time_zone = time_zone
        self.fallback = fallback or SyntheticMeetingProvider()
        self._service_factory = service_factory or self._build_service

    def _build_service(self):
        http = google_auth_httplib2.AuthorizedHttp(
            self.credentials,
            http=httplib2.Http(timeout=self.timeout)
        )
        return build('calendar', 'v3', http=http, cache_discovery=False)

    def build_event(self, summary, description, start, end, attendees):
        return {
            'summary': summary,
            'description': description or '',
            'location': 'Google Meet',
            'start': {'dateTime': start.isoformat(), 'timeZone': self.time_zone},
            'end': {'dateTime': end.isoformat(), 'timeZone': self.time_zone},
            'attendees': [
                {'email': email, 'responseStatus': 'needsAction'}
                for email in attendees if email
            ],
            'conferenceData': {
                'createRequest': {
                    'requestId': f"meet-{int(time.time() * 1000)}-{secrets.token_hex(4)}",
                    'conferenceSolutionKey': {'type': 'hangoutsMeet'},
                },
            },
            'reminders': {'useDefault': False, 'overrides': REMINDER_OVERRIDES},
        }

    def _insert_event(self, event):
        service = self._service_factory()
        return service.events().insert(
            calendarId=self.calendar_id,
            body=event,
            conferenceDataVersion=1,
            sendUpdates='all',
        ).execute(num_retries=0)

    def create_meeting(self, summary, description, start, end, attendees):
        event = self.build_event(summary, description, start, end, attendees)
        started = time.monotonic()

        try:
            future = _executor.submit(self._insert_event, event)
            try:
                response = future.result(timeout=self.timeout)
            except FutureTimeoutError:
                # The worker may still finish; its result is discarded
                future.cancel()
                raise
            resource = self._to_resource(response)
        except Exception as exc:
            # The booking flow must never see a provider failure
            return self._degrade(exc, summary, start, end, attendees)
        finally:
            metrics.meeting_provider_duration_seconds.observe(time.monotonic() - started)

        metrics.meeting_resources_total.labels(mode='real').inc()
        logger.info(
            'Google Calendar event created',
            extra={'external_id': resource.external_id, 'calendar_id': self.calendar_id}
        )
        return resource

    def _to_resource(self, response):
        if not isinstance(response, dict) or not response.get('id'):
            raise ProviderDegraded('malformed_response', 'Event response has no id')
        join_url = extract_join_url(response)
        if not join_url:
            raise ProviderDegraded('malformed_response', 'Event response has no join URL')
        return MeetingResource(external_id=response['id'], join_url=join_url, is_real=True)

    def _degrade(self, exc, summary, start, end, attendees):
        failure_reason = classify_failure(exc)
        metrics.meeting_provider_failures_total.labels(failure_reason=failure_reason).inc()
        log_meeting_provider_degraded(
            self.name,
            failure_reason,
            error_type=type(exc).__name__,
            timeout_seconds=self.timeout,
        )
        if failure_reason == 'unexpected':
            logger.exception('Unexpected meeting provider failure')
        return self.fallback.create_meeting(summary, None, start, end, attendees)
