"""
Tests for meeting providers.

The real provider must never raise: HTTP errors, timeouts, auth failures
and unusable responses all come back as synthetic resources.
"""
import json
import re
import time
from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import httplib2
import pytest
import pytz
from googleapiclient.errors import HttpError

from apps.appointments.meetings import (
    GoogleCalendarMeetingProvider,
    SyntheticMeetingProvider,
    build_meeting_provider,
    get_meeting_provider,
)
from apps.appointments.meetings.credentials import (
    SCOPES,
    candidate_credential_paths,
    load_service_account_credentials,
)
from apps.appointments.meetings.google_calendar import extract_join_url

SYNTHETIC_URL = re.compile(r'^https://meet\.google\.com/[a-z]{3}-[a-z]{4}-[a-z]{3}$')

START = datetime(2024, 5, 1, 10, 0, tzinfo=pytz.UTC)
END = START + timedelta(minutes=30)


class StubCalendarService:
    """Mimics service.events().insert(...).execute()."""

    def __init__(self, response=None, error=None, delay=0):
        self.response = response
        self.error = error
        self.delay = delay
        self.insert_kwargs = None

    def events(self):
        return self

    def insert(self, **kwargs):
        self.insert_kwargs = kwargs
        return self

    def execute(self, num_retries=0):
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.response


def make_provider(stub, timeout=1.0):
    return GoogleCalendarMeetingProvider(
        credentials=Mock(),
        calendar_id='clinic@test.com',
        timeout=timeout,
        time_zone='Asia/Kolkata',
        service_factory=lambda: stub,
    )


def create(provider):
    return provider.create_meeting(
        'Appointment with Dr. Test',
        'Medical consultation',
        START,
        END,
        ['patient@test.com', 'doctor@test.com'],
    )


class TestSyntheticProvider:

    def test_returns_well_formed_placeholder(self):
        resource = SyntheticMeetingProvider().create_meeting('s', None, START, END, [])

        assert resource.is_real is False
        assert SYNTHETIC_URL.match(resource.join_url)
        assert resource.external_id.startswith('mock-event-')

    def test_identifiers_are_unique(self):
        provider = SyntheticMeetingProvider()
        resources = [provider.create_meeting('s', None, START, END, []) for _ in range(20)]

        assert len({r.external_id for r in resources}) == 20
        assert len({r.join_url for r in resources}) == 20


class TestExtractJoinUrl:

    def test_prefers_direct_conference_link(self):
        event = {
            'hangoutLink': 'https://meet.google.com/aaa-bbbb-ccc',
            'htmlLink': 'https://calendar.google.com/event?eid=1',
        }
        assert extract_join_url(event) == 'https://meet.google.com/aaa-bbbb-ccc'

    def test_uses_video_entry_point(self):
        event = {
            'conferenceData': {
                'entryPoints': [
                    {'entryPointType': 'phone', 'uri': 'tel:+1-555-0100'},
                    {'entryPointType': 'video', 'uri': 'https://meet.google.com/ddd-eeee-fff'},
                ],
            },
            'htmlLink': 'https://calendar.google.com/event?eid=1',
        }
        assert extract_join_url(event) == 'https://meet.google.com/ddd-eeee-fff'

    def test_falls_back_to_event_link(self):
        event = {'htmlLink': 'https://calendar.google.com/event?eid=1', 'conferenceData': {'conferenceId': 'x'}}
        assert extract_join_url(event) == 'https://calendar.google.com/event?eid=1'

    def test_builds_url_from_conference_id(self):
        event = {'conferenceData': {'conferenceId': 'ggg-hhhh-iii'}}
        assert extract_join_url(event) == 'https://meet.google.com/ggg-hhhh-iii'

    def test_nothing_usable(self):
        assert extract_join_url({'id': 'evt'}) is None


class TestGoogleCalendarProvider:

    def test_success_returns_real_resource(self):
        stub = StubCalendarService(response={
            'id': 'evt-123',
            'hangoutLink': 'https://meet.google.com/abc-defg-hij',
        })

        resource = create(make_provider(stub))

        assert resource.is_real is True
        assert resource.external_id == 'evt-123'
        assert resource.join_url == 'https://meet.google.com/abc-defg-hij'

    def test_insert_request_shape(self):
        stub = StubCalendarService(response={'id': 'evt-1', 'hangoutLink': 'https://meet.google.com/a'})

        create(make_provider(stub))

        kwargs = stub.insert_kwargs
        assert kwargs['calendarId'] == 'clinic@test.com'
        assert kwargs['conferenceDataVersion'] == 1
        assert kwargs['sendUpdates'] == 'all'
        body = kwargs['body']
        assert body['start'] == {'dateTime': START.isoformat(), 'timeZone': 'Asia/Kolkata'}
        assert body['end']['dateTime'] == END.isoformat()
        assert [a['email'] for a in body['attendees']] == ['patient@test.com', 'doctor@test.com']
        assert body['conferenceData']['createRequest']['conferenceSolutionKey'] == {'type': 'hangoutsMeet'}
        assert body['reminders'] == {
            'useDefault': False,
            'overrides': [{'method': 'email', 'minutes': 1440}, {'method': 'popup', 'minutes': 30}],
        }

    def test_http_error_falls_back(self):
        error = HttpError(resp=httplib2.Response({'status': 503}), content=b'backend unavailable')
        stub = StubCalendarService(error=error)

        resource = create(make_provider(stub))

        assert resource.is_real is False
        assert SYNTHETIC_URL.match(resource.join_url)

    def test_network_error_falls_back(self):
        stub = StubCalendarService(error=ConnectionResetError('reset by peer'))

        resource = create(make_provider(stub))

        assert resource.is_real is False

    def test_timeout_falls_back_within_deadline(self):
        stub = StubCalendarService(response={'id': 'late', 'hangoutLink': 'https://meet.google.com/x'}, delay=1.0)
        provider = make_provider(stub, timeout=0.1)

        started = time.monotonic()
        resource = create(provider)
        elapsed = time.monotonic() - started

        assert resource.is_real is False
        assert elapsed < 0.9

    @pytest.mark.parametrize('response', [
        {'hangoutLink': 'https://meet.google.com/no-id'},
        {'id': 'evt-without-link'},
        None,
        ['not', 'a', 'dict'],
    ])
    def test_malformed_response_falls_back(self, response):
        resource = create(make_provider(StubCalendarService(response=response)))

        assert resource.is_real is False

    def test_failure_emits_degraded_event(self, caplog):
        stub = StubCalendarService(error=ConnectionResetError('reset by peer'))

        with caplog.at_level('WARNING'):
            create(make_provider(stub))

        events = [r for r in caplog.records if getattr(r, 'event', None) == 'meeting_provider_degraded']
        assert len(events) == 1
        assert events[0].failure_reason == 'network'
        assert events[0].provider == 'google_calendar'

    def test_failure_uses_injected_fallback(self):
        fallback = Mock()
        provider = GoogleCalendarMeetingProvider(
            credentials=Mock(),
            fallback=fallback,
            service_factory=lambda: StubCalendarService(error=OSError('down')),
        )

        result = create(provider)

        assert result is fallback.create_meeting.return_value


class TestCredentialDiscovery:

    def test_probe_order(self, tmp_path):
        paths = candidate_credential_paths(
            explicit_path=tmp_path / 'explicit.json',
            cwd=tmp_path / 'cwd',
            package_dir=tmp_path / 'pkg',
            environ={'GOOGLE_APPLICATION_CREDENTIALS': str(tmp_path / 'env.json')},
        )

        assert paths == [
            tmp_path / 'explicit.json',
            tmp_path / 'cwd' / 'service-account.json',
            tmp_path / 'cwd' / 'config' / 'google' / 'service-account.json',
            tmp_path / 'pkg' / 'config' / 'google' / 'service-account.json',
            tmp_path / 'env.json',
        ]

    def test_no_explicit_path_or_env(self, tmp_path):
        paths = candidate_credential_paths(cwd=tmp_path, environ={})

        assert paths == [
            tmp_path / 'service-account.json',
            tmp_path / 'config' / 'google' / 'service-account.json',
        ]

    def test_first_usable_file_wins(self, tmp_path):
        broken = tmp_path / 'broken.json'
        broken.write_text('{not json')
        good = tmp_path / 'good.json'
        good.write_text(json.dumps({'type': 'service_account', 'client_email': 'sa@test.iam'}))
        later = tmp_path / 'later.json'
        later.write_text(json.dumps({'type': 'service_account', 'client_email': 'other@test.iam'}))

        with patch(
            'apps.appointments.meetings.credentials.service_account.Credentials.from_service_account_info'
        ) as from_info:
            credentials, path = load_service_account_credentials(
                [tmp_path / 'missing.json', broken, good, later]
            )

        assert path == good
        assert credentials is from_info.return_value
        from_info.assert_called_once_with(
            {'type': 'service_account', 'client_email': 'sa@test.iam'}, scopes=SCOPES
        )

    def test_delegated_subject(self, tmp_path):
        good = tmp_path / 'good.json'
        good.write_text(json.dumps({'type': 'service_account'}))

        with patch(
            'apps.appointments.meetings.credentials.service_account.Credentials.from_service_account_info'
        ) as from_info:
            credentials, _ = load_service_account_credentials([good], subject='clinic@test.com')

        from_info.return_value.with_subject.assert_called_once_with('clinic@test.com')
        assert credentials is from_info.return_value.with_subject.return_value

    def test_rejected_key_material_is_skipped(self, tmp_path):
        bad = tmp_path / 'bad.json'
        bad.write_text(json.dumps({'type': 'service_account'}))

        with patch(
            'apps.appointments.meetings.credentials.service_account.Credentials.from_service_account_info',
            side_effect=ValueError('missing private_key'),
        ):
            assert load_service_account_credentials([bad]) == (None, None)

    def test_nothing_found(self, tmp_path):
        assert load_service_account_credentials([tmp_path / 'nope.json']) == (None, None)


class TestProviderSelection:

    def test_disabled_means_synthetic(self, settings):
        settings.MEETING_PROVIDER_ENABLED = False

        assert isinstance(build_meeting_provider(), SyntheticMeetingProvider)

    def test_missing_credentials_means_synthetic(self, settings):
        settings.MEETING_PROVIDER_ENABLED = True

        with patch('apps.appointments.meetings.load_service_account_credentials', return_value=(None, None)):
            provider = build_meeting_provider()

        assert provider.name == 'synthetic'

    def test_credentials_select_google_provider(self, settings, tmp_path):
        settings.MEETING_PROVIDER_ENABLED = True
        settings.GOOGLE_CALENDAR_ID = 'clinic@test.com'
        settings.MEETING_PROVIDER_TIMEOUT_SECONDS = 3

        credentials = Mock()
        with patch(
            'apps.appointments.meetings.load_service_account_credentials',
            return_value=(credentials, tmp_path / 'sa.json'),
        ):
            provider = build_meeting_provider()

        assert isinstance(provider, GoogleCalendarMeetingProvider)
        assert provider.credentials is credentials
        assert provider.calendar_id == 'clinic@test.com'
        assert provider.timeout == 3
        assert isinstance(provider.fallback, SyntheticMeetingProvider)

    def test_resolved_once(self, settings):
        settings.MEETING_PROVIDER_ENABLED = False

        assert get_meeting_provider() is get_meeting_provider()
