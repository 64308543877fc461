"""
Synthetic meeting provider.

Hands out well-formed but unbacked Google Meet style links. Used when no
credentials are configured and as the fallback of the real provider.
"""
import logging
import secrets
import string
import time

from apps.core.observability import metrics

from .base import MeetingResource, MeetingResourceProvider

logger = logging.getLogger(__name__)

MEET_BASE_URL = 'https://meet.google.com/'


def generate_meeting_code():
    """Meet-style code: 3-4-3 lowercase letters, e.g. 'abc-defg-hij'."""
    letters = string.ascii_lowercase
    return '-'.join(
        ''.join(secrets.choice(letters) for _ in range(size))
        for size in (3, 4, 3)
    )


def generate_placeholder_id():
    """Unique, recognizably fake event id."""
    return f"mock-event-{int(time.time() * 1000)}-{secrets.token_hex(4)}"


class SyntheticMeetingProvider(MeetingResourceProvider):
    name = 'synthetic'

    def create_meeting(self, summary, description, start, end, attendees):
        resource = MeetingResource(
            external_id=generate_placeholder_id(),
            join_url=f"{MEET_BASE_URL}{generate_meeting_code()}",
            is_real=False,
        )
        metrics.meeting_resources_total.labels(mode='synthetic').inc()
        logger.info(
            'Synthetic meeting resource created',
            extra={'external_id': resource.external_id, 'start': start.isoformat()}
        )
        return resource
