"""
Meeting resource contract.

A provider turns "a consultation between these people at this time" into a
joinable URL. Providers never raise to the booking flow: on any failure they
hand back a synthetic resource instead.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence


@dataclass(frozen=True)
class MeetingResource:
    """Joinable meeting. is_real is False for synthetic placeholder links."""
    external_id: str
    join_url: str
    is_real: bool


class MeetingResourceProvider(ABC):
    """Base class for meeting providers."""

    # Reported by the readiness probe and in degraded-mode events
    name = 'abstract'

    @abstractmethod
    def create_meeting(
        self,
        summary: str,
        description: Optional[str],
        start: datetime,
        end: datetime,
        attendees: Sequence[str],
    ) -> MeetingResource:
        """Create a meeting resource. Must not raise."""
