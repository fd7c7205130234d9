"""Protocol definitions for the collaborators the calendar core depends on.

The core never talks to a chat network, a calendar API or a database
directly; it is handed objects satisfying these interfaces.
"""

from __future__ import annotations

import datetime
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from calendarbot_chat.domain.models import Event


class TimeProvider(Protocol):
    """Protocol for time provider callables."""

    def __call__(self) -> datetime.datetime:
        """Return current UTC time."""
        ...


class EventFetcher(Protocol):
    """Protocol for calendar sources."""

    async def fetch_events(self, calendar_id: str, as_of: datetime.datetime) -> Sequence[Event]:
        """Fetch the events of calendar_id relevant at as_of.

        Args:
            calendar_id: Calendar identifier configured for the room
            as_of: Reference instant (UTC)

        Returns:
            Events in calendar order

        Raises:
            FetchError: If the calendar cannot be read
        """
        ...


class PreferenceStore(Protocol):
    """Protocol for per-room preference lookups."""

    def get_pref(self, room: str, plugin: str, key: str, default: str) -> tuple[str, bool]:
        """Look up a preference.

        Returns:
            (value, success). A missing key yields (default, True); a failed
            lookup yields (default, False).
        """
        ...


class KeyValueStore(Protocol):
    """Protocol for a key/value store with per-key TTL."""

    def get(self, key: str) -> tuple[str, bool]:
        """Return (value, found) for a live key."""
        ...

    def set(self, key: str, value: str, ttl: datetime.timedelta) -> None:
        """Store value under key, expiring after ttl."""
        ...

    def ttl_remaining(self, key: str) -> datetime.timedelta:
        """Time until key expires; zero if missing or expired."""
        ...


class MessageSender(Protocol):
    """Protocol for sending unsolicited messages (announcements) to a room."""

    async def __call__(self, room_id: str, text: str) -> None:
        ...
