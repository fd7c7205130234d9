"""Per-room settings and calendar cache."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Optional

from calendarbot_chat.core.logging_config import room_context
from calendarbot_chat.core.protocols import EventFetcher, PreferenceStore, TimeProvider
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import ZERO_INSTANT, age_of, now_utc, resolve_timezone
from calendarbot_chat.exceptions import ConfigError, FetchError

from .models import Event, RoomSnapshot

logger = logging.getLogger(__name__)

PREF_CALENDAR_ID = "calendar-id"
PREF_AUTOREPLY = "autoreply"
PREF_ANNOUNCE_START = "announce-start"
PREF_ANNOUNCE_END = "announce-end"
PREF_TIMEZONE = "timezone"

_TRUE_VALUES = frozenset({"1", "t", "T", "TRUE", "true", "True"})
_FALSE_VALUES = frozenset({"0", "f", "F", "FALSE", "false", "False"})


def parse_bool(value: str) -> bool:
    """Parse a boolean preference value.

    Raises:
        ValueError: If value is not a recognised boolean spelling
    """
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"invalid boolean value {value!r}")


class RoomConfig:
    """Configuration and cached events for one chat room.

    Mutable fields are guarded by a per-room lock. The lock is never held
    while the calendar is being fetched: refresh_events() copies the calendar
    id under the lock, fetches without it, then re-takes it to commit the new
    list and timestamp together.
    """

    def __init__(
        self,
        room_id: str,
        prefs: PreferenceStore,
        fetcher: EventFetcher,
        settings: ChatSettings,
        time_provider: TimeProvider = now_utc,
    ):
        self.room_id = room_id
        self._prefs = prefs
        self._fetcher = fetcher
        self._settings = settings
        self._time_provider = time_provider
        self._lock = threading.Lock()

        self.calendar_id = ""
        self.timezone = resolve_timezone(settings.default_timezone)
        self.autoreply = False
        self.announce_start = False
        self.announce_end = False
        self.events: tuple[Event, ...] = ()
        self.config_fetched_at = ZERO_INSTANT
        self.events_fetched_at = ZERO_INSTANT

    def reload_config(self, now: Optional[datetime] = None) -> None:
        """Reload the room's preferences.

        Fields are applied as they are validated. A fatal error (missing
        calendar id, unresolvable timezone) stops the reload without rolling
        back fields already applied, and leaves config_fetched_at unchanged.

        Raises:
            ConfigError: If calendar-id cannot be read
            TimezoneError: If the configured timezone cannot be resolved
        """
        plugin = self._settings.plugin_name
        with room_context(self.room_id), self._lock:
            calendar_id, ok = self._prefs.get_pref(self.room_id, plugin, PREF_CALENDAR_ID, "")
            if not ok or not calendar_id:
                raise ConfigError(
                    f"Failed to load {PREF_CALENDAR_ID} preference for room {self.room_id!r}",
                    room_id=self.room_id,
                )
            self.calendar_id = calendar_id

            self.autoreply = self._load_bool_pref(PREF_AUTOREPLY)
            self.announce_start = self._load_bool_pref(PREF_ANNOUNCE_START)
            self.announce_end = self._load_bool_pref(PREF_ANNOUNCE_END)

            tz_name, _ = self._prefs.get_pref(
                self.room_id, plugin, PREF_TIMEZONE, self._settings.default_timezone
            )
            self.timezone = resolve_timezone(tz_name)

            self.config_fetched_at = now or self._time_provider()
            logger.debug(
                "Loaded config: calendar=%r autoreply=%s announce_start=%s announce_end=%s tz=%s",
                self.calendar_id,
                self.autoreply,
                self.announce_start,
                self.announce_end,
                self.timezone.key,
            )

    def _load_bool_pref(self, key: str) -> bool:
        """Read a boolean preference; anything unreadable counts as False. Called with lock held."""
        value, ok = self._prefs.get_pref(self.room_id, self._settings.plugin_name, key, "false")
        if not ok:
            logger.warning("Unable to read %r preference; treating as false", key)
            return False
        try:
            return parse_bool(value.strip())
        except ValueError as e:
            logger.warning("unable to parse boolean pref value for %r: %s", key, e)
            return False

    async def refresh_events(self, now: datetime) -> tuple[Event, ...]:
        """Fetch events and replace the cache.

        On failure the cached list and events_fetched_at are left as they were.

        Returns:
            The newly cached events

        Raises:
            FetchError: If the calendar could not be fetched
        """
        with self._lock:
            calendar_id = self.calendar_id

        with room_context(self.room_id):
            if not calendar_id:
                raise FetchError(
                    f"No calendar-id configured for room {self.room_id!r}", room_id=self.room_id
                )

            try:
                fetched: Sequence[Event] = await self._fetcher.fetch_events(calendar_id, now)
            except FetchError:
                raise
            except Exception as exc:
                raise FetchError(
                    f"Failed to fetch calendar {calendar_id!r}: {exc}", room_id=self.room_id
                ) from exc

            events = tuple(fetched)
            with self._lock:
                self.events = events
                self.events_fetched_at = now

            logger.debug("Cached %d events from %r", len(events), calendar_id)
            return events

    def expire_caches(self) -> None:
        """Mark both config and events as never fetched."""
        with self._lock:
            self.config_fetched_at = ZERO_INSTANT
            self.events_fetched_at = ZERO_INSTANT

    def config_age(self, now: datetime) -> timedelta:
        with self._lock:
            return age_of(self.config_fetched_at, now)

    def events_age(self, now: datetime) -> timedelta:
        with self._lock:
            return age_of(self.events_fetched_at, now)

    def snapshot(self) -> RoomSnapshot:
        """Return a consistent copy of all mutable fields."""
        with self._lock:
            return RoomSnapshot(
                room_id=self.room_id,
                calendar_id=self.calendar_id,
                timezone=self.timezone,
                autoreply=self.autoreply,
                announce_start=self.announce_start,
                announce_end=self.announce_end,
                events=self.events,
                config_fetched_at=self.config_fetched_at,
                events_fetched_at=self.events_fetched_at,
            )
