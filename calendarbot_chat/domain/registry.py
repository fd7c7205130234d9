"""Process-wide mapping from room id to RoomConfig."""

from __future__ import annotations

import logging
import threading

from calendarbot_chat.core.protocols import EventFetcher, PreferenceStore, TimeProvider
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import now_utc
from calendarbot_chat.exceptions import RoomNotFoundError

from .room_config import RoomConfig

logger = logging.getLogger(__name__)


class ConfigRegistry:
    """Thread-safe registry of room configurations.

    Entries are created on first use and never removed. The registry lock only
    covers the dictionary itself; callers refresh a RoomConfig after the
    lookup returns, under that room's own lock.
    """

    def __init__(
        self,
        prefs: PreferenceStore,
        fetcher: EventFetcher,
        settings: ChatSettings,
        time_provider: TimeProvider = now_utc,
    ):
        self._prefs = prefs
        self._fetcher = fetcher
        self._settings = settings
        self._time_provider = time_provider
        self._lock = threading.Lock()
        self._rooms: dict[str, RoomConfig] = {}

    def get_or_create(self, room_id: str) -> RoomConfig:
        """Return the room's config, creating an unfetched one on first call."""
        with self._lock:
            config = self._rooms.get(room_id)
            if config is None:
                config = RoomConfig(
                    room_id, self._prefs, self._fetcher, self._settings, self._time_provider
                )
                self._rooms[room_id] = config
                logger.info("Registered room %r", room_id)
            return config

    def get(self, room_id: str) -> RoomConfig:
        """Return an existing room's config.

        Raises:
            RoomNotFoundError: If the room was never registered
        """
        with self._lock:
            config = self._rooms.get(room_id)
        if config is None:
            raise RoomNotFoundError(f"Room {room_id!r} is not registered", room_id=room_id)
        return config

    def __contains__(self, room_id: object) -> bool:
        with self._lock:
            return room_id in self._rooms

    def __len__(self) -> int:
        with self._lock:
            return len(self._rooms)
