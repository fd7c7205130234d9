"""Read-path freshness checks."""

from __future__ import annotations

import logging
from datetime import datetime

from calendarbot_chat.core.settings import ChatSettings

from .models import Event
from .room_config import RoomConfig

logger = logging.getLogger(__name__)


class LazyRefresher:
    """Refreshes a room's caches synchronously when a read finds them stale.

    The background scheduler normally keeps both caches warm. This covers the
    gap before its first tick and while it is failing. Unlike the scheduler,
    errors here propagate: a failed refetch is never hidden behind stale data.
    """

    def __init__(self, settings: ChatSettings):
        self.config_max_age = settings.config_max_age
        self.events_max_age = settings.events_max_age

    def ensure_config(self, room: RoomConfig, now: datetime) -> None:
        """Reload the room's config if it is older than the config threshold.

        Raises:
            ConfigError: If the reload fails
        """
        age = room.config_age(now)
        if age > self.config_max_age:
            logger.debug("Config cache for %r is stale (%s); reloading", room.room_id, age)
            room.reload_config(now)

    async def ensure_events(self, room: RoomConfig, now: datetime) -> tuple[Event, ...]:
        """Return the room's events, refetching first if the cache is stale.

        Raises:
            FetchError: If a required refetch fails
        """
        age = room.events_age(now)
        if age > self.events_max_age:
            logger.info("%r's calendar cache is expired (age %s); refetching", room.room_id, age)
            return await room.refresh_events(now)
        return room.snapshot().events
