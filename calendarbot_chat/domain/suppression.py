"""Time-boxed suppression of repeated calendar replies."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta

from calendarbot_chat.core.protocols import KeyValueStore
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.exceptions import SuppressionStoreError

logger = logging.getLogger(__name__)

# Value written by an explicit silence; any non-empty value suppresses
SILENCE_MARKER = "-"


def user_key(user_id: str, room_id: str) -> str:
    return f"user:{user_id}:{room_id}"


def room_key(room_id: str) -> str:
    return f"room:{room_id}"


class SuppressionGuard:
    """Decides whether a reply to (user, room) is currently suppressed.

    Two windows exist: a per-user one (default 2 hours) and a per-room one
    (default 10 minutes, or whatever an operator silence set). Either being
    live suppresses. The room window is a single key shared by automatic
    suppression and operator silence; the last write decides its TTL.

    Store failures fail open: a lookup that errors does not suppress.
    """

    def __init__(self, kv: KeyValueStore, settings: ChatSettings):
        self._kv = kv
        self.user_ttl = settings.user_suppression
        self.room_ttl = settings.room_suppression

    def should_suppress(self, user_id: str, room_id: str) -> bool:
        for key in (user_key(user_id, room_id), room_key(room_id)):
            try:
                value, found = self._kv.get(key)
            except Exception as e:
                logger.warning("Suppression lookup for %r failed, not suppressing: %s", key, e)
                continue
            if found and value:
                logger.debug("Not responding: %r is set (%r)", key, value)
                return True
        return False

    def record_notified(self, user_id: str, room_id: str, now: datetime) -> None:
        """Open both suppression windows after a reply was sent.

        Failures are logged only; the reply has already gone out.
        """
        stamp = now.isoformat()
        try:
            self._kv.set(user_key(user_id, room_id), stamp, self.user_ttl)
            self._kv.set(room_key(room_id), stamp, self.room_ttl)
        except Exception as e:
            logger.warning("Failed to record suppression for %r in %r: %s", user_id, room_id, e)
            return
        logger.info(
            "will not notify room %r for %s or user %r for %s",
            room_id,
            self.room_ttl,
            user_id,
            self.user_ttl,
        )

    def silence(self, room_id: str, duration: timedelta) -> None:
        """Suppress all replies in room_id for duration.

        Raises:
            SuppressionStoreError: If the store rejects the write
        """
        if duration <= timedelta(0):
            raise ValueError("silence duration must be positive")
        try:
            self._kv.set(room_key(room_id), SILENCE_MARKER, duration)
        except Exception as e:
            raise SuppressionStoreError(f"Failed to silence room: {e}", room_id=room_id) from e
        logger.info("Room %r silenced for %s", room_id, duration)

    def room_silence_remaining(self, room_id: str) -> timedelta:
        """Time left on the room-level window; zero when none is live or the store fails."""
        try:
            return self._kv.ttl_remaining(room_key(room_id))
        except Exception as e:
            logger.warning("Could not read room suppression for %r: %s", room_id, e)
            return timedelta(0)
