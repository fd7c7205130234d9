"""Operator commands: !gcal status|expire|reload|silence|help."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from calendarbot_chat.core.protocols import TimeProvider
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import ZERO_INSTANT, now_utc
from calendarbot_chat.domain.registry import ConfigRegistry
from calendarbot_chat.domain.scheduler import RefreshScheduler
from calendarbot_chat.domain.suppression import SuppressionGuard
from calendarbot_chat.durations import format_duration, parse_duration
from calendarbot_chat.exceptions import RoomNotFoundError, SuppressionStoreError

logger = logging.getLogger(__name__)

USAGE = """{command} (silence|status|expire|reload)
{command} silence 4h
{command} reload

Even when attached, this plugin will not do anything until it is fully configured
for the room. At a minimum the calendar-id needs to be set. One or all of autoreply,
announce-start, and announce-end should be set to true to make anything happen.

Preferences (scope: {plugin}):

    calendar-id: URL of the room's calendar (ICS)

    autoreply: when true, the bot replies to any activity in the room while an
    event is in progress. The event's description is sent if set, otherwise a
    default message naming the event.

    announce-(start|end): when true, the bot announces events as they start or end,
    including the description if it is not empty.

    timezone: optional, the timezone to report times in (default {timezone})
"""

NOT_CONFIGURED = "Calendar is not configured for this room."


def _age_text(ts: datetime, now: datetime) -> str:
    if ts == ZERO_INSTANT:
        return "never fetched"
    minutes = (now - ts) / timedelta(minutes=1)
    return f"{minutes:.0f} minutes old"


class CommandHandler:
    """Parses and runs operator commands addressed to the calendar plugin."""

    def __init__(
        self,
        registry: ConfigRegistry,
        guard: SuppressionGuard,
        scheduler: RefreshScheduler,
        settings: ChatSettings,
        time_provider: TimeProvider = now_utc,
    ):
        self._registry = registry
        self._guard = guard
        self._scheduler = scheduler
        self._time_provider = time_provider
        self.command = settings.command
        self.usage = USAGE.format(
            command=settings.command,
            plugin=settings.plugin_name,
            timezone=settings.default_timezone,
        )

    async def handle(self, room_id: str, body: str) -> Optional[str]:
        """Run the command in body for room_id.

        Returns:
            Reply text, or None if body is not addressed to this plugin
        """
        argv = body.split()
        if not argv or argv[0] != self.command:
            return None
        if len(argv) < 2 or argv[1] == "help":
            return self.usage

        subcommand = argv[1]
        handler = {
            "status": self._status,
            "expire": self._expire,
            "reload": self._reload,
            "silence": self._silence,
        }.get(subcommand)
        if handler is None:
            return self.usage

        logger.debug("Running %s %s for %r", self.command, subcommand, room_id)
        try:
            return await handler(room_id, argv[2:])
        except RoomNotFoundError:
            return NOT_CONFIGURED

    async def _status(self, room_id: str, args: list[str]) -> str:
        snapshot = self._registry.get(room_id).snapshot()
        now = self._time_provider()
        lines = [
            f"Calendar cache is {_age_text(snapshot.events_fetched_at, now)}. "
            f"Config cache is {_age_text(snapshot.config_fetched_at, now)}.",
            f"{len(snapshot.events)} events cached.",
        ]
        remaining = self._guard.room_silence_remaining(room_id)
        if remaining > timedelta(0):
            lines.append(f"Notifications suppressed for another {format_duration(remaining)}.")
        return "\n".join(lines)

    async def _expire(self, room_id: str, args: list[str]) -> str:
        self._registry.get(room_id).expire_caches()
        return "config & calendar caches expired"

    async def _reload(self, room_id: str, args: list[str]) -> str:
        self._registry.get(room_id).expire_caches()
        if not await self._scheduler.tick(room_id):
            logger.warning("Reload of %r did not refresh events", room_id)
        return "reload complete"

    async def _silence(self, room_id: str, args: list[str]) -> str:
        if len(args) != 1:
            return f"Invalid command. A duration is required, e.g. {self.command} silence 4h"

        self._registry.get(room_id)
        try:
            duration = parse_duration(args[0])
            self._guard.silence(room_id, duration)
        except ValueError as e:
            return f'Invalid silence duration "{args[0]}": {e}'
        except SuppressionStoreError as e:
            logger.warning("Silence failed: %s", e)
            return f"Unable to silence calendar notifications: {e.message}"
        return f"Calendar notifications silenced for {format_duration(duration)}."
