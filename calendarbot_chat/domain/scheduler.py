"""Background refresh loop, one task per room."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from calendarbot_chat.core.logging_config import room_context
from calendarbot_chat.core.protocols import TimeProvider
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import now_utc
from calendarbot_chat.exceptions import ConfigError, FetchError

from .announcer import Announcer
from .registry import ConfigRegistry

logger = logging.getLogger(__name__)


@dataclass
class _RoomTimer:
    task: asyncio.Task
    stop_event: asyncio.Event


class RefreshScheduler:
    """Keeps each registered room's caches warm.

    Every room gets its own task: wait startup_delay, tick, then tick again
    every refresh_interval until stopped. A tick reloads config (best effort)
    and always refetches events. Failures are logged and the previous cache is
    kept; nothing is raised to the loop.
    """

    def __init__(
        self,
        registry: ConfigRegistry,
        settings: ChatSettings,
        time_provider: TimeProvider = now_utc,
        announcer: Optional[Announcer] = None,
    ):
        self._registry = registry
        self._time_provider = time_provider
        self._announcer = announcer
        self.interval = settings.refresh_interval_seconds
        self.startup_delay = settings.startup_delay_seconds
        self._timers: dict[str, _RoomTimer] = {}
        self._last_ticks: dict[str, datetime] = {}

    def start_room(self, room_id: str) -> bool:
        """Start the refresh task for room_id; a running task is left alone.

        Must be called from within a running event loop.

        Returns:
            True if a new task was started
        """
        timer = self._timers.get(room_id)
        if timer is not None and not timer.task.done():
            return False

        stop_event = asyncio.Event()
        task = asyncio.create_task(
            self._run(room_id, stop_event), name=f"google_calendar-{room_id}"
        )
        self._timers[room_id] = _RoomTimer(task=task, stop_event=stop_event)
        logger.debug("Refresh task for %r started (interval %ds)", room_id, self.interval)
        return True

    def is_running(self, room_id: str) -> bool:
        timer = self._timers.get(room_id)
        return timer is not None and not timer.task.done()

    async def stop_room(self, room_id: str) -> None:
        timer = self._timers.pop(room_id, None)
        if timer is None:
            return
        timer.stop_event.set()
        try:
            await asyncio.wait_for(timer.task, timeout=5.0)
        except asyncio.TimeoutError:
            timer.task.cancel()
            logger.warning("Refresh task for %r did not stop in time; cancelled", room_id)

    async def stop(self) -> None:
        """Stop every room's refresh task."""
        for room_id in list(self._timers):
            await self.stop_room(room_id)

    async def _run(self, room_id: str, stop_event: asyncio.Event) -> None:
        if await self._wait(stop_event, self.startup_delay):
            return
        while True:
            try:
                await self.tick(room_id)
            except Exception:
                logger.exception("Refresh loop unexpected error for %r", room_id)
            if await self._wait(stop_event, self.interval):
                return

    @staticmethod
    async def _wait(stop_event: asyncio.Event, seconds: float) -> bool:
        """Sleep up to seconds; True if stop was requested meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True

    async def tick(self, room_id: str, now: Optional[datetime] = None) -> bool:
        """Run one refresh for room_id.

        Returns:
            True if events were refreshed

        Raises:
            RoomNotFoundError: If room_id is not registered
        """
        room = self._registry.get(room_id)
        now = now or self._time_provider()

        with room_context(room_id):
            logger.debug("START: refresh of %r", room_id)
            try:
                room.reload_config(now)
            except ConfigError as e:
                logger.warning("Config reload failed, keeping previous config: %s", e)

            try:
                await room.refresh_events(now)
            except FetchError as e:
                logger.warning("FAILED: refresh of %r: %s", room_id, e)
                return False

            since = self._last_ticks.get(room_id)
            self._last_ticks[room_id] = now
            if self._announcer is not None:
                await self._announcer.announce(room.snapshot(), since, now)

            logger.debug("DONE: refresh of %r", room_id)
            return True
