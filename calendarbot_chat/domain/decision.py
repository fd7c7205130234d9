"""Decides whether chat activity during a calendar event earns a reply."""

from __future__ import annotations

import logging
from datetime import datetime

from calendarbot_chat.core.logging_config import room_context
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.exceptions import ConfigError, FetchError

from .models import Event, NotifyDecision, find_active_event
from .refresher import LazyRefresher
from .registry import ConfigRegistry
from .suppression import SuppressionGuard

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Combines suppression, cache freshness and the active-event lookup.

    Each step of evaluate() can end the evaluation early; only the final
    NOTIFY outcome writes suppression records.
    """

    def __init__(
        self,
        registry: ConfigRegistry,
        refresher: LazyRefresher,
        guard: SuppressionGuard,
        settings: ChatSettings,
    ):
        self._registry = registry
        self._refresher = refresher
        self._guard = guard
        self._default_message = settings.default_message

    async def evaluate(self, room_id: str, user_id: str, now: datetime) -> NotifyDecision:
        with room_context(room_id):
            if self._guard.should_suppress(user_id, room_id):
                return NotifyDecision.suppressed()

            room = self._registry.get_or_create(room_id)
            try:
                self._refresher.ensure_config(room, now)
            except ConfigError as e:
                logger.warning("Config unavailable: %s", e)
                return NotifyDecision.config_unavailable(e)

            try:
                events = await self._refresher.ensure_events(room, now)
            except FetchError as e:
                logger.warning("Error encountered while fetching calendar events: %s", e)
                return NotifyDecision.events_unavailable(e)

            event = find_active_event(events, now)
            if event is None:
                return NotifyDecision.no_active_event()

            if not room.snapshot().autoreply:
                logger.debug("Event %r is active but autoreply is off", event.name)
                return NotifyDecision.autoreply_disabled(event)

            message = self.build_message(event)
            self._guard.record_notified(user_id, room_id, now)
            return NotifyDecision.notify(message, event)

    def build_message(self, event: Event) -> str:
        """The event's description, or the default template filled with its name."""
        if event.description:
            return event.description
        return self._default_message.format(name=event.name)
