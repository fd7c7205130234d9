"""Chat-facing facade wiring the calendar core together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from calendarbot_chat.commands import CommandHandler
from calendarbot_chat.core.http_client import close_all_clients
from calendarbot_chat.core.logging_config import room_context
from calendarbot_chat.core.protocols import (
    EventFetcher,
    KeyValueStore,
    MessageSender,
    PreferenceStore,
    TimeProvider,
)
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import now_utc
from calendarbot_chat.domain.announcer import Announcer
from calendarbot_chat.domain.decision import DecisionEngine
from calendarbot_chat.domain.models import DecisionKind, NotifyDecision
from calendarbot_chat.domain.refresher import LazyRefresher
from calendarbot_chat.domain.registry import ConfigRegistry
from calendarbot_chat.domain.scheduler import RefreshScheduler
from calendarbot_chat.domain.suppression import SuppressionGuard

logger = logging.getLogger(__name__)

CHAT_MESSAGE = "chat"


@dataclass(frozen=True)
class ChatMessage:
    """One inbound chat event."""

    room_id: str
    user_id: str
    body: str
    kind: str = CHAT_MESSAGE


def render_decision(decision: NotifyDecision) -> Optional[str]:
    """Reply text for a decision, or None when nothing should be said."""
    if decision.kind is DecisionKind.NOTIFY:
        return decision.message
    if decision.kind is DecisionKind.EVENTS_UNAVAILABLE:
        return f"Error while getting calendar data: {decision.error}"
    return None


class CalendarChatBot:
    """Answers chat activity with calendar-driven auto-replies.

    Rooms must be registered before their refresh task runs; messages from
    unregistered rooms still get evaluated, which registers them lazily
    without a background task.
    """

    def __init__(
        self,
        settings: ChatSettings,
        prefs: PreferenceStore,
        kv: KeyValueStore,
        fetcher: EventFetcher,
        send: Optional[MessageSender] = None,
        time_provider: TimeProvider = now_utc,
    ):
        self.settings = settings
        self._time_provider = time_provider
        self.registry = ConfigRegistry(prefs, fetcher, settings, time_provider)
        self.refresher = LazyRefresher(settings)
        self.guard = SuppressionGuard(kv, settings)
        self.engine = DecisionEngine(self.registry, self.refresher, self.guard, settings)
        announcer = Announcer(send) if send is not None else None
        self.scheduler = RefreshScheduler(self.registry, settings, time_provider, announcer)
        self.commands = CommandHandler(
            self.registry, self.guard, self.scheduler, settings, time_provider
        )

    def register_room(self, room_id: str) -> None:
        """Create the room's entry and start its background refresh.

        Must be called from within a running event loop.
        """
        self.registry.get_or_create(room_id)
        self.scheduler.start_room(room_id)

    async def handle_message(self, message: ChatMessage) -> Optional[str]:
        """Process one inbound message and return the reply, if any."""
        if message.kind != CHAT_MESSAGE or not message.body.strip():
            return None

        with room_context(message.room_id):
            if message.body.lstrip().startswith("!"):
                return await self.commands.handle(message.room_id, message.body)

            decision = await self.engine.evaluate(
                message.room_id, message.user_id, self._time_provider()
            )
            logger.debug("Decision for %r: %s", message.user_id, decision.kind.value)
            if decision.kind is DecisionKind.CONFIG_UNAVAILABLE:
                logger.info("Not replying; room is not configured: %s", decision.error)
            return render_decision(decision)

    async def close(self) -> None:
        """Stop all refresh tasks and release HTTP connections."""
        await self.scheduler.stop()
        await close_all_clients()
        logger.info("Calendar chat bot stopped")
