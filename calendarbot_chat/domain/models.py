"""Data models for the room calendar core."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from calendarbot_chat.core.timezone_utils import ensure_utc


class Event(BaseModel):
    """An immutable calendar entry."""

    name: str = Field(default="", description="Event title")
    description: str = Field(default="", description="Event body; used verbatim as the reply")
    start: datetime = Field(..., description="Start instant (UTC)")
    end: datetime = Field(..., description="End instant (UTC), strictly after start")

    model_config = ConfigDict(frozen=True)

    @field_validator("start", "end")
    @classmethod
    def _to_utc(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @model_validator(mode="after")
    def _check_order(self) -> Event:
        if not self.start < self.end:
            raise ValueError(f"event {self.name!r} must start before it ends")
        return self

    def is_active(self, now: datetime) -> bool:
        """True when now lies strictly inside (start, end)."""
        return self.start < now < self.end

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


def find_active_event(events: tuple[Event, ...] | list[Event], now: datetime) -> Optional[Event]:
    """Return the first event, in stored order, active at now."""
    for event in events:
        if event.is_active(now):
            return event
    return None


@dataclass(frozen=True)
class RoomSnapshot:
    """A consistent copy of a room's configuration and cache at one moment."""

    room_id: str
    calendar_id: str
    timezone: ZoneInfo
    autoreply: bool
    announce_start: bool
    announce_end: bool
    events: tuple[Event, ...]
    config_fetched_at: datetime
    events_fetched_at: datetime


class DecisionKind(str, Enum):
    """Outcome of evaluating chat activity against a room's calendar."""

    SUPPRESSED = "suppressed"
    CONFIG_UNAVAILABLE = "config_unavailable"
    EVENTS_UNAVAILABLE = "events_unavailable"
    NO_ACTIVE_EVENT = "no_active_event"
    AUTOREPLY_DISABLED = "active_but_autoreply_disabled"
    NOTIFY = "notify"


@dataclass(frozen=True)
class NotifyDecision:
    """Result of DecisionEngine.evaluate.

    Only NOTIFY carries a message; the two *_UNAVAILABLE kinds carry the error
    that prevented a decision.
    """

    kind: DecisionKind
    message: Optional[str] = None
    error: Optional[Exception] = None
    event: Optional[Event] = None

    @classmethod
    def suppressed(cls) -> NotifyDecision:
        return cls(DecisionKind.SUPPRESSED)

    @classmethod
    def config_unavailable(cls, error: Exception) -> NotifyDecision:
        return cls(DecisionKind.CONFIG_UNAVAILABLE, error=error)

    @classmethod
    def events_unavailable(cls, error: Exception) -> NotifyDecision:
        return cls(DecisionKind.EVENTS_UNAVAILABLE, error=error)

    @classmethod
    def no_active_event(cls) -> NotifyDecision:
        return cls(DecisionKind.NO_ACTIVE_EVENT)

    @classmethod
    def autoreply_disabled(cls, event: Event) -> NotifyDecision:
        return cls(DecisionKind.AUTOREPLY_DISABLED, event=event)

    @classmethod
    def notify(cls, message: str, event: Event) -> NotifyDecision:
        return cls(DecisionKind.NOTIFY, message=message, event=event)

    @property
    def should_notify(self) -> bool:
        return self.kind is DecisionKind.NOTIFY
