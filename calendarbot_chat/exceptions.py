"""Exception hierarchy for calendarbot_chat.

Refresh paths, the decision engine and the operator commands each raise or
catch specific subclasses so that the scheduler can log and continue while the
read path reports failures back to the chat room.
"""

from typing import Optional


class CalendarChatError(Exception):
    """Base exception for all calendarbot_chat errors."""

    def __init__(self, message: str, room_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.room_id = room_id


class ConfigError(CalendarChatError):
    """A required room preference is missing or unreadable.

    The reload that raised it is abandoned; fields already applied by that
    reload are kept.
    """


class TimezoneError(ConfigError):
    """The configured timezone identifier cannot be resolved."""


class FetchError(CalendarChatError):
    """The calendar source could not be read.

    Raised for transport failures, non-2xx responses and unparseable calendar
    data. The previously cached event list is left untouched.
    """


class SuppressionStoreError(CalendarChatError):
    """The key/value store backing suppression windows failed."""


class RoomNotFoundError(CalendarChatError, LookupError):
    """An operation referenced a room that was never registered."""


class InvalidDurationError(ValueError):
    """A duration string could not be parsed."""
