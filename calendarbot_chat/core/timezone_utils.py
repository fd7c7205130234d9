"""Time and timezone helpers for calendarbot_chat."""

from __future__ import annotations

import datetime
import logging
import os
import zoneinfo
from typing import ClassVar

from dateutil import parser as date_parser

from calendarbot_chat.exceptions import TimezoneError

logger = logging.getLogger(__name__)

# Default timezone when a room does not configure one
DEFAULT_TIMEZONE = "America/Los_Angeles"

# Sentinel for "never fetched"; older than any real timestamp
ZERO_INSTANT = datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)

TEST_TIME_ENV = "CALENDARBOT_CHAT_TEST_TIME"


class TimezoneResolver:
    """Resolves timezone names, including common obsolete aliases."""

    TZ_ALIAS_MAP: ClassVar[dict[str, str]] = {
        "US/Pacific": "America/Los_Angeles",
        "US/Mountain": "America/Denver",
        "US/Central": "America/Chicago",
        "US/Eastern": "America/New_York",
        "US/Alaska": "America/Anchorage",
        "US/Hawaii": "Pacific/Honolulu",
        "US/Arizona": "America/Phoenix",
        "GMT": "UTC",
        "Etc/UTC": "UTC",
        "Etc/GMT": "UTC",
        "Universal": "UTC",
        "Zulu": "UTC",
        "PST8PDT": "America/Los_Angeles",
        "MST7MDT": "America/Denver",
        "CST6CDT": "America/Chicago",
        "EST5EDT": "America/New_York",
        "Asia/Rangoon": "Asia/Yangon",
        "America/Godthab": "America/Nuuk",
    }

    def resolve(self, tz_name: str) -> zoneinfo.ZoneInfo:
        """Return a ZoneInfo for tz_name.

        Args:
            tz_name: IANA identifier or a known alias

        Returns:
            Resolved ZoneInfo

        Raises:
            TimezoneError: If the name is empty or unknown
        """
        name = (tz_name or "").strip()
        if not name:
            raise TimezoneError("Empty timezone identifier")

        canonical = self.TZ_ALIAS_MAP.get(name, name)
        try:
            return zoneinfo.ZoneInfo(canonical)
        except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
            raise TimezoneError(f"Could not load timezone info for {tz_name!r}: {exc}") from exc


_resolver = TimezoneResolver()


def resolve_timezone(tz_name: str) -> zoneinfo.ZoneInfo:
    """Resolve a timezone name (convenience function)."""
    return _resolver.resolve(tz_name)


def now_utc() -> datetime.datetime:
    """Return current UTC time with tzinfo.

    Can be overridden for testing via the CALENDARBOT_CHAT_TEST_TIME environment
    variable (ISO 8601, e.g. "2025-10-27T08:20:00-07:00"). Naive values are read
    as UTC.
    """
    test_time = os.environ.get(TEST_TIME_ENV)
    if test_time:
        try:
            dt = date_parser.isoparse(test_time)
            if dt.tzinfo is None:
                return dt.replace(tzinfo=datetime.timezone.utc)
            return dt.astimezone(datetime.timezone.utc)
        except (ValueError, OverflowError) as e:
            logger.warning("Failed to parse %s=%r: %s", TEST_TIME_ENV, test_time, e)

    return datetime.datetime.now(datetime.timezone.utc)


def ensure_utc(dt: datetime.datetime) -> datetime.datetime:
    """Return dt as an aware UTC datetime; naive values are assumed UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt.astimezone(datetime.timezone.utc)


def age_of(timestamp: datetime.datetime, now: datetime.datetime) -> datetime.timedelta:
    """Age of timestamp relative to now.

    The zero instant is reported as timedelta.max so it is always stale.
    """
    if timestamp == ZERO_INSTANT:
        return datetime.timedelta.max
    return now - timestamp
