"""ICS-over-HTTP calendar source."""

from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any, Optional
from zoneinfo import ZoneInfo

import httpx
from icalendar import Calendar

from calendarbot_chat.core.http_client import get_shared_client
from calendarbot_chat.core.timezone_utils import ensure_utc
from calendarbot_chat.domain.models import Event
from calendarbot_chat.exceptions import FetchError

logger = logging.getLogger(__name__)

CANCELLED_STATUS = "CANCELLED"


def _calendar_zone(calendar: Calendar) -> ZoneInfo | timezone:
    """Zone used for all-day dates and floating times; UTC when unset or unknown."""
    name = calendar.get("X-WR-TIMEZONE")
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(str(name))
    except (KeyError, ValueError) as e:
        logger.debug("Unknown X-WR-TIMEZONE %r, using UTC: %s", str(name), e)
        return timezone.utc


def _to_instant(value: Any, zone: ZoneInfo | timezone) -> datetime:
    """Convert a DTSTART/DTEND value to an aware UTC datetime."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=zone)
        return ensure_utc(value)
    if isinstance(value, date):
        return ensure_utc(datetime.combine(value, time.min, tzinfo=zone))
    raise ValueError(f"unsupported date value {value!r}")


def _component_to_event(component: Any, zone: ZoneInfo | timezone) -> Optional[Event]:
    """Build an Event from a VEVENT, or None if it should be skipped."""
    status = str(component.get("STATUS", "")).upper()
    if status == CANCELLED_STATUS:
        return None

    dtstart = component.get("DTSTART")
    if dtstart is None:
        return None
    start_value = dtstart.dt
    start = _to_instant(start_value, zone)

    dtend = component.get("DTEND")
    if dtend is not None:
        end = _to_instant(dtend.dt, zone)
    elif component.get("DURATION") is not None:
        end = start + component.get("DURATION").dt
    elif not isinstance(start_value, datetime):
        # All-day event without DTEND lasts one day
        end = start + timedelta(days=1)
    else:
        end = start

    if end <= start:
        return None

    return Event(
        name=str(component.get("SUMMARY", "")).strip(),
        description=str(component.get("DESCRIPTION", "")).strip(),
        start=start,
        end=end,
    )


def parse_ics_events(content: str | bytes, window_start: datetime, window_end: datetime) -> list[Event]:
    """Parse ICS content into events overlapping [window_start, window_end).

    Args:
        content: Raw iCalendar text
        window_start: Inclusive lower bound (aware)
        window_end: Exclusive upper bound (aware)

    Returns:
        Events ordered by start time

    Raises:
        FetchError: If the content is not a valid calendar
    """
    try:
        calendar = Calendar.from_ical(content)
    except Exception as e:
        raise FetchError(f"Invalid calendar data: {e}") from e

    zone = _calendar_zone(calendar)
    events: list[Event] = []
    skipped = 0
    for component in calendar.walk("VEVENT"):
        try:
            event = _component_to_event(component, zone)
        except (ValueError, TypeError) as e:
            logger.debug("Skipping unparseable VEVENT %r: %s", component.get("UID"), e)
            skipped += 1
            continue
        if event is None:
            skipped += 1
            continue
        if event.end > window_start and event.start < window_end:
            events.append(event)

    events.sort(key=lambda e: e.start)
    logger.debug("Parsed %d events in window (%d components skipped)", len(events), skipped)
    return events


class ICSEventFetcher:
    """Fetches events from an ICS URL; the room's calendar id is the URL."""

    def __init__(
        self,
        lookahead: timedelta = timedelta(hours=24),
        timeout_seconds: float = 30.0,
        client_id: str = "calendar",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.lookahead = lookahead
        self.timeout_seconds = timeout_seconds
        self._client_id = client_id
        self._transport = transport

    async def fetch_events(self, calendar_id: str, as_of: datetime) -> list[Event]:
        """Download and parse calendar_id.

        Raises:
            FetchError: On transport, HTTP status or parse failure
        """
        client = await get_shared_client(
            self._client_id,
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        )
        logger.debug("Fetching ICS from %s", calendar_id)
        try:
            response = await client.get(calendar_id)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(f"Request timeout after {self.timeout_seconds}s") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(
                f"HTTP {e.response.status_code}: {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Network error: {e}") from e

        as_of = ensure_utc(as_of)
        return parse_ics_events(response.content, as_of, as_of + self.lookahead)
