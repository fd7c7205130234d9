"""Tests for the ICS calendar source, using httpx.MockTransport for HTTP."""

from datetime import datetime, timedelta, timezone

import httpx
import pytest

from calendarbot_chat.calendar import ICSEventFetcher, parse_ics_events
from calendarbot_chat.exceptions import FetchError
from tests.chat.fakes import CALENDAR_URL

pytestmark = [pytest.mark.unit, pytest.mark.fast]

AS_OF = datetime(2024, 1, 15, 9, 30, tzinfo=timezone.utc)
WINDOW_END = AS_OF + timedelta(hours=24)

ICS_MIXED = """BEGIN:VCALENDAR
VERSION:2.0
PRODID:-//CalendarBot Test//EN
X-WR-TIMEZONE:America/New_York
BEGIN:VEVENT
UID:later@test
DTSTART:20240115T150000Z
DTEND:20240115T160000Z
SUMMARY:Design review
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:now@test
DTSTART:20240115T090000Z
DTEND:20240115T100000Z
SUMMARY:On-call handoff
DESCRIPTION:Alice is on call this week.
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:cancelled@test
DTSTART:20240115T110000Z
DTEND:20240115T120000Z
SUMMARY:Cancelled sync
STATUS:CANCELLED
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:past@test
DTSTART:20240114T090000Z
DTEND:20240114T100000Z
SUMMARY:Yesterday
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:floating@test
DTSTART:20240115T120000
DURATION:PT30M
SUMMARY:Lunch and learn
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:allday@test
DTSTART;VALUE=DATE:20240115
SUMMARY:Company holiday
DTSTAMP:20240115T090000Z
END:VEVENT
BEGIN:VEVENT
UID:zero@test
DTSTART:20240115T130000Z
DTEND:20240115T130000Z
SUMMARY:Zero length
DTSTAMP:20240115T090000Z
END:VEVENT
END:VCALENDAR
"""


def test_parse_ics_events_filters_and_orders() -> None:
    events = parse_ics_events(ICS_MIXED, AS_OF, WINDOW_END)
    names = [e.name for e in events]

    # All-day starts at NY midnight (05:00 UTC), so it sorts first
    assert names == ["Company holiday", "On-call handoff", "Design review", "Lunch and learn"]
    assert events[1].description == "Alice is on call this week."


def test_parse_ics_events_anchors_dates_and_floating_times_in_calendar_zone() -> None:
    events = {e.name: e for e in parse_ics_events(ICS_MIXED, AS_OF, WINDOW_END)}

    holiday = events["Company holiday"]
    assert holiday.start == datetime(2024, 1, 15, 5, 0, tzinfo=timezone.utc)
    assert holiday.end == datetime(2024, 1, 16, 5, 0, tzinfo=timezone.utc)

    lunch = events["Lunch and learn"]
    assert lunch.start == datetime(2024, 1, 15, 17, 0, tzinfo=timezone.utc)
    assert lunch.duration == timedelta(minutes=30)


def test_parse_ics_events_when_invalid_then_fetch_error() -> None:
    with pytest.raises(FetchError):
        parse_ics_events("this is not a calendar", AS_OF, WINDOW_END)


@pytest.mark.asyncio
async def test_fetch_events_downloads_and_parses() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(str(request.url))
        return httpx.Response(200, text=ICS_MIXED, headers={"Content-Type": "text/calendar"})

    fetcher = ICSEventFetcher(client_id="test-ok", transport=httpx.MockTransport(handler))
    events = await fetcher.fetch_events(CALENDAR_URL, AS_OF)

    assert seen == [CALENDAR_URL]
    assert len(events) == 4


@pytest.mark.asyncio
async def test_fetch_events_when_http_error_then_fetch_error() -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(404))
    fetcher = ICSEventFetcher(client_id="test-404", transport=transport)

    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch_events(CALENDAR_URL, AS_OF)
    assert "HTTP 404" in str(exc_info.value)


@pytest.mark.asyncio
async def test_fetch_events_when_network_error_then_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    fetcher = ICSEventFetcher(client_id="test-neterr", transport=httpx.MockTransport(handler))
    with pytest.raises(FetchError) as exc_info:
        await fetcher.fetch_events(CALENDAR_URL, AS_OF)
    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_fetch_events_when_timeout_then_fetch_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    fetcher = ICSEventFetcher(
        timeout_seconds=5, client_id="test-timeout", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(FetchError, match="timeout after 5"):
        await fetcher.fetch_events(CALENDAR_URL, AS_OF)
