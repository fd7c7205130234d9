"""Unit tests for calendarbot_chat.domain.models."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from calendarbot_chat.domain.models import DecisionKind, Event, NotifyDecision, find_active_event
from tests.chat.fakes import T0, make_event

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def test_event_when_start_not_before_end_then_rejected() -> None:
    with pytest.raises(ValidationError):
        Event(name="x", start=T0, end=T0)
    with pytest.raises(ValidationError):
        Event(name="x", start=T0, end=T0 - timedelta(minutes=1))


def test_event_when_naive_times_then_treated_as_utc() -> None:
    event = Event(name="x", start=datetime(2025, 1, 1, 9), end=datetime(2025, 1, 1, 10))
    assert event.start == datetime(2025, 1, 1, 9, tzinfo=timezone.utc)
    assert event.start.utcoffset() == timedelta(0)


def test_event_when_offset_times_then_normalized_to_utc() -> None:
    pst = timezone(timedelta(hours=-8))
    event = Event(name="x", start=datetime(2025, 1, 1, 9, tzinfo=pst), end=datetime(2025, 1, 1, 10, tzinfo=pst))
    assert event.start == datetime(2025, 1, 1, 17, tzinfo=timezone.utc)
    assert event.duration == timedelta(hours=1)


def test_event_is_immutable() -> None:
    event = make_event()
    with pytest.raises(ValidationError):
        event.name = "changed"  # type: ignore[misc]


def test_is_active_excludes_boundaries() -> None:
    event = make_event(start=T0, end=T0 + timedelta(hours=1))
    assert not event.is_active(T0)
    assert event.is_active(T0 + timedelta(seconds=1))
    assert not event.is_active(T0 + timedelta(hours=1))


def test_find_active_event_when_overlapping_then_first_in_stored_order() -> None:
    later_listed = make_event(name="Standup", start=T0 - timedelta(minutes=5), end=T0 + timedelta(minutes=10))
    first_listed = make_event(name="Incident review")
    assert find_active_event([first_listed, later_listed], T0) is first_listed
    assert find_active_event((later_listed, first_listed), T0) is later_listed


def test_find_active_event_when_none_active_then_none() -> None:
    past = make_event(start=T0 - timedelta(hours=2), end=T0 - timedelta(hours=1))
    assert find_active_event([past], T0) is None
    assert find_active_event([], T0) is None


def test_notify_decision_constructors() -> None:
    event = make_event()
    assert NotifyDecision.notify("hi", event).should_notify
    assert NotifyDecision.notify("hi", event).message == "hi"
    assert not NotifyDecision.suppressed().should_notify
    err = RuntimeError("boom")
    decision = NotifyDecision.events_unavailable(err)
    assert decision.kind is DecisionKind.EVENTS_UNAVAILABLE
    assert decision.error is err
    assert NotifyDecision.autoreply_disabled(event).event is event
    assert DecisionKind.AUTOREPLY_DISABLED.value == "active_but_autoreply_disabled"
