"""Tests for settings, logging setup and time helpers."""

import logging
from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from calendarbot_chat.core.logging_config import (
    RoomContextFilter,
    configure_logging,
    get_logging_status,
    get_room_id,
    room_context,
)
from calendarbot_chat.core.settings import ChatSettings, load_settings
from calendarbot_chat.core.timezone_utils import (
    TEST_TIME_ENV,
    ZERO_INSTANT,
    age_of,
    now_utc,
    resolve_timezone,
)
from calendarbot_chat.exceptions import TimezoneError

pytestmark = [pytest.mark.unit, pytest.mark.fast]


# Settings


def test_settings_defaults() -> None:
    settings = ChatSettings(_env_file=None)
    assert settings.refresh_interval == timedelta(minutes=10)
    assert settings.config_max_age == timedelta(minutes=10)
    assert settings.events_max_age == timedelta(minutes=66)
    assert settings.user_suppression == timedelta(hours=2)
    assert settings.room_suppression == timedelta(minutes=10)
    assert settings.default_timezone == "America/Los_Angeles"
    assert settings.command == "!gcal"


def test_settings_env_override(monkeypatch) -> None:
    monkeypatch.setenv("CALENDARBOT_CHAT_REFRESH_INTERVAL_SECONDS", "120")
    monkeypatch.setenv("CALENDARBOT_CHAT_LOG_LEVEL", "debug")
    settings = ChatSettings(_env_file=None)
    assert settings.refresh_interval_seconds == 120
    assert settings.log_level == "DEBUG"


def test_settings_rejects_bad_values() -> None:
    with pytest.raises(ValidationError):
        ChatSettings(_env_file=None, default_timezone="Nowhere/Special")
    with pytest.raises(ValidationError):
        ChatSettings(_env_file=None, refresh_interval_seconds=0)


def test_load_settings_reads_yaml_and_overrides(tmp_path) -> None:
    path = tmp_path / "chat.yaml"
    path.write_text("room_suppression_seconds: 300\ndefault_timezone: Europe/London\n", encoding="utf-8")

    settings = load_settings(path, debug=True, log_level=None)

    assert settings.room_suppression == timedelta(minutes=5)
    assert settings.default_timezone == "Europe/London"
    assert settings.debug is True


def test_load_settings_when_not_mapping_then_value_error(tmp_path) -> None:
    path = tmp_path / "chat.yaml"
    path.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_settings(path)


# Time helpers


def test_resolve_timezone_aliases_and_errors() -> None:
    assert resolve_timezone("US/Pacific").key == "America/Los_Angeles"
    assert resolve_timezone("Europe/Berlin").key == "Europe/Berlin"
    with pytest.raises(TimezoneError):
        resolve_timezone("")
    with pytest.raises(TimezoneError):
        resolve_timezone("Not/AZone")


def test_now_utc_honors_test_time_override(monkeypatch) -> None:
    monkeypatch.setenv(TEST_TIME_ENV, "2025-10-27T08:20:00-07:00")
    assert now_utc() == datetime(2025, 10, 27, 15, 20, tzinfo=timezone.utc)


def test_now_utc_when_override_invalid_then_real_time(monkeypatch) -> None:
    monkeypatch.setenv(TEST_TIME_ENV, "not-a-time")
    before = datetime.now(timezone.utc)
    assert now_utc() >= before


def test_age_of_zero_instant_is_max() -> None:
    now = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert age_of(ZERO_INSTANT, now) == timedelta.max
    assert age_of(now - timedelta(minutes=3), now) == timedelta(minutes=3)


# Logging


def test_room_context_sets_and_restores() -> None:
    assert get_room_id() == "-"
    with room_context("!ops:example.org"):
        assert get_room_id() == "!ops:example.org"
        with room_context("!dev:example.org"):
            assert get_room_id() == "!dev:example.org"
        assert get_room_id() == "!ops:example.org"
    assert get_room_id() == "-"


def test_room_context_filter_stamps_records() -> None:
    record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
    with room_context("!ops:example.org"):
        assert RoomContextFilter().filter(record) is True
    assert record.room_id == "!ops:example.org"


def test_configure_logging_debug_via_env(monkeypatch) -> None:
    monkeypatch.setenv("CALENDARBOT_CHAT_DEBUG", "true")
    configure_logging()
    status = get_logging_status()
    assert status["calendarbot_chat"] == "DEBUG"
    assert status["httpx"] == "WARNING"

    configure_logging(force_debug=False)
    assert get_logging_status()["calendarbot_chat"] == "INFO"


def test_configure_logging_adds_room_filter_once() -> None:
    configure_logging()
    configure_logging()
    for handler in logging.getLogger().handlers:
        assert sum(isinstance(f, RoomContextFilter) for f in handler.filters) <= 1
