"""Shared fixtures for calendarbot_chat tests."""

from collections.abc import AsyncIterator, Generator
from typing import Any

import pytest

from calendarbot_chat.core.http_client import close_all_clients
from calendarbot_chat.core.settings import ChatSettings
from calendarbot_chat.core.timezone_utils import TEST_TIME_ENV
from calendarbot_chat.stores import KVStore, PrefStore
from tests.chat.fakes import FakeClock, FakeFetcher, make_event, room_prefs


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> ChatSettings:
    """Default settings, isolated from any .env file, with no startup delay."""
    return ChatSettings(_env_file=None, startup_delay_seconds=0)


@pytest.fixture
def fetcher() -> FakeFetcher:
    """Fetcher returning one event active at T0."""
    return FakeFetcher([make_event()])


@pytest.fixture
def prefs() -> PrefStore:
    return PrefStore(initial=room_prefs())


@pytest.fixture
def kv(clock: FakeClock) -> KVStore:
    return KVStore(time_provider=clock)


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Keep the frozen-time override and logging env vars out of tests."""
    monkeypatch.delenv(TEST_TIME_ENV, raising=False)
    monkeypatch.delenv("CALENDARBOT_CHAT_DEBUG", raising=False)
    monkeypatch.delenv("CALENDARBOT_CHAT_LOG_LEVEL", raising=False)
    yield


@pytest.fixture(autouse=True)
async def cleanup_shared_http_clients() -> AsyncIterator[None]:
    """Close shared httpx clients after every test so none outlive its loop."""
    yield
    await close_all_clients()
