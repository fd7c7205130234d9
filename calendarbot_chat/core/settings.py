"""Settings management using Pydantic for type validation and configuration."""

from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from calendarbot_chat.exceptions import TimezoneError

from .timezone_utils import DEFAULT_TIMEZONE, resolve_timezone

logger = logging.getLogger(__name__)


class ChatSettings(BaseSettings):
    """Application settings with environment variable support."""

    # Refresh schedule
    refresh_interval_seconds: int = Field(
        default=600, gt=0, description="Background refresh interval per room (10 minutes)"
    )
    startup_delay_seconds: float = Field(
        default=5.0, ge=0, description="Delay before a room's first background refresh"
    )

    # Staleness thresholds for the read path
    config_max_age_seconds: int = Field(
        default=600, gt=0, description="Reload room config on read when older than this"
    )
    events_max_age_seconds: int = Field(
        default=3960,
        gt=0,
        description="Refetch events on read when older than this (1.1 hours)",
    )

    # Suppression windows
    user_suppression_seconds: int = Field(
        default=7200, gt=0, description="Per-user suppression after a reply (2 hours)"
    )
    room_suppression_seconds: int = Field(
        default=600, gt=0, description="Per-room suppression after a reply (10 minutes)"
    )

    # Room defaults
    default_timezone: str = Field(default=DEFAULT_TIMEZONE, description="Fallback room timezone")
    default_message: str = Field(
        default='Calendar event: "{name}"',
        description="Reply used when an event has no description; {name} is substituted",
    )
    plugin_name: str = Field(default="google_calendar", description="Preference scope name")
    command: str = Field(default="!gcal", description="Operator command word")

    # Calendar source
    fetch_timeout_seconds: float = Field(default=30.0, gt=0, description="HTTP timeout for calendar fetches")
    fetch_lookahead_hours: int = Field(
        default=24, gt=0, description="How far ahead of now to keep fetched events"
    )

    # Storage
    kv_store_path: Optional[Path] = Field(
        default=None, description="JSON file backing suppression windows (in-memory if unset)"
    )
    prefs_path: Optional[Path] = Field(default=None, description="YAML file holding room preferences")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level")
    debug: bool = Field(default=False, description="Enable debug logging for calendarbot_chat")

    model_config = SettingsConfigDict(
        env_prefix="CALENDARBOT_CHAT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("default_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            resolve_timezone(value)
        except TimezoneError as exc:
            raise ValueError(exc.message) from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @property
    def refresh_interval(self) -> timedelta:
        return timedelta(seconds=self.refresh_interval_seconds)

    @property
    def config_max_age(self) -> timedelta:
        return timedelta(seconds=self.config_max_age_seconds)

    @property
    def events_max_age(self) -> timedelta:
        return timedelta(seconds=self.events_max_age_seconds)

    @property
    def user_suppression(self) -> timedelta:
        return timedelta(seconds=self.user_suppression_seconds)

    @property
    def room_suppression(self) -> timedelta:
        return timedelta(seconds=self.room_suppression_seconds)

    @property
    def fetch_lookahead(self) -> timedelta:
        return timedelta(hours=self.fetch_lookahead_hours)


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a mapping from a YAML file; an empty file yields an empty mapping."""
    loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file {path} must contain a mapping at top level")  # noqa: TRY004
    return loaded


def load_settings(path: str | Path | None = None, **overrides: Any) -> ChatSettings:
    """Build settings from an optional YAML file, the environment and overrides.

    Values from the file and from overrides take precedence over environment
    variables; anything not given falls back to environment, then defaults.

    Args:
        path: Optional YAML config file
        **overrides: Explicit field values (e.g. from the command line)

    Returns:
        Validated ChatSettings

    Raises:
        ValueError: If the file's top level is not a mapping
        pydantic.ValidationError: If a value is invalid
    """
    values: dict[str, Any] = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            values.update(_load_yaml(p))
            logger.info("Loaded configuration from %s", p)
        else:
            logger.info("Config file %s not found; using environment and defaults", p)

    values.update({k: v for k, v in overrides.items() if v is not None})
    settings = ChatSettings(**values)
    logger.debug("Settings in use: %s", settings.model_dump(exclude={"default_message"}))
    return settings
