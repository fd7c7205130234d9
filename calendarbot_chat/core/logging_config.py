"""
Central logging configuration for calendarbot_chat.

Installs a colorized console handler, quiets chatty third-party libraries and
stamps every record with the chat room currently being processed so that
interleaved refreshes and evaluations for different rooms can be told apart.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Optional

from colorlog import ColoredFormatter

# Room currently being refreshed or evaluated in this task/thread
room_id_var: ContextVar[str] = ContextVar("room_id", default="")

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(room_id)s] %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party loggers kept at WARNING unless debugging everything
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio", "icalendar")


def get_room_id() -> str:
    """Get the room bound to the current context, or "-" when none is."""
    room_id = room_id_var.get()
    return room_id if room_id else "-"


@contextmanager
def room_context(room_id: str) -> Iterator[None]:
    """Bind room_id to log records emitted inside the block."""
    token = room_id_var.set(room_id)
    try:
        yield
    finally:
        room_id_var.reset(token)


class RoomContextFilter(logging.Filter):
    """Add the current room id to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.room_id = get_room_id()
        return True


def configure_logging(debug_mode: bool = False, force_debug: Optional[bool] = None) -> None:
    """
    Configure logging for calendarbot_chat.

    Args:
        debug_mode: Whether to enable debug logging for calendarbot_chat modules
        force_debug: Override debug mode setting (None to use env var detection)

    Environment Variables:
        CALENDARBOT_CHAT_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        CALENDARBOT_CHAT_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("CALENDARBOT_CHAT_DEBUG", "").lower() in ("1", "true", "yes", "on")
    env_log_level = os.getenv("CALENDARBOT_CHAT_LOG_LEVEL", "").upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    room_filter = RoomContextFilter()

    # Only install a handler if none exist (pytest and embedding apps bring their own)
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root_logger.addHandler(handler)

    for existing_handler in root_logger.handlers:
        if not any(isinstance(f, RoomContextFilter) for f in existing_handler.filters):
            existing_handler.addFilter(room_filter)

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger("calendarbot_chat").setLevel(logging.DEBUG if final_debug else logging.INFO)

    if final_debug:
        root_logger.info("Debug logging enabled for calendarbot_chat modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in ("calendarbot_chat", *NOISY_LOGGERS):
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status
