"""Command-line entry for calendarbot_chat.

Runs a console chat loop: each stdin line is posted to the configured room as
a chat message from --user, and replies and announcements are printed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional

from calendarbot_chat.bot import CalendarChatBot, ChatMessage
from calendarbot_chat.calendar import ICSEventFetcher
from calendarbot_chat.core.logging_config import configure_logging
from calendarbot_chat.core.settings import ChatSettings, load_settings
from calendarbot_chat.domain.room_config import PREF_AUTOREPLY, PREF_CALENDAR_ID
from calendarbot_chat.stores import KVStore, PrefStore

logger = logging.getLogger(__name__)


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for calendarbot_chat CLI."""
    parser = argparse.ArgumentParser(
        prog="calendarbot_chat",
        description="Calendar-driven chat auto-replies (console mode)",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m calendarbot_chat --room ops --calendar https://example.com/ops.ics
  python -m calendarbot_chat --config chat.yaml --room '!abc:example.org' --user alice
        """,
    )
    parser.add_argument("--config", metavar="PATH", help="YAML settings file")
    parser.add_argument("--room", required=True, help="Room id to simulate")
    parser.add_argument("--user", default="console", help="User id for typed messages")
    parser.add_argument(
        "--calendar",
        metavar="URL",
        help="Set the room's calendar-id (and enable autoreply) before starting",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


async def _print_announcement(room_id: str, text: str) -> None:
    print(f"[{room_id}] {text}", flush=True)


def build_bot(settings: ChatSettings, prefs: Optional[PrefStore] = None) -> CalendarChatBot:
    """Create a bot backed by the file stores and ICS fetcher named in settings."""
    if prefs is None:
        prefs = PrefStore(settings.prefs_path)
    kv = KVStore(settings.kv_store_path)
    fetcher = ICSEventFetcher(
        lookahead=settings.fetch_lookahead,
        timeout_seconds=settings.fetch_timeout_seconds,
    )
    return CalendarChatBot(settings, prefs, kv, fetcher, send=_print_announcement)


async def run_console(settings: ChatSettings, room_id: str, user_id: str, calendar: Optional[str]) -> None:
    prefs = PrefStore(settings.prefs_path)
    if calendar:
        prefs.set_pref(room_id, settings.plugin_name, PREF_CALENDAR_ID, calendar)
        prefs.set_pref(room_id, settings.plugin_name, PREF_AUTOREPLY, "true")
    bot = build_bot(settings, prefs)

    bot.register_room(room_id)
    loop = asyncio.get_running_loop()
    print(f"Chatting in {room_id} as {user_id}. Ctrl-D to quit.", flush=True)
    try:
        while True:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line:
                break
            reply = await bot.handle_message(ChatMessage(room_id, user_id, line.rstrip("\n")))
            if reply:
                print(reply, flush=True)
    finally:
        await bot.close()


def main() -> None:
    """Run the calendarbot_chat CLI."""
    parser = _create_parser()
    args = parser.parse_args()

    try:
        settings = load_settings(args.config, debug=True if args.debug else None)
    except (OSError, ValueError) as exc:
        parser.error(str(exc))

    configure_logging(debug_mode=settings.debug)
    if settings.log_level:
        logging.getLogger().setLevel(settings.log_level)

    try:
        asyncio.run(run_console(settings, args.room, args.user, args.calendar))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    sys.exit(0)


if __name__ == "__main__":
    main()
