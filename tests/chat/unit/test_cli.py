"""Tests for the calendarbot_chat console entrypoint."""

import pytest

from calendarbot_chat.__main__ import _create_parser, build_bot
from calendarbot_chat.bot import CalendarChatBot, ChatMessage
from calendarbot_chat.core.settings import ChatSettings
from tests.chat.fakes import ROOM

pytestmark = [pytest.mark.unit, pytest.mark.fast]


def test_parser_requires_room() -> None:
    parser = _create_parser()
    with pytest.raises(SystemExit):
        parser.parse_args([])

    args = parser.parse_args(["--room", ROOM, "--calendar", "https://c.example/x.ics"])
    assert args.room == ROOM
    assert args.user == "console"
    assert args.calendar == "https://c.example/x.ics"
    assert args.debug is False


@pytest.mark.asyncio
async def test_build_bot_uses_file_stores(tmp_path) -> None:
    settings = ChatSettings(
        _env_file=None,
        prefs_path=tmp_path / "prefs.yaml",
        kv_store_path=tmp_path / "kv.json",
    )
    bot = build_bot(settings)
    try:
        assert isinstance(bot, CalendarChatBot)
        bot.registry.get_or_create(ROOM)
        reply = await bot.handle_message(ChatMessage(ROOM, "@ops:example.org", "!gcal silence 1h"))
        assert reply == "Calendar notifications silenced for 1h0m0s."
        assert ROOM in (tmp_path / "kv.json").read_text(encoding="utf-8")
    finally:
        await bot.close()
