"""Start/end announcements for rooms that opt in."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from calendarbot_chat.core.protocols import MessageSender

from .models import Event, RoomSnapshot

logger = logging.getLogger(__name__)

TIME_FORMAT = "%H:%M %Z"


def _local(dt: datetime, snapshot: RoomSnapshot) -> str:
    return dt.astimezone(snapshot.timezone).strftime(TIME_FORMAT)


def format_start(event: Event, snapshot: RoomSnapshot) -> str:
    text = f"Starting now: {event.name} (until {_local(event.end, snapshot)})"
    if event.description:
        text += f"\n{event.description}"
    return text


def format_end(event: Event, snapshot: RoomSnapshot) -> str:
    text = f"Ended: {event.name} (started {_local(event.start, snapshot)})"
    if event.description:
        text += f"\n{event.description}"
    return text


def find_announcements(snapshot: RoomSnapshot, since: datetime, now: datetime) -> list[str]:
    """Messages for starts/ends that fell in (since, now], in event order.

    Only transitions enabled by the room's announce-start/announce-end flags
    are reported.
    """
    messages: list[str] = []
    for event in snapshot.events:
        if snapshot.announce_start and since < event.start <= now:
            messages.append(format_start(event, snapshot))
        if snapshot.announce_end and since < event.end <= now:
            messages.append(format_end(event, snapshot))
    return messages


class Announcer:
    """Sends start/end announcements through a message sender."""

    def __init__(self, send: MessageSender):
        self._send = send

    async def announce(
        self, snapshot: RoomSnapshot, since: Optional[datetime], now: datetime
    ) -> int:
        """Announce transitions since the previous tick.

        Args:
            snapshot: Room state after the refresh
            since: Time of the previous tick; None on a room's first tick
            now: Time of this tick

        Returns:
            Number of messages sent
        """
        if since is None:
            return 0

        sent = 0
        for text in find_announcements(snapshot, since, now):
            try:
                await self._send(snapshot.room_id, text)
                sent += 1
            except Exception as e:
                logger.warning("Failed to send announcement to %r: %s", snapshot.room_id, e)
        return sent
