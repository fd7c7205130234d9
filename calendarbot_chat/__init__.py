"""calendarbot_chat - calendar-driven auto-replies for chat rooms.

Imports are kept light; the bot facade lives in calendarbot_chat.bot and the
console entrypoint in calendarbot_chat.__main__.
"""

__version__ = "0.1.0"
