"""Duration strings in the "4h", "1h30m", "1.5h" style used by chat commands.

Accepted units are h, m, s, ms, us (or µs) and ns. A value is a sequence of
decimal numbers, each with an optional fraction and a required unit, with an
optional leading sign. "0" alone is also accepted. Formatting produces the
canonical form, e.g. 4h0m0s, 1m30s, 500ms.
"""

from __future__ import annotations

import re
from datetime import timedelta

from calendarbot_chat.exceptions import InvalidDurationError

# Unit sizes in nanoseconds
_UNITS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

# Largest magnitude representable as int64 nanoseconds (about 2562047h)
_MAX_NS = (1 << 63) - 1

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?([^\d.]*)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration string.

    Raises:
        InvalidDurationError: If text is not a valid duration
    """
    original = text
    if not text:
        raise InvalidDurationError(f'invalid duration "{original}"')

    negative = False
    if text[0] in "+-":
        negative = text[0] == "-"
        text = text[1:]

    if text == "0":
        return timedelta(0)
    if not text:
        raise InvalidDurationError(f'invalid duration "{original}"')

    total_ns = 0
    pos = 0
    while pos < len(text):
        match = _COMPONENT.match(text, pos)
        whole, frac, unit = match.group(1), match.group(2), match.group(3)
        if not whole and not frac:
            raise InvalidDurationError(f'invalid duration "{original}"')
        if not unit:
            raise InvalidDurationError(f'missing unit in duration "{original}"')
        if unit not in _UNITS:
            raise InvalidDurationError(f'unknown unit "{unit}" in duration "{original}"')

        scale = _UNITS[unit]
        total_ns += int(whole or "0") * scale
        if frac:
            total_ns += int(frac) * scale // (10 ** len(frac))
        pos = match.end()
        if total_ns > _MAX_NS:
            raise InvalidDurationError(f'invalid duration "{original}"')

    # timedelta resolution is one microsecond
    delta = timedelta(microseconds=total_ns // 1_000)
    return -delta if negative else delta


def _fmt_frac(value: int, digits: int) -> str:
    """Format value / 10**digits without trailing zeros."""
    whole, frac = divmod(value, 10**digits)
    if not frac:
        return str(whole)
    return f"{whole}.{frac:0{digits}d}".rstrip("0")


def format_duration(delta: timedelta) -> str:
    """Format delta canonically, e.g. timedelta(hours=4) -> "4h0m0s"."""
    us = (delta.days * 86400 + delta.seconds) * 1_000_000 + delta.microseconds
    sign = "-" if us < 0 else ""
    us = abs(us)

    if us == 0:
        return "0s"
    if us < 1_000:
        return f"{sign}{us}µs"
    if us < 1_000_000:
        return f"{sign}{_fmt_frac(us, 3)}ms"

    hours, rem = divmod(us, 3600 * 1_000_000)
    minutes, rem = divmod(rem, 60 * 1_000_000)
    seconds = _fmt_frac(rem, 6)
    if hours:
        return f"{sign}{hours}h{minutes}m{seconds}s"
    if minutes:
        return f"{sign}{minutes}m{seconds}s"
    return f"{sign}{seconds}s"
