"""Calendar sources."""

from .ics_fetcher import ICSEventFetcher, parse_ics_events

__all__ = ["ICSEventFetcher", "parse_ics_events"]
