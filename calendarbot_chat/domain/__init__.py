"""Room calendar core: per-room config cache, refresh paths, suppression and decisions."""

from .decision import DecisionEngine
from .models import DecisionKind, Event, NotifyDecision, RoomSnapshot, find_active_event
from .refresher import LazyRefresher
from .registry import ConfigRegistry
from .room_config import RoomConfig
from .scheduler import RefreshScheduler
from .suppression import SuppressionGuard

__all__ = [
    "ConfigRegistry",
    "DecisionEngine",
    "DecisionKind",
    "Event",
    "LazyRefresher",
    "NotifyDecision",
    "RefreshScheduler",
    "RoomConfig",
    "RoomSnapshot",
    "SuppressionGuard",
    "find_active_event",
]
