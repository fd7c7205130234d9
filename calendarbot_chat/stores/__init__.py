"""Concrete preference and key/value stores."""

from .kv_store import KVStore
from .prefs import PrefStore

__all__ = ["KVStore", "PrefStore"]
