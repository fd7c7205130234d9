"""Key/value store with per-key TTL, optionally persisted to JSON with atomic writes."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

from calendarbot_chat.core.protocols import TimeProvider
from calendarbot_chat.core.timezone_utils import ensure_utc, now_utc
from calendarbot_chat.exceptions import SuppressionStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Entry:
    value: str
    set_at: datetime
    expires_at: datetime


def _parse_iso(s: str) -> datetime:
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    return ensure_utc(datetime.fromisoformat(s))


class KVStore:
    """Thread-safe TTL store for short-lived markers such as suppression windows.

    Without a path the store lives in memory only. With a path, the on-disk
    format is a JSON object mapping key -> {"value", "set_at", "expires_at"}
    (ISO-8601 strings with offsets); expired entries are dropped on load.
    """

    def __init__(self, path: str | Path | None = None, time_provider: TimeProvider = now_utc):
        self._path: Optional[Path] = Path(path) if path else None
        self._time_provider = time_provider
        self._lock = threading.Lock()
        self._store: dict[str, _Entry] = {}

        if self._path is not None:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self.load()

    def load(self) -> None:
        """Load entries from disk, purging expired ones. No-op for in-memory stores."""
        if self._path is None:
            return
        with self._lock:
            if not self._path.exists():
                logger.debug("KV store file not found; starting empty: %s", self._path)
                self._store = {}
                return

            try:
                with self._path.open("r", encoding="utf-8") as fh:
                    data = json.load(fh)
                if not isinstance(data, dict):
                    raise ValueError("KV store JSON root must be an object")  # noqa: TRY004
            except (OSError, ValueError) as exc:
                logger.warning("Failed to read KV store %s: %s", self._path, exc)
                self._store = {}
                return

            now = self._time_provider()
            store: dict[str, _Entry] = {}
            for key, raw in data.items():
                try:
                    entry = _Entry(
                        value=str(raw["value"]),
                        set_at=_parse_iso(raw["set_at"]),
                        expires_at=_parse_iso(raw["expires_at"]),
                    )
                except (KeyError, TypeError, ValueError):
                    logger.debug("Skipping malformed KV entry %r", key)
                    continue
                if entry.expires_at > now:
                    store[key] = entry

            self._store = store
            logger.debug("Loaded KV store %s (%d live entries)", self._path, len(store))

    def _persist(self) -> None:
        """Write the store to disk atomically. Called with lock held.

        Raises:
            SuppressionStoreError: If the file cannot be written
        """
        if self._path is None:
            return

        data = {
            key: {
                "value": entry.value,
                "set_at": entry.set_at.isoformat(),
                "expires_at": entry.expires_at.isoformat(),
            }
            for key, entry in self._store.items()
        }

        tmp_path: Optional[Path] = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", dir=self._path.parent, delete=False, encoding="utf-8"
            ) as tf:
                tmp_path = Path(tf.name)
                json.dump(data, tf, ensure_ascii=False)
                tf.flush()
                os.fsync(tf.fileno())
            tmp_path.replace(self._path)
        except OSError as exc:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    tmp_path.unlink()
            raise SuppressionStoreError(f"Failed to persist KV store to {self._path}: {exc}") from exc

    def _live_entry(self, key: str, now: datetime) -> Optional[_Entry]:
        """Return key's entry if not expired, dropping it otherwise. Called with lock held."""
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at <= now:
            del self._store[key]
            return None
        return entry

    def get(self, key: str) -> tuple[str, bool]:
        """Return (value, found); ("", False) for missing or expired keys."""
        with self._lock:
            entry = self._live_entry(key, self._time_provider())
            if entry is None:
                return "", False
            return entry.value, True

    def exists(self, key: str) -> bool:
        return self.get(key)[1]

    def set(self, key: str, value: str, ttl: timedelta) -> None:
        """Store value under key for ttl.

        Raises:
            ValueError: If ttl is not positive
            SuppressionStoreError: If a persistent store cannot be written
        """
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        with self._lock:
            now = self._time_provider()
            previous = self._store.get(key)
            self._store[key] = _Entry(value=value, set_at=now, expires_at=now + ttl)
            try:
                self._persist()
            except SuppressionStoreError:
                if previous is None:
                    self._store.pop(key, None)
                else:
                    self._store[key] = previous
                raise
        logger.debug("Set %r for %s", key, ttl)

    def delete(self, key: str) -> bool:
        """Remove key; returns True if it was live."""
        with self._lock:
            entry = self._live_entry(key, self._time_provider())
            if entry is None:
                return False
            del self._store[key]
            self._persist()
            return True

    def ttl_remaining(self, key: str) -> timedelta:
        """Time until key expires; zero if missing or expired."""
        with self._lock:
            now = self._time_provider()
            entry = self._live_entry(key, now)
            if entry is None:
                return timedelta(0)
            return entry.expires_at - now

    def age(self, key: str) -> timedelta:
        """Time since key was last set; zero if missing or expired."""
        with self._lock:
            now = self._time_provider()
            entry = self._live_entry(key, now)
            if entry is None:
                return timedelta(0)
            return now - entry.set_at

    def purge_expired(self) -> int:
        """Drop expired entries and persist; returns how many were removed."""
        with self._lock:
            now = self._time_provider()
            expired = [k for k, e in self._store.items() if e.expires_at <= now]
            for key in expired:
                del self._store[key]
            if expired:
                self._persist()
            return len(expired)

    def __len__(self) -> int:
        with self._lock:
            now = self._time_provider()
            return sum(1 for e in self._store.values() if e.expires_at > now)
