"""YAML-backed per-room preference store.

Layout on disk::

    "!room-id:example.org":
      google_calendar:
        calendar-id: https://calendar.example.com/team.ics
        autoreply: "true"
        timezone: America/New_York
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

Prefs = dict[str, dict[str, dict[str, str]]]


def _normalize(raw: Any) -> Prefs:
    """Coerce a loaded mapping into room -> plugin -> key -> str.

    Raises:
        ValueError: If the structure is not nested mappings
    """
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValueError("preferences file must contain a mapping at top level")  # noqa: TRY004

    prefs: Prefs = {}
    for room, plugins in raw.items():
        if not isinstance(plugins, dict):
            raise ValueError(f"preferences for room {room!r} must be a mapping")  # noqa: TRY004
        prefs[str(room)] = {}
        for plugin, keys in plugins.items():
            if not isinstance(keys, dict):
                raise ValueError(f"preferences for {room!r}/{plugin!r} must be a mapping")  # noqa: TRY004
            # YAML turns bare true/false into bools; store the text form
            prefs[str(room)][str(plugin)] = {
                str(k): str(v).lower() if isinstance(v, bool) else str(v) for k, v in keys.items()
            }
    return prefs


class PrefStore:
    """Thread-safe preference store.

    If the backing file cannot be read or parsed the store is marked
    unreadable and every lookup reports failure until a reload succeeds.
    """

    def __init__(self, path: str | Path | None = None, initial: Optional[dict[str, Any]] = None):
        self._path: Optional[Path] = Path(path) if path else None
        self._lock = threading.Lock()
        self._prefs: Prefs = _normalize(initial) if initial else {}
        self._readable = True

        if self._path is not None:
            self.reload()

    def reload(self) -> bool:
        """Re-read the backing file; returns whether it was readable."""
        if self._path is None:
            return True
        with self._lock:
            if not self._path.exists():
                logger.debug("Preferences file not found; starting empty: %s", self._path)
                self._prefs = {}
                self._readable = True
                return True
            try:
                self._prefs = _normalize(yaml.safe_load(self._path.read_text(encoding="utf-8")))
                self._readable = True
            except (OSError, yaml.YAMLError, ValueError) as exc:
                logger.warning("Failed to read preferences %s: %s", self._path, exc)
                self._readable = False
            return self._readable

    def get_pref(self, room: str, plugin: str, key: str, default: str) -> tuple[str, bool]:
        with self._lock:
            if not self._readable:
                return default, False
            return self._prefs.get(room, {}).get(plugin, {}).get(key, default), True

    def set_pref(self, room: str, plugin: str, key: str, value: str) -> None:
        """Set a preference and save the file.

        Raises:
            OSError: If the file cannot be written
        """
        with self._lock:
            self._prefs.setdefault(room, {}).setdefault(plugin, {})[key] = str(value)
            self._save()

    def delete_pref(self, room: str, plugin: str, key: str) -> bool:
        with self._lock:
            removed = self._prefs.get(room, {}).get(plugin, {}).pop(key, None) is not None
            if removed:
                self._save()
            return removed

    def list_prefs(self, room: str, plugin: str) -> dict[str, str]:
        with self._lock:
            return dict(self._prefs.get(room, {}).get(plugin, {}))

    def _save(self) -> None:
        """Write preferences to disk. Called with lock held."""
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(yaml.safe_dump(self._prefs, sort_keys=True), encoding="utf-8")
        self._readable = True
