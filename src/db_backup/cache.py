"""Listing cache with in-memory and JSON-file backends.

The backup listing is the only cached value: scanning and stat-ing the
backup directory is repeated on every ``list_backups()`` call otherwise.
Every mutation of the directory invalidates the entry.

Architecture:
    ::

        ListingCache (Protocol)
        ├── InMemoryCache  -- per-process, used by tests and short-lived runs
        └── JsonFileCache  -- <backup_dir>/.backup_cache.json, shared between runs

        API: get(key) -> value | None
             set(key, value)
             invalidate(key)

Example:
    >>> cache = InMemoryCache(ttl_seconds=3600)
    >>> cache.set("database_backups_list", [{"file_name": "backup_shop.sql"}])
    >>> cache.get("database_backups_list")
    [{'file_name': 'backup_shop.sql'}]
"""

import json
import logging
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

BACKUP_LIST_KEY = "database_backups_list"
CACHE_FILE_NAME = ".backup_cache.json"


class ListingCache(Protocol):
    """Key/value cache whose entries expire after a fixed time-to-live."""

    def get(self, key: str) -> Any | None:
        """Return the cached value, or ``None`` if absent or expired."""
        ...

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value, stamped with the current time."""
        ...

    def invalidate(self, key: str) -> None:
        """Remove a key.  No-op if the key does not exist."""
        ...


# ------------------------------------------------------------------ #
# In-memory cache
# ------------------------------------------------------------------ #


class InMemoryCache:
    """Dict-backed cache with TTL expiry checked on read.

    Args:
        ttl_seconds: Entry lifetime.  ``0`` makes every ``get`` a miss.
        clock: Returns the current time in seconds (``time.time`` by default).
    """

    def __init__(self, ttl_seconds: int = 3600, clock: Callable[[], float] = time.time):
        self._store: dict[str, tuple[float, Any]] = {}
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        timestamp, value = entry
        if self._clock() - timestamp >= self._ttl:
            del self._store[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._store[key] = (self._clock(), value)

    def invalidate(self, key: str) -> None:
        self._store.pop(key, None)


# ------------------------------------------------------------------ #
# JSON file cache
# ------------------------------------------------------------------ #


class JsonFileCache:
    """Cache persisted as a JSON object of ``{key: {"timestamp", "data"}}``.

    A missing, unreadable or malformed file is treated as an empty cache.
    Failing to write the file is logged and otherwise ignored, since the
    cache only saves a directory scan.

    Args:
        path: Cache file location.
        ttl_seconds: Entry lifetime.
        clock: Returns the current time in seconds.

    Example:
        cache = JsonFileCache(Path("backups") / CACHE_FILE_NAME, ttl_seconds=600)
        cache.set(BACKUP_LIST_KEY, listing)
    """

    def __init__(
        self,
        path: Path | str,
        ttl_seconds: int = 3600,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self._ttl = ttl_seconds
        self._clock = clock

    def get(self, key: str) -> Any | None:
        entry = self._read().get(key)
        if not isinstance(entry, dict) or "timestamp" not in entry:
            return None
        if self._clock() - float(entry["timestamp"]) >= self._ttl:
            return None
        return entry.get("data")

    def set(self, key: str, value: Any) -> None:
        data = self._read()
        data[key] = {"timestamp": int(self._clock()), "data": value}
        self._write(data)

    def invalidate(self, key: str) -> None:
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable cache file %s: %s", self.path, e)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict[str, Any]) -> None:
        try:
            self.path.write_text(json.dumps(data, indent=4), encoding="utf-8")
        except OSError as e:
            logger.warning("Could not write cache file %s: %s", self.path, e)
