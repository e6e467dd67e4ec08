"""In-memory TTL cache for graph analyses.

Entries are keyed by (type, directory). Because the key is a directory,
a change to one file invalidates every entry for any directory that
contains it.

One GraphCache is constructed per process (or per test) and injected into
the analyzer and the file watcher; there is no module-level instance.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from typing import Any

from .config import get_cache_ttl
from .models import CacheEntry, CacheStats

log = logging.getLogger(__name__)


def _cache_key(cache_type: str, identifier: str) -> str:
    return f"{cache_type}:{identifier}"


def _is_within(path: str, directory: str) -> bool:
    """True if path is directory itself or lies below it."""
    try:
        return os.path.commonpath([path, directory]) == directory
    except ValueError:
        # Different drives on Windows, or mixed absolute/relative paths
        return False


class GraphCache:
    """TTL-bounded memoization of full-directory scans."""

    def __init__(
        self,
        ttl_seconds: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Entry lifetime. Uses NOTEGRAPH_CACHE_TTL / default if None.
            clock: Time source in seconds; injectable for tests.
        """
        self._ttl = ttl_seconds if ttl_seconds is not None else get_cache_ttl()
        self._clock = clock
        # key -> (type, identifier, entry)
        self._entries: dict[str, tuple[str, str, CacheEntry]] = {}
        # The file watcher invalidates from its observer thread
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.created_at > self._ttl

    def get(self, cache_type: str, identifier: str) -> Any | None:
        """Return the cached value, or None if missing or expired."""
        key = _cache_key(cache_type, identifier)
        with self._lock:
            item = self._entries.get(key)
            if item is None:
                return None

            entry = item[2]
            if self._expired(entry, self._clock()):
                del self._entries[key]
                log.debug("Cache entry expired: %s", key)
                return None

        log.debug("Cache hit: %s", key)
        return entry.data

    def set(self, cache_type: str, identifier: str, data: Any, hash: str | None = None) -> None:
        key = _cache_key(cache_type, identifier)
        entry = CacheEntry(data=data, created_at=self._clock(), hash=hash)
        with self._lock:
            self._entries[key] = (cache_type, identifier, entry)

    def invalidate(self, cache_type: str, identifier: str) -> None:
        key = _cache_key(cache_type, identifier)
        with self._lock:
            self._entries.pop(key, None)

    def invalidate_by_type(self, cache_type: str) -> None:
        with self._lock:
            for key in [k for k, (t, _, _) in self._entries.items() if t == cache_type]:
                del self._entries[key]

    def invalidate_by_file(self, file_path: str | os.PathLike[str]) -> list[str]:
        """Evict every entry whose directory contains file_path.

        Args:
            file_path: Path of a file that changed on disk.

        Returns:
            Keys ("type:directory") that were removed.
        """
        changed = os.path.abspath(os.fspath(file_path))
        with self._lock:
            removed = [
                key
                for key, (_, identifier, _) in self._entries.items()
                if _is_within(changed, identifier)
            ]
            for key in removed:
                del self._entries[key]

        if removed:
            log.debug("Invalidated %d cache entries for %s", len(removed), changed)
        return removed

    def cleanup_expired(self) -> int:
        """Drop expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, (_, _, e) in self._entries.items() if self._expired(e, now)]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def is_cache_valid(self, cache_type: str, identifier: str, current_hash: str) -> bool:
        """Check an entry exists, is within TTL, and (if it has a hash) matches current_hash."""
        key = _cache_key(cache_type, identifier)
        with self._lock:
            item = self._entries.get(key)
        if item is None:
            return False

        entry = item[2]
        if self._expired(entry, self._clock()):
            return False
        if entry.hash and entry.hash != current_hash:
            return False
        return True

    def get_stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            keys = list(self._entries)
            ages = [now - e.created_at for _, _, e in self._entries.values()]

        return CacheStats(size=len(keys), keys=keys, oldest_age=max(ages) if ages else None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
