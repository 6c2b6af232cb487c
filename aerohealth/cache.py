"""Process-wide TTL result cache with canonical keys."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

logger = logging.getLogger(__name__)


class CacheTTL:
    """Freshness classes, in seconds."""

    AQI_GRID = 15 * 60
    WIND = 30 * 60
    POLLEN = 60 * 60
    WILDFIRES = 60 * 60
    NATIONAL_AQI = 30 * 60
    POLLUTION_SOURCES = 24 * 60 * 60


@dataclass
class CacheEntry:
    value: Any
    created_at: float
    expires_at: float


def canonical_key(operation: str, params: Mapping[str, Any]) -> str:
    """Build ``operation:k1=v1&k2=v2`` with parameters sorted by name."""
    ordered = "&".join(f"{name}={params[name]}" for name in sorted(params))
    return f"{operation}:{ordered}"


class ResultCache:
    """In-memory TTL store.

    Entries are never returned past ``expires_at``; an expired entry found by
    ``get`` is dropped on the spot, ``clear_expired`` sweeps the rest. There is
    no size bound and no LRU eviction.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        # get() deletes on expiry, so every read is a read-modify-write
        self._lock = threading.RLock()

    def set(self, key: str, value: Any, ttl_seconds: float) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = CacheEntry(value=value, created_at=now, expires_at=now + ttl_seconds)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._clock() > entry.expires_at:
                del self._entries[key]
                return default
            return entry.value

    def has(self, key: str) -> bool:
        sentinel = object()
        return self.get(key, sentinel) is not sentinel

    def delete(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def clear_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.expires_at < now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Cache sweep removed %d expired entries", len(expired))
        return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            now = self._clock()
            keys: List[str] = list(self._entries)
            expired = sum(1 for entry in self._entries.values() if entry.expires_at < now)
        return {"size": len(keys), "keys": keys, "expired": expired}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class CacheSweeper:
    """Owned background thread that calls ``clear_expired`` periodically."""

    def __init__(self, cache: ResultCache, interval: float = 300.0):
        self.cache = cache
        self.interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="aerohealth-cache-sweeper", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.cache.clear_expired()


__all__ = ["CacheEntry", "CacheSweeper", "CacheTTL", "ResultCache", "canonical_key"]
