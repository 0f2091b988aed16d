"""Thread-safe TTL cache for oracle answers."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """A single cache entry with TTL."""

    value: T
    expires_at: float
    created_at: float = field(default_factory=time.time)

    def is_expired(self) -> bool:
        """Check if this entry has expired."""
        return time.time() > self.expires_at


class TTLCache:
    """Small in-memory cache with per-entry expiry.

    Lookups may come from resolver worker threads, so every access holds the
    instance lock.
    """

    def __init__(self, default_ttl: int = 600, max_entries: int = 10000):
        """Initialize the cache.

        Args:
            default_ttl: Default time-to-live in seconds.
            max_entries: Entries kept before the oldest are evicted.
        """
        self._default_ttl = default_ttl
        self._max_entries = max_entries
        self._cache: Dict[Hashable, CacheEntry[Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value or None if missing/expired."""
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return None
            if entry.is_expired():
                del self._cache[key]
                return None
            return entry.value

    def set(self, key: Hashable, value: Any, ttl: Optional[int] = None) -> None:
        """Store a value for ttl seconds (default_ttl when omitted)."""
        ttl = self._default_ttl if ttl is None else ttl
        with self._lock:
            if len(self._cache) >= self._max_entries and key not in self._cache:
                self._evict_oldest()
            self._cache[key] = CacheEntry(value=value, expires_at=time.time() + ttl)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def _evict_oldest(self) -> None:
        expired = [k for k, e in self._cache.items() if e.is_expired()]
        for k in expired:
            del self._cache[k]
        if len(self._cache) >= self._max_entries:
            oldest = min(self._cache, key=lambda k: self._cache[k].created_at)
            del self._cache[oldest]
