"""Volatile, time-boxed, size-bounded in-memory cache."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CacheEntry:
    value: Any
    timestamp: float
    expires_at: float


@dataclass(frozen=True, slots=True)
class CacheStats:
    total: int
    valid: int
    expired: int

    def to_dict(self) -> dict:
        return {"total": self.total, "valid": self.valid, "expired": self.expired}


class VolatileCache:
    """Key to (value, expiry) store.

    An entry is servable only while ``now < expires_at``; expired entries are
    misses but stay stored until overwritten, evicted or purged. When the
    entry count exceeds ``max_entries`` the least recently written entries
    are dropped. All operations hold an internal lock so independent fetches
    running on different threads can share one instance.
    """

    def __init__(
        self,
        ttl_seconds: float,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.time,
        name: str = "cache",
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        if max_entries is not None and max_entries <= 0:
            raise ValueError(f"max_entries must be positive, got {max_entries}")

        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self.name = name
        self._clock = clock
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            if self._clock() >= entry.expires_at:
                logger.debug(f"[{self.name}] expired entry for {key}")
                return default
            return entry.value

    def __contains__(self, key: str) -> bool:
        marker = object()
        return self.get(key, marker) is not marker

    def set(self, key: str, value: Any) -> None:
        """Store a value; rewriting a key makes it the most recent entry."""
        now = self._clock()
        with self._lock:
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(
                value=value,
                timestamp=now,
                expires_at=now + self.ttl_seconds,
            )
            if self.max_entries is not None:
                while len(self._entries) > self.max_entries:
                    evicted, _ = self._entries.popitem(last=False)
                    logger.debug(f"[{self.name}] evicted {evicted}")

    def invalidate(self, prefix: Optional[str] = None) -> int:
        """Drop entries whose key starts with ``prefix``, or everything.

        Returns:
            Number of entries removed
        """
        with self._lock:
            if prefix is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed = [key for key in self._entries if key.startswith(prefix)]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)

        if removed:
            logger.info(f"[{self.name}] invalidated {removed} entries (prefix={prefix!r})")
        return removed

    def purge_expired(self) -> int:
        """Eagerly remove expired entries."""
        now = self._clock()
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if now >= entry.expires_at]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            total = len(self._entries)
            valid = sum(1 for entry in self._entries.values() if now < entry.expires_at)
        return CacheStats(total=total, valid=valid, expired=total - valid)
