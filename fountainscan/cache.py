"""Verdict cache for FountainScan.

One entry per Target key with two windows:
- freshness: a Verdict younger than this is served without recomputation
- expiry: an entry older than this is gone, whether or not a sweep ran

Expiry is enforced on read. `sweep()` only reclaims memory.
"""

import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from .analyzer.models import Verdict
from .constants import RiskLevel

logger = logging.getLogger(__name__)

DEFAULT_FRESHNESS_SECONDS = 5 * 60
DEFAULT_EXPIRY_SECONDS = 24 * 3600


class CacheEntry:
    """A cached Verdict with the time it was stored."""

    __slots__ = ("key", "verdict", "stored_at")

    def __init__(self, key: str, verdict: Verdict, stored_at: float):
        self.key = key
        self.verdict = verdict
        self.stored_at = stored_at

    def age(self, now: float) -> float:
        return now - self.stored_at


class ScanCache:
    """
    Thread-safe Verdict cache keyed by normalized Target URL.

    Usage:
        cache = ScanCache(freshness_seconds=300, expiry_seconds=86400)

        cache.set(target.key, verdict)
        fresh = cache.get(target.key)   # None once stale
        entry = cache.peek(target.key)  # any age short of expiry
    """

    def __init__(
        self,
        freshness_seconds: float = DEFAULT_FRESHNESS_SECONDS,
        expiry_seconds: float = DEFAULT_EXPIRY_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            freshness_seconds: Age below which a Verdict is served as-is
            expiry_seconds: Age at which an entry is treated as absent
            clock: Time source in seconds (injectable for tests)
        """
        self._validate(freshness_seconds, expiry_seconds)
        self.freshness_seconds = freshness_seconds
        self.expiry_seconds = expiry_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _validate(freshness_seconds: float, expiry_seconds: float) -> None:
        if freshness_seconds <= 0 or expiry_seconds <= 0:
            raise ValueError("Cache windows must be positive")
        if freshness_seconds > expiry_seconds:
            raise ValueError("Freshness window cannot exceed the expiry window")

    def configure(
        self,
        freshness_seconds: Optional[float] = None,
        expiry_seconds: Optional[float] = None,
    ) -> None:
        """Change the windows; existing entries are judged by the new values."""
        freshness = self.freshness_seconds if freshness_seconds is None else freshness_seconds
        expiry = self.expiry_seconds if expiry_seconds is None else expiry_seconds
        self._validate(freshness, expiry)
        with self._lock:
            self.freshness_seconds = freshness
            self.expiry_seconds = expiry

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry regardless of freshness, unless it has expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.age(self._clock()) >= self.expiry_seconds:
                del self._entries[key]
                return None
            return entry

    def get(self, key: str, record: bool = True) -> Optional[Verdict]:
        """Return the cached Verdict only while it is fresh.

        Pass record=False for a repeat lookup that should not count towards
        the hit/miss statistics.
        """
        with self._lock:
            entry = self.peek(key)
            fresh = entry is not None and entry.age(self._clock()) < self.freshness_seconds
            if record:
                if fresh:
                    self._hits += 1
                else:
                    self._misses += 1
            return entry.verdict if fresh else None

    def set(self, key: str, verdict: Verdict) -> None:
        """Store a Verdict, superseding any previous one for the key."""
        if verdict.risk_level == RiskLevel.ERROR:
            return
        with self._lock:
            self._entries[key] = CacheEntry(key, verdict, self._clock())

    def invalidate(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def invalidate_all(self) -> int:
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.debug("Invalidated %s cached verdicts", count)
        return count

    def sweep(self) -> int:
        """Purge expired entries and return how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [
                key
                for key, entry in self._entries.items()
                if entry.age(now) >= self.expiry_seconds
            ]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.info("Swept %s expired cache entries", len(expired))
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "entries": len(self._entries),
                "freshness_seconds": self.freshness_seconds,
                "expiry_seconds": self.expiry_seconds,
                "hits": self._hits,
                "misses": self._misses,
            }
