"""Scan metrics.

Counts which levels and Issue categories the engine produces, plus cache
and in-flight behaviour, so catalog weights can be tuned from real traffic.
"""

import logging
import threading
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from .models import Issue

logger = logging.getLogger(__name__)


class ScanMetrics:
    """Thread-safe counters owned by one engine instance."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._verdicts: dict[str, int] = defaultdict(int)
        self._categories: dict[str, int] = defaultdict(int)
        self._extractor_failures: dict[str, int] = defaultdict(int)
        self._total_scans = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._joined = 0
        self._started = datetime.now()

    def record_verdict(self, level: str, issues: Iterable[Issue] = ()) -> None:
        with self._lock:
            self._verdicts[level] += 1
            self._total_scans += 1
            for issue in issues:
                self._categories[issue.category] += 1

    def record_cache(self, hit: bool) -> None:
        with self._lock:
            if hit:
                self._cache_hits += 1
            else:
                self._cache_misses += 1

    def record_joined(self) -> None:
        """A caller attached to a computation already in flight."""
        with self._lock:
            self._joined += 1

    def record_extractor_failure(self, name: str) -> None:
        with self._lock:
            self._extractor_failures[name] += 1

    def snapshot(self) -> dict:
        with self._lock:
            uptime = datetime.now() - self._started
            return {
                "uptime_seconds": int(uptime.total_seconds()),
                "total_scans": self._total_scans,
                "verdicts": dict(self._verdicts),
                "categories": dict(self._categories),
                "cache": {"hits": self._cache_hits, "misses": self._cache_misses},
                "joined_in_flight": self._joined,
                "extractor_failures": dict(self._extractor_failures),
            }

    def reset(self) -> None:
        """Reset all counters (useful for testing)."""
        with self._lock:
            self._verdicts.clear()
            self._categories.clear()
            self._extractor_failures.clear()
            self._total_scans = 0
            self._cache_hits = 0
            self._cache_misses = 0
            self._joined = 0
            self._started = datetime.now()
