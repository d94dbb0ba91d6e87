"""User allow/deny lists plus the threat-feed denylist."""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from ..constants import ListResolution, ListTag
from ..errors import InvalidDomainError, NotFoundError
from ..utils.domains import domain_matches, is_valid_domain, normalize_pattern

logger = logging.getLogger(__name__)


def matches(hostname: str, patterns: Iterable[str]) -> bool:
    return any(domain_matches(hostname, pattern) for pattern in patterns)


def resolve(hostname: str, allow: Iterable[str], deny: Iterable[str]) -> ListResolution:
    """Allow wins over deny; neither gives NONE."""
    if matches(hostname, allow):
        return ListResolution.ALLOW
    if matches(hostname, deny):
        return ListResolution.DENY
    return ListResolution.NONE


def _normalize_all(patterns: Iterable[str]) -> frozenset[str]:
    cleaned = set()
    for pattern in patterns:
        normalized = normalize_pattern(pattern)
        if normalized and is_valid_domain(normalized):
            cleaned.add(normalized)
        elif normalized:
            logger.warning("Dropping invalid list entry: %s", pattern)
    return frozenset(cleaned)


class DomainLists:
    """Holds the list state as immutable sets swapped on every change.

    Readers take a reference to a set and never see a partial update.
    """

    def __init__(
        self,
        allow: Iterable[str] = (),
        deny: Iterable[str] = (),
        feed: Iterable[str] = (),
    ):
        self._lock = threading.Lock()
        self._sets: dict[ListTag, frozenset[str]] = {
            ListTag.ALLOW: _normalize_all(allow),
            ListTag.DENY: _normalize_all(deny),
        }
        self._feed: frozenset[str] = _normalize_all(feed)

    def entries(self, tag: ListTag) -> frozenset[str]:
        return self._sets[tag]

    @property
    def allow(self) -> frozenset[str]:
        return self._sets[ListTag.ALLOW]

    @property
    def deny(self) -> frozenset[str]:
        return self._sets[ListTag.DENY]

    @property
    def feed(self) -> frozenset[str]:
        return self._feed

    def resolve(self, hostname: str) -> ListResolution:
        allow = self._sets[ListTag.ALLOW]
        deny = self._sets[ListTag.DENY]
        feed = self._feed
        if matches(hostname, allow):
            return ListResolution.ALLOW
        if matches(hostname, deny) or matches(hostname, feed):
            return ListResolution.DENY
        return ListResolution.NONE

    def add_entry(self, tag: ListTag, pattern: str) -> str:
        """Add a pattern and return its normalized form. Adding twice is a no-op."""
        normalized = normalize_pattern(pattern)
        if not normalized or not is_valid_domain(normalized):
            raise InvalidDomainError(pattern)
        with self._lock:
            current = self._sets[tag]
            if normalized not in current:
                self._sets[tag] = current | {normalized}
                logger.info("Added %s to %s list", normalized, tag.value)
        return normalized

    def remove_entry(self, tag: ListTag, pattern: str) -> str:
        normalized = normalize_pattern(pattern)
        with self._lock:
            current = self._sets[tag]
            if normalized not in current:
                raise NotFoundError(tag.value, pattern)
            self._sets[tag] = current - {normalized}
        logger.info("Removed %s from %s list", normalized, tag.value)
        return normalized

    def replace(self, tag: ListTag, patterns: Iterable[str]) -> None:
        entries = _normalize_all(patterns)
        with self._lock:
            self._sets[tag] = entries
        logger.info("Replaced %s list (%s entries)", tag.value, len(entries))

    def replace_feed(self, domains: Iterable[str]) -> None:
        entries = _normalize_all(domains)
        with self._lock:
            self._feed = entries
        logger.info("Replaced threat feed (%s entries)", len(entries))

    def to_dict(self) -> dict:
        return {
            "allow": sorted(self.allow),
            "deny": sorted(self.deny),
            "feed": len(self._feed),
        }
