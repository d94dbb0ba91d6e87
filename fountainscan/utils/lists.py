"""Allow/deny list file helpers."""

from __future__ import annotations

import logging
from pathlib import Path

from ..constants import ListTag
from .domains import is_valid_domain, normalize_pattern

logger = logging.getLogger(__name__)

LIST_FILENAMES = {
    ListTag.ALLOW: "allowlist.txt",
    ListTag.DENY: "denylist.txt",
}
FEED_FILENAME = "threat_feed.txt"

_HEADERS = {
    ListTag.ALLOW: [
        "# Trusted domains (one per line, *.example.com for wildcards)",
        "# These always resolve to OVERRIDE_SAFE",
    ],
    ListTag.DENY: [
        "# Blocked domains (one per line, *.example.com for wildcards)",
        "# These resolve to OVERRIDE_BLOCKED unless also trusted",
    ],
}


def read_list(path: Path) -> set[str]:
    """Read list entries from disk (normalized, invalid lines skipped)."""
    if not path.exists():
        return set()

    entries: set[str] = set()
    for line in path.read_text().splitlines():
        value = line.strip()
        if not value or value.startswith("#"):
            continue
        normalized = normalize_pattern(value)
        if not normalized or not is_valid_domain(normalized):
            logger.warning("Skipping invalid list entry in %s: %s", path.name, value)
            continue
        entries.add(normalized)
    return entries


def write_list(path: Path, entries: set[str], header: list[str] | None = None) -> None:
    """Write list entries to disk (sorted, atomic)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    content = "\n".join((header or []) + sorted(entries) + [""])
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content)
    tmp_path.replace(path)


class ListStore:
    """Persists the user allow/deny lists as text files in a directory."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, tag: ListTag) -> Path:
        return self.directory / LIST_FILENAMES[tag]

    @property
    def feed_path(self) -> Path:
        return self.directory / FEED_FILENAME

    def load(self, tag: ListTag) -> set[str]:
        return read_list(self.path_for(tag))

    def load_feed(self) -> set[str]:
        return read_list(self.feed_path)

    def save(self, tag: ListTag, entries: set[str] | frozenset[str]) -> None:
        write_list(self.path_for(tag), set(entries), _HEADERS[tag])
