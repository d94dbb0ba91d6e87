"""Centralized constants for FountainScan.

Enums shared by the engine, the cache, the HTTP adapter and the tests.
"""

from enum import Enum


class RiskLevel(str, Enum):
    """Risk level attached to a Verdict."""

    SAFE = "safe"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    OVERRIDE_SAFE = "override_safe"
    OVERRIDE_BLOCKED = "override_blocked"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


# Heuristic levels only, in ascending severity.
HEURISTIC_LEVELS = (RiskLevel.SAFE, RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH)

LEVEL_RANK = {level: rank for rank, level in enumerate(HEURISTIC_LEVELS)}


class ListTag(str, Enum):
    """Which user list an entry belongs to."""

    ALLOW = "allow"
    DENY = "deny"

    @classmethod
    def from_string(cls, value: str | None) -> "ListTag":
        """Parse a list tag, accepting the legacy whitelist/blacklist names."""
        mapping = {
            "allow": cls.ALLOW,
            "allowlist": cls.ALLOW,
            "whitelist": cls.ALLOW,
            "deny": cls.DENY,
            "denylist": cls.DENY,
            "blacklist": cls.DENY,
        }
        key = (value or "").strip().lower()
        if key not in mapping:
            raise ValueError(f"Unknown list tag: {value!r}")
        return mapping[key]

    def __str__(self) -> str:
        return self.value


class ListResolution(str, Enum):
    """Outcome of resolving a hostname against the allow/deny lists."""

    ALLOW = "allow"
    DENY = "deny"
    NONE = "none"

    def __str__(self) -> str:
        return self.value


# Schemes that belong to the browser itself and are never scanned.
INTERNAL_URL_PREFIXES = (
    "chrome://",
    "chrome-extension://",
    "edge://",
    "about:",
    "moz-extension://",
    "view-source:",
)

# Ports that are not worth flagging.
STANDARD_PORTS = frozenset({80, 443, 8080, 8443})
