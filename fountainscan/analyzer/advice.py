"""Presentation advice derived from a Verdict.

The engine never renders anything; hosts map a Verdict to a badge, an
alert and a block decision through these helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..constants import INTERNAL_URL_PREFIXES, RiskLevel
from .catalog import PatternCatalog, default_catalog
from .extractor_forms import has_sensitive_form
from .models import ContentSnapshot, Verdict

BADGE_RED = "#F44336"
BADGE_ORANGE = "#FF9800"
BADGE_YELLOW = "#FFC107"
BADGE_GREEN = "#4CAF50"
BADGE_GREY = "#9E9E9E"


@dataclass(frozen=True)
class Advice:
    badge_text: str
    badge_color: str
    status: str
    alert: bool = False
    caution: bool = False
    block: bool = False

    def to_dict(self) -> dict:
        return {
            "badge_text": self.badge_text,
            "badge_color": self.badge_color,
            "status": self.status,
            "alert": self.alert,
            "caution": self.caution,
            "block": self.block,
        }


def advise(verdict: Verdict, settings) -> Advice:
    """Map a Verdict to badge/alert/block advice under the user's toggles."""
    level = verdict.risk_level
    alerts = bool(getattr(settings, "alerts_enabled", True))
    blocking = bool(getattr(settings, "blocking_enabled", False))

    if level in (RiskLevel.HIGH, RiskLevel.OVERRIDE_BLOCKED):
        status = "Blocked by list" if level == RiskLevel.OVERRIDE_BLOCKED else "High Risk - Potential Scam"
        return Advice("!", BADGE_RED, status, alert=alerts, block=alerts and blocking)
    if level == RiskLevel.MEDIUM:
        return Advice("?", BADGE_ORANGE, "Medium Risk - Suspicious", caution=alerts)
    if level == RiskLevel.LOW:
        return Advice("~", BADGE_YELLOW, "Low Risk - Minor Concerns")
    if level == RiskLevel.OVERRIDE_SAFE:
        return Advice("", BADGE_GREEN, "Whitelisted")
    if level == RiskLevel.SAFE:
        return Advice("", BADGE_GREEN, "Safe")
    return Advice("…", BADGE_GREY, "Unable to assess")


def should_scan_url(url: Optional[str], settings=None) -> bool:
    """Whether a host should scan a page automatically on navigation.

    False for empty URLs, browser-internal pages, and whenever the user has
    turned real-time scanning off. Explicit scans are not affected.
    """
    if settings is not None and not getattr(settings, "realtime_enabled", True):
        return False
    value = (url or "").strip().lower()
    if not value:
        return False
    return not value.startswith(INTERNAL_URL_PREFIXES)


def guard_form_submission(
    snapshot: Optional[ContentSnapshot],
    catalog: Optional[PatternCatalog] = None,
) -> bool:
    """True when a submit should be confirmed (a form asks for too much)."""
    return has_sensitive_form(snapshot, catalog or default_catalog())
