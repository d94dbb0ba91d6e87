"""Risk aggregation: Issues -> score -> RiskLevel -> Verdict."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..constants import ListResolution, RiskLevel
from .models import Issue, Target, Verdict


@dataclass(frozen=True)
class RiskThresholds:
    """Minimum scores for LOW, MEDIUM and HIGH."""

    low_min: int = 2
    medium_min: int = 5
    high_min: int = 8

    def __post_init__(self):
        if self.low_min < 1:
            raise ValueError("low_min must be at least 1")
        if not (self.low_min < self.medium_min < self.high_min):
            raise ValueError(
                f"Thresholds must be strictly ascending "
                f"(got {self.low_min}/{self.medium_min}/{self.high_min})"
            )

    def to_dict(self) -> dict:
        return {"low_min": self.low_min, "medium_min": self.medium_min, "high_min": self.high_min}


DEFAULT_THRESHOLDS = RiskThresholds()


def merge_issues(issues: Iterable[Issue]) -> list[Issue]:
    """Collapse Issues for the same finding reported by several extractors.

    The first position is kept with the highest weight seen for it.
    """
    merged: dict[tuple[str, str], Issue] = {}
    for issue in issues:
        key = (issue.category, issue.description)
        current = merged.get(key)
        if current is None:
            merged[key] = issue
        elif issue.weight > current.weight:
            merged[key] = issue
    return list(merged.values())


def score(issues: Iterable[Issue]) -> int:
    return sum(issue.weight for issue in issues)


def classify(value: int, thresholds: RiskThresholds = DEFAULT_THRESHOLDS) -> RiskLevel:
    if value < thresholds.low_min:
        return RiskLevel.SAFE
    if value < thresholds.medium_min:
        return RiskLevel.LOW
    if value < thresholds.high_min:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def build_verdict(
    target: Target,
    issues: Iterable[Issue],
    resolution: ListResolution = ListResolution.NONE,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
    *,
    content_scanned: bool = False,
    sensitive_form: bool = False,
    catalog_version: str = "",
) -> Verdict:
    """Aggregate Issues into a Verdict.

    List overrides replace the level but keep the Issues and their score
    so the caller can still show why the page looked risky.
    """
    collected = tuple(merge_issues(issues))
    total = score(collected)

    if resolution == ListResolution.ALLOW:
        level = RiskLevel.OVERRIDE_SAFE
    elif resolution == ListResolution.DENY:
        level = RiskLevel.OVERRIDE_BLOCKED
    else:
        level = classify(total, thresholds)

    return Verdict(
        url=target.url,
        risk_score=total,
        risk_level=level,
        issues=collected,
        resolution=resolution,
        content_scanned=content_scanned,
        sensitive_form=sensitive_form,
        catalog_version=catalog_version,
    )


def error_verdict(url: str, catalog_version: Optional[str] = None) -> Verdict:
    """Neutral 'unable to assess' Verdict."""
    return Verdict(
        url=url or "",
        risk_score=0,
        risk_level=RiskLevel.ERROR,
        catalog_version=catalog_version or "",
    )
