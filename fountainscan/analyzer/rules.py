"""Shared building blocks for signal extractors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from .catalog import PatternCatalog, PatternCategory
from .models import ContentSnapshot, Issue, Target


@dataclass(frozen=True)
class ExtractionContext:
    """Everything an extractor may look at during one scan."""

    target: Target
    catalog: PatternCatalog
    snapshot: Optional[ContentSnapshot] = None


class SignalExtractor(Protocol):
    """Interface for synchronous extractors.

    `requires_snapshot` extractors are skipped for URL-only scans.
    """

    name: str
    requires_snapshot: bool

    def extract(self, context: ExtractionContext) -> list[Issue]:  # pragma: no cover - interface
        ...


def category_issue(category: PatternCategory, term: str, weight: Optional[int] = None) -> Issue:
    return Issue(
        category=category.name,
        description=f"{category.label}: {term}",
        weight=category.weight if weight is None else weight,
    )


def structural_issue(catalog: PatternCatalog, name: str, description: str) -> Optional[Issue]:
    """Build an Issue for a catalog category with no keyword of its own."""
    category = catalog.get(name)
    if category is None:
        return None
    return Issue(category=name, description=description, weight=category.weight)
