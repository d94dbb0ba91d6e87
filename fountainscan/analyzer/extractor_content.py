"""Content-keyword signal extractor (visible page text)."""

from __future__ import annotations

from typing import Optional

from bs4 import BeautifulSoup

from .catalog import SURFACE_TEXT, PatternCatalog
from .models import ContentSnapshot, Issue
from .rules import ExtractionContext, category_issue

# Phrases that, next to an institution reference, mark an impersonation attempt.
CO_RISK_PHRASES = (
    "processing fee",
    "registration fee",
    "application fee",
    "bank details",
    "urgent response",
)

ESCALATING_CATEGORY = "money_transfer_requests"
ESCALATED_CATEGORY = "regional_institutions"

_HIDDEN_TAGS = ("script", "style", "noscript", "template")


def visible_text(snapshot: Optional[ContentSnapshot]) -> str:
    """Return the page's visible text, deriving it from HTML when needed."""
    if snapshot is None:
        return ""
    if snapshot.text:
        return snapshot.text
    if not snapshot.html:
        return ""

    soup = BeautifulSoup(snapshot.html, "html.parser")
    for tag in soup(list(_HIDDEN_TAGS)):
        tag.decompose()
    return soup.get_text(" ", strip=True)


def _has_co_risk(catalog: PatternCatalog, text: str) -> bool:
    money = catalog.get(ESCALATING_CATEGORY)
    if money and money.match(text):
        return True
    lowered = text.lower()
    return any(phrase in lowered for phrase in CO_RISK_PHRASES)


class ContentKeywordExtractor:
    """Matches text-surface catalog categories against the page text."""

    name = "content_keywords"
    requires_snapshot = True

    def extract(self, context: ExtractionContext) -> list[Issue]:
        text = visible_text(context.snapshot)
        if not text.strip():
            return []

        catalog = context.catalog
        escalate = _has_co_risk(catalog, text)
        issues: list[Issue] = []

        for category in catalog.for_surface(SURFACE_TEXT):
            weight = None
            if (
                escalate
                and category.name == ESCALATED_CATEGORY
                and category.escalated_weight is not None
            ):
                weight = category.escalated_weight
            for term in category.match(text):
                issues.append(category_issue(category, term, weight))

        return issues
