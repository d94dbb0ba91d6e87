"""Page imagery signal extractor."""

from __future__ import annotations

from .models import Issue
from .rules import ExtractionContext, structural_issue


class ImageryExtractor:
    """Flags official-looking alt text and suspicious image sources, once each."""

    name = "imagery"
    requires_snapshot = True

    def extract(self, context: ExtractionContext) -> list[Issue]:
        snapshot = context.snapshot
        if snapshot is None or not snapshot.images:
            return []

        catalog = context.catalog
        official = catalog.get("official_imagery")
        sources = catalog.get("suspicious_image_sources")
        issues: list[Issue] = []

        if official and any(
            official.match(image.alt) for image in snapshot.images if image.alt
        ):
            issues.append(
                structural_issue(catalog, "official_imagery", "Potentially fake official imagery")
            )

        if sources and any(
            any(term in image.src.lower() for term in sources.keywords)
            for image in snapshot.images
            if image.src
        ):
            issues.append(
                structural_issue(catalog, "suspicious_image_sources", "Suspicious image source")
            )

        return issues
