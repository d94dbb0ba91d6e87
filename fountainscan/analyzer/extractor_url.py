"""URL-structure signal extractor."""

from __future__ import annotations

from ..constants import STANDARD_PORTS
from ..utils.domains import decode_idn
from .catalog import SURFACE_HOST, SURFACE_URL
from .models import Issue
from .rules import ExtractionContext, category_issue, structural_issue

MAX_HOST_LABELS = 4

# Host-list categories with their own matching rules.
_HOST_LIST_CATEGORIES = ("suspicious_tlds", "url_shorteners")


def host_contains(hostname: str, needle: str) -> bool:
    """True when `needle` occurs in the host on label boundaries.

    Entries without a dot ("quick-cash") are plain substrings.
    """
    host = (hostname or "").lower().strip(".")
    item = (needle or "").lower().strip(".")
    if not host or not item:
        return False
    if "." not in item:
        return item in host
    return f".{host}.".find(f".{item}.") != -1


def host_has_suffix(hostname: str, suffix: str) -> bool:
    host = (hostname or "").lower().strip(".")
    item = (suffix or "").lower()
    if not item.startswith("."):
        item = "." + item
    return host.endswith(item)


class UrlStructureExtractor:
    """Flags transport, host-shape and URL keyword signals."""

    name = "url_structure"
    requires_snapshot = False

    def extract(self, context: ExtractionContext) -> list[Issue]:
        target = context.target
        catalog = context.catalog
        hostname = target.hostname.lower()
        issues: list[Issue] = []

        def add(issue):
            if issue is not None:
                issues.append(issue)

        if not target.is_https:
            add(structural_issue(catalog, "insecure_transport", "No HTTPS encryption"))

        tlds = catalog.get("suspicious_tlds")
        if tlds:
            for suffix in tlds.keywords:
                if host_has_suffix(hostname, suffix):
                    issues.append(category_issue(tlds, suffix))
                    break

        shorteners = catalog.get("url_shorteners")
        if shorteners:
            for entry in shorteners.keywords:
                if host_contains(hostname, entry):
                    issues.append(category_issue(shorteners, entry))
                    break

        labels = hostname.split(".")
        if len(labels) > MAX_HOST_LABELS:
            add(
                structural_issue(
                    catalog,
                    "excessive_subdomains",
                    f"Excessive subdomains ({len(labels)} labels)",
                )
            )

        if target.port is not None and target.port not in STANDARD_PORTS:
            add(structural_issue(catalog, "nonstandard_port", f"Suspicious port: {target.port}"))

        if any(label.startswith("xn--") for label in labels):
            decoded = decode_idn(hostname)
            description = "Internationalized domain (potential homograph attack)"
            if decoded != hostname:
                description = f"{description}: {decoded}"
            add(structural_issue(catalog, "punycode_host", description))

        for category in catalog.categories:
            if category.name in _HOST_LIST_CATEGORIES:
                continue
            haystacks = []
            if category.applies_to(SURFACE_URL):
                haystacks.append(target.url)
            if category.applies_to(SURFACE_HOST):
                haystacks.append(hostname)
            if not haystacks:
                continue
            for term in category.match(*haystacks):
                issues.append(category_issue(category, term))

        return issues
