"""Link and script signal extractor."""

from __future__ import annotations

from urllib.parse import urlsplit

from .extractor_url import host_contains
from .models import Issue
from .rules import ExtractionContext, category_issue, structural_issue

SUSPICIOUS_LINK_THRESHOLD = 3
OBFUSCATION_MIN_LENGTH = 1000

_LINK_HOST_CATEGORIES = ("suspicious_hosts", "url_shorteners")


def _link_parts(href: str) -> tuple[str, str]:
    try:
        parts = urlsplit(href.strip())
    except ValueError:
        return "", ""
    return (parts.hostname or "").lower(), parts.path.lower()


class LinkScriptExtractor:
    """Outbound links, download links and script heuristics."""

    name = "links_scripts"
    requires_snapshot = True

    def extract(self, context: ExtractionContext) -> list[Issue]:
        snapshot = context.snapshot
        if snapshot is None:
            return []

        catalog = context.catalog
        issues: list[Issue] = []

        host_entries: list[str] = []
        for name in _LINK_HOST_CATEGORIES:
            category = catalog.get(name)
            if category:
                host_entries.extend(category.keywords)

        downloads = catalog.get("download_extensions")
        suspicious_links = 0
        seen_downloads: set[str] = set()

        for href in snapshot.links:
            host, path = _link_parts(href)
            if host and any(host_contains(host, entry) for entry in host_entries):
                suspicious_links += 1

            if downloads and path and href not in seen_downloads:
                for ext in downloads.keywords:
                    if path.endswith(ext.lower()):
                        seen_downloads.add(href)
                        issues.append(category_issue(downloads, href))
                        break

        if suspicious_links > SUSPICIOUS_LINK_THRESHOLD:
            issue = structural_issue(
                catalog,
                "suspicious_hosts",
                f"Multiple suspicious external links ({suspicious_links})",
            )
            if issue:
                issues.append(issue)

        obfuscated = catalog.get("obfuscated_scripts")
        if obfuscated:
            for script in snapshot.scripts:
                content = script.content or ""
                if len(content) <= OBFUSCATION_MIN_LENGTH:
                    continue
                lowered = content.lower()
                if any(marker in lowered for marker in obfuscated.keywords):
                    issues.append(
                        structural_issue(catalog, "obfuscated_scripts", "Obfuscated inline script")
                    )
                    break

        script_hosts = catalog.get("suspicious_script_hosts")
        if script_hosts:
            for script in snapshot.scripts:
                src = (script.src or "").lower()
                if src and any(term in src for term in script_hosts.keywords):
                    issues.append(category_issue(script_hosts, script.src))
                    break

        return issues
