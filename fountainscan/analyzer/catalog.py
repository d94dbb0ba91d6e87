"""Pattern catalog: categorized keyword/regex signals with weights.

The catalog is immutable. Updates (a YAML override, a remote feed) build a
new catalog and swap it into the CatalogStore in one step, so a scan that
captured the previous catalog keeps using it until it finishes.
"""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

import yaml

logger = logging.getLogger(__name__)

# Surfaces a category can be matched against.
SURFACE_URL = "url"
SURFACE_HOST = "host"
SURFACE_TEXT = "text"
SURFACE_FORM = "form"
SURFACE_LINK = "link"
SURFACE_SCRIPT = "script"
SURFACE_IMAGE = "image"
SURFACE_STRUCTURAL = "structural"

KNOWN_SURFACES = frozenset(
    {
        SURFACE_URL,
        SURFACE_HOST,
        SURFACE_TEXT,
        SURFACE_FORM,
        SURFACE_LINK,
        SURFACE_SCRIPT,
        SURFACE_IMAGE,
        SURFACE_STRUCTURAL,
    }
)

_SEPARATOR_RE = re.compile(r"[-_./+=&?:%#]+")
_SPACE_RE = re.compile(r"\s+")


def normalize_haystack(text: str) -> str:
    """Lowercase and collapse URL/identifier separators to single spaces."""
    lowered = (text or "").lower()
    return _SPACE_RE.sub(" ", _SEPARATOR_RE.sub(" ", lowered)).strip()


def _keyword_regex(keyword: str) -> re.Pattern:
    # Trailing digits are allowed (cvv2, ssn1); letters on either side are not.
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z])")


@dataclass(frozen=True)
class PatternCategory:
    """A named group of signals sharing one weight."""

    name: str
    label: str
    weight: int
    keywords: tuple[str, ...] = ()
    patterns: tuple[re.Pattern, ...] = ()
    surfaces: frozenset[str] = frozenset()
    escalated_weight: Optional[int] = None
    _short: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"Category {self.name} must have a positive weight")
        if self.escalated_weight is not None and self.escalated_weight < self.weight:
            raise ValueError(f"Category {self.name} escalated weight is below its base weight")
        # Short terms (ssn, nin, bvn) only match as whole words.
        for keyword in self.keywords:
            normalized = normalize_haystack(keyword)
            if len(normalized) <= 3:
                self._short[keyword] = _keyword_regex(normalized)

    def applies_to(self, surface: str) -> bool:
        return surface in self.surfaces

    def match(self, *haystacks: str) -> list[str]:
        """Return the distinct keywords/patterns found in any haystack, in catalog order."""
        raw = [(h or "").lower() for h in haystacks if h]
        if not raw:
            return []
        normalized = [normalize_haystack(h) for h in raw]

        found: list[str] = []
        for keyword in self.keywords:
            short = self._short.get(keyword)
            if short is not None:
                hit = any(short.search(h) for h in normalized)
            else:
                needle = normalize_haystack(keyword)
                hit = any(keyword.lower() in h for h in raw) or any(needle in h for h in normalized)
            if hit:
                found.append(keyword)

        for pattern in self.patterns:
            if any(pattern.search(h) for h in raw):
                found.append(pattern.pattern)

        return found


@dataclass(frozen=True)
class PatternCatalog:
    """Versioned, read-only collection of pattern categories."""

    version: str
    categories: tuple[PatternCategory, ...]
    _index: dict = field(default_factory=dict, init=False, repr=False, compare=False)

    def __post_init__(self):
        for category in self.categories:
            self._index[category.name] = category

    def get(self, name: str) -> Optional[PatternCategory]:
        return self._index.get(name)

    def for_surface(self, surface: str) -> list[PatternCategory]:
        return [c for c in self.categories if c.applies_to(surface)]

    def names(self) -> list[str]:
        return [c.name for c in self.categories]


def _category(
    name: str,
    label: str,
    weight: int,
    surfaces: Iterable[str],
    keywords: Iterable[str] = (),
    patterns: Iterable[str] = (),
    escalated_weight: Optional[int] = None,
) -> PatternCategory:
    return PatternCategory(
        name=name,
        label=label,
        weight=weight,
        keywords=tuple(keywords),
        patterns=tuple(re.compile(p, re.I) for p in patterns),
        surfaces=frozenset(surfaces),
        escalated_weight=escalated_weight,
    )


DEFAULT_CATALOG_VERSION = "2024.1"

DEFAULT_CATEGORIES: tuple[PatternCategory, ...] = (
    _category("insecure_transport", "No HTTPS encryption", 3, [SURFACE_STRUCTURAL]),
    _category(
        "regional_scam_terms",
        "Nigerian scholarship scam pattern",
        4,
        [SURFACE_URL, SURFACE_HOST],
        patterns=[
            r"nigeria.*scholarship.*free",
            r"free.*scholarship.*nigeria",
            r"guaranteed.*scholarship.*nigeria",
            r"instant.*admission.*nigeria",
            r"free.*university.*admission",
            r"no.*exam.*required.*scholarship",
            r"apply.*now.*scholarship.*nigeria",
            r"100%.*scholarship.*guarantee",
        ],
    ),
    _category(
        "regional_institutions",
        "Nigerian institution reference",
        2,
        [SURFACE_URL, SURFACE_TEXT],
        escalated_weight=4,
        keywords=[
            "nigerian government",
            "federal ministry",
            "federal government",
            "nnpc scholarship",
            "nnpc recruitment",
            "petroleum trust fund",
            "ptf scholarship",
            "ptdf scholarship",
            "nddc scholarship",
            "tetfund",
            "npower",
            "jamb scholarship",
            "jamb result",
            "waec scholarship",
            "waec result",
            "neco scholarship",
            "inec recruitment",
            "cbn recruitment",
            "lagos state scholarship",
            "kano state scholarship",
            "rivers state scholarship",
            "ogun state scholarship",
            "presidential scholarship",
            "governors scholarship",
            "dangote scholarship",
            "mtn scholarship",
            "gtbank scholarship",
            "shell scholarship",
            "chevron scholarship",
            "mobil scholarship",
        ],
    ),
    _category(
        "generic_scam_keywords",
        "Scam keyword",
        2,
        [SURFACE_URL, SURFACE_TEXT],
        keywords=[
            "free scholarship",
            "guaranteed scholarship",
            "instant scholarship",
            "scholarship winner",
            "congratulations scholarship",
            "scholarship alert",
            "scholarship guaranteed",
            "admission assured",
            "free money",
            "instant cash",
            "instant money",
            "easy money",
            "easy cash",
            "get rich quick",
            "make money fast",
            "no experience required",
            "no application fee",
            "processing fee required",
            "congratulations you have won",
            "you are selected",
            "your application is approved",
            "final notice",
            "cash reward",
            "monetary prize",
            "study abroad free",
        ],
    ),
    _category(
        "financial_fraud",
        "Financial fraud pattern",
        3,
        [SURFACE_URL, SURFACE_TEXT],
        keywords=[
            "guaranteed loan",
            "quick loan",
            "no collateral",
            "emergency loan",
            "same day loan",
            "payday loan",
            "cash advance",
            "loan approved",
            "credit repair",
            "debt relief",
        ],
    ),
    _category(
        "work_from_home",
        "Work-from-home scam pattern",
        2,
        [SURFACE_URL, SURFACE_TEXT],
        keywords=[
            "work from home",
            "make money online",
            "earn from home",
            "easy job",
            "online jobs",
            "part time income",
            "remote work opportunity",
        ],
    ),
    _category(
        "investment_scams",
        "Investment scam pattern",
        3,
        [SURFACE_URL, SURFACE_TEXT],
        keywords=[
            "investment opportunity",
            "crypto trading",
            "forex trading",
            "guaranteed returns",
            "high yield",
            "bitcoin investment",
            "trading signals",
            "profit guaranteed",
        ],
    ),
    _category(
        "urgency_pressure",
        "Urgency pressure",
        1,
        [SURFACE_URL, SURFACE_TEXT],
        keywords=[
            "urgent",
            "hurry",
            "limited time",
            "expires soon",
            "act now",
            "immediate",
            "last chance",
            "deadline today",
            "offer expires",
            "dont miss out",
            "while supplies last",
        ],
    ),
    _category(
        "money_transfer_requests",
        "Money request",
        3,
        [SURFACE_TEXT],
        keywords=[
            "send money",
            "transfer funds",
            "processing fee",
            "registration fee",
            "application fee",
            "western union",
            "money gram",
            "moneygram",
            "bitcoin payment",
            "gift card payment",
            "itunes card",
            "google play card",
        ],
    ),
    _category(
        "sensitive_data_requests",
        "Sensitive data request",
        2,
        [SURFACE_TEXT],
        keywords=[
            "bank details required",
            "bank details",
            "account information needed",
            "social security number",
            "national insurance number",
            "passport copy required",
            "atm pin",
            "bank verification number",
            "national identity number",
            "urgent response required",
            "do not tell anyone",
            "keep secret",
        ],
    ),
    _category(
        "phishing_phrasing",
        "Phishing pattern",
        3,
        [SURFACE_URL],
        keywords=[
            "verify account",
            "update information",
            "confirm identity",
            "security alert",
            "account suspended",
            "login required",
            "click here",
            "payment verification",
        ],
        patterns=[
            r"login.*verify.*account",
            r"suspended.*account.*verify",
            r"urgent.*action.*required",
            r"click.*here.*immediately",
        ],
    ),
    _category(
        "suspicious_tlds",
        "Suspicious domain extension",
        2,
        [SURFACE_HOST],
        keywords=[".tk", ".ml", ".ga", ".cf", ".gq", ".pw", ".top", ".click"],
    ),
    _category(
        "url_shorteners",
        "URL shortener",
        2,
        [SURFACE_HOST, SURFACE_LINK],
        keywords=[
            "bit.ly",
            "tinyurl.com",
            "goo.gl",
            "t.co",
            "short.link",
            "tiny.cc",
            "ow.ly",
            "buff.ly",
        ],
    ),
    _category(
        "suspicious_hosts",
        "Suspicious external link",
        2,
        [SURFACE_LINK],
        keywords=[
            "free-scholarship",
            "easy-money",
            "quick-cash",
            "government-grants",
            "federal-aid",
            "student-loans",
        ],
    ),
    _category(
        "sensitive_form_fields",
        "Suspicious form field",
        2,
        [SURFACE_FORM],
        keywords=[
            "bank account",
            "account number",
            "routing number",
            "credit card",
            "card number",
            "cvv",
            "atm pin",
            "ssn",
            "social security",
            "passport number",
            "driver license",
            "drivers license",
            "nin",
            "bvn",
            "mothers maiden name",
            "place of birth",
            "blood type",
            "security question",
            "fingerprint",
        ],
    ),
    _category(
        "financial_instrument_fields",
        "Financial information requested",
        3,
        [SURFACE_FORM],
        keywords=[
            "bank account",
            "account number",
            "routing number",
            "credit card",
            "card number",
            "cvv",
            "atm pin",
            "bvn",
        ],
    ),
    _category(
        "download_extensions",
        "Suspicious download link",
        1,
        [SURFACE_LINK],
        keywords=[".exe", ".zip", ".rar", ".msi", ".apk", ".scr", ".bat", ".dmg", ".jar"],
    ),
    _category(
        "obfuscated_scripts",
        "Obfuscated inline script",
        2,
        [SURFACE_SCRIPT],
        keywords=["eval(", "unescape(", "fromcharcode(", "atob(", "new function("],
    ),
    _category(
        "suspicious_script_hosts",
        "Suspicious script source",
        2,
        [SURFACE_SCRIPT],
        keywords=["malware", "phishing", "scam", "fraud"],
    ),
    _category(
        "official_imagery",
        "Potentially fake official imagery",
        1,
        [SURFACE_IMAGE],
        keywords=["government", "official", "seal", "logo"],
    ),
    _category(
        "suspicious_image_sources",
        "Suspicious image source",
        2,
        [SURFACE_IMAGE],
        keywords=["fake", "scam", "phishing"],
    ),
    _category("excessive_subdomains", "Excessive subdomains", 1, [SURFACE_STRUCTURAL]),
    _category("nonstandard_port", "Suspicious port", 1, [SURFACE_STRUCTURAL]),
    _category(
        "punycode_host",
        "Internationalized domain (potential homograph attack)",
        2,
        [SURFACE_STRUCTURAL],
    ),
    _category("recently_registered", "Recently registered domain", 2, [SURFACE_STRUCTURAL]),
)


def default_catalog() -> PatternCatalog:
    return PatternCatalog(version=DEFAULT_CATALOG_VERSION, categories=DEFAULT_CATEGORIES)


def _coerce_strings(raw) -> list[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [str(item).strip() for item in raw if str(item or "").strip()]


def _coerce_patterns(raw, category_name: str) -> list[re.Pattern]:
    compiled: list[re.Pattern] = []
    for item in _coerce_strings(raw):
        try:
            compiled.append(re.compile(item, re.I))
        except re.error as exc:
            logger.warning("Skipping invalid pattern %r in %s: %s", item, category_name, exc)
    return compiled


def build_catalog(data: dict, base: Optional[PatternCatalog] = None) -> PatternCatalog:
    """Merge a catalog override (parsed YAML/JSON) onto a base catalog.

    Categories are matched by name. Keywords and patterns extend the base
    category unless `replace: true` is set; `enabled: false` drops the
    category. Unknown names add new categories.
    """
    base = base or default_catalog()
    if not isinstance(data, dict):
        return base

    merged: dict[str, PatternCategory] = {c.name: c for c in base.categories}
    order = [c.name for c in base.categories]

    for raw in data.get("categories") or []:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue

        if raw.get("enabled") is False:
            merged.pop(name, None)
            continue

        existing = merged.get(name)
        replace = bool(raw.get("replace", False))

        try:
            weight = int(raw.get("weight", existing.weight if existing else 0))
        except (TypeError, ValueError):
            logger.warning("Skipping category %s: weight is not an integer", name)
            continue

        escalated = raw.get("escalated_weight", existing.escalated_weight if existing else None)
        try:
            escalated = int(escalated) if escalated is not None else None
        except (TypeError, ValueError):
            escalated = None

        surfaces = set(_coerce_strings(raw.get("surfaces"))) or (
            set(existing.surfaces) if existing else set()
        )
        unknown = surfaces - KNOWN_SURFACES
        if unknown:
            logger.warning("Ignoring unknown surfaces for %s: %s", name, sorted(unknown))
            surfaces -= unknown

        keywords = _coerce_strings(raw.get("keywords"))
        patterns = _coerce_patterns(raw.get("patterns"), name)
        if existing and not replace:
            keywords = list(existing.keywords) + [k for k in keywords if k not in existing.keywords]
            patterns = list(existing.patterns) + patterns

        label = str(raw.get("label") or (existing.label if existing else name.replace("_", " ").capitalize()))

        try:
            merged[name] = PatternCategory(
                name=name,
                label=label,
                weight=weight,
                keywords=tuple(keywords),
                patterns=tuple(patterns),
                surfaces=frozenset(surfaces),
                escalated_weight=escalated,
            )
        except ValueError as exc:
            logger.warning("Skipping category %s: %s", name, exc)
            continue

        if name not in order:
            order.append(name)

    version = str(data.get("version") or base.version)
    return PatternCatalog(
        version=version,
        categories=tuple(merged[name] for name in order if name in merged),
    )


def load_catalog(path: Path, base: Optional[PatternCatalog] = None) -> PatternCatalog:
    """Load a catalog override from YAML, falling back to the base catalog."""
    base = base or default_catalog()
    if not path.exists():
        return base

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except Exception as exc:
        logger.warning("Failed to parse %s: %s", path.name, exc)
        return base

    catalog = build_catalog(data, base)
    logger.info("Loaded pattern catalog v%s (%s categories)", catalog.version, len(catalog.categories))
    return catalog


class CatalogStore:
    """Holds the current catalog; replacement swaps the whole structure."""

    def __init__(self, catalog: Optional[PatternCatalog] = None):
        self._catalog = catalog or default_catalog()
        self._lock = threading.Lock()

    @property
    def current(self) -> PatternCatalog:
        return self._catalog

    def replace(self, catalog: PatternCatalog) -> PatternCatalog:
        """Install a new catalog and return the previous one."""
        with self._lock:
            previous = self._catalog
            self._catalog = catalog
        logger.info("Pattern catalog replaced: v%s -> v%s", previous.version, catalog.version)
        return previous
