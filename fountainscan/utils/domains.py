"""Domain normalization and matching utilities."""

from __future__ import annotations

import re

import idna
import tldextract

_SCHEME_RE = re.compile(r"^[a-z][a-z0-9+.\-]*://")
_LABEL_RE = re.compile(r"^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$")
_TLD_RE = re.compile(r"^[a-z]{2,63}$")

MAX_DOMAIN_LENGTH = 253

# Bundled public suffix snapshot only; no network fetch at runtime.
_extract = tldextract.TLDExtract(suffix_list_urls=())


def normalize_pattern(value: str) -> str:
    """
    Normalize a hostname or list pattern to its matching key.

    - Lowercase
    - Strip scheme, userinfo, path/query/fragment and port
    - Strip leading "www." and surrounding dots
    - Preserve a leading "*." wildcard
    """
    raw = (value or "").strip().lower()
    if not raw:
        return ""

    raw = _SCHEME_RE.sub("", raw)
    for sep in ("/", "?", "#"):
        raw = raw.split(sep, 1)[0]
    if "@" in raw:
        raw = raw.rsplit("@", 1)[1]

    wildcard = raw.startswith("*.")
    host = raw[2:] if wildcard else raw

    if host.count(":") == 1:
        host = host.split(":", 1)[0]
    host = host.strip().strip(".")

    if host.startswith("www.") and len(host) > 4:
        host = host[4:]

    if not host:
        return ""
    return f"*.{host}" if wildcard else host


def domain_matches(hostname: str, pattern: str) -> bool:
    """
    Check whether a hostname is covered by a list pattern.

    "example.com" matches itself and any proper subdomain.
    "*.example.com" matches the bare base domain and every subdomain.
    """
    host = normalize_pattern(hostname)
    pat = normalize_pattern(pattern)
    if not host or not pat:
        return False

    if pat.startswith("*."):
        base = pat[2:]
        return host == base or host.endswith("." + base)

    return host == pat or host.endswith("." + pat)


def is_valid_domain(pattern: str) -> bool:
    """Validate a list entry (bare domain or "*."-prefixed wildcard)."""
    candidate = normalize_pattern(pattern)
    if candidate.startswith("*."):
        candidate = candidate[2:]
    if not candidate or len(candidate) > MAX_DOMAIN_LENGTH:
        return False

    labels = candidate.split(".")
    if len(labels) < 2:
        return False
    if any(not _LABEL_RE.match(label) for label in labels):
        return False
    return bool(_TLD_RE.match(labels[-1]))


def decode_idn(hostname: str) -> str:
    """Decode punycode labels to Unicode (best-effort)."""
    host = (hostname or "").strip().lower()
    if "xn--" not in host:
        return host
    try:
        return idna.decode(host)
    except (idna.IDNAError, UnicodeError):
        return host


def registered_domain(value: str) -> str:
    """Return the registrable domain for a host or URL (best-effort)."""
    host = normalize_pattern(value)
    if host.startswith("*."):
        host = host[2:]
    if not host:
        return ""
    extracted = _extract(host)
    if extracted.domain and extracted.suffix:
        return f"{extracted.domain}.{extracted.suffix}".lower()
    return host
