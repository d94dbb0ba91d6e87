"""Scan data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from ..constants import ListResolution, RiskLevel
from ..errors import MalformedTargetError

_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class Target:
    """A URL under evaluation plus the parts derived from it."""

    url: str
    hostname: str
    scheme: str
    port: Optional[int]
    key: str

    @classmethod
    def parse(cls, url: str) -> "Target":
        """Parse a URL string, raising MalformedTargetError when unusable."""
        raw = (url or "").strip()
        if not raw:
            raise MalformedTargetError(url, "empty URL")
        if any(ch.isspace() for ch in raw):
            raise MalformedTargetError(url, "whitespace in URL")

        try:
            parsed = urlsplit(raw)
            port = parsed.port
        except ValueError as exc:
            raise MalformedTargetError(url, str(exc)) from exc

        scheme = parsed.scheme.lower()
        if not scheme:
            raise MalformedTargetError(url, "missing scheme")
        if scheme not in _DEFAULT_PORTS:
            raise MalformedTargetError(url, f"unsupported scheme {scheme!r}")

        hostname = (parsed.hostname or "").strip(".")
        if not hostname:
            raise MalformedTargetError(url, "missing host")

        netloc = f"[{hostname}]" if ":" in hostname else hostname
        if port is not None and port != _DEFAULT_PORTS.get(scheme):
            netloc = f"{netloc}:{port}"

        key = urlunsplit((scheme, netloc, parsed.path or "/", parsed.query, ""))
        return cls(url=raw, hostname=hostname, scheme=scheme, port=port, key=key)

    @property
    def is_https(self) -> bool:
        return self.scheme == "https"


@dataclass(frozen=True)
class Issue:
    """A single weighted finding produced by one extractor."""

    category: str
    description: str
    weight: int

    def __post_init__(self):
        if self.weight < 0:
            raise ValueError(f"Issue weight must be non-negative, got {self.weight}")

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "description": self.description,
            "weight": self.weight,
        }


@dataclass(frozen=True)
class FormInput:
    """An input-like element (input, textarea, select) inside a form."""

    name: str = ""
    placeholder: str = ""
    id: str = ""
    type: str = ""
    label: str = ""

    @property
    def haystack(self) -> str:
        return " ".join(p for p in (self.name, self.placeholder, self.id, self.label) if p)

    @property
    def identifier(self) -> str:
        return self.name or self.id or self.placeholder or self.label or "unnamed field"


@dataclass(frozen=True)
class FormSnapshot:
    action: str = ""
    inputs: tuple[FormInput, ...] = ()


@dataclass(frozen=True)
class ImageRef:
    src: str = ""
    alt: str = ""


@dataclass(frozen=True)
class ScriptRef:
    src: str = ""
    content: str = ""


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _coerce_input(raw: Any) -> FormInput:
    if isinstance(raw, FormInput):
        return raw
    if isinstance(raw, dict):
        return FormInput(
            name=_text(raw.get("name")),
            placeholder=_text(raw.get("placeholder")),
            id=_text(raw.get("id")),
            type=_text(raw.get("type")),
            label=_text(raw.get("label")),
        )
    return FormInput(name=_text(raw))


def _as_list(value: Any, name: str) -> list | tuple:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"snapshot.{name} must be a list")
    return value


def _coerce_form(raw: Any) -> FormSnapshot:
    if isinstance(raw, FormSnapshot):
        return raw
    if isinstance(raw, dict):
        inputs = tuple(_coerce_input(item) for item in _as_list(raw.get("inputs"), "forms.inputs"))
        return FormSnapshot(action=_text(raw.get("action")), inputs=inputs)
    # A bare list of inputs is treated as one form.
    if isinstance(raw, (list, tuple)):
        return FormSnapshot(inputs=tuple(_coerce_input(item) for item in raw))
    raise ValueError("snapshot.forms entries must be objects or lists of inputs")


def _coerce_link(raw: Any) -> str:
    if isinstance(raw, dict):
        return _text(raw.get("href"))
    return _text(raw)


def _coerce_image(raw: Any) -> ImageRef:
    if isinstance(raw, ImageRef):
        return raw
    if isinstance(raw, dict):
        return ImageRef(src=_text(raw.get("src")), alt=_text(raw.get("alt")))
    return ImageRef(src=_text(raw))


def _coerce_script(raw: Any) -> ScriptRef:
    if isinstance(raw, ScriptRef):
        return raw
    if isinstance(raw, dict):
        return ScriptRef(src=_text(raw.get("src")), content=_text(raw.get("content")))
    return ScriptRef(content=_text(raw))


@dataclass(frozen=True)
class ContentSnapshot:
    """Page content captured by the host environment around a Target.

    `text` is the page's visible text. When only `html` is supplied the
    content extractor derives the visible text from it.
    """

    text: str = ""
    html: str = ""
    forms: tuple[FormSnapshot, ...] = ()
    links: tuple[str, ...] = ()
    images: tuple[ImageRef, ...] = ()
    scripts: tuple[ScriptRef, ...] = ()

    @classmethod
    def from_dict(cls, data: dict | None) -> "ContentSnapshot":
        """Build a snapshot from a loosely-typed transport payload.

        Raises ValueError when the payload (or one of its collections) has
        the wrong shape.
        """
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("snapshot must be an object")
        links = (_coerce_link(x) for x in _as_list(data.get("links"), "links"))
        return cls(
            text=_text(data.get("text")),
            html=_text(data.get("html")),
            forms=tuple(_coerce_form(f) for f in _as_list(data.get("forms"), "forms")),
            links=tuple(link for link in links if link),
            images=tuple(_coerce_image(i) for i in _as_list(data.get("images"), "images")),
            scripts=tuple(_coerce_script(s) for s in _as_list(data.get("scripts"), "scripts")),
        )


@dataclass(frozen=True)
class Verdict:
    """Aggregated outcome of a scan for one Target at one point in time."""

    url: str
    risk_score: int
    risk_level: RiskLevel
    issues: tuple[Issue, ...] = ()
    computed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolution: ListResolution = ListResolution.NONE
    content_scanned: bool = False
    sensitive_form: bool = False
    catalog_version: str = ""

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "risk_score": self.risk_score,
            "risk_level": self.risk_level.value,
            "issues": [issue.to_dict() for issue in self.issues],
            "computed_at": self.computed_at.isoformat(),
            "resolution": self.resolution.value,
            "content_scanned": self.content_scanned,
            "sensitive_form": self.sensitive_form,
            "catalog_version": self.catalog_version,
        }
