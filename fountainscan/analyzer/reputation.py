"""Domain reputation probes and the extractor that consults them.

A probe answers one question: was this domain registered recently? The
engine never depends on a particular source; tests and offline runs inject
the null or static probe, the service uses RDAP.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Protocol

import httpx

from ..errors import ProbeTimeoutError
from ..utils.domains import registered_domain
from .models import Issue
from .rules import ExtractionContext, structural_issue

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 5.0
DEFAULT_MAX_AGE_DAYS = 30
RDAP_BASE_URL = "https://rdap.org/domain/"
DEFAULT_MEMO_TTL_SECONDS = 24 * 3600
DEFAULT_MAX_MEMO_ENTRIES = 1024


class ReputationProbe(Protocol):
    async def is_recently_registered(self, domain: str) -> bool:  # pragma: no cover - interface
        ...


class NullReputationProbe:
    """Probe that never reports a domain as new."""

    async def is_recently_registered(self, domain: str) -> bool:
        return False


class StaticReputationProbe:
    """Probe backed by a fixed set of registrable domains."""

    def __init__(self, domains: Iterable[str] = ()):
        self.domains = {registered_domain(d) for d in domains if registered_domain(d)}
        self.calls = 0

    async def is_recently_registered(self, domain: str) -> bool:
        self.calls += 1
        return registered_domain(domain) in self.domains


def parse_registration_date(data: object) -> Optional[datetime]:
    """Return the RDAP `registration` event date (UTC), if present."""
    if not isinstance(data, dict):
        return None
    events = data.get("events")
    if not isinstance(events, list):
        return None
    for event in events:
        if not isinstance(event, dict):
            continue
        if event.get("eventAction") != "registration":
            continue
        raw = str(event.get("eventDate") or "").strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return None


@dataclass(frozen=True)
class RegistrationLookup:
    domain: str
    rdap_url: str
    registered_at: Optional[datetime] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class RdapReputationProbe:
    """Looks up the registration date of a domain over RDAP.

    Successful lookups are memoized per registrable domain for
    `memo_ttl_seconds`, keeping at most `max_memo_entries` (oldest evicted
    first). Failed lookups are not memoized, so a transient outage does not
    pin a domain as "unknown".
    """

    def __init__(
        self,
        base_url: str = RDAP_BASE_URL,
        max_age_days: int = DEFAULT_MAX_AGE_DAYS,
        timeout: float = 10.0,
        user_agent: str = "FountainScan/1.0",
        client: Optional[httpx.AsyncClient] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        memo_ttl_seconds: float = DEFAULT_MEMO_TTL_SECONDS,
        max_memo_entries: int = DEFAULT_MAX_MEMO_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_memo_entries <= 0:
            raise ValueError("max_memo_entries must be positive")
        self.base_url = base_url if base_url.endswith("/") else base_url + "/"
        self.max_age_days = max_age_days
        self.timeout = timeout
        self.user_agent = user_agent
        self.memo_ttl_seconds = memo_ttl_seconds
        self.max_memo_entries = max_memo_entries
        self._client = client
        self._owns_client = client is None
        self._now = now
        self._clock = clock
        # domain -> (registration date, stored at); insertion ordered
        self._memo: dict[str, tuple[Optional[datetime], float]] = {}
        self._lock = asyncio.Lock()

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, follow_redirects=True)
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def lookup(self, domain: str) -> RegistrationLookup:
        """Fetch the RDAP record for a registrable domain."""
        rdap_url = f"{self.base_url}{domain}"
        client = await self._get_client()
        try:
            resp = await client.get(rdap_url, headers={"User-Agent": self.user_agent})
        except httpx.TimeoutException:
            return RegistrationLookup(domain, rdap_url, error="RDAP lookup timed out")
        except httpx.HTTPError as exc:
            return RegistrationLookup(domain, rdap_url, error=f"RDAP lookup failed: {exc}")

        if resp.status_code != 200:
            return RegistrationLookup(
                domain,
                rdap_url,
                error=f"RDAP lookup failed ({resp.status_code})",
                status_code=int(resp.status_code),
            )

        try:
            data = resp.json()
        except ValueError:
            return RegistrationLookup(
                domain,
                rdap_url,
                error="RDAP returned non-JSON response",
                status_code=int(resp.status_code),
            )

        return RegistrationLookup(domain, rdap_url, registered_at=parse_registration_date(data))

    def _recall(self, domain: str) -> tuple[bool, Optional[datetime]]:
        entry = self._memo.get(domain)
        if entry is None:
            return False, None
        registered_at, stored_at = entry
        if self._clock() - stored_at >= self.memo_ttl_seconds:
            del self._memo[domain]
            return False, None
        return True, registered_at

    def _remember(self, domain: str, registered_at: Optional[datetime]) -> None:
        self._memo.pop(domain, None)
        while len(self._memo) >= self.max_memo_entries:
            del self._memo[next(iter(self._memo))]
        self._memo[domain] = (registered_at, self._clock())

    async def is_recently_registered(self, domain: str) -> bool:
        registered = registered_domain(domain)
        if not registered:
            return False

        async with self._lock:
            cached, registered_at = self._recall(registered)

        if not cached:
            result = await self.lookup(registered)
            if not result.ok:
                logger.debug("RDAP lookup failed for %s: %s", registered, result.error)
                return False
            registered_at = result.registered_at
            async with self._lock:
                self._remember(registered, registered_at)

        if registered_at is None:
            return False
        age_days = (self._now() - registered_at).days
        return age_days < self.max_age_days


class ReputationExtractor:
    """Asks the injected probe about the target's registrable domain.

    Any probe failure, including a timeout, yields no Issue.
    """

    name = "reputation"
    requires_snapshot = False

    def __init__(self, probe: ReputationProbe, timeout: float = DEFAULT_PROBE_TIMEOUT):
        self.probe = probe
        self.timeout = timeout

    async def _ask(self, domain: str) -> bool:
        try:
            return await asyncio.wait_for(
                self.probe.is_recently_registered(domain), timeout=self.timeout
            )
        except asyncio.TimeoutError as exc:
            raise ProbeTimeoutError(domain, self.timeout) from exc

    async def extract(self, context: ExtractionContext) -> list[Issue]:
        domain = registered_domain(context.target.hostname) or context.target.hostname
        try:
            recent = await self._ask(domain)
        except asyncio.CancelledError:
            raise
        except ProbeTimeoutError as exc:
            logger.debug("%s", exc)
            return []
        except Exception as exc:
            logger.debug("Reputation probe failed for %s: %s", domain, exc)
            return []

        if not recent:
            return []
        issue = structural_issue(
            context.catalog, "recently_registered", f"Recently registered domain: {domain}"
        )
        return [issue] if issue else []
