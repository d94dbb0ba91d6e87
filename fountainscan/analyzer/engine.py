"""Scan engine: the single entry point for scans and state changes."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Iterable, Optional, Union

from ..cache import ScanCache
from ..config import Config, Settings, validate_settings
from ..constants import ListTag
from ..errors import MalformedTargetError
from ..utils.lists import ListStore
from .advice import Advice, advise, should_scan_url
from .aggregator import build_verdict, error_verdict
from .catalog import CatalogStore, PatternCatalog
from .extractor_content import ContentKeywordExtractor
from .extractor_forms import FormFieldExtractor, has_sensitive_form
from .extractor_imagery import ImageryExtractor
from .extractor_links import LinkScriptExtractor
from .extractor_url import UrlStructureExtractor
from .lists import DomainLists
from .metrics import ScanMetrics
from .models import ContentSnapshot, Issue, Target, Verdict
from .reputation import NullReputationProbe, RdapReputationProbe, ReputationExtractor, ReputationProbe
from .rules import ExtractionContext, SignalExtractor

logger = logging.getLogger(__name__)


def default_extractors(reputation: ReputationExtractor) -> list[SignalExtractor]:
    return [
        UrlStructureExtractor(),
        ContentKeywordExtractor(),
        FormFieldExtractor(),
        LinkScriptExtractor(),
        ImageryExtractor(),
        reputation,
    ]


class ScanEngine:
    """Scans URLs (and optional page snapshots) into cached Verdicts.

    At most one computation runs per Target key. Concurrent callers share
    it; a caller that gets cancelled does not cancel the shared work.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        lists: Optional[DomainLists] = None,
        catalog: Union[PatternCatalog, CatalogStore, None] = None,
        probe: Optional[ReputationProbe] = None,
        cache: Optional[ScanCache] = None,
        list_store: Optional[ListStore] = None,
        extractors: Optional[list[SignalExtractor]] = None,
        metrics: Optional[ScanMetrics] = None,
    ):
        self.settings = settings if settings is not None else Settings()
        self._thresholds = self.settings.thresholds
        self.lists = lists if lists is not None else DomainLists()
        self.catalogs = catalog if isinstance(catalog, CatalogStore) else CatalogStore(catalog)
        if cache is None:
            cache = ScanCache(
                freshness_seconds=self.settings.freshness_seconds,
                expiry_seconds=self.settings.expiry_seconds,
            )
        self.cache = cache
        self.probe = probe if probe is not None else NullReputationProbe()
        self.reputation = ReputationExtractor(self.probe, timeout=self.settings.probe_timeout)
        self.extractors: list[SignalExtractor] = (
            extractors if extractors is not None else default_extractors(self.reputation)
        )
        self.list_store = list_store
        self.metrics = metrics if metrics is not None else ScanMetrics()

        self._in_flight: dict[str, tuple[asyncio.Task, bool]] = {}
        self._generation = 0
        self._sweeper: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config: Config, probe: Optional[ReputationProbe] = None) -> "ScanEngine":
        """Build an engine from loaded service configuration."""
        if probe is None and config.rdap_enabled:
            probe = RdapReputationProbe(
                base_url=config.rdap_base_url,
                max_age_days=config.rdap_max_age_days,
                timeout=config.rdap_timeout,
            )
        return cls(
            settings=config.settings,
            lists=DomainLists(config.allowlist, config.denylist, config.threat_feed),
            catalog=config.catalog,
            probe=probe,
            list_store=ListStore(config.config_dir),
        )

    @property
    def catalog(self) -> PatternCatalog:
        return self.catalogs.current

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    async def scan(self, url: str, snapshot: Optional[ContentSnapshot] = None) -> Verdict:
        """Return a Verdict for a URL, from cache when fresh enough."""
        try:
            target = Target.parse(url)
        except MalformedTargetError as exc:
            logger.debug("%s", exc)
            verdict = error_verdict(url, self.catalog.version)
            self.metrics.record_verdict(verdict.risk_level.value)
            return verdict

        wants_content = snapshot is not None
        first_lookup = True

        while True:
            cached = self.cache.get(target.key, record=first_lookup)
            first_lookup = False
            if cached is not None and (cached.content_scanned or not wants_content):
                self.metrics.record_cache(hit=True)
                return cached

            running = self._in_flight.get(target.key)
            if running is None:
                break

            task, with_content = running
            if with_content or not wants_content:
                self.metrics.record_joined()
                return await asyncio.shield(task)

            # A URL-only scan is running; let it settle, then scan with content.
            await asyncio.wait({task})

        self.metrics.record_cache(hit=False)
        task = asyncio.ensure_future(self._compute(target, snapshot))
        self._in_flight[target.key] = (task, wants_content)
        task.add_done_callback(lambda done, key=target.key: self._settle(key, done))
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Task) -> None:
        current = self._in_flight.get(key)
        if current is not None and current[0] is task:
            del self._in_flight[key]
        if not task.cancelled() and task.exception() is not None:
            logger.error("Scan for %s failed: %s", key, task.exception())

    async def _run_extractors(self, context: ExtractionContext) -> tuple[list[Issue], int, int]:
        issues: list[Issue] = []
        attempted = 0
        failed = 0

        for extractor in self.extractors:
            if getattr(extractor, "requires_snapshot", False) and context.snapshot is None:
                continue
            attempted += 1
            name = getattr(extractor, "name", type(extractor).__name__)
            try:
                found = extractor.extract(context)
                if inspect.isawaitable(found):
                    found = await found
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                failed += 1
                self.metrics.record_extractor_failure(name)
                logger.warning(
                    "Extractor %s failed for %s: %s", name, context.target.hostname, exc
                )
                continue
            issues.extend(found or [])

        return issues, attempted, failed

    async def _compute(self, target: Target, snapshot: Optional[ContentSnapshot]) -> Verdict:
        generation = self._generation
        catalog = self.catalogs.current
        thresholds = self._thresholds

        resolution = self.lists.resolve(target.hostname)
        context = ExtractionContext(target=target, catalog=catalog, snapshot=snapshot)
        issues, attempted, failed = await self._run_extractors(context)

        if attempted and failed == attempted:
            verdict = error_verdict(target.url, catalog.version)
        else:
            verdict = build_verdict(
                target,
                issues,
                resolution,
                thresholds,
                content_scanned=snapshot is not None,
                sensitive_form=has_sensitive_form(snapshot, catalog),
                catalog_version=catalog.version,
            )

        # State changed mid-scan: hand the Verdict back, but do not cache it.
        if generation == self._generation:
            self.cache.set(target.key, verdict)

        self.metrics.record_verdict(verdict.risk_level.value, verdict.issues)
        logger.debug(
            "Scanned %s: %s (score %s, %s issues)",
            target.key,
            verdict.risk_level.value,
            verdict.risk_score,
            len(verdict.issues),
        )
        return verdict

    def advise(self, verdict: Verdict) -> Advice:
        return advise(verdict, self.settings)

    def should_scan(self, url: str) -> bool:
        return should_scan_url(url, self.settings)

    # ------------------------------------------------------------------
    # State changes
    # ------------------------------------------------------------------

    def invalidate(self, url: Optional[str] = None) -> int:
        """Drop one cached Verdict (by URL) or all of them."""
        if url is None:
            self._generation += 1
            return self.cache.invalidate_all()
        try:
            target = Target.parse(url)
        except MalformedTargetError:
            return 0
        return 1 if self.cache.invalidate(target.key) else 0

    def add_entry(self, tag: Union[ListTag, str], pattern: str) -> str:
        """Add a list entry; returns the stored (normalized) pattern."""
        list_tag = tag if isinstance(tag, ListTag) else ListTag.from_string(tag)
        normalized = self.lists.add_entry(list_tag, pattern)
        self._persist(list_tag)
        self.invalidate()
        return normalized

    def remove_entry(self, tag: Union[ListTag, str], pattern: str) -> str:
        list_tag = tag if isinstance(tag, ListTag) else ListTag.from_string(tag)
        normalized = self.lists.remove_entry(list_tag, pattern)
        self._persist(list_tag)
        self.invalidate()
        return normalized

    def _persist(self, tag: ListTag) -> None:
        if self.list_store is None:
            return
        try:
            self.list_store.save(tag, self.lists.entries(tag))
        except OSError as exc:
            logger.error("Failed to persist %s list: %s", tag.value, exc)

    def replace_catalog(self, catalog: PatternCatalog) -> None:
        self.catalogs.replace(catalog)
        self.invalidate()

    def replace_feed(self, domains: Iterable[str]) -> None:
        """Swap the threat-feed denylist (feed refresh trigger)."""
        self.lists.replace_feed(domains)
        self.invalidate()

    def update_settings(self, settings: Settings) -> None:
        """Apply new settings; raises ValueError and changes nothing if invalid."""
        errors = validate_settings(settings)
        if errors:
            raise ValueError("; ".join(errors))

        thresholds = settings.thresholds
        thresholds_changed = thresholds != self._thresholds
        self.settings = settings
        self._thresholds = thresholds
        self.cache.configure(settings.freshness_seconds, settings.expiry_seconds)
        self.reputation.timeout = settings.probe_timeout

        if thresholds_changed:
            logger.info(
                "Risk thresholds changed to %s/%s/%s",
                thresholds.low_min,
                thresholds.medium_min,
                thresholds.high_min,
            )
            self.invalidate()

    # ------------------------------------------------------------------
    # Background maintenance
    # ------------------------------------------------------------------

    async def _sweep_loop(self, interval: Optional[float]) -> None:
        while True:
            await asyncio.sleep(interval or self.settings.sweep_interval_seconds)
            try:
                self.cache.sweep()
            except Exception as exc:
                logger.error("Cache sweep failed: %s", exc)

    def start_sweeper(self, interval: Optional[float] = None) -> asyncio.Task:
        """Start periodic cache sweeping (defaults to the settings interval)."""
        if self._sweeper is None or self._sweeper.done():
            self._sweeper = asyncio.ensure_future(self._sweep_loop(interval))
        return self._sweeper

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def close(self) -> None:
        await self.stop_sweeper()
        close = getattr(self.probe, "close", None)
        if close is not None:
            await close()
