"""HTTP transport adapter for the scan engine."""

from __future__ import annotations

import dataclasses
import json
import logging
from typing import Optional

from aiohttp import web

from .analyzer.engine import ScanEngine
from .analyzer.models import ContentSnapshot
from .constants import ListTag
from .errors import InvalidDomainError, NotFoundError
from .reporter import ReportStatus, ReportSubmitter

logger = logging.getLogger(__name__)

_CORS = {"Access-Control-Allow-Origin": "*"}


def _error(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status, headers=_CORS)


async def _read_json(request: web.Request) -> Optional[dict]:
    try:
        data = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


class ScanServer:
    """Serves scans, list management, reports, health and metrics."""

    def __init__(
        self,
        engine: ScanEngine,
        host: str = "127.0.0.1",
        port: int = 8765,
        reporter: Optional[ReportSubmitter] = None,
    ):
        self.engine = engine
        self.host = host
        self.port = port
        self.reporter = reporter
        self._runner: web.AppRunner | None = None
        self._site: web.TCPSite | None = None

        self._app = web.Application()
        self._app.router.add_post("/scan", self._handle_scan)
        self._app.router.add_get("/lists", self._handle_lists)
        self._app.router.add_post("/lists/{tag}", self._handle_add_entry)
        self._app.router.add_delete("/lists/{tag}", self._handle_remove_entry)
        self._app.router.add_put("/feed", self._handle_feed)
        self._app.router.add_get("/settings", self._handle_get_settings)
        self._app.router.add_post("/settings", self._handle_update_settings)
        self._app.router.add_post("/report", self._handle_report)
        self._app.router.add_get("/healthz", self._handle_health)
        self._app.router.add_get("/metrics", self._handle_metrics)

    async def start(self) -> None:
        """Start the HTTP server."""
        if self._runner:
            return
        self._runner = web.AppRunner(self._app)
        await self._runner.setup()
        self._site = web.TCPSite(self._runner, self.host, self.port)
        await self._site.start()
        logger.info("Scan server listening on %s:%s", self.host, self.port)

    async def stop(self) -> None:
        """Stop the HTTP server."""
        if self._site:
            await self._site.stop()
        if self._runner:
            await self._runner.cleanup()
        self._runner = None
        self._site = None

    async def _handle_scan(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        if data is None:
            return _error(400, "Expected a JSON object")
        url = str(data.get("url") or "").strip()
        if not url:
            return _error(400, "Missing url")

        snapshot = None
        if data.get("snapshot") is not None:
            try:
                snapshot = ContentSnapshot.from_dict(data["snapshot"])
            except ValueError as exc:
                return _error(400, str(exc))

        verdict = await self.engine.scan(url, snapshot)
        payload = verdict.to_dict()
        payload["advice"] = self.engine.advise(verdict).to_dict()
        return web.json_response(payload, headers=_CORS)

    async def _handle_lists(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.lists.to_dict(), headers=_CORS)

    def _tag(self, request: web.Request) -> Optional[ListTag]:
        try:
            return ListTag.from_string(request.match_info.get("tag"))
        except ValueError:
            return None

    async def _handle_add_entry(self, request: web.Request) -> web.Response:
        tag = self._tag(request)
        if tag is None:
            return _error(400, f"Unknown list: {request.match_info.get('tag')}")
        data = await _read_json(request)
        pattern = str((data or {}).get("pattern") or "").strip()
        if not pattern:
            return _error(400, "Missing pattern")
        try:
            stored = self.engine.add_entry(tag, pattern)
        except InvalidDomainError as exc:
            return _error(400, str(exc))
        return web.json_response({"status": "ok", "list": tag.value, "pattern": stored}, headers=_CORS)

    async def _handle_remove_entry(self, request: web.Request) -> web.Response:
        tag = self._tag(request)
        if tag is None:
            return _error(400, f"Unknown list: {request.match_info.get('tag')}")
        pattern = (request.query.get("pattern") or "").strip()
        if not pattern:
            return _error(400, "Missing pattern")
        try:
            removed = self.engine.remove_entry(tag, pattern)
        except NotFoundError as exc:
            return _error(404, str(exc))
        return web.json_response({"status": "ok", "list": tag.value, "pattern": removed}, headers=_CORS)

    async def _handle_feed(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        domains = (data or {}).get("domains")
        if not isinstance(domains, list):
            return _error(400, "Expected {\"domains\": [...]}")
        self.engine.replace_feed(str(d) for d in domains)
        return web.json_response({"status": "ok", "feed": len(self.engine.lists.feed)}, headers=_CORS)

    async def _handle_get_settings(self, request: web.Request) -> web.Response:
        return web.json_response(self.engine.settings.to_dict(), headers=_CORS)

    async def _handle_update_settings(self, request: web.Request) -> web.Response:
        data = await _read_json(request)
        if data is None:
            return _error(400, "Expected a JSON object")
        known = {f.name for f in dataclasses.fields(self.engine.settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            return _error(400, f"Unknown settings: {', '.join(unknown)}")
        try:
            settings = dataclasses.replace(self.engine.settings, **data)
            self.engine.update_settings(settings)
        except (TypeError, ValueError) as exc:
            return _error(400, str(exc))
        return web.json_response(self.engine.settings.to_dict(), headers=_CORS)

    async def _handle_report(self, request: web.Request) -> web.Response:
        data = await _read_json(request) or {}
        url = str(data.get("url") or "").strip()
        reason = str(data.get("reason") or "").strip()
        if not url or not reason:
            return _error(400, "Missing url or reason")
        if self.reporter is None:
            return _error(503, "Reporting is not configured")

        result = await self.reporter.submit(url, reason)
        status = 200
        if result.status == ReportStatus.RATE_LIMITED:
            status = 429
        elif result.status == ReportStatus.FAILED:
            status = 502
        return web.json_response(result.to_dict(), status=status, headers=_CORS)

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.json_response(
            {
                "status": "ok",
                "catalog_version": self.engine.catalog.version,
                "cache_entries": len(self.engine.cache),
            },
            headers=_CORS,
        )

    async def _handle_metrics(self, request: web.Request) -> web.Response:
        """Expose counters as text metrics (Prometheus-ish)."""
        data = self.engine.metrics.snapshot()
        lines = [
            f"fountainscan_uptime_seconds {data['uptime_seconds']}",
            f"fountainscan_scans_total {data['total_scans']}",
            f"fountainscan_cache_hits {data['cache']['hits']}",
            f"fountainscan_cache_misses {data['cache']['misses']}",
            f"fountainscan_cache_entries {len(self.engine.cache)}",
            f"fountainscan_joined_in_flight {data['joined_in_flight']}",
        ]
        for level, count in sorted(data["verdicts"].items()):
            lines.append(f'fountainscan_verdicts{{level="{level}"}} {count}')
        for category, count in sorted(data["categories"].items()):
            lines.append(f'fountainscan_issues{{category="{category}"}} {count}')
        for name, count in sorted(data["extractor_failures"].items()):
            lines.append(f'fountainscan_extractor_failures{{extractor="{name}"}} {count}')
        return web.Response(text="\n".join(lines) + "\n")
