"""Suspicious-site report submission for FountainScan.

The engine never submits reports itself. A host builds a report from a
Verdict (`build_report`) and hands it to a `ReportSubmitter`, which POSTs
`{"url", "reason"}` to the configured endpoint.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

import httpx

from ..analyzer.models import Verdict

logger = logging.getLogger(__name__)

MAX_REASON_ISSUES = 5


class ReportStatus(str, Enum):
    """Status of a report submission."""

    SUBMITTED = "submitted"  # Endpoint accepted the report
    FAILED = "failed"  # Validation, transport or endpoint error
    RATE_LIMITED = "rate_limited"  # Hit rate limit, retry later


@dataclass
class ReportResult:
    """Result of a report submission attempt."""

    status: ReportStatus
    url: str = ""
    report_id: Optional[str] = None
    message: Optional[str] = None
    response_data: Optional[dict] = None
    retry_after: Optional[int] = None  # Seconds to wait before retry
    submitted_at: Optional[datetime] = None

    def __post_init__(self):
        if self.status == ReportStatus.SUBMITTED and not self.submitted_at:
            self.submitted_at = datetime.now(timezone.utc)

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "url": self.url,
            "report_id": self.report_id,
            "message": self.message,
            "retry_after": self.retry_after,
            "submitted_at": self.submitted_at.isoformat() if self.submitted_at else None,
        }


class ReporterError(Exception):
    """Base exception for reporter errors."""

    pass


class ConfigurationError(ReporterError):
    """Reporter not properly configured."""

    pass


def build_report(verdict: Verdict, reason: Optional[str] = None) -> dict:
    """Build the `{url, reason}` payload for a Verdict.

    An explicit reason wins; otherwise the level, score and strongest
    Issues are summarized.
    """
    text = (reason or "").strip()
    if not text:
        strongest = sorted(verdict.issues, key=lambda issue: issue.weight, reverse=True)
        details = "; ".join(issue.description for issue in strongest[:MAX_REASON_ISSUES])
        text = f"Risk level {verdict.risk_level.value} (score {verdict.risk_score})"
        if details:
            text = f"{text}: {details}"
    return {"url": verdict.url, "reason": text}


class ReportSubmitter:
    """
    POSTs suspicious-site reports to an HTTP endpoint.

    Provides:
    - Shared httpx client with sensible defaults
    - Standard error handling (rate limits, timeouts, endpoint errors)
    """

    user_agent: str = "FountainScan/1.0"

    def __init__(
        self,
        endpoint: str,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not (endpoint or "").strip():
            raise ConfigurationError("Report endpoint is not configured")
        self.endpoint = endpoint.strip()
        self.timeout_seconds = timeout_seconds
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                headers={"User-Agent": self.user_agent},
                follow_redirects=True,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def submit(self, url: str, reason: str) -> ReportResult:
        """Submit a report; never raises for transport or endpoint errors."""
        url = (url or "").strip()
        reason = (reason or "").strip()
        if not url or not reason:
            return ReportResult(
                status=ReportStatus.FAILED,
                url=url,
                message="Missing url or reason",
            )

        try:
            client = await self._get_client()
            resp = await client.post(self.endpoint, json={"url": url, "reason": reason})
            resp.raise_for_status()

        except httpx.TimeoutException:
            return ReportResult(status=ReportStatus.FAILED, url=url, message="Request timed out")

        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code

            if status_code == 429:
                retry_after = int(e.response.headers.get("Retry-After", 60))
                return ReportResult(
                    status=ReportStatus.RATE_LIMITED,
                    url=url,
                    message=f"Rate limited (retry after {retry_after}s)",
                    retry_after=retry_after,
                )

            if 400 <= status_code < 500:
                return ReportResult(
                    status=ReportStatus.FAILED,
                    url=url,
                    message=f"API error: {status_code}",
                    response_data={"status_code": status_code},
                )

            return ReportResult(
                status=ReportStatus.FAILED,
                url=url,
                message=f"Server error: {status_code}",
                response_data={"status_code": status_code},
            )

        except httpx.HTTPError as e:
            logger.warning("Report submission to %s failed: %s", self.endpoint, e)
            return ReportResult(status=ReportStatus.FAILED, url=url, message=f"Request failed: {e}")

        data: dict = {}
        try:
            payload = resp.json()
            if isinstance(payload, dict):
                data = payload
        except ValueError:
            pass

        report_id = data.get("id")
        if report_id is None and isinstance(data.get("data"), list) and data["data"]:
            first = data["data"][0]
            if isinstance(first, dict):
                report_id = first.get("id")

        logger.info("Report submitted for %s", url)
        return ReportResult(
            status=ReportStatus.SUBMITTED,
            url=url,
            report_id=str(report_id) if report_id is not None else None,
            message="Report submitted",
            response_data=data or None,
        )
