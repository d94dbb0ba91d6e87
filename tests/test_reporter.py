"""Tests for report building and submission."""

import json

import httpx
import pytest

from fountainscan.analyzer.aggregator import build_verdict
from fountainscan.analyzer.models import Issue, Target
from fountainscan.reporter import (
    ConfigurationError,
    ReportStatus,
    ReportSubmitter,
    build_report,
)

ENDPOINT = "https://reports.test/api/report"


def _submitter(handler) -> ReportSubmitter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ReportSubmitter(ENDPOINT, client=client)


class TestBuildReport:
    def test_summarizes_strongest_issues(self):
        issues = [Issue(category=f"c{n}", description=f"issue {n}", weight=n) for n in range(1, 8)]
        verdict = build_verdict(Target.parse("https://scam.example/"), issues)

        report = build_report(verdict)

        assert report["url"] == "https://scam.example/"
        assert report["reason"] == (
            "Risk level high (score 28): issue 7; issue 6; issue 5; issue 4; issue 3"
        )

    def test_explicit_reason_wins(self):
        verdict = build_verdict(Target.parse("https://scam.example/"), [])
        assert build_report(verdict, "  Fake scholarship  ")["reason"] == "Fake scholarship"

    def test_clean_verdict(self):
        verdict = build_verdict(Target.parse("https://example.com/"), [])
        assert build_report(verdict)["reason"] == "Risk level safe (score 0)"


def test_empty_endpoint_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        ReportSubmitter("  ")


class TestSubmit:
    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["method"] = request.method
            return httpx.Response(201, json={"data": [{"id": 42}]})

        result = await _submitter(handler).submit("https://scam.example/", "Fake scholarship")

        assert result.status == ReportStatus.SUBMITTED
        assert result.report_id == "42"
        assert result.submitted_at is not None
        assert seen == {
            "method": "POST",
            "body": {"url": "https://scam.example/", "reason": "Fake scholarship"},
        }

    @pytest.mark.asyncio
    async def test_missing_reason_is_not_sent(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("should not be called")

        result = await _submitter(handler).submit("https://scam.example/", "   ")
        assert result.status == ReportStatus.FAILED
        assert result.message == "Missing url or reason"

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, headers={"Retry-After": "120"})

        result = await _submitter(handler).submit("https://scam.example/", "spam")
        assert result.status == ReportStatus.RATE_LIMITED
        assert result.retry_after == 120

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status_code,message",
        [(400, "API error: 400"), (503, "Server error: 503")],
    )
    async def test_endpoint_errors(self, status_code, message):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status_code)

        result = await _submitter(handler).submit("https://scam.example/", "spam")
        assert result.status == ReportStatus.FAILED
        assert result.message == message

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        result = await _submitter(handler).submit("https://scam.example/", "spam")
        assert result.status == ReportStatus.FAILED
        assert result.message == "Request timed out"

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        result = await _submitter(handler).submit("https://scam.example/", "spam")
        assert result.status == ReportStatus.FAILED
        assert result.message.startswith("Request failed")
