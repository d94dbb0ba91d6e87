"""Tests for risk scoring, classification and verdict building."""

import pytest

from fountainscan.analyzer.aggregator import (
    RiskThresholds,
    build_verdict,
    classify,
    error_verdict,
    merge_issues,
    score,
)
from fountainscan.analyzer.models import Issue, Target
from fountainscan.constants import LEVEL_RANK, ListResolution, RiskLevel


def _issue(category="c", description="d", weight=1):
    return Issue(category=category, description=description, weight=weight)


class TestClassify:
    @pytest.mark.parametrize(
        "value,expected",
        [
            (0, RiskLevel.SAFE),
            (1, RiskLevel.SAFE),
            (2, RiskLevel.LOW),
            (4, RiskLevel.LOW),
            (5, RiskLevel.MEDIUM),
            (7, RiskLevel.MEDIUM),
            (8, RiskLevel.HIGH),
            (40, RiskLevel.HIGH),
        ],
    )
    def test_default_bands(self, value, expected):
        assert classify(value) == expected

    def test_monotonic(self):
        ranks = [LEVEL_RANK[classify(value)] for value in range(21)]
        assert ranks == sorted(ranks)

    def test_custom_thresholds(self):
        thresholds = RiskThresholds(low_min=1, medium_min=3, high_min=10)
        assert classify(1, thresholds) == RiskLevel.LOW
        assert classify(9, thresholds) == RiskLevel.MEDIUM
        assert classify(10, thresholds) == RiskLevel.HIGH


class TestRiskThresholds:
    @pytest.mark.parametrize(
        "low,medium,high",
        [(0, 5, 8), (5, 5, 8), (2, 8, 5), (3, 2, 8)],
    )
    def test_invalid(self, low, medium, high):
        with pytest.raises(ValueError):
            RiskThresholds(low_min=low, medium_min=medium, high_min=high)

    def test_to_dict(self):
        assert RiskThresholds().to_dict() == {"low_min": 2, "medium_min": 5, "high_min": 8}


class TestMergeIssues:
    def test_duplicates_collapse_to_highest_weight(self):
        issues = [
            _issue("a", "one", 1),
            _issue("b", "two", 2),
            _issue("a", "one", 3),
        ]
        merged = merge_issues(issues)
        assert merged == [_issue("a", "one", 3), _issue("b", "two", 2)]

    def test_distinct_descriptions_kept(self):
        issues = [_issue("a", "one"), _issue("a", "two")]
        assert merge_issues(issues) == issues


def test_issue_rejects_negative_weight():
    with pytest.raises(ValueError):
        Issue(category="c", description="d", weight=-1)


def test_score_sums_weights():
    assert score([]) == 0
    assert score([_issue(weight=2), _issue(description="x", weight=3)]) == 5


class TestBuildVerdict:
    def test_heuristic_level(self):
        target = Target.parse("http://free-scholarship-nigeria.com")
        issues = [_issue("a", "one", 3), _issue("b", "two", 4), _issue("c", "three", 2)]
        verdict = build_verdict(target, issues, catalog_version="2024.1")

        assert verdict.risk_score == 9
        assert verdict.risk_level == RiskLevel.HIGH
        assert verdict.catalog_version == "2024.1"
        assert verdict.resolution == ListResolution.NONE

    def test_allow_override_keeps_issues(self):
        target = Target.parse("https://example.com/")
        issues = [_issue("a", "one", 5), _issue("b", "two", 4)]
        verdict = build_verdict(target, issues, ListResolution.ALLOW)

        assert verdict.risk_level == RiskLevel.OVERRIDE_SAFE
        assert verdict.risk_score == 9
        assert len(verdict.issues) == 2

    def test_deny_override_on_clean_page(self):
        target = Target.parse("https://example.com/")
        verdict = build_verdict(target, [], ListResolution.DENY)

        assert verdict.risk_level == RiskLevel.OVERRIDE_BLOCKED
        assert verdict.risk_score == 0

    def test_to_dict(self):
        target = Target.parse("https://example.com/")
        data = build_verdict(target, [_issue("a", "one", 2)], content_scanned=True).to_dict()

        assert data["risk_level"] == "low"
        assert data["resolution"] == "none"
        assert data["content_scanned"] is True
        assert data["issues"] == [{"category": "a", "description": "one", "weight": 2}]


def test_error_verdict_is_neutral():
    verdict = error_verdict("not a url", "2024.1")
    assert verdict.risk_level == RiskLevel.ERROR
    assert verdict.risk_score == 0
    assert verdict.issues == ()
    assert verdict.url == "not a url"
