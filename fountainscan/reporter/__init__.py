"""Report submission for FountainScan."""

from .base import (
    ConfigurationError,
    ReportResult,
    ReportStatus,
    ReportSubmitter,
    ReporterError,
    build_report,
)

__all__ = [
    "ConfigurationError",
    "ReportResult",
    "ReportStatus",
    "ReportSubmitter",
    "ReporterError",
    "build_report",
]
