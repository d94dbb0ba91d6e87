"""Configuration management for FountainScan."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Set

from dotenv import load_dotenv

from .analyzer.aggregator import RiskThresholds
from .analyzer.catalog import PatternCatalog, default_catalog, load_catalog
from .cache import DEFAULT_EXPIRY_SECONDS, DEFAULT_FRESHNESS_SECONDS
from .utils.lists import FEED_FILENAME, read_list

logger = logging.getLogger(__name__)

CATALOG_FILENAME = "catalog.yaml"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() == "true"


@dataclass
class Settings:
    """Engine-facing settings (the part a user can change at runtime)."""

    # Score thresholds (background worker cutoffs)
    low_min: int = 2
    medium_min: int = 5
    high_min: int = 8

    # Verdict cache windows
    freshness_seconds: float = DEFAULT_FRESHNESS_SECONDS
    expiry_seconds: float = DEFAULT_EXPIRY_SECONDS
    sweep_interval_seconds: float = 6 * 3600

    # Reputation probe
    probe_timeout: float = 5.0

    # Presentation toggles
    alerts_enabled: bool = True
    blocking_enabled: bool = False
    realtime_enabled: bool = True

    @property
    def thresholds(self) -> RiskThresholds:
        """Threshold triple; raises ValueError when not strictly ascending."""
        return RiskThresholds(self.low_min, self.medium_min, self.high_min)

    def to_dict(self) -> dict:
        return {
            "low_min": self.low_min,
            "medium_min": self.medium_min,
            "high_min": self.high_min,
            "freshness_seconds": self.freshness_seconds,
            "expiry_seconds": self.expiry_seconds,
            "sweep_interval_seconds": self.sweep_interval_seconds,
            "probe_timeout": self.probe_timeout,
            "alerts_enabled": self.alerts_enabled,
            "blocking_enabled": self.blocking_enabled,
            "realtime_enabled": self.realtime_enabled,
        }


@dataclass
class Config:
    """Service configuration loaded from environment."""

    # HTTP adapter
    host: str = "127.0.0.1"
    port: int = 8765

    log_level: str = "INFO"

    # Report endpoint (empty disables /report submissions)
    report_endpoint: str = ""
    report_timeout: float = 30.0

    # Reputation (RDAP) probe
    rdap_enabled: bool = False
    rdap_base_url: str = "https://rdap.org/domain/"
    rdap_max_age_days: int = 30
    rdap_timeout: float = 10.0

    # Threat feed / catalog refresh
    feed_refresh_hours: float = 24.0

    # Paths
    config_dir: Path = field(default_factory=lambda: Path("./config"))

    settings: Settings = field(default_factory=Settings)

    # Loaded from config_dir
    allowlist: Set[str] = field(default_factory=set)
    denylist: Set[str] = field(default_factory=set)
    threat_feed: Set[str] = field(default_factory=set)
    catalog: PatternCatalog = field(default_factory=default_catalog)

    def __post_init__(self):
        """Ensure the config directory exists and load lists and catalog."""
        self.config_dir = Path(self.config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)
        self._load_lists()
        self.catalog = load_catalog(self.catalog_path, self.catalog)

    @property
    def catalog_path(self) -> Path:
        return self.config_dir / CATALOG_FILENAME

    @property
    def feed_path(self) -> Path:
        return self.config_dir / FEED_FILENAME

    def _load_lists(self):
        """Load allowlist, denylist and threat feed from config files."""
        self.allowlist |= read_list(self.config_dir / "allowlist.txt")
        self.denylist |= read_list(self.config_dir / "denylist.txt")
        self.threat_feed |= read_list(self.feed_path)


def load_settings() -> Settings:
    """Read engine settings from FOUNTAINSCAN_* environment variables."""
    return Settings(
        low_min=int(os.getenv("FOUNTAINSCAN_LOW_MIN", "2")),
        medium_min=int(os.getenv("FOUNTAINSCAN_MEDIUM_MIN", "5")),
        high_min=int(os.getenv("FOUNTAINSCAN_HIGH_MIN", "8")),
        freshness_seconds=float(os.getenv("FOUNTAINSCAN_FRESHNESS_SECONDS", str(DEFAULT_FRESHNESS_SECONDS))),
        expiry_seconds=float(os.getenv("FOUNTAINSCAN_EXPIRY_SECONDS", str(DEFAULT_EXPIRY_SECONDS))),
        sweep_interval_seconds=float(os.getenv("FOUNTAINSCAN_SWEEP_INTERVAL_HOURS", "6")) * 3600,
        probe_timeout=float(os.getenv("FOUNTAINSCAN_PROBE_TIMEOUT", "5")),
        alerts_enabled=_env_bool("FOUNTAINSCAN_ALERTS_ENABLED", True),
        blocking_enabled=_env_bool("FOUNTAINSCAN_BLOCKING_ENABLED", False),
        realtime_enabled=_env_bool("FOUNTAINSCAN_REALTIME_ENABLED", True),
    )


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    return Config(
        host=os.getenv("FOUNTAINSCAN_HOST", "127.0.0.1"),
        port=int(os.getenv("FOUNTAINSCAN_PORT", "8765")),
        log_level=os.getenv("FOUNTAINSCAN_LOG_LEVEL", "INFO").strip().upper() or "INFO",
        report_endpoint=os.getenv("FOUNTAINSCAN_REPORT_ENDPOINT", "").strip(),
        report_timeout=float(os.getenv("FOUNTAINSCAN_REPORT_TIMEOUT", "30")),
        rdap_enabled=_env_bool("FOUNTAINSCAN_RDAP_ENABLED", False),
        rdap_base_url=os.getenv("FOUNTAINSCAN_RDAP_BASE_URL", "https://rdap.org/domain/"),
        rdap_max_age_days=int(os.getenv("FOUNTAINSCAN_RDAP_MAX_AGE_DAYS", "30")),
        rdap_timeout=float(os.getenv("FOUNTAINSCAN_RDAP_TIMEOUT", "10")),
        feed_refresh_hours=float(os.getenv("FOUNTAINSCAN_FEED_REFRESH_HOURS", "24")),
        config_dir=Path(os.getenv("FOUNTAINSCAN_CONFIG_DIR", "./config")),
        settings=load_settings(),
    )


_THRESHOLD_FIELDS = ("low_min", "medium_min", "high_min")
_DURATION_FIELDS = ("freshness_seconds", "expiry_seconds", "sweep_interval_seconds", "probe_timeout")
_TOGGLE_FIELDS = ("alerts_enabled", "blocking_enabled", "realtime_enabled")


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_errors(settings: Settings) -> list[str]:
    errors = []
    for name in _THRESHOLD_FIELDS:
        value = getattr(settings, name)
        if not isinstance(value, int) or isinstance(value, bool):
            errors.append(f"{name} must be an integer")
    for name in _DURATION_FIELDS:
        if not _is_number(getattr(settings, name)):
            errors.append(f"{name} must be a number")
    for name in _TOGGLE_FIELDS:
        if not isinstance(getattr(settings, name), bool):
            errors.append(f"{name} must be true or false")
    return errors


def validate_settings(settings: Settings) -> list[str]:
    """Validate engine settings and return list of error messages.

    Wrongly typed values (e.g. the string "false" for a toggle) are reported
    on their own; range checks only run once every field has the right type.
    """
    errors = _type_errors(settings)
    if errors:
        return errors

    try:
        settings.thresholds
    except ValueError as exc:
        errors.append(f"Invalid thresholds: {exc}")

    if settings.freshness_seconds <= 0:
        errors.append("FOUNTAINSCAN_FRESHNESS_SECONDS must be positive")
    if settings.expiry_seconds <= 0:
        errors.append("FOUNTAINSCAN_EXPIRY_SECONDS must be positive")
    if settings.freshness_seconds > settings.expiry_seconds:
        errors.append("Freshness window cannot exceed the expiry window")
    if settings.sweep_interval_seconds <= 0:
        errors.append("FOUNTAINSCAN_SWEEP_INTERVAL_HOURS must be positive")
    if settings.probe_timeout <= 0:
        errors.append("FOUNTAINSCAN_PROBE_TIMEOUT must be positive")
    return errors


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors = validate_settings(config.settings)

    if not (1 <= config.port <= 65535):
        errors.append(f"FOUNTAINSCAN_PORT out of range: {config.port}")
    if config.feed_refresh_hours <= 0:
        errors.append("FOUNTAINSCAN_FEED_REFRESH_HOURS must be positive")
    if config.rdap_enabled and config.rdap_max_age_days <= 0:
        errors.append("FOUNTAINSCAN_RDAP_MAX_AGE_DAYS must be positive")

    if not config.report_endpoint:
        logger.info("No FOUNTAINSCAN_REPORT_ENDPOINT configured; /report will be disabled")

    return errors
