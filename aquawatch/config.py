"""
Configuration for AquaWatch Analytics
=====================================
Runtime settings for the analytics engine, the result cache and the
recompute scheduler. Values default from ``AQUAWATCH_*`` environment
variables. Sets up the logging configuration as well.
"""

import os
from contextlib import suppress
from dataclasses import dataclass, field

from aquawatch.constants import MAX_TOLERANCE_MINUTES
from aquawatch.domain.exceptions import ConfigurationError

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


@dataclass
class AnalyticsConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("AQUAWATCH_ENV", "development"))
    database_path: str = field(default_factory=lambda: os.getenv("AQUAWATCH_DATABASE_PATH", "database/aquawatch.db"))

    DEBUG: bool = field(default_factory=lambda: _env_bool("AQUAWATCH_DEBUG", False))
    log_level: str = field(default_factory=lambda: os.getenv("AQUAWATCH_LOG_LEVEL", "INFO"))
    log_path: str = field(default_factory=lambda: os.getenv("AQUAWATCH_LOG_PATH", "logs/aquawatch.log"))

    # Result cache
    cache_max_entries: int = field(default_factory=lambda: _env_int("AQUAWATCH_CACHE_MAX_ENTRIES", 1000))
    cache_default_ttl_seconds: int = field(default_factory=lambda: _env_int("AQUAWATCH_CACHE_TTL", 300))
    cache_single_flight: bool = field(default_factory=lambda: _env_bool("AQUAWATCH_CACHE_SINGLE_FLIGHT", False))

    # Engines
    comparison_tolerance_minutes: int = field(
        default_factory=lambda: _env_int("AQUAWATCH_COMPARISON_TOLERANCE_MINUTES", 5)
    )
    analytics_window_days: int = field(default_factory=lambda: _env_int("AQUAWATCH_ANALYTICS_WINDOW_DAYS", 90))
    store_timeout_seconds: float = field(
        default_factory=lambda: _env_float("AQUAWATCH_STORE_TIMEOUT_SECONDS", 30.0)
    )

    # Recompute scheduler
    scheduler_enabled: bool = field(default_factory=lambda: _env_bool("AQUAWATCH_SCHEDULER_ENABLED", True))
    scheduler_tick_seconds: float = field(default_factory=lambda: _env_float("AQUAWATCH_SCHEDULER_TICK", 1.0))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.log_level = self.log_level.upper()
        if self.log_level not in LOG_LEVELS:
            raise ConfigurationError(
                "log_level must be one of " + ", ".join(LOG_LEVELS),
                detail={"log_level": self.log_level},
            )
        if self.cache_max_entries < 1:
            raise ConfigurationError(
                "cache_max_entries must be at least 1",
                detail={"cache_max_entries": self.cache_max_entries},
            )
        if self.cache_default_ttl_seconds <= 0:
            raise ConfigurationError(
                "cache_default_ttl_seconds must be positive",
                detail={"cache_default_ttl_seconds": self.cache_default_ttl_seconds},
            )
        if not 0 < self.comparison_tolerance_minutes <= MAX_TOLERANCE_MINUTES:
            raise ConfigurationError(
                f"comparison_tolerance_minutes must be in (0, {MAX_TOLERANCE_MINUTES}]",
                detail={"comparison_tolerance_minutes": self.comparison_tolerance_minutes},
            )
        if self.analytics_window_days <= 0:
            raise ConfigurationError(
                "analytics_window_days must be positive",
                detail={"analytics_window_days": self.analytics_window_days},
            )
        if self.store_timeout_seconds <= 0:
            raise ConfigurationError(
                "store_timeout_seconds must be positive",
                detail={"store_timeout_seconds": self.store_timeout_seconds},
            )
        if self.scheduler_tick_seconds <= 0:
            raise ConfigurationError(
                "scheduler_tick_seconds must be positive",
                detail={"scheduler_tick_seconds": self.scheduler_tick_seconds},
            )


def setup_logging(debug: bool = False, log_path: str = "logs/aquawatch.log", level: str = "INFO") -> None:
    """Setup logging configuration; ``debug`` forces DEBUG over ``level``."""
    import logging
    import sys
    from logging.handlers import RotatingFileHandler

    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(log_level)

    # Avoid adding duplicates when setup_logging is called multiple times
    has_console = any(getattr(h, "name", "") == "aquawatch_console" for h in root.handlers)
    has_file = any(getattr(h, "name", "") == "aquawatch_file" for h in root.handlers)
    added_handler = False

    stream = sys.stdout
    with suppress(AttributeError, ValueError):
        stream.reconfigure(encoding="utf-8", errors="replace")
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    if not has_console:
        console_handler = logging.StreamHandler(stream=stream)
        console_handler.name = "aquawatch_console"
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)
        added_handler = True

    if not has_file:
        log_dir = os.path.dirname(log_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.name = "aquawatch_file"
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        added_handler = True

    # Ensure handler levels follow the desired log level
    for handler in root.handlers:
        if getattr(handler, "name", "") in {"aquawatch_console", "aquawatch_file"}:
            handler.setLevel(log_level)

    if added_handler:
        root.info("Logging initialized at level: %s", logging.getLevelName(log_level))


def load_config() -> AnalyticsConfig:
    """Helper for callers to load and validate configuration."""
    return AnalyticsConfig()
