"""
Application Constants
=====================

Centralized constants for the analytics engine, organized by domain.

Usage:
    from aquawatch.constants import ACCURACY_THRESHOLDS, CacheTTL, JobIntervals
"""

from dataclasses import dataclass

# =============================================================================
# Measurement Channels
# =============================================================================

# Order matters: reports, notes and statistics iterate channels in this order.
CHANNELS: tuple[str, ...] = ("temperature", "ph", "tds", "do_level")


@dataclass(frozen=True)
class AccuracyBand:
    """Upper bounds (inclusive) on absolute difference for each accuracy level."""

    excellent: float
    good: float
    fair: float


ACCURACY_THRESHOLDS: dict[str, AccuracyBand] = {
    "temperature": AccuracyBand(excellent=0.5, good=1.0, fair=2.0),  # °C
    "ph": AccuracyBand(excellent=0.1, good=0.2, fair=0.5),
    "tds": AccuracyBand(excellent=10.0, good=25.0, fair=50.0),  # ppm
    "do_level": AccuracyBand(excellent=0.2, good=0.5, fair=1.0),  # mg/L
}

# Absolute differences strictly above these are flagged for data-quality review
VARIANCE_THRESHOLDS: dict[str, float] = {
    "temperature": 3.0,
    "ph": 0.8,
    "tds": 100.0,
    "do_level": 2.0,
}

DEFAULT_TOLERANCE_MINUTES = 5
MAX_TOLERANCE_MINUTES = 60


# =============================================================================
# Accuracy Scoring
# =============================================================================

# Ordinal weights for the overall accuracy average (UNAVAILABLE excluded)
ACCURACY_ORDINAL_WEIGHTS: dict[str, int] = {
    "EXCELLENT": 4,
    "GOOD": 3,
    "FAIR": 2,
    "POOR": 1,
}

OVERALL_EXCELLENT_CUTOFF = 3.5
OVERALL_GOOD_CUTOFF = 2.5
OVERALL_FAIR_CUTOFF = 1.5

# 0-100 accuracy score per level
ACCURACY_SCORES: dict[str, int] = {
    "EXCELLENT": 100,
    "GOOD": 80,
    "FAIR": 60,
    "POOR": 40,
    "UNAVAILABLE": 0,
}


# =============================================================================
# Growth Analytics
# =============================================================================


class MinimumRecords:
    """Minimum record counts per analytics operation."""

    GROWTH_RATE = 2
    TREND_ANALYSIS = 3
    PREDICTION = 5
    STATISTICS = 1
    FEED_GROWTH = 2
    FEED_RECORDS = 1


TREND_SLOPE_THRESHOLD = 0.1  # cm per sample
RECENT_TREND_FRACTION = 0.3
PREDICTION_HISTORY_LIMIT = 50
MAX_PREDICTION_DAYS = 365
BIOMASS_PROJECTION_DAYS = 30
PRECOMPUTE_ACTIVITY_DAYS = 7

PREDICTION_CONFIDENCE_CEILING = 0.9
PREDICTION_CONFIDENCE_FLOOR = 0.3
PREDICTION_CONFIDENCE_DECAY = 0.6

TREND_CONFIDENCE_MIN = 0.5
TREND_CONFIDENCE_MAX = 0.95

# Composite device score weights
PERFORMANCE_WEIGHTS: dict[str, float] = {
    "growth_rate": 0.4,
    "consistency": 0.3,
    "health_score": 0.2,
    "efficiency": 0.1,
}

# Fulton's condition factor K boundaries
CONDITION_POOR_BELOW = 1.0
CONDITION_GOOD_BELOW = 2.0

# Health score per condition category (device ranking)
CONDITION_HEALTH_SCORES: dict[str, float] = {
    "Poor": 0.0,
    "Good": 0.75,
    "Excellent": 1.0,
}
DEFAULT_HEALTH_SCORE = 0.5

# Average condition score per category (comprehensive statistics)
CONDITION_STATISTIC_SCORES: dict[str, int] = {
    "Poor": 1,
    "Good": 2,
    "Excellent": 3,
}


# =============================================================================
# Data Integrity
# =============================================================================


class IntegrityLimits:
    """Plausible ranges for growth measurements."""

    MAX_LENGTH_CM = 200.0
    MAX_WEIGHT_G = 50_000.0


# =============================================================================
# Cache
# =============================================================================


class CacheTTL:
    """Time-to-live per cached result type (seconds)."""

    COMPARISON = 5 * 60
    GROWTH_RATE = 10 * 60
    TRENDS = 15 * 60
    STATISTICS = 20 * 60
    PERFORMANCE = 25 * 60
    PREDICTIONS = 30 * 60


CACHE_MAX_ENTRIES = 1000
CACHE_ENTRY_SIZE_KB = 2  # rough per-entry estimate


# =============================================================================
# Recompute Scheduler
# =============================================================================


class JobIntervals:
    """Recurrence intervals for background jobs (seconds)."""

    CACHE_CLEANUP = 5 * 60
    DATA_INTEGRITY_CHECK = 4 * 60 * 60
    ANALYTICS_PRECOMPUTE = 30 * 60
    DATA_CLEANUP = 24 * 60 * 60
    HEALTH_MONITORING = 2 * 60


class JobFirstRunDelays:
    """Delay before the first run of each background job (seconds)."""

    CACHE_CLEANUP = 5 * 60
    DATA_INTEGRITY_CHECK = 60 * 60
    ANALYTICS_PRECOMPUTE = 15 * 60
    DATA_CLEANUP = 24 * 60 * 60
    HEALTH_MONITORING = 2 * 60


class HealthPenalties:
    """Health check thresholds and penalties."""

    LOW_HIT_RATE = 0.5
    LOW_HIT_RATE_PENALTY = 10
    HIGH_MEMORY_KB = 100_000
    HIGH_MEMORY_PENALTY = 15
    INVALID_RATIO = 0.1
    INVALID_RATIO_PENALTY = 20
    HEALTHY_SCORE = 80
    SUCCESS_ABOVE = 50
