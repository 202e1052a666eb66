"""
Common Enumerations
====================

Enums shared by the comparison, growth analytics and scheduling services.
"""

from enum import Enum


class AccuracyLevel(str, Enum):
    """
    Ordinal accuracy of a manual vs. sensor comparison.
    Used by: accuracy assessor, comparison statistics
    """
    EXCELLENT = "EXCELLENT"
    GOOD = "GOOD"
    FAIR = "FAIR"
    POOR = "POOR"
    UNAVAILABLE = "UNAVAILABLE"

    def __str__(self) -> str:
        return self.value


class QualityStatus(str, Enum):
    """Quality tag attached to a sensor channel value by device ingestion."""
    GOOD = "good"
    SUSPECT = "suspect"
    BAD = "bad"

    def __str__(self) -> str:
        return self.value


class ConditionCategory(str, Enum):
    """Fish body condition derived from Fulton's condition factor."""
    POOR = "Poor"
    GOOD = "Good"
    EXCELLENT = "Excellent"

    def __str__(self) -> str:
        return self.value


class TrendDirection(str, Enum):
    """Direction of a fitted growth trend."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"

    def __str__(self) -> str:
        return self.value


class RecentTrend(str, Enum):
    """Recent trajectory compared with the full-series trend."""
    IMPROVING = "improving"
    DECLINING = "declining"
    STABLE = "stable"

    def __str__(self) -> str:
        return self.value


class Priority(str, Enum):
    """
    Priority levels for recommendations.
    Used by: device performance comparison
    """
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class JobStatus(str, Enum):
    """Status of a background job."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value


class IssueSeverity(str, Enum):
    """Severity of a data-integrity issue."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value
