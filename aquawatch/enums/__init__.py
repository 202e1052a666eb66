"""
Enums Module
============

Enumeration types for the AquaWatch analytics engine.
Enums ensure type safety and consistency across the codebase.
"""

from aquawatch.enums.common import (
    AccuracyLevel,
    ConditionCategory,
    IssueSeverity,
    JobStatus,
    Priority,
    QualityStatus,
    RecentTrend,
    TrendDirection,
)

__all__ = [
    "AccuracyLevel",
    "ConditionCategory",
    "IssueSeverity",
    "JobStatus",
    "Priority",
    "QualityStatus",
    "RecentTrend",
    "TrendDirection",
]
