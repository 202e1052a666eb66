"""
Schemas Module
==============

Pydantic models validating engine arguments at the service boundary.
"""

from aquawatch.schemas.analytics import (
    ComparisonQuery,
    GrowthAnalyticsQuery,
    PredictionQuery,
    StatisticsQuery,
    TrendQuery,
    validate_query,
)

__all__ = [
    "ComparisonQuery",
    "GrowthAnalyticsQuery",
    "PredictionQuery",
    "StatisticsQuery",
    "TrendQuery",
    "validate_query",
]
