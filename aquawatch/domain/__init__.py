"""
Domain Package
==============
Value objects, result types, regression maths and the exception taxonomy
of the analytics engine.
"""

from .analytics import (
    ComprehensiveStatistics,
    DataIntegrityReport,
    DeviceMetrics,
    DeviceRanking,
    FeedAnalytics,
    GrowthPrediction,
    GrowthRateResult,
    IntegrityCounts,
    IntegrityIssue,
    PerformanceComparison,
    PeriodAnalysis,
    PredictionPoint,
    Recommendation,
    TrendAnalysis,
)
from .comparison import ComparisonReport, ComparisonResult, ComparisonStatistics
from .growth import FeedRecord, GrowthRecord, calculate_biomass, calculate_condition
from .measurements import ChannelReading, ManualMeasurement, SensorReading

__all__ = [
    # Measurements
    "ChannelReading",
    "ManualMeasurement",
    "SensorReading",
    # Growth & feed
    "FeedRecord",
    "GrowthRecord",
    "calculate_biomass",
    "calculate_condition",
    # Comparison
    "ComparisonReport",
    "ComparisonResult",
    "ComparisonStatistics",
    # Analytics
    "ComprehensiveStatistics",
    "DataIntegrityReport",
    "DeviceMetrics",
    "DeviceRanking",
    "FeedAnalytics",
    "GrowthPrediction",
    "GrowthRateResult",
    "IntegrityCounts",
    "IntegrityIssue",
    "PerformanceComparison",
    "PeriodAnalysis",
    "PredictionPoint",
    "Recommendation",
    "TrendAnalysis",
]
