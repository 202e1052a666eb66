"""Application-level analytics services."""

from aquawatch.services.application.accuracy_assessor import AccuracyAssessor
from aquawatch.services.application.comparison_service import MeasurementComparisonService
from aquawatch.services.application.feed_analytics_service import FeedAnalyticsService
from aquawatch.services.application.growth_statistics import GrowthStatisticsService
from aquawatch.services.application.prediction_service import GrowthPredictionService
from aquawatch.services.application.temporal_matcher import TemporalMatcher

__all__ = [
    "AccuracyAssessor",
    "FeedAnalyticsService",
    "GrowthPredictionService",
    "GrowthStatisticsService",
    "MeasurementComparisonService",
    "TemporalMatcher",
]
