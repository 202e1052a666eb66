"""
Growth Analytics Results
========================
Value objects returned by the statistics, prediction and feed engines.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from aquawatch.enums import IssueSeverity, Priority, RecentTrend, TrendDirection


@dataclass
class GrowthRateResult:
    """Average daily length and weight gain for one device."""

    device_id: str
    growth_rate: float  # cm per day
    weight_growth_rate: float  # g per day
    period_start: date
    period_end: date
    period_days: int
    data_points: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "growth_rate": self.growth_rate,
            "weight_growth_rate": self.weight_growth_rate,
            "period": {
                "start": self.period_start.isoformat(),
                "end": self.period_end.isoformat(),
                "days": self.period_days,
            },
            "data_points": self.data_points,
        }


@dataclass
class PeriodAnalysis:
    recent_trend: RecentTrend
    volatility: float
    consistency: float


@dataclass
class TrendAnalysis:
    """Regression-based trend of length over sequence index."""

    device_id: str
    trend: TrendDirection
    slope: float
    intercept: float
    correlation: float
    confidence: float
    period_analysis: PeriodAnalysis

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "trend": str(self.trend),
            "slope": self.slope,
            "intercept": self.intercept,
            "correlation": self.correlation,
            "confidence": self.confidence,
            "period_analysis": {
                "recent_trend": str(self.period_analysis.recent_trend),
                "volatility": self.period_analysis.volatility,
                "consistency": self.period_analysis.consistency,
            },
        }


@dataclass
class PredictionPoint:
    date: date
    predicted_length: float
    predicted_weight: float
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "predicted_length": self.predicted_length,
            "predicted_weight": self.predicted_weight,
            "confidence": self.confidence,
        }


@dataclass
class GrowthPrediction:
    """Linear extrapolation of length and weight."""

    device_id: str
    predictions: list[PredictionPoint]
    algorithm: str
    accuracy: float
    parameters: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "predictions": [p.to_dict() for p in self.predictions],
            "algorithm": self.algorithm,
            "accuracy": self.accuracy,
            "parameters": dict(self.parameters),
        }


@dataclass
class DeviceMetrics:
    device_id: str
    growth_rate: float
    consistency: float
    health_score: float
    efficiency: float
    overall_score: float

    def metrics_dict(self) -> dict[str, float]:
        return {
            "growth_rate": self.growth_rate,
            "consistency": self.consistency,
            "health_score": self.health_score,
            "efficiency": self.efficiency,
        }


@dataclass
class DeviceRanking:
    """One device's position in a performance comparison."""

    device_id: str
    rank: int
    score: float
    metrics: DeviceMetrics
    vs_average: float
    vs_best: float
    percentile: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "rank": self.rank,
            "score": self.score,
            "metrics": self.metrics.metrics_dict(),
            "comparison": {
                "vs_average": self.vs_average,
                "vs_best": self.vs_best,
                "percentile": self.percentile,
            },
        }


@dataclass
class Recommendation:
    device_id: str
    priority: Priority
    recommendation: str
    expected_improvement: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "priority": str(self.priority),
            "recommendation": self.recommendation,
            "expected_improvement": self.expected_improvement,
        }


@dataclass
class PerformanceComparison:
    devices: list[DeviceRanking]
    average_metrics: dict[str, float]
    recommendations: list[Recommendation]

    def to_dict(self) -> dict[str, Any]:
        return {
            "devices": [d.to_dict() for d in self.devices],
            "average_metrics": dict(self.average_metrics),
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


@dataclass
class ComprehensiveStatistics:
    """Fleet-wide statistics over a set of growth records.

    Sections mirror what dashboards show: basic counts, growth, health and
    biomass.
    """

    total_measurements: int
    unique_devices: int
    timespan_days: int
    average_frequency: float  # measurements per day
    average_length_growth: float
    average_weight_growth: float
    fastest_growing_device: str | None
    slowest_growing_device: str | None
    growth_variability: float
    average_condition_score: float
    healthy_percentage: float
    condition_distribution: dict[str, int]
    total_biomass: float
    average_biomass: float
    biomass_growth_rate: float
    projected_biomass: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "basic": {
                "total_measurements": self.total_measurements,
                "unique_devices": self.unique_devices,
                "timespan": self.timespan_days,
                "average_frequency": self.average_frequency,
            },
            "growth": {
                "average_length_growth": self.average_length_growth,
                "average_weight_growth": self.average_weight_growth,
                "fastest_growing_device": self.fastest_growing_device,
                "slowest_growing_device": self.slowest_growing_device,
                "growth_variability": self.growth_variability,
            },
            "health": {
                "average_condition_score": self.average_condition_score,
                "healthy_percentage": self.healthy_percentage,
                "condition_distribution": dict(self.condition_distribution),
            },
            "biomass": {
                "total_biomass": self.total_biomass,
                "average_biomass": self.average_biomass,
                "biomass_growth_rate": self.biomass_growth_rate,
                "projected_biomass": self.projected_biomass,
            },
        }


@dataclass
class FeedAnalytics:
    device_id: str
    feed_conversion_ratio: float
    total_feed_consumed_kg: float
    consumption_by_type: dict[str, float]
    summary: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "device_id": self.device_id,
            "feed_conversion_ratio": self.feed_conversion_ratio,
            "total_feed_consumed_kg": self.total_feed_consumed_kg,
            "consumption_by_type": dict(self.consumption_by_type),
            "summary": self.summary,
        }


@dataclass
class IntegrityCounts:
    """Raw anomaly counts reported by the growth record store."""

    total_records: int = 0
    missing_length: int = 0
    missing_weight: int = 0
    invalid_length: int = 0
    invalid_weight: int = 0
    future_dates: int = 0
    duplicates: int = 0


@dataclass
class IntegrityIssue:
    type: str
    count: int
    severity: IssueSeverity
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "count": self.count,
            "severity": str(self.severity),
            "description": self.description,
        }


# (count field, severity, description template)
INTEGRITY_ISSUE_TYPES: tuple[tuple[str, IssueSeverity, str], ...] = (
    ("missing_length", IssueSeverity.MEDIUM, "{count} records missing length measurements"),
    ("missing_weight", IssueSeverity.MEDIUM, "{count} records missing weight measurements"),
    ("invalid_length", IssueSeverity.HIGH, "{count} records with invalid length values"),
    ("invalid_weight", IssueSeverity.HIGH, "{count} records with invalid weight values"),
    ("future_dates", IssueSeverity.HIGH, "{count} records with future measurement dates"),
    ("duplicates", IssueSeverity.MEDIUM, "{count} duplicate records found"),
)


@dataclass
class DataIntegrityReport:
    total_records: int
    valid_records: int
    invalid_records: int
    issues: list[IntegrityIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @classmethod
    def from_counts(cls, counts: IntegrityCounts) -> DataIntegrityReport:
        """Turn raw store anomaly counts into issues and recommendations."""
        issues = [
            IntegrityIssue(issue_type, count, severity, description.format(count=count))
            for issue_type, severity, description in INTEGRITY_ISSUE_TYPES
            if (count := getattr(counts, issue_type)) > 0
        ]
        # A record can fall into several categories, so the issue counts may overlap.
        valid = max(0, counts.total_records - sum(issue.count for issue in issues))

        recommendations = []
        if issues:
            recommendations.extend(
                [
                    "Review and correct data quality issues",
                    "Implement data validation at input level",
                    "Set up automated data quality monitoring",
                ]
            )
        if counts.duplicates > 0:
            recommendations.append("Remove duplicate records and implement unique constraints")

        return cls(
            total_records=counts.total_records,
            valid_records=valid,
            invalid_records=counts.total_records - valid,
            issues=issues,
            recommendations=recommendations,
        )

    @property
    def invalid_ratio(self) -> float:
        if self.total_records == 0:
            return 0.0
        return self.invalid_records / self.total_records

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_records": self.total_records,
            "valid_records": self.valid_records,
            "invalid_records": self.invalid_records,
            "issues": [issue.to_dict() for issue in self.issues],
            "recommendations": list(self.recommendations),
        }
