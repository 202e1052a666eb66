"""
Growth Statistics Service
=========================
Growth rates, regression trends, fleet-wide statistics and device
performance ranking over fish growth records.

Every public method validates its arguments, reads through the result
cache, and converts unexpected failures into ``CalculationError``.
Taxonomy errors (insufficient data, validation, store failures) propagate
unchanged.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from datetime import date, datetime, timedelta
from typing import TypeVar

from aquawatch.constants import (
    BIOMASS_PROJECTION_DAYS,
    CONDITION_HEALTH_SCORES,
    CONDITION_STATISTIC_SCORES,
    DEFAULT_HEALTH_SCORE,
    PERFORMANCE_WEIGHTS,
    RECENT_TREND_FRACTION,
    TREND_CONFIDENCE_MAX,
    TREND_CONFIDENCE_MIN,
    TREND_SLOPE_THRESHOLD,
    CacheTTL,
    MinimumRecords,
)
from aquawatch.domain import (
    ComprehensiveStatistics,
    DeviceMetrics,
    DeviceRanking,
    GrowthRateResult,
    GrowthRecord,
    PerformanceComparison,
    PeriodAnalysis,
    Recommendation,
    TrendAnalysis,
)
from aquawatch.domain import regression
from aquawatch.domain.exceptions import AquaWatchError, CalculationError, InsufficientDataError
from aquawatch.enums import ConditionCategory, Priority, RecentTrend, TrendDirection
from aquawatch.schemas import GrowthAnalyticsQuery, StatisticsQuery, TrendQuery, validate_query
from aquawatch.utils.cache import ResultCache
from aquawatch.utils.concurrency import bounded_store_call
from aquawatch.utils.time import elapsed_days, utc_now
from infrastructure.database.repositories.base import GrowthRecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

GROWTH_RECORDS_LOOKUP = "GROWTH_RECORDS_LOOKUP"

DEFAULT_WINDOW_DAYS = 90

# (rank fraction strictly above, priority, recommendation, expected improvement)
RECOMMENDATION_TIERS: tuple[tuple[float, Priority, str, float], ...] = (
    (0.7, Priority.HIGH, "Review feeding schedule and water quality parameters", 0.15),
    (0.4, Priority.MEDIUM, "Optimize feeding frequency and monitor growth consistency", 0.10),
    (-1.0, Priority.LOW, "Maintain current practices and monitor for continued excellence", 0.05),
)


def sort_by_date(records: Sequence[GrowthRecord]) -> list[GrowthRecord]:
    """Stable sort by measurement date; same-day records keep store order."""
    return sorted(records, key=lambda record: record.measurement_date)


def lengths(records: Sequence[GrowthRecord]) -> list[float]:
    return [record.length or 0 for record in records]


def weights(records: Sequence[GrowthRecord]) -> list[float]:
    return [record.weight or 0 for record in records]


def health_score(records: Sequence[GrowthRecord]) -> float:
    """Mean condition health score; neutral when no record has a condition."""
    conditions = [record.condition for record in records if record.condition is not None]
    if not conditions:
        return DEFAULT_HEALTH_SCORE
    return sum(CONDITION_HEALTH_SCORES[condition.value] for condition in conditions) / len(conditions)


def efficiency(records: Sequence[GrowthRecord]) -> float:
    """Relative change of the length/weight ratio, shifted by 0.5 and clamped to [0, 1]."""
    if len(records) < 2:
        return 0.0
    ordered = sort_by_date(records)
    first, last = ordered[0], ordered[-1]
    initial_ratio = (first.length or 1) / (first.weight or 1)
    final_ratio = (last.length or 1) / (last.weight or 1)
    return max(0.0, min(1.0, (final_ratio - initial_ratio) / initial_ratio + 0.5))


class GrowthStatisticsService:
    """Regression-based growth analytics with cached results."""

    def __init__(
        self,
        growth_store: GrowthRecordStore,
        cache: ResultCache,
        *,
        window_days: int = DEFAULT_WINDOW_DAYS,
        store_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            growth_store: Source of growth records
            cache: Shared result cache
            window_days: Default look-back when no start date is given
            store_timeout_seconds: Bound on every store call
            clock: Returns the current UTC datetime; injectable for tests
        """
        self.growth_store = growth_store
        self.cache = cache
        self.window_days = window_days
        self.store_timeout_seconds = store_timeout_seconds
        self._clock = clock or utc_now

    # ------------------------------------------------------------------
    # Growth rate
    # ------------------------------------------------------------------

    async def growth_rate(
        self,
        device_ids: Sequence[str],
        start: date | None = None,
        end: date | None = None,
    ) -> list[GrowthRateResult]:
        """
        Average daily length and weight gain per device.

        Raises:
            InsufficientDataError: a device has fewer than two records
            CalculationError: the records span no time
        """
        query = validate_query(GrowthAnalyticsQuery, device_ids=list(device_ids), start_date=start, end_date=end)
        key = ResultCache.analytics_key(query.device_ids, query.start_date, query.end_date)

        async def compute() -> list[GrowthRateResult]:
            range_start, range_end = self._resolve_range(query.start_date, query.end_date)
            results = []
            for device_id in sorted(query.device_ids):
                records = await self._records([device_id], range_start, range_end)
                results.append(self._device_growth_rate(device_id, records))
            return results

        return await self._cached("growth rate calculation", key, compute, CacheTTL.GROWTH_RATE)

    @staticmethod
    def _device_growth_rate(device_id: str, records: Sequence[GrowthRecord]) -> GrowthRateResult:
        if len(records) < MinimumRecords.GROWTH_RATE:
            raise InsufficientDataError(
                "growth rate calculation",
                MinimumRecords.GROWTH_RATE,
                len(records),
                detail={"device_id": device_id},
            )
        ordered = sort_by_date(records)
        first, last = ordered[0], ordered[-1]
        days = elapsed_days(first.measurement_date, last.measurement_date)
        if days <= 0:
            raise CalculationError(
                "growth rate calculation: invalid time period",
                detail={"device_id": device_id, "period_days": days},
            )
        return GrowthRateResult(
            device_id=device_id,
            growth_rate=((last.length or 0) - (first.length or 0)) / days,
            weight_growth_rate=((last.weight or 0) - (first.weight or 0)) / days,
            period_start=first.measurement_date,
            period_end=last.measurement_date,
            period_days=days,
            data_points=len(records),
        )

    # ------------------------------------------------------------------
    # Trend analysis
    # ------------------------------------------------------------------

    async def trend_analysis(
        self,
        device_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> TrendAnalysis:
        """Linear trend of length over sequence index, with recent-window comparison."""
        query = validate_query(TrendQuery, device_id=device_id, start_date=start, end_date=end)
        key = ResultCache.trends_key(query.device_id, ResultCache.period_label(query.start_date, query.end_date))

        async def compute() -> TrendAnalysis:
            range_start, range_end = self._resolve_range(query.start_date, query.end_date)
            records = await self._records([query.device_id], range_start, range_end)
            if len(records) < MinimumRecords.TREND_ANALYSIS:
                raise InsufficientDataError(
                    "trend analysis",
                    MinimumRecords.TREND_ANALYSIS,
                    len(records),
                    detail={"device_id": query.device_id},
                )
            return self._trend(query.device_id, lengths(sort_by_date(records)))

        return await self._cached("trend analysis", key, compute, CacheTTL.TRENDS)

    @staticmethod
    def _trend(device_id: str, values: list[float]) -> TrendAnalysis:
        fit = regression.linear_regression(values, operation="trend analysis")
        correlation = regression.pearson_correlation(values)

        if fit.slope > TREND_SLOPE_THRESHOLD:
            direction = TrendDirection.INCREASING
        elif fit.slope < -TREND_SLOPE_THRESHOLD:
            direction = TrendDirection.DECREASING
        else:
            direction = TrendDirection.STABLE

        recent = values[-math.ceil(len(values) * RECENT_TREND_FRACTION):]
        recent_trend = RecentTrend.STABLE
        # A single-point window has no slope
        if len(recent) >= 2:
            recent_slope = regression.linear_regression(recent, operation="recent trend").slope
            if recent_slope > fit.slope:
                recent_trend = RecentTrend.IMPROVING
            elif recent_slope < fit.slope:
                recent_trend = RecentTrend.DECLINING

        return TrendAnalysis(
            device_id=device_id,
            trend=direction,
            slope=fit.slope,
            intercept=fit.intercept,
            correlation=correlation,
            confidence=min(TREND_CONFIDENCE_MAX, max(TREND_CONFIDENCE_MIN, abs(correlation))),
            period_analysis=PeriodAnalysis(
                recent_trend=recent_trend,
                volatility=regression.volatility(values),
                consistency=regression.consistency(values),
            ),
        )

    # ------------------------------------------------------------------
    # Comprehensive statistics
    # ------------------------------------------------------------------

    async def statistics(
        self,
        device_ids: Sequence[str] | None = None,
        start: date | None = None,
        end: date | None = None,
    ) -> ComprehensiveStatistics:
        """Basic, growth, health and biomass statistics; ``device_ids=None`` covers all devices."""
        query = validate_query(
            StatisticsQuery,
            device_ids=list(device_ids) if device_ids is not None else None,
            start_date=start,
            end_date=end,
        )
        key = ResultCache.growth_stats_key(query.device_ids, query.start_date, query.end_date)

        async def compute() -> ComprehensiveStatistics:
            range_start, range_end = self._resolve_range(query.start_date, query.end_date)
            records = await self._records(query.device_ids, range_start, range_end)
            if len(records) < MinimumRecords.STATISTICS:
                raise InsufficientDataError(
                    "comprehensive statistics",
                    MinimumRecords.STATISTICS,
                    len(records),
                    detail={"device_ids": query.device_ids},
                )
            return self._comprehensive(records)

        return await self._cached("comprehensive statistics", key, compute, CacheTTL.STATISTICS)

    def _comprehensive(self, records: Sequence[GrowthRecord]) -> ComprehensiveStatistics:
        ordered = sort_by_date(records)
        timespan = elapsed_days(ordered[0].measurement_date, ordered[-1].measurement_date)

        by_device: dict[str, list[GrowthRecord]] = {}
        for record in ordered:
            by_device.setdefault(record.device_id, []).append(record)

        length_rates: dict[str, float] = {}
        weight_rates: list[float] = []
        for device_id, device_records in by_device.items():
            if len(device_records) < MinimumRecords.GROWTH_RATE:
                continue
            first, last = device_records[0], device_records[-1]
            days = elapsed_days(first.measurement_date, last.measurement_date)
            if days <= 0:
                continue
            length_rates[device_id] = ((last.length or 0) - (first.length or 0)) / days
            weight_rates.append(((last.weight or 0) - (first.weight or 0)) / days)

        rates = list(length_rates.values())
        fastest = max(length_rates, key=length_rates.get) if length_rates else None
        slowest = min(length_rates, key=length_rates.get) if length_rates else None

        distribution = {category.value: 0 for category in ConditionCategory}
        for record in ordered:
            if record.condition is not None:
                distribution[record.condition.value] += 1
        with_condition = sum(distribution.values())
        healthy = distribution[ConditionCategory.GOOD.value] + distribution[ConditionCategory.EXCELLENT.value]
        condition_score = (
            sum(CONDITION_STATISTIC_SCORES[name] * count for name, count in distribution.items()) / with_condition
            if with_condition
            else 0.0
        )

        biomass_records = [record for record in ordered if record.biomass is not None]
        biomass_rate = self._biomass_growth_rate(biomass_records)
        latest_biomass = biomass_records[-1].biomass if biomass_records else 0.0

        return ComprehensiveStatistics(
            total_measurements=len(records),
            unique_devices=len(by_device),
            timespan_days=timespan,
            average_frequency=len(records) / timespan if timespan > 0 else 0.0,
            average_length_growth=sum(rates) / len(rates) if rates else 0.0,
            average_weight_growth=sum(weight_rates) / len(weight_rates) if weight_rates else 0.0,
            fastest_growing_device=fastest,
            slowest_growing_device=slowest,
            growth_variability=regression.population_std(rates),
            average_condition_score=condition_score,
            healthy_percentage=healthy / with_condition * 100 if with_condition else 0.0,
            condition_distribution=distribution,
            total_biomass=sum(record.biomass for record in biomass_records),
            average_biomass=(
                sum(record.biomass for record in biomass_records) / len(biomass_records) if biomass_records else 0.0
            ),
            biomass_growth_rate=biomass_rate,
            projected_biomass=latest_biomass + biomass_rate * BIOMASS_PROJECTION_DAYS,
        )

    @staticmethod
    def _biomass_growth_rate(biomass_records: Sequence[GrowthRecord]) -> float:
        if len(biomass_records) < 2:
            return 0.0
        first, last = biomass_records[0], biomass_records[-1]
        days = elapsed_days(first.measurement_date, last.measurement_date)
        return (last.biomass - first.biomass) / days if days > 0 else 0.0

    # ------------------------------------------------------------------
    # Performance comparison
    # ------------------------------------------------------------------

    async def compare_performance(
        self,
        device_ids: Sequence[str],
        start: date | None = None,
        end: date | None = None,
    ) -> PerformanceComparison:
        """Rank devices by a weighted composite of growth, consistency, health and efficiency."""
        query = validate_query(GrowthAnalyticsQuery, device_ids=list(device_ids), start_date=start, end_date=end)
        key = ResultCache.performance_key(query.device_ids, query.start_date, query.end_date)

        async def compute() -> PerformanceComparison:
            growth = {
                result.device_id: result.growth_rate
                for result in await self.growth_rate(query.device_ids, query.start_date, query.end_date)
            }
            range_start, range_end = self._resolve_range(query.start_date, query.end_date)

            metrics: list[DeviceMetrics] = []
            for device_id in sorted(query.device_ids):
                records = await self._records([device_id], range_start, range_end)
                if not records:
                    continue
                metrics.append(self._device_metrics(device_id, growth.get(device_id, 0.0), records))
            return self._rank(metrics)

        return await self._cached("performance comparison", key, compute, CacheTTL.PERFORMANCE)

    @staticmethod
    def _device_metrics(device_id: str, growth_rate: float, records: Sequence[GrowthRecord]) -> DeviceMetrics:
        ordered = sort_by_date(records)
        parts = {
            "growth_rate": growth_rate,
            "consistency": regression.consistency(lengths(ordered)),
            "health_score": health_score(ordered),
            "efficiency": efficiency(ordered),
        }
        score = sum(PERFORMANCE_WEIGHTS[name] * value for name, value in parts.items())
        return DeviceMetrics(device_id=device_id, overall_score=score, **parts)

    @staticmethod
    def _rank(metrics: list[DeviceMetrics]) -> PerformanceComparison:
        ranked = sorted(metrics, key=lambda m: (-m.overall_score, m.device_id))
        count = len(ranked)
        if count == 0:
            return PerformanceComparison(devices=[], average_metrics={}, recommendations=[])

        average_metrics = {
            name: sum(m.metrics_dict()[name] for m in ranked) / count for name in PERFORMANCE_WEIGHTS
        }
        average_score = sum(m.overall_score for m in ranked) / count
        best_score = ranked[0].overall_score

        devices = [
            DeviceRanking(
                device_id=m.device_id,
                rank=index + 1,
                score=m.overall_score,
                metrics=m,
                vs_average=m.overall_score - average_score,
                vs_best=m.overall_score - best_score,
                percentile=(count - index) / count * 100,
            )
            for index, m in enumerate(ranked)
        ]

        recommendations = []
        for device in devices:
            for fraction, priority, text, improvement in RECOMMENDATION_TIERS:
                if device.rank > count * fraction:
                    recommendations.append(
                        Recommendation(
                            device_id=device.device_id,
                            priority=priority,
                            recommendation=text,
                            expected_improvement=improvement,
                        )
                    )
                    break

        return PerformanceComparison(devices=devices, average_metrics=average_metrics, recommendations=recommendations)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_range(self, start: date | None, end: date | None) -> tuple[date, date]:
        today = self._clock().date()
        return (
            start or today - timedelta(days=self.window_days),
            end or today,
        )

    async def _records(
        self,
        device_ids: Sequence[str] | None,
        start: date,
        end: date,
    ) -> list[GrowthRecord]:
        return await bounded_store_call(
            self.growth_store.growth_records_by_device_and_range(device_ids, start, end),
            operation=GROWTH_RECORDS_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context={
                "device_ids": list(device_ids) if device_ids is not None else None,
                "start": start.isoformat(),
                "end": end.isoformat(),
            },
        )

    async def _cached(
        self,
        operation: str,
        key: str,
        compute: Callable[[], Awaitable[T]],
        ttl_seconds: float,
    ) -> T:
        try:
            return await self.cache.get_or_compute(key, compute, ttl_seconds)
        except AquaWatchError:
            raise
        except Exception as exc:
            error = CalculationError(f"{operation} failed: {exc}", detail={"operation": operation, "cache_key": key})
            logger.error("%s failed (correlation_id=%s)", operation, error.correlation_id, exc_info=True)
            raise error from exc
