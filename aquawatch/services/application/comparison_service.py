"""
Measurement Comparison Service
==============================
Reconciles operator spot measurements with the nearest sensor reading and
aggregates accuracy over batches of measurements.

Reports are cached per measurement and tolerance; they are never persisted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime

from aquawatch.constants import ACCURACY_SCORES, CHANNELS, DEFAULT_TOLERANCE_MINUTES, CacheTTL
from aquawatch.domain import ComparisonReport, ComparisonStatistics, ManualMeasurement
from aquawatch.domain.exceptions import AquaWatchError, ComparisonFailedError, ConfigurationError, NotFoundError
from aquawatch.enums import AccuracyLevel
from aquawatch.services.application.accuracy_assessor import AccuracyAssessor
from aquawatch.services.application.temporal_matcher import TemporalMatcher
from aquawatch.utils.cache import ResultCache
from aquawatch.utils.concurrency import bounded_store_call
from aquawatch.utils.time import ensure_utc
from infrastructure.database.repositories.base import ManualMeasurementStore

logger = logging.getLogger(__name__)

MEASUREMENT_LOOKUP = "MANUAL_MEASUREMENT_LOOKUP"


class MeasurementComparisonService:
    """Manual vs. sensor comparison with result caching."""

    def __init__(
        self,
        matcher: TemporalMatcher,
        cache: ResultCache,
        assessor: AccuracyAssessor | None = None,
        *,
        default_tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
        measurement_store: ManualMeasurementStore | None = None,
        store_timeout_seconds: float | None = None,
    ) -> None:
        self.matcher = matcher
        self.cache = cache
        self.assessor = assessor or AccuracyAssessor()
        self.default_tolerance_minutes = default_tolerance_minutes
        self.measurement_store = measurement_store
        self.store_timeout_seconds = store_timeout_seconds

    async def generate_report(
        self,
        manual: ManualMeasurement,
        tolerance_minutes: float | None = None,
        use_cache: bool = True,
    ) -> ComparisonReport:
        """
        Compare ``manual`` with the closest sensor reading of its device.

        Args:
            manual: Measurement to reconcile
            tolerance_minutes: Half-width of the matching window; the service
                default when omitted
            use_cache: Read and write the result cache

        Raises:
            ValidationError: invalid tolerance
            DatabaseOperationError: sensor lookup failed
            ComparisonFailedError: any other failure
        """
        if tolerance_minutes is None:
            tolerance_minutes = self.default_tolerance_minutes
        key = ResultCache.comparison_key(manual.id, tolerance_minutes)
        if use_cache:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Using cached comparison report for %s", manual.id)
                return cached

        try:
            sensor = await self.matcher.find_closest(manual.device_id, manual.timestamp, tolerance_minutes)
            report = self.assessor.build_report(manual, sensor, tolerance_minutes)
        except AquaWatchError:
            raise
        except Exception as exc:
            error = ComparisonFailedError(
                f"Failed to generate comparison report: {exc}",
                detail={"measurement_id": manual.id, "device_id": manual.device_id},
            )
            logger.error(
                "Comparison for %s failed (correlation_id=%s)",
                manual.id,
                error.correlation_id,
                exc_info=True,
            )
            raise error from exc

        if use_cache:
            self.cache.set(key, report, CacheTTL.COMPARISON)
        return report

    async def calculate_statistics(
        self,
        manuals: Sequence[ManualMeasurement],
        tolerance_minutes: float | None = None,
    ) -> ComparisonStatistics:
        """Accuracy statistics over the reports of ``manuals``."""
        if tolerance_minutes is None:
            tolerance_minutes = self.default_tolerance_minutes
        try:
            reports = await asyncio.gather(
                *(self.generate_report(manual, tolerance_minutes) for manual in manuals)
            )
        except AquaWatchError:
            raise
        except Exception as exc:
            error = ComparisonFailedError(
                f"Failed to calculate comparison statistics: {exc}",
                detail={"measurement_count": len(manuals)},
            )
            logger.error("Comparison statistics failed (correlation_id=%s)", error.correlation_id, exc_info=True)
            raise error from exc

        matched = [report for report in reports if report.sensor_matched]
        scored = [report.accuracy_score for report in reports if report.accuracy_score > 0]
        with_variance = [report for report in matched if report.variance_count > 0]

        stats = ComparisonStatistics(
            total_comparisons=len(reports),
            successful_comparisons=len(matched),
            accuracy_distribution=self._accuracy_distribution(reports),
            average_accuracy_score=sum(scored) / len(scored) if scored else 0.0,
            variance_rate=len(with_variance) / len(matched) * 100 if matched else 0.0,
            most_accurate_channel=self._most_accurate_channel(reports),
            least_accurate_channel=self._least_accurate_channel(reports),
        )
        logger.debug(
            "Comparison statistics over %d measurements: %d matched, average score %.1f",
            stats.total_comparisons,
            stats.successful_comparisons,
            stats.average_accuracy_score,
        )
        return stats

    async def compare_measurement(
        self,
        measurement_id: str,
        tolerance_minutes: float | None = None,
    ) -> ComparisonReport:
        """
        On-demand comparison of a stored measurement; bypasses the cache.

        Raises:
            NotFoundError: no measurement with ``measurement_id``
            ConfigurationError: the service has no measurement store
        """
        store = self._require_measurement_store()
        manual = await bounded_store_call(
            store.get_measurement(measurement_id),
            operation=MEASUREMENT_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context={"measurement_id": measurement_id},
        )
        if manual is None:
            raise NotFoundError(
                f"Manual measurement {measurement_id} not found",
                detail={"measurement_id": measurement_id},
            )
        return await self.generate_report(manual, tolerance_minutes, use_cache=False)

    async def device_statistics(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
        tolerance_minutes: float | None = None,
    ) -> ComparisonStatistics:
        """Accuracy statistics over a device's stored measurements in ``[start, end]``."""
        store = self._require_measurement_store()
        start, end = ensure_utc(start), ensure_utc(end)
        manuals = await bounded_store_call(
            store.measurements_by_device_and_range(device_id, start, end),
            operation=MEASUREMENT_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context={"device_id": device_id, "start": start.isoformat(), "end": end.isoformat()},
        )
        logger.debug("Loaded %d manual measurements for %s", len(manuals), device_id)
        return await self.calculate_statistics(manuals, tolerance_minutes)

    def clear_measurement_cache(self, measurement_id: str) -> int:
        """Drop cached reports of one measurement at every tolerance."""
        deleted = self.cache.delete_prefix(f"comparison:{measurement_id}:")
        logger.debug("Cleared %d cached comparison reports for %s", deleted, measurement_id)
        return deleted

    def clear_expired_cache(self) -> int:
        return self.cache.cleanup_expired()

    # ------------------------------------------------------------------

    def _require_measurement_store(self) -> ManualMeasurementStore:
        if self.measurement_store is None:
            raise ConfigurationError("Comparison service has no manual measurement store")
        return self.measurement_store

    @staticmethod
    def _accuracy_distribution(reports: Sequence[ComparisonReport]) -> dict[str, int]:
        distribution = {level.value.lower(): 0 for level in AccuracyLevel}
        for report in reports:
            distribution[report.overall_accuracy.value.lower()] += 1
        return distribution

    @staticmethod
    def _channel_averages(reports: Sequence[ComparisonReport]) -> dict[str, float]:
        averages = {}
        for channel in CHANNELS:
            scores = [
                ACCURACY_SCORES[report[channel].accuracy_level.value]
                for report in reports
                if report[channel].available
            ]
            averages[channel] = sum(scores) / len(scores) if scores else 0.0
        return averages

    def _most_accurate_channel(self, reports: Sequence[ComparisonReport]) -> str | None:
        best_channel, best_score = None, 0.0
        for channel, average in self._channel_averages(reports).items():
            if average > best_score:
                best_channel, best_score = channel, average
        return best_channel

    def _least_accurate_channel(self, reports: Sequence[ComparisonReport]) -> str | None:
        worst_channel, worst_score = None, 0.0
        for channel, average in self._channel_averages(reports).items():
            if average > 0 and (worst_channel is None or average < worst_score):
                worst_channel, worst_score = channel, average
        return worst_channel
