"""
Accuracy Assessor
=================
Channel-by-channel reconciliation of a manual measurement with a sensor
reading, and the aggregate comparison report built from it.

Accuracy levels come from absolute differences against per-channel
threshold tables; boundaries are inclusive. The variance flag marks
differences large enough to need a data-quality review.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime

from aquawatch.constants import (
    ACCURACY_ORDINAL_WEIGHTS,
    ACCURACY_SCORES,
    ACCURACY_THRESHOLDS,
    CHANNELS,
    OVERALL_EXCELLENT_CUTOFF,
    OVERALL_FAIR_CUTOFF,
    OVERALL_GOOD_CUTOFF,
    VARIANCE_THRESHOLDS,
)
from aquawatch.domain import ComparisonReport, ComparisonResult, ManualMeasurement, SensorReading
from aquawatch.enums import AccuracyLevel
from aquawatch.utils.time import utc_now

logger = logging.getLogger(__name__)

NO_SENSOR_DATA_NOTE = "No sensor data available for comparison"


class AccuracyAssessor:
    """Stateless comparison of manual and sensor values."""

    @staticmethod
    def assess_accuracy(channel: str, difference: float | None) -> AccuracyLevel:
        if difference is None:
            return AccuracyLevel.UNAVAILABLE
        band = ACCURACY_THRESHOLDS[channel]
        abs_diff = abs(difference)
        if abs_diff <= band.excellent:
            return AccuracyLevel.EXCELLENT
        if abs_diff <= band.good:
            return AccuracyLevel.GOOD
        if abs_diff <= band.fair:
            return AccuracyLevel.FAIR
        return AccuracyLevel.POOR

    def compare_channel(
        self,
        channel: str,
        manual_value: float | None,
        sensor_value: float | None,
    ) -> ComparisonResult:
        """Compare one channel. Either side missing gives UNAVAILABLE."""
        if manual_value is None or sensor_value is None:
            return ComparisonResult(
                manual_value=manual_value,
                sensor_value=sensor_value,
                difference=None,
                percentage_difference=None,
                accuracy_level=AccuracyLevel.UNAVAILABLE,
                variance_flag=False,
            )

        difference = manual_value - sensor_value
        percentage = (difference / sensor_value) * 100 if sensor_value != 0 else None
        return ComparisonResult(
            manual_value=manual_value,
            sensor_value=sensor_value,
            difference=difference,
            percentage_difference=percentage,
            accuracy_level=self.assess_accuracy(channel, difference),
            variance_flag=abs(difference) > VARIANCE_THRESHOLDS[channel],
        )

    def compare(
        self,
        manual: ManualMeasurement,
        sensor: SensorReading | None,
    ) -> dict[str, ComparisonResult]:
        """Per-channel results keyed in channel order."""
        return {
            channel: self.compare_channel(
                channel,
                manual.channel_value(channel),
                sensor.channel_value(channel) if sensor is not None else None,
            )
            for channel in CHANNELS
        }

    @staticmethod
    def overall_accuracy(levels: Iterable[AccuracyLevel]) -> AccuracyLevel:
        """Weighted ordinal average of the available levels."""
        weights = [ACCURACY_ORDINAL_WEIGHTS[level.value] for level in levels if level != AccuracyLevel.UNAVAILABLE]
        if not weights:
            return AccuracyLevel.UNAVAILABLE
        average = sum(weights) / len(weights)
        if average >= OVERALL_EXCELLENT_CUTOFF:
            return AccuracyLevel.EXCELLENT
        if average >= OVERALL_GOOD_CUTOFF:
            return AccuracyLevel.GOOD
        if average >= OVERALL_FAIR_CUTOFF:
            return AccuracyLevel.FAIR
        return AccuracyLevel.POOR

    @staticmethod
    def accuracy_score(results: dict[str, ComparisonResult]) -> float:
        """Mean 0-100 score over available channels; 0 if none."""
        scores = [ACCURACY_SCORES[r.accuracy_level.value] for r in results.values() if r.available]
        if not scores:
            return 0.0
        return sum(scores) / len(scores)

    @staticmethod
    def comparison_notes(
        results: dict[str, ComparisonResult],
        sensor: SensorReading | None,
    ) -> str | None:
        if sensor is None:
            return NO_SENSOR_DATA_NOTE

        notes = []
        variance = [channel for channel, result in results.items() if result.variance_flag]
        if variance:
            notes.append(f"Significant variance detected in: {', '.join(variance)}")
        poor = [channel for channel, result in results.items() if result.accuracy_level == AccuracyLevel.POOR]
        if poor:
            notes.append(f"Poor accuracy in: {', '.join(poor)}")
        return ". ".join(notes) if notes else None

    def build_report(
        self,
        manual: ManualMeasurement,
        sensor: SensorReading | None,
        tolerance_minutes: float,
        *,
        now: datetime | None = None,
    ) -> ComparisonReport:
        """Assemble the full report for ``manual`` against its matched reading."""
        results = self.compare(manual, sensor)
        report = ComparisonReport(
            manual_measurement_id=manual.id,
            device_id=manual.device_id,
            comparison_timestamp=now or utc_now(),
            sensor_data_timestamp=sensor.timestamp if sensor is not None else None,
            time_window_minutes=tolerance_minutes,
            channels=results,
            overall_accuracy=self.overall_accuracy(r.accuracy_level for r in results.values()),
            accuracy_score=self.accuracy_score(results),
            variance_count=sum(1 for r in results.values() if r.variance_flag),
            notes=self.comparison_notes(results, sensor),
        )
        logger.debug(
            "Built comparison report for %s (device=%s, overall=%s, score=%.1f, variance=%d)",
            manual.id,
            manual.device_id,
            report.overall_accuracy,
            report.accuracy_score,
            report.variance_count,
        )
        return report
