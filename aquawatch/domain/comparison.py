"""
Comparison Results
==================
Per-channel and aggregate outcome of reconciling a manual measurement with
the nearest sensor reading. Reports are never persisted; they live in the
result cache only.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Mapping
from datetime import datetime
from types import MappingProxyType
from typing import Any

from aquawatch.constants import CHANNELS
from aquawatch.enums import AccuracyLevel


@dataclass(frozen=True)
class ComparisonResult:
    """Comparison of a single channel."""

    manual_value: float | None
    sensor_value: float | None
    difference: float | None
    percentage_difference: float | None
    accuracy_level: AccuracyLevel
    variance_flag: bool = False

    @property
    def available(self) -> bool:
        return self.accuracy_level != AccuracyLevel.UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "manual_value": self.manual_value,
            "sensor_value": self.sensor_value,
            "difference": self.difference,
            "percentage_difference": self.percentage_difference,
            "accuracy_level": str(self.accuracy_level),
            "variance_flag": self.variance_flag,
        }


@dataclass(frozen=True)
class ComparisonReport:
    """
    Full comparison report for one manual measurement.

    ``channels`` is a read-only mapping keyed by channel name in the fixed
    channel order. Cached reports are shared between callers.
    """

    manual_measurement_id: str
    device_id: str
    comparison_timestamp: datetime
    sensor_data_timestamp: datetime | None
    time_window_minutes: float
    channels: Mapping[str, ComparisonResult]
    overall_accuracy: AccuracyLevel
    accuracy_score: float
    variance_count: int
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", MappingProxyType(dict(self.channels)))

    @property
    def sensor_matched(self) -> bool:
        return self.sensor_data_timestamp is not None

    def __getitem__(self, channel: str) -> ComparisonResult:
        return self.channels[channel]

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "manual_measurement_id": self.manual_measurement_id,
            "device_id": self.device_id,
            "comparison_timestamp": self.comparison_timestamp.isoformat(),
            "sensor_data_timestamp": (
                self.sensor_data_timestamp.isoformat() if self.sensor_data_timestamp else None
            ),
            "time_window_minutes": self.time_window_minutes,
        }
        for channel in CHANNELS:
            data[channel] = self.channels[channel].to_dict()
        data.update(
            {
                "overall_accuracy": str(self.overall_accuracy),
                "accuracy_score": self.accuracy_score,
                "variance_count": self.variance_count,
                "notes": self.notes,
            }
        )
        return data


@dataclass
class ComparisonStatistics:
    """Aggregate accuracy over a batch of comparison reports."""

    total_comparisons: int
    successful_comparisons: int
    accuracy_distribution: dict[str, int] = field(default_factory=dict)
    average_accuracy_score: float = 0.0
    variance_rate: float = 0.0  # percent of matched reports with any variance flag
    most_accurate_channel: str | None = None
    least_accurate_channel: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_comparisons": self.total_comparisons,
            "successful_comparisons": self.successful_comparisons,
            "accuracy_distribution": dict(self.accuracy_distribution),
            "average_accuracy_score": round(self.average_accuracy_score, 2),
            "variance_rate": round(self.variance_rate, 2),
            "most_accurate_channel": self.most_accurate_channel,
            "least_accurate_channel": self.least_accurate_channel,
        }
