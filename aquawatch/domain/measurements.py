"""
Measurement Value Objects
=========================
Sensor readings produced by device ingestion and manual spot measurements
recorded by operators. Both carry the same four water-quality channels.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from aquawatch.constants import CHANNELS
from aquawatch.domain.exceptions import ValidationError
from aquawatch.enums import QualityStatus


@dataclass(frozen=True)
class ChannelReading:
    """A single channel value with an optional quality tag."""

    value: float
    quality: QualityStatus | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "value": self.value,
            "quality": str(self.quality) if self.quality else None,
        }


@dataclass(frozen=True)
class SensorReading:
    """
    Immutable sensor reading value object.
    Represents a single point-in-time reading from a device.
    """

    device_id: str
    timestamp: datetime
    temperature: ChannelReading | None = None
    ph: ChannelReading | None = None
    tds: ChannelReading | None = None
    do_level: ChannelReading | None = None
    id: int | None = None

    def channel_value(self, channel: str) -> float | None:
        """Numeric value of a channel, or None when the channel is absent."""
        reading = getattr(self, channel)
        return reading.value if reading is not None else None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary"""
        data: dict[str, Any] = {
            "id": self.id,
            "device_id": self.device_id,
            "timestamp": self.timestamp.isoformat(),
        }
        for channel in CHANNELS:
            reading = getattr(self, channel)
            data[channel] = reading.to_dict() if reading is not None else None
        return data


@dataclass(frozen=True)
class ManualMeasurement:
    """
    Operator-entered spot measurement.

    Channels are independently nullable but at least one must be set.
    Only ``notes`` may change after creation; use :meth:`with_notes`.
    """

    id: str
    device_id: str
    recorded_by: str
    timestamp: datetime
    temperature: float | None = None
    ph: float | None = None
    tds: float | None = None
    do_level: float | None = None
    notes: str | None = None
    created_at: datetime | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if all(getattr(self, channel) is None for channel in CHANNELS):
            raise ValidationError(
                "Manual measurement requires at least one channel value",
                detail={"measurement_id": self.id, "device_id": self.device_id},
            )

    def channel_value(self, channel: str) -> float | None:
        return getattr(self, channel)

    def with_notes(self, notes: str | None) -> ManualMeasurement:
        """Return a copy with the note replaced."""
        return replace(self, notes=notes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "device_id": self.device_id,
            "recorded_by": self.recorded_by,
            "timestamp": self.timestamp.isoformat(),
            "temperature": self.temperature,
            "ph": self.ph,
            "tds": self.tds,
            "do_level": self.do_level,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
