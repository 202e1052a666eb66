from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime
from typing import Any

from aquawatch.constants import CHANNELS
from aquawatch.domain import ChannelReading, SensorReading
from aquawatch.enums import QualityStatus
from aquawatch.utils.time import parse_sqlite_timestamp, sqlite_timestamp
from infrastructure.database.ops.measurements import MeasurementOperations


def _row_to_reading(row: sqlite3.Row) -> SensorReading:
    channels: dict[str, ChannelReading | None] = {}
    for channel in CHANNELS:
        value = row[channel]
        if value is None:
            channels[channel] = None
            continue
        status = row[f"{channel}_status"]
        channels[channel] = ChannelReading(
            value=float(value),
            quality=QualityStatus(status) if status else None,
        )
    return SensorReading(
        id=row["id"],
        device_id=row["device_id"],
        timestamp=parse_sqlite_timestamp(row["recorded_at"]),
        **channels,
    )


class SensorReadingRepository:
    """Async access to continuous sensor readings."""

    def __init__(self, backend: MeasurementOperations) -> None:
        self._backend = backend

    async def add_reading(self, reading: SensorReading) -> int:
        values: dict[str, Any] = {}
        for channel in CHANNELS:
            channel_reading: ChannelReading | None = getattr(reading, channel)
            if channel_reading is None:
                continue
            values[channel] = channel_reading.value
            values[f"{channel}_status"] = str(channel_reading.quality) if channel_reading.quality else None
        return await asyncio.to_thread(
            self._backend.insert_sensor_reading,
            reading.device_id,
            sqlite_timestamp(reading.timestamp),
            values,
        )

    async def readings_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[SensorReading]:
        rows = await asyncio.to_thread(
            self._backend.get_sensor_readings_in_window,
            device_id,
            sqlite_timestamp(start),
            sqlite_timestamp(end),
        )
        return [_row_to_reading(row) for row in rows]
