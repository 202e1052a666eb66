from __future__ import annotations

import asyncio
import sqlite3
from dataclasses import replace
from datetime import datetime

from aquawatch.domain import ManualMeasurement
from aquawatch.utils.time import parse_sqlite_timestamp, sqlite_timestamp, utc_now
from infrastructure.database.ops.measurements import MeasurementOperations


def _row_to_measurement(row: sqlite3.Row) -> ManualMeasurement:
    return ManualMeasurement(
        id=row["id"],
        device_id=row["device_id"],
        recorded_by=row["recorded_by"],
        timestamp=parse_sqlite_timestamp(row["measured_at"]),
        temperature=row["temperature"],
        ph=row["ph"],
        tds=row["tds"],
        do_level=row["do_level"],
        notes=row["notes"],
        created_at=parse_sqlite_timestamp(row["created_at"]),
    )


class ManualMeasurementRepository:
    """Async access to operator spot measurements."""

    def __init__(self, backend: MeasurementOperations) -> None:
        self._backend = backend

    async def add_measurement(self, measurement: ManualMeasurement) -> ManualMeasurement:
        created_at = measurement.created_at or utc_now()
        await asyncio.to_thread(
            self._backend.insert_manual_measurement,
            measurement_id=measurement.id,
            device_id=measurement.device_id,
            recorded_by=measurement.recorded_by,
            measured_at=sqlite_timestamp(measurement.timestamp),
            temperature=measurement.temperature,
            ph=measurement.ph,
            tds=measurement.tds,
            do_level=measurement.do_level,
            notes=measurement.notes,
            created_at=sqlite_timestamp(created_at),
        )
        if measurement.created_at is None:
            measurement = replace(measurement, created_at=created_at)
        return measurement

    async def get_measurement(self, measurement_id: str) -> ManualMeasurement | None:
        row = await asyncio.to_thread(self._backend.get_manual_measurement, measurement_id)
        return _row_to_measurement(row) if row is not None else None

    async def measurements_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[ManualMeasurement]:
        rows = await asyncio.to_thread(
            self._backend.get_manual_measurements_in_window,
            device_id,
            sqlite_timestamp(start),
            sqlite_timestamp(end),
        )
        return [_row_to_measurement(row) for row in rows]

    async def update_notes(self, measurement_id: str, notes: str | None) -> bool:
        """Notes are the only mutable field of a manual measurement."""
        return await asyncio.to_thread(self._backend.update_manual_measurement_notes, measurement_id, notes)

