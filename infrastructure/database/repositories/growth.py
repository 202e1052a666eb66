from __future__ import annotations

import asyncio
import sqlite3
from collections.abc import Sequence
from datetime import date

from aquawatch.domain import GrowthRecord, IntegrityCounts
from aquawatch.utils.time import coerce_date, parse_sqlite_timestamp, sqlite_timestamp, utc_now
from infrastructure.database.ops.growth import GrowthOperations


def _row_to_record(row: sqlite3.Row) -> GrowthRecord:
    return GrowthRecord(
        id=row["id"],
        device_id=row["device_id"],
        measurement_date=date.fromisoformat(row["measurement_date"]),
        length=row["length_cm"],
        weight=row["weight_gram"],
        notes=row["notes"],
        created_at=parse_sqlite_timestamp(row["created_at"]),
    )


class GrowthRecordRepository:
    """Async access to fish growth records."""

    def __init__(self, backend: GrowthOperations) -> None:
        self._backend = backend

    async def add_record(self, record: GrowthRecord) -> int:
        created_at = record.created_at or utc_now()
        return await asyncio.to_thread(
            self._backend.insert_growth_record,
            device_id=record.device_id,
            measurement_date=record.measurement_date.isoformat(),
            length_cm=record.length,
            weight_gram=record.weight,
            biomass_kg=record.biomass,
            condition_indicator=str(record.condition) if record.condition else None,
            notes=record.notes,
            created_at=sqlite_timestamp(created_at),
        )

    async def update_measurements(self, record: GrowthRecord) -> bool:
        """Persist new length/weight together with the recomputed derived fields."""
        return await asyncio.to_thread(
            self._backend.update_growth_measurements,
            record.id,
            length_cm=record.length,
            weight_gram=record.weight,
            biomass_kg=record.biomass,
            condition_indicator=str(record.condition) if record.condition else None,
        )

    async def growth_records_by_device_and_range(
        self,
        device_ids: Sequence[str] | None,
        start: date,
        end: date,
    ) -> list[GrowthRecord]:
        rows = await asyncio.to_thread(
            self._backend.get_growth_records,
            device_ids,
            coerce_date(start).isoformat(),
            coerce_date(end).isoformat(),
        )
        return [_row_to_record(row) for row in rows]

    async def latest_growth_records(self, device_id: str, limit: int) -> list[GrowthRecord]:
        rows = await asyncio.to_thread(self._backend.get_latest_growth_records, device_id, limit)
        return [_row_to_record(row) for row in rows]

    async def recently_active_devices(self, since: date) -> list[str]:
        return await asyncio.to_thread(self._backend.get_active_growth_devices, coerce_date(since).isoformat())

    async def find_duplicates(self) -> list[GrowthRecord]:
        rows = await asyncio.to_thread(self._backend.get_duplicate_growth_records)
        return [_row_to_record(row) for row in rows]

    async def remove_growth_record(self, record_id: int) -> bool:
        return await asyncio.to_thread(self._backend.delete_growth_record, record_id)

    async def integrity_counts(self, today: date) -> IntegrityCounts:
        counts = await asyncio.to_thread(self._backend.count_growth_anomalies, coerce_date(today).isoformat())
        return IntegrityCounts(**counts)
