"""
Store Access Protocols
======================

Defines the contracts the analytics engines require from the persistence
layer. Uses ``typing.Protocol`` (structural subtyping) so any store, the
bundled SQLite repositories or a test double, satisfies the contract
without inheritance.

Every method is a coroutine. Empty results are empty lists, never errors;
implementations raise only on genuine I/O failure.

Usage in service type hints::

    from infrastructure.database.repositories.base import GrowthRecordStore


    class MyService:
        def __init__(self, growth_store: GrowthRecordStore) -> None: ...
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime
from typing import Protocol, runtime_checkable

from aquawatch.domain import FeedRecord, GrowthRecord, IntegrityCounts, ManualMeasurement, SensorReading


@runtime_checkable
class SensorReadingStore(Protocol):
    """Read access to continuous device readings."""

    async def readings_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[SensorReading]:
        """Readings with ``start <= timestamp <= end``, ordered by time ascending."""
        ...


@runtime_checkable
class ManualMeasurementStore(Protocol):
    """Read access to operator spot measurements."""

    async def get_measurement(self, measurement_id: str) -> ManualMeasurement | None:
        ...

    async def measurements_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[ManualMeasurement]:
        """Measurements with ``start <= timestamp <= end``, ordered by time ascending."""
        ...


@runtime_checkable
class GrowthRecordStore(Protocol):
    """Read/maintenance access to fish growth records."""

    async def growth_records_by_device_and_range(
        self,
        device_ids: Sequence[str] | None,
        start: date,
        end: date,
    ) -> list[GrowthRecord]:
        """Records in the date range, ordered by measurement date ascending.

        ``device_ids=None`` means every device.
        """
        ...

    async def latest_growth_records(self, device_id: str, limit: int) -> list[GrowthRecord]:
        """Most recent ``limit`` records for a device (any order)."""
        ...

    async def recently_active_devices(self, since: date) -> list[str]:
        """Devices with at least one record on or after ``since``."""
        ...

    async def find_duplicates(self) -> list[GrowthRecord]:
        """Records that share a device and measurement date with another record."""
        ...

    async def remove_growth_record(self, record_id: int) -> bool:
        ...

    async def integrity_counts(self, today: date) -> IntegrityCounts:
        ...


@runtime_checkable
class FeedRecordStore(Protocol):
    """Read access to feeding events."""

    async def feed_records_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[FeedRecord]:
        ...
