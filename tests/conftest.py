"""
Shared test fixtures for the AquaWatch analytics test suite.

Provides:
- A controllable clock for engines, the cache and the scheduler
- In-memory SQLite database with all tables created
- Repository instances wired to the test database
- Mock stores for engine unit tests
- Factories for measurements, readings, growth and feed records

Usage:
    async def test_example(growth_repo, make_growth):
        await growth_repo.add_record(make_growth("pond-1", 0, 10.0, 20.0))
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from aquawatch.domain import ChannelReading, FeedRecord, GrowthRecord, ManualMeasurement, SensorReading
from aquawatch.utils.cache import ResultCache
from infrastructure.database.repositories import (
    FeedRecordRepository,
    GrowthRecordRepository,
    ManualMeasurementRepository,
    SensorReadingRepository,
)
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler

# ---------------------------------------------------------------------------
# Logging, keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("infrastructure").setLevel(logging.WARNING)
logging.getLogger("aquawatch").setLevel(logging.WARNING)

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
BASE_DATE = date(2024, 5, 1)


class FakeClock:
    """Wall clock and monotonic clock that only move when told to.

    Calling the instance returns the current UTC datetime; ``monotonic``
    returns seconds for the result cache.
    """

    def __init__(self, start: datetime = BASE_TIME) -> None:
        self.current = start
        self.seconds = 1000.0

    def __call__(self) -> datetime:
        return self.current

    def monotonic(self) -> float:
        return self.seconds

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)
        self.seconds += seconds


# ========================== Clock & Cache ==================================


@pytest.fixture()
def base_time():
    return BASE_TIME


@pytest.fixture()
def base_date():
    return BASE_DATE


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def cache(clock):
    """ResultCache driven by the fake monotonic clock."""
    return ResultCache(clock=clock.monotonic)


# ========================== Database Fixtures ==============================


@pytest.fixture()
def db_handler():
    """In-memory SQLite database with all tables created.

    Each test gets a fresh database, no cross-test contamination.
    """
    handler = SQLiteDatabaseHandler(":memory:")
    handler.create_tables()
    yield handler
    handler.close_db()


@pytest.fixture()
def sensor_repo(db_handler):
    return SensorReadingRepository(db_handler)


@pytest.fixture()
def measurement_repo(db_handler):
    return ManualMeasurementRepository(db_handler)


@pytest.fixture()
def growth_repo(db_handler):
    return GrowthRecordRepository(db_handler)


@pytest.fixture()
def feed_repo(db_handler):
    return FeedRecordRepository(db_handler)


# ========================== Mock Stores ====================================


@pytest.fixture()
def mock_sensor_store():
    """Mock sensor store; Mock(spec=...) turns its coroutine methods into AsyncMocks."""
    store = Mock(spec=SensorReadingRepository)
    store.readings_by_device_and_range.return_value = []
    return store


@pytest.fixture()
def mock_growth_store():
    store = Mock(spec=GrowthRecordRepository)
    store.growth_records_by_device_and_range.return_value = []
    store.latest_growth_records.return_value = []
    return store


@pytest.fixture()
def mock_feed_store():
    store = Mock(spec=FeedRecordRepository)
    store.feed_records_by_device_and_range.return_value = []
    return store


# ========================== Factories ======================================


@pytest.fixture()
def make_manual():
    """Factory for manual measurements taken at ``BASE_TIME`` by default."""

    def _make(
        measurement_id: str = "m-1",
        device_id: str = "pond-1",
        timestamp: datetime = BASE_TIME,
        **channels,
    ) -> ManualMeasurement:
        return ManualMeasurement(
            id=measurement_id,
            device_id=device_id,
            recorded_by="operator",
            timestamp=timestamp,
            **channels,
        )

    return _make


@pytest.fixture()
def make_reading():
    """Factory for sensor readings ``offset_seconds`` away from ``BASE_TIME``."""

    def _make(
        offset_seconds: float = 0,
        device_id: str = "pond-1",
        reading_id: int | None = None,
        **values: float,
    ) -> SensorReading:
        channels = {name: ChannelReading(value=value) for name, value in values.items()}
        return SensorReading(
            id=reading_id,
            device_id=device_id,
            timestamp=BASE_TIME + timedelta(seconds=offset_seconds),
            **channels,
        )

    return _make


@pytest.fixture()
def make_growth():
    """Factory for growth records ``day`` days after ``BASE_DATE``."""

    def _make(
        device_id: str,
        day: int,
        length: float | None,
        weight: float | None,
        record_id: int | None = None,
        created_at: datetime | None = None,
    ) -> GrowthRecord:
        return GrowthRecord(
            id=record_id,
            device_id=device_id,
            measurement_date=BASE_DATE + timedelta(days=day),
            length=length,
            weight=weight,
            created_at=created_at,
        )

    return _make


@pytest.fixture()
def make_feed():
    def _make(device_id: str, amount: float, feed_type: str = "artificial", day: int = 0) -> FeedRecord:
        return FeedRecord(
            id=None,
            device_id=device_id,
            feed_name=f"{feed_type} pellets",
            feed_type=feed_type,
            amount=amount,
            fed_at=datetime.combine(BASE_DATE + timedelta(days=day), datetime.min.time(), tzinfo=timezone.utc)
            + timedelta(hours=8),
        )

    return _make
