"""Async repository facades exposing typed store access over low-level mixins.

Store protocols are available for type-checking and dependency injection::

    from infrastructure.database.repositories.base import GrowthRecordStore
"""

from infrastructure.database.repositories.base import (
    FeedRecordStore,
    GrowthRecordStore,
    ManualMeasurementStore,
    SensorReadingStore,
)
from infrastructure.database.repositories.feed import FeedRecordRepository
from infrastructure.database.repositories.growth import GrowthRecordRepository
from infrastructure.database.repositories.measurements import ManualMeasurementRepository
from infrastructure.database.repositories.sensors import SensorReadingRepository

__all__ = [
    "FeedRecordRepository",
    "FeedRecordStore",
    "GrowthRecordRepository",
    "GrowthRecordStore",
    "ManualMeasurementRepository",
    "ManualMeasurementStore",
    "SensorReadingRepository",
    "SensorReadingStore",
]
