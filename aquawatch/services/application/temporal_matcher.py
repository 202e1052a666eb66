"""
Temporal Matcher
================
Finds the sensor reading closest in time to a manual measurement.
"""

from __future__ import annotations

import logging
from datetime import datetime

from aquawatch.constants import DEFAULT_TOLERANCE_MINUTES
from aquawatch.domain import SensorReading
from aquawatch.schemas import ComparisonQuery, validate_query
from aquawatch.utils.concurrency import bounded_store_call
from aquawatch.utils.time import ensure_utc, minutes_window
from infrastructure.database.repositories.base import SensorReadingStore

logger = logging.getLogger(__name__)

SENSOR_DATA_LOOKUP = "SENSOR_DATA_LOOKUP"


class TemporalMatcher:
    """Nearest-in-time lookup of sensor readings within a symmetric window."""

    def __init__(self, sensor_store: SensorReadingStore, *, store_timeout_seconds: float | None = None) -> None:
        self.sensor_store = sensor_store
        self.store_timeout_seconds = store_timeout_seconds

    async def find_closest(
        self,
        device_id: str,
        target_time: datetime,
        tolerance_minutes: float = DEFAULT_TOLERANCE_MINUTES,
    ) -> SensorReading | None:
        """
        Return the reading of ``device_id`` nearest to ``target_time``.

        Only readings inside ``[target - tol, target + tol]`` are considered.
        On equal distance the first reading in store order wins; the store
        returns readings oldest first, so the earlier reading is kept.

        Raises:
            ValidationError: non-positive tolerance
            DatabaseOperationError: store failure or timeout
        """
        query = validate_query(ComparisonQuery, tolerance_minutes=tolerance_minutes)
        target = ensure_utc(target_time)
        start, end = minutes_window(target, query.tolerance_minutes)

        readings = await bounded_store_call(
            self.sensor_store.readings_by_device_and_range(device_id, start, end),
            operation=SENSOR_DATA_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context={"device_id": device_id, "start": start.isoformat(), "end": end.isoformat()},
        )
        if not readings:
            logger.debug("No sensor readings for %s within %s min of %s", device_id, query.tolerance_minutes, target)
            return None

        limit = query.tolerance_minutes * 60
        closest: SensorReading | None = None
        best_distance = 0.0
        for reading in readings:
            distance = abs((ensure_utc(reading.timestamp) - target).total_seconds())
            if distance > limit:
                continue
            if closest is None or distance < best_distance:
                closest = reading
                best_distance = distance
        return closest
