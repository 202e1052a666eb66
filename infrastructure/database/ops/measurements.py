from __future__ import annotations

import logging
import sqlite3
from typing import Any

logger = logging.getLogger(__name__)

SENSOR_COLUMNS = (
    "temperature",
    "temperature_status",
    "ph",
    "ph_status",
    "tds",
    "tds_status",
    "do_level",
    "do_level_status",
)


class MeasurementOperations:
    """Sensor reading and manual measurement helpers shared across database handlers.

    Timestamps are passed in already formatted as sortable UTC strings.
    """

    # --- Sensor readings -------------------------------------------------------
    def insert_sensor_reading(self, device_id: str, recorded_at: str, values: dict[str, Any]) -> int:
        columns = [column for column in SENSOR_COLUMNS if column in values]
        placeholders = ", ".join("?" for _ in range(len(columns) + 2))
        try:
            with self.connection() as db:
                cursor = db.execute(
                    f"INSERT INTO SensorReadings (device_id, recorded_at{''.join(', ' + c for c in columns)}) "
                    f"VALUES ({placeholders})",
                    (device_id, recorded_at, *(values[c] for c in columns)),
                )
                return cursor.lastrowid
        except sqlite3.Error as exc:
            logger.error("Error inserting sensor reading for %s: %s", device_id, exc)
            raise

    def get_sensor_readings_in_window(self, device_id: str, start: str, end: str) -> list[sqlite3.Row]:
        """Readings within ``[start, end]``, oldest first."""
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT * FROM SensorReadings
                    WHERE device_id = ? AND recorded_at >= ? AND recorded_at <= ?
                    ORDER BY recorded_at ASC, id ASC
                    """,
                    (device_id, start, end),
                )
                return cursor.fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching sensor readings for %s: %s", device_id, exc)
            raise

    # --- Manual measurements ---------------------------------------------------
    def insert_manual_measurement(
        self,
        *,
        measurement_id: str,
        device_id: str,
        recorded_by: str,
        measured_at: str,
        temperature: float | None,
        ph: float | None,
        tds: float | None,
        do_level: float | None,
        notes: str | None,
        created_at: str,
    ) -> None:
        try:
            with self.connection() as db:
                db.execute(
                    """
                    INSERT INTO ManualMeasurements (
                        id, device_id, recorded_by, measured_at,
                        temperature, ph, tds, do_level, notes, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        measurement_id,
                        device_id,
                        recorded_by,
                        measured_at,
                        temperature,
                        ph,
                        tds,
                        do_level,
                        notes,
                        created_at,
                    ),
                )
        except sqlite3.Error as exc:
            logger.error("Error inserting manual measurement %s: %s", measurement_id, exc)
            raise

    def get_manual_measurement(self, measurement_id: str) -> sqlite3.Row | None:
        try:
            with self.connection() as db:
                cursor = db.execute("SELECT * FROM ManualMeasurements WHERE id = ?", (measurement_id,))
                return cursor.fetchone()
        except sqlite3.Error as exc:
            logger.error("Error fetching manual measurement %s: %s", measurement_id, exc)
            raise

    def get_manual_measurements_in_window(self, device_id: str, start: str, end: str) -> list[sqlite3.Row]:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT * FROM ManualMeasurements
                    WHERE device_id = ? AND measured_at >= ? AND measured_at <= ?
                    ORDER BY measured_at ASC
                    """,
                    (device_id, start, end),
                )
                return cursor.fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching manual measurements for %s: %s", device_id, exc)
            raise

    def update_manual_measurement_notes(self, measurement_id: str, notes: str | None) -> bool:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    "UPDATE ManualMeasurements SET notes = ? WHERE id = ?",
                    (notes, measurement_id),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as exc:
            logger.error("Error updating notes for manual measurement %s: %s", measurement_id, exc)
            raise
