from __future__ import annotations

import logging
import sqlite3
from typing import Any, Iterable

from aquawatch.constants import IntegrityLimits

logger = logging.getLogger(__name__)


class GrowthOperations:
    """Fish growth record helpers shared across database handlers.

    Dates are ISO ``YYYY-MM-DD`` strings; ``created_at`` is a sortable UTC
    timestamp string.
    """

    def insert_growth_record(
        self,
        *,
        device_id: str,
        measurement_date: str,
        length_cm: float | None,
        weight_gram: float | None,
        biomass_kg: float | None,
        condition_indicator: str | None,
        notes: str | None,
        created_at: str,
    ) -> int:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    INSERT INTO FishGrowth (
                        device_id, measurement_date, length_cm, weight_gram,
                        biomass_kg, condition_indicator, notes, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        device_id,
                        measurement_date,
                        length_cm,
                        weight_gram,
                        biomass_kg,
                        condition_indicator,
                        notes,
                        created_at,
                    ),
                )
                return cursor.lastrowid
        except sqlite3.Error as exc:
            logger.error("Error inserting growth record for %s: %s", device_id, exc)
            raise

    def update_growth_measurements(
        self,
        record_id: int,
        *,
        length_cm: float | None,
        weight_gram: float | None,
        biomass_kg: float | None,
        condition_indicator: str | None,
    ) -> bool:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    UPDATE FishGrowth
                    SET length_cm = ?, weight_gram = ?, biomass_kg = ?, condition_indicator = ?
                    WHERE id = ?
                    """,
                    (length_cm, weight_gram, biomass_kg, condition_indicator, record_id),
                )
                return cursor.rowcount > 0
        except sqlite3.Error as exc:
            logger.error("Error updating growth record %s: %s", record_id, exc)
            raise

    def get_growth_records(
        self,
        device_ids: Iterable[str] | None,
        start_date: str,
        end_date: str,
    ) -> list[sqlite3.Row]:
        """Records in ``[start_date, end_date]`` ordered by date, oldest first."""
        query = "SELECT * FROM FishGrowth WHERE measurement_date >= ? AND measurement_date <= ?"
        params: list[Any] = [start_date, end_date]
        if device_ids is not None:
            ids = list(device_ids)
            if not ids:
                return []
            query += f" AND device_id IN ({', '.join('?' for _ in ids)})"
            params.extend(ids)
        query += " ORDER BY measurement_date ASC, id ASC"
        try:
            with self.connection() as db:
                return db.execute(query, params).fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching growth records: %s", exc)
            raise

    def get_latest_growth_records(self, device_id: str, limit: int) -> list[sqlite3.Row]:
        """Most recent ``limit`` records for a device, newest first."""
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT * FROM FishGrowth
                    WHERE device_id = ?
                    ORDER BY measurement_date DESC, id DESC
                    LIMIT ?
                    """,
                    (device_id, limit),
                )
                return cursor.fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching latest growth records for %s: %s", device_id, exc)
            raise

    def get_active_growth_devices(self, since_date: str) -> list[str]:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT DISTINCT device_id FROM FishGrowth
                    WHERE measurement_date >= ?
                    ORDER BY device_id ASC
                    """,
                    (since_date,),
                )
                return [row["device_id"] for row in cursor.fetchall()]
        except sqlite3.Error as exc:
            logger.error("Error fetching active growth devices: %s", exc)
            raise

    def get_duplicate_growth_records(self) -> list[sqlite3.Row]:
        """Every record sharing a device and date with another record."""
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT g.* FROM FishGrowth g
                    JOIN (
                        SELECT device_id, measurement_date
                        FROM FishGrowth
                        GROUP BY device_id, measurement_date
                        HAVING COUNT(*) > 1
                    ) d ON d.device_id = g.device_id AND d.measurement_date = g.measurement_date
                    ORDER BY g.device_id ASC, g.measurement_date ASC, g.created_at ASC, g.id ASC
                    """
                )
                return cursor.fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching duplicate growth records: %s", exc)
            raise

    def delete_growth_record(self, record_id: int) -> bool:
        try:
            with self.connection() as db:
                cursor = db.execute("DELETE FROM FishGrowth WHERE id = ?", (record_id,))
                return cursor.rowcount > 0
        except sqlite3.Error as exc:
            logger.error("Error deleting growth record %s: %s", record_id, exc)
            raise

    def count_growth_anomalies(self, today: str) -> dict[str, int]:
        """Row counts per data-quality category."""
        try:
            with self.connection() as db:
                row = db.execute(
                    """
                    SELECT
                        COUNT(*) AS total_records,
                        COALESCE(SUM(length_cm IS NULL), 0) AS missing_length,
                        COALESCE(SUM(weight_gram IS NULL), 0) AS missing_weight,
                        COALESCE(SUM(length_cm < 0 OR length_cm > ?), 0) AS invalid_length,
                        COALESCE(SUM(weight_gram < 0 OR weight_gram > ?), 0) AS invalid_weight,
                        COALESCE(SUM(measurement_date > ?), 0) AS future_dates
                    FROM FishGrowth
                    """,
                    (IntegrityLimits.MAX_LENGTH_CM, IntegrityLimits.MAX_WEIGHT_G, today),
                ).fetchone()
                duplicates = db.execute(
                    """
                    SELECT COALESCE(SUM(n), 0) FROM (
                        SELECT COUNT(*) AS n FROM FishGrowth
                        GROUP BY device_id, measurement_date
                        HAVING COUNT(*) > 1
                    )
                    """
                ).fetchone()[0]
        except sqlite3.Error as exc:
            logger.error("Error counting growth anomalies: %s", exc)
            raise

        counts = {key: int(row[key]) for key in row.keys()}
        counts["duplicates"] = int(duplicates)
        return counts
