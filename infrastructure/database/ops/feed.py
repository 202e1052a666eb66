from __future__ import annotations

import logging
import sqlite3

logger = logging.getLogger(__name__)


class FeedOperations:
    """Feeding event helpers shared across database handlers."""

    def insert_feed_record(
        self,
        *,
        device_id: str,
        feed_name: str,
        feed_type: str,
        feed_amount_kg: float,
        fed_at: str,
    ) -> int:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    INSERT INTO FeedData (device_id, feed_name, feed_type, feed_amount_kg, fed_at)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (device_id, feed_name, feed_type, feed_amount_kg, fed_at),
                )
                return cursor.lastrowid
        except sqlite3.Error as exc:
            logger.error("Error inserting feed record for %s: %s", device_id, exc)
            raise

    def get_feed_records(self, device_id: str, start: str, end: str) -> list[sqlite3.Row]:
        try:
            with self.connection() as db:
                cursor = db.execute(
                    """
                    SELECT * FROM FeedData
                    WHERE device_id = ? AND fed_at >= ? AND fed_at <= ?
                    ORDER BY fed_at ASC, id ASC
                    """,
                    (device_id, start, end),
                )
                return cursor.fetchall()
        except sqlite3.Error as exc:
            logger.error("Error fetching feed records for %s: %s", device_id, exc)
            raise
