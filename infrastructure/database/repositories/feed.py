from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime

from aquawatch.domain import FeedRecord
from aquawatch.utils.time import parse_sqlite_timestamp, sqlite_timestamp
from infrastructure.database.ops.feed import FeedOperations


def _row_to_feed(row: sqlite3.Row) -> FeedRecord:
    return FeedRecord(
        id=row["id"],
        device_id=row["device_id"],
        feed_name=row["feed_name"],
        feed_type=row["feed_type"],
        amount=float(row["feed_amount_kg"]),
        fed_at=parse_sqlite_timestamp(row["fed_at"]),
    )


class FeedRecordRepository:
    """Async access to feeding events."""

    def __init__(self, backend: FeedOperations) -> None:
        self._backend = backend

    async def add_record(self, record: FeedRecord) -> int:
        return await asyncio.to_thread(
            self._backend.insert_feed_record,
            device_id=record.device_id,
            feed_name=record.feed_name,
            feed_type=record.feed_type,
            feed_amount_kg=record.amount,
            fed_at=sqlite_timestamp(record.fed_at),
        )

    async def feed_records_by_device_and_range(
        self,
        device_id: str,
        start: datetime,
        end: datetime,
    ) -> list[FeedRecord]:
        rows = await asyncio.to_thread(
            self._backend.get_feed_records,
            device_id,
            sqlite_timestamp(start),
            sqlite_timestamp(end),
        )
        return [_row_to_feed(row) for row in rows]
