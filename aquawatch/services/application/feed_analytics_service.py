"""
Feed Analytics Service
======================
Feed conversion ratio and consumption breakdown per device.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, time, timedelta, timezone

from aquawatch.constants import MinimumRecords
from aquawatch.domain import FeedAnalytics
from aquawatch.domain.exceptions import CalculationError, InsufficientDataError
from aquawatch.schemas import TrendQuery, validate_query
from aquawatch.services.application.growth_statistics import DEFAULT_WINDOW_DAYS, sort_by_date
from aquawatch.utils.concurrency import bounded_store_call
from aquawatch.utils.time import utc_now
from infrastructure.database.repositories.base import FeedRecordStore, GrowthRecordStore

logger = logging.getLogger(__name__)

FEED_RECORDS_LOOKUP = "FEED_RECORDS_LOOKUP"
GROWTH_RECORDS_LOOKUP = "GROWTH_RECORDS_LOOKUP"

FEED_TYPES = ("natural", "artificial")


class FeedAnalyticsService:
    def __init__(
        self,
        feed_store: FeedRecordStore,
        growth_store: GrowthRecordStore,
        *,
        window_days: int = DEFAULT_WINDOW_DAYS,
        store_timeout_seconds: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.feed_store = feed_store
        self.growth_store = growth_store
        self.window_days = window_days
        self.store_timeout_seconds = store_timeout_seconds
        self._clock = clock or utc_now

    async def feed_analytics(
        self,
        device_id: str,
        start: date | None = None,
        end: date | None = None,
    ) -> FeedAnalytics:
        """
        Feed conversion ratio (kg feed per kg weight gained) over the range.

        Raises:
            InsufficientDataError: no feed records, or fewer than two growth records
        """
        query = validate_query(TrendQuery, device_id=device_id, start_date=start, end_date=end)
        today = self._clock().date()
        range_start = query.start_date or today - timedelta(days=self.window_days)
        range_end = query.end_date or today
        context = {"device_id": query.device_id, "start": range_start.isoformat(), "end": range_end.isoformat()}

        feed_records = await bounded_store_call(
            self.feed_store.feed_records_by_device_and_range(
                query.device_id,
                datetime.combine(range_start, time.min, tzinfo=timezone.utc),
                datetime.combine(range_end, time.max, tzinfo=timezone.utc),
            ),
            operation=FEED_RECORDS_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context=context,
        )
        if len(feed_records) < MinimumRecords.FEED_RECORDS:
            raise InsufficientDataError(
                "feed analytics",
                MinimumRecords.FEED_RECORDS,
                len(feed_records),
                detail={"device_id": query.device_id, "records": "feed"},
            )

        growth_records = await bounded_store_call(
            self.growth_store.growth_records_by_device_and_range([query.device_id], range_start, range_end),
            operation=GROWTH_RECORDS_LOOKUP,
            timeout_seconds=self.store_timeout_seconds,
            context=context,
        )
        if len(growth_records) < MinimumRecords.FEED_GROWTH:
            raise InsufficientDataError(
                "feed analytics",
                MinimumRecords.FEED_GROWTH,
                len(growth_records),
                detail={"device_id": query.device_id, "records": "growth"},
            )

        try:
            ordered = sort_by_date(growth_records)
            weight_gain_kg = ((ordered[-1].weight or 0) - (ordered[0].weight or 0)) / 1000
            total_feed = sum(record.amount for record in feed_records)
            fcr = total_feed / weight_gain_kg if weight_gain_kg > 0 else 0.0

            consumption = {feed_type: 0.0 for feed_type in FEED_TYPES}
            for record in feed_records:
                if record.feed_type in consumption:
                    consumption[record.feed_type] += record.amount
        except Exception as exc:
            error = CalculationError(f"feed analytics failed: {exc}", detail={"device_id": query.device_id})
            logger.error("Feed analytics for %s failed (correlation_id=%s)", device_id, error.correlation_id, exc_info=True)
            raise error from exc

        return FeedAnalytics(
            device_id=query.device_id,
            feed_conversion_ratio=round(fcr, 2),
            total_feed_consumed_kg=round(total_feed, 2),
            consumption_by_type={feed_type: round(amount, 2) for feed_type, amount in consumption.items()},
            summary=f"Feed efficiency is moderate with a Feed Conversion Ratio of {fcr:.2f}.",
        )
