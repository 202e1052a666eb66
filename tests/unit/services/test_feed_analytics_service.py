"""
Feed Analytics Tests
====================
Feed conversion ratio and consumption breakdown.
"""

from datetime import date, datetime, time, timezone

import pytest

from aquawatch.domain.exceptions import InsufficientDataError
from aquawatch.services.application.feed_analytics_service import FeedAnalyticsService


@pytest.fixture
def service(mock_feed_store, mock_growth_store, clock):
    return FeedAnalyticsService(mock_feed_store, mock_growth_store, clock=clock)


@pytest.fixture
def growth_kilo_gain(make_growth):
    return [make_growth("pond-1", 0, 20.0, 200.0, 1), make_growth("pond-1", 20, 40.0, 1200.0, 2)]


@pytest.mark.asyncio
async def test_feed_conversion_ratio(service, mock_feed_store, mock_growth_store, make_feed, growth_kilo_gain):
    mock_feed_store.feed_records_by_device_and_range.return_value = [
        make_feed("pond-1", 3.0, "artificial", 1),
        make_feed("pond-1", 1.0, "natural", 2),
        make_feed("pond-1", 0.5, "other", 3),
    ]
    mock_growth_store.growth_records_by_device_and_range.return_value = growth_kilo_gain

    analytics = await service.feed_analytics("pond-1", date(2024, 5, 1), date(2024, 5, 31))

    assert analytics.feed_conversion_ratio == pytest.approx(4.5)
    assert analytics.total_feed_consumed_kg == pytest.approx(4.5)
    assert analytics.consumption_by_type == {"natural": 1.0, "artificial": 3.0}
    assert analytics.summary == "Feed efficiency is moderate with a Feed Conversion Ratio of 4.50."
    mock_feed_store.feed_records_by_device_and_range.assert_awaited_once_with(
        "pond-1",
        datetime(2024, 5, 1, tzinfo=timezone.utc),
        datetime.combine(date(2024, 5, 31), time.max, tzinfo=timezone.utc),
    )
    mock_growth_store.growth_records_by_device_and_range.assert_awaited_once_with(
        ["pond-1"], date(2024, 5, 1), date(2024, 5, 31)
    )


@pytest.mark.asyncio
async def test_no_weight_gain_gives_zero_ratio(service, mock_feed_store, mock_growth_store, make_feed, make_growth):
    mock_feed_store.feed_records_by_device_and_range.return_value = [make_feed("pond-1", 2.0)]
    mock_growth_store.growth_records_by_device_and_range.return_value = [
        make_growth("pond-1", 0, 20.0, 500.0, 1),
        make_growth("pond-1", 10, 21.0, 480.0, 2),
    ]

    analytics = await service.feed_analytics("pond-1")

    assert analytics.feed_conversion_ratio == 0.0
    assert analytics.total_feed_consumed_kg == 2.0


@pytest.mark.asyncio
async def test_no_feed_records_is_insufficient(service, mock_growth_store):
    with pytest.raises(InsufficientDataError) as exc_info:
        await service.feed_analytics("pond-1")

    assert exc_info.value.detail["records"] == "feed"
    mock_growth_store.growth_records_by_device_and_range.assert_not_awaited()


@pytest.mark.asyncio
async def test_single_growth_record_is_insufficient(
    service, mock_feed_store, mock_growth_store, make_feed, make_growth
):
    mock_feed_store.feed_records_by_device_and_range.return_value = [make_feed("pond-1", 2.0)]
    mock_growth_store.growth_records_by_device_and_range.return_value = [make_growth("pond-1", 0, 20.0, 500.0)]

    with pytest.raises(InsufficientDataError) as exc_info:
        await service.feed_analytics("pond-1")

    assert exc_info.value.required == 2
    assert exc_info.value.detail["records"] == "growth"
