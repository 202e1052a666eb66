"""
Measurement Comparison Service Tests
====================================
Report caching, error wrapping and batch accuracy statistics.
"""

from datetime import timedelta
from unittest.mock import AsyncMock, Mock

import pytest

from aquawatch.domain.exceptions import (
    ComparisonFailedError,
    ConfigurationError,
    DatabaseOperationError,
    NotFoundError,
)
from aquawatch.services.application.comparison_service import MeasurementComparisonService
from aquawatch.services.application.temporal_matcher import TemporalMatcher
from infrastructure.database.repositories import ManualMeasurementRepository


@pytest.fixture
def matcher():
    matcher = Mock(spec=TemporalMatcher)
    matcher.find_closest = AsyncMock(return_value=None)
    return matcher


@pytest.fixture
def service(matcher, cache):
    return MeasurementComparisonService(matcher, cache)


class TestGenerateReport:
    @pytest.mark.asyncio
    async def test_report_is_cached_per_measurement_and_tolerance(self, service, matcher, make_manual, make_reading):
        matcher.find_closest.return_value = make_reading(ph=7.0)
        manual = make_manual(ph=7.05)

        first = await service.generate_report(manual, 5)
        second = await service.generate_report(manual, 5.0)

        assert first is second
        assert matcher.find_closest.await_count == 1
        matcher.find_closest.assert_awaited_with("pond-1", manual.timestamp, 5)

    @pytest.mark.asyncio
    async def test_bypassing_cache_recomputes(self, service, matcher, make_manual):
        manual = make_manual(ph=7.0)

        await service.generate_report(manual, use_cache=False)
        await service.generate_report(manual, use_cache=False)

        assert matcher.find_closest.await_count == 2
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_cached_report_expires(self, service, matcher, make_manual, clock):
        manual = make_manual(ph=7.0)
        await service.generate_report(manual)

        clock.advance(5 * 60 + 1)
        await service.generate_report(manual)

        assert matcher.find_closest.await_count == 2

    @pytest.mark.asyncio
    async def test_store_errors_propagate_unchanged(self, service, matcher, make_manual):
        matcher.find_closest.side_effect = DatabaseOperationError("SENSOR_DATA_LOOKUP", "locked")

        with pytest.raises(DatabaseOperationError):
            await service.generate_report(make_manual(ph=7.0))

    @pytest.mark.asyncio
    async def test_unexpected_errors_are_wrapped(self, service, matcher, make_manual):
        matcher.find_closest.side_effect = KeyError("boom")

        with pytest.raises(ComparisonFailedError) as exc_info:
            await service.generate_report(make_manual("m-9", ph=7.0))

        assert exc_info.value.detail["measurement_id"] == "m-9"
        assert isinstance(exc_info.value.__cause__, KeyError)

    @pytest.mark.asyncio
    async def test_clear_measurement_cache(self, service, make_manual):
        manual = make_manual("m-1", ph=7.0)
        await service.generate_report(manual, 5)
        await service.generate_report(manual, 10)
        await service.generate_report(make_manual("m-10", ph=7.0), 5)

        assert service.clear_measurement_cache("m-1") == 2
        assert len(service.cache) == 1


class TestCalculateStatistics:
    @pytest.mark.asyncio
    async def test_empty_batch(self, service):
        stats = await service.calculate_statistics([])

        assert stats.total_comparisons == 0
        assert stats.successful_comparisons == 0
        assert stats.average_accuracy_score == 0.0
        assert stats.variance_rate == 0.0
        assert stats.most_accurate_channel is None
        assert stats.least_accurate_channel is None

    @pytest.mark.asyncio
    async def test_batch_statistics(self, service, matcher, make_manual, make_reading):
        manuals = [
            make_manual("m-1", temperature=25.2, ph=7.05),  # EXCELLENT, EXCELLENT
            make_manual("m-2", temperature=29.0, ph=7.15),  # POOR with variance, GOOD
            make_manual("m-3", temperature=25.0),  # no sensor data
        ]
        # Reports are generated in batch order
        matcher.find_closest.side_effect = [
            make_reading(temperature=25.0, ph=7.0),
            make_reading(temperature=25.0, ph=7.0),
            None,
        ]

        stats = await service.calculate_statistics(manuals)

        assert stats.total_comparisons == 3
        assert stats.successful_comparisons == 2
        assert stats.accuracy_distribution == {
            "excellent": 1,
            "good": 0,
            "fair": 1,
            "poor": 0,
            "unavailable": 1,
        }
        # m-1 scores 100, m-2 scores (40 + 80) / 2 = 60; m-3 scores 0 and is excluded
        assert stats.average_accuracy_score == pytest.approx(80.0)
        assert stats.variance_rate == pytest.approx(50.0)
        assert stats.most_accurate_channel == "ph"
        assert stats.least_accurate_channel == "temperature"

    @pytest.mark.asyncio
    async def test_channel_ties_keep_channel_order(self, service, matcher, make_manual, make_reading):
        matcher.find_closest.return_value = make_reading(temperature=25.0, ph=7.0)

        stats = await service.calculate_statistics([make_manual(temperature=25.0, ph=7.0)])

        assert stats.most_accurate_channel == "temperature"
        assert stats.least_accurate_channel == "temperature"


class TestDefaultTolerance:
    @pytest.mark.asyncio
    async def test_omitted_tolerance_uses_service_default(self, matcher, cache, make_manual):
        service = MeasurementComparisonService(matcher, cache, default_tolerance_minutes=15)
        manual = make_manual(ph=7.0)

        report = await service.generate_report(manual)

        matcher.find_closest.assert_awaited_once_with("pond-1", manual.timestamp, 15)
        assert report.time_window_minutes == 15
        assert cache.has("comparison:m-1:15")

    @pytest.mark.asyncio
    async def test_statistics_use_service_default(self, matcher, cache, make_manual):
        service = MeasurementComparisonService(matcher, cache, default_tolerance_minutes=10)

        await service.calculate_statistics([make_manual(ph=7.0)])

        assert matcher.find_closest.await_args.args[2] == 10

    @pytest.mark.asyncio
    async def test_explicit_tolerance_wins(self, matcher, cache, make_manual):
        service = MeasurementComparisonService(matcher, cache, default_tolerance_minutes=15)

        report = await service.generate_report(make_manual(ph=7.0), 2)

        assert report.time_window_minutes == 2


class TestStoredMeasurements:
    @pytest.fixture
    def measurement_store(self):
        store = Mock(spec=ManualMeasurementRepository)
        store.get_measurement.return_value = None
        store.measurements_by_device_and_range.return_value = []
        return store

    @pytest.mark.asyncio
    async def test_unknown_measurement(self, matcher, cache, measurement_store):
        service = MeasurementComparisonService(matcher, cache, measurement_store=measurement_store)

        with pytest.raises(NotFoundError) as exc_info:
            await service.compare_measurement("m-404")

        assert exc_info.value.detail == {"measurement_id": "m-404"}
        matcher.find_closest.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_on_demand_comparison_skips_cache(self, matcher, cache, measurement_store, make_manual):
        measurement_store.get_measurement.return_value = make_manual(ph=7.0)
        service = MeasurementComparisonService(matcher, cache, measurement_store=measurement_store)

        report = await service.compare_measurement("m-1", 3)

        assert report.time_window_minutes == 3
        assert len(cache) == 0

    @pytest.mark.asyncio
    async def test_device_statistics_load_the_range(self, matcher, cache, measurement_store, make_manual, base_time):
        measurement_store.measurements_by_device_and_range.return_value = [make_manual(ph=7.0)]
        service = MeasurementComparisonService(matcher, cache, measurement_store=measurement_store)
        end = base_time + timedelta(days=1)

        stats = await service.device_statistics("pond-1", base_time, end)

        measurement_store.measurements_by_device_and_range.assert_awaited_once_with("pond-1", base_time, end)
        assert stats.total_comparisons == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_a_database_error(self, matcher, cache, measurement_store):
        measurement_store.get_measurement.side_effect = RuntimeError("disk I/O error")
        service = MeasurementComparisonService(matcher, cache, measurement_store=measurement_store)

        with pytest.raises(DatabaseOperationError) as exc_info:
            await service.compare_measurement("m-1")

        assert exc_info.value.operation == "MANUAL_MEASUREMENT_LOOKUP"

    @pytest.mark.asyncio
    async def test_missing_store_is_a_configuration_error(self, service):
        with pytest.raises(ConfigurationError):
            await service.compare_measurement("m-1")
