"""
Scheduled task tests against a container built on an in-memory database.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from aquawatch.config import AnalyticsConfig
from aquawatch.constants import JobIntervals
from aquawatch.domain import GrowthRecord
from aquawatch.services.container import ServiceContainer
from aquawatch.workers.scheduled_tasks import (
    analytics_precompute_task,
    cache_cleanup_task,
    data_cleanup_task,
    data_integrity_check_task,
    health_monitoring_task,
)


@pytest.fixture
def container(clock):
    config = AnalyticsConfig(database_path=":memory:", scheduler_enabled=False)
    container = ServiceContainer.build(config, clock=clock, cache_clock=clock.monotonic)
    yield container
    container.shutdown()


async def add_growth(container, device_id, day, length, weight, created_at=None):
    record = GrowthRecord(
        id=None,
        device_id=device_id,
        measurement_date=day,
        length=length,
        weight=weight,
        created_at=created_at,
    )
    return await container.growth_repo.add_record(record)


def test_default_jobs_registered(container):
    jobs = {job.job_id: job for job in container.scheduler.get_jobs()}

    assert set(jobs) == {
        "cache_cleanup",
        "data_integrity_check",
        "analytics_precompute",
        "data_cleanup",
        "health_monitoring",
    }
    assert jobs["data_integrity_check"].interval_seconds == JobIntervals.DATA_INTEGRITY_CHECK
    assert jobs["health_monitoring"].next_run == container.clock() + timedelta(minutes=2)


@pytest.mark.asyncio
async def test_cache_cleanup_removes_expired(container, clock):
    container.cache.set("stale", 1, ttl_seconds=10)
    container.cache.set("fresh", 2, ttl_seconds=1000)
    clock.advance(11)

    result = await cache_cleanup_task(container)

    assert result["success"] is True
    assert result["items_processed"] == 1
    assert result["metadata"]["cache_stats"]["item_count"] == 1
    assert result["duration"] >= 0


@pytest.mark.asyncio
async def test_data_integrity_check(container):
    await add_growth(container, "pond-1", date(2024, 5, 1), 10.0, 25.0)
    await add_growth(container, "pond-1", date(2024, 5, 2), None, 25.0)
    await add_growth(container, "pond-1", date(2024, 5, 3), 10.0, 60_000.0)
    await add_growth(container, "pond-1", date(2024, 7, 1), 10.0, 25.0)
    await add_growth(container, "pond-2", date(2024, 5, 5), 10.0, 25.0)
    await add_growth(container, "pond-2", date(2024, 5, 5), 11.0, 26.0)

    result = await data_integrity_check_task(container)

    assert result["success"] is True
    assert result["items_processed"] == 6
    report = result["metadata"]["report"]
    assert {issue["type"]: issue["count"] for issue in report["issues"]} == {
        "missing_length": 1,
        "invalid_weight": 1,
        "future_dates": 1,
        "duplicates": 2,
    }
    assert report["valid_records"] == 1
    assert report["invalid_records"] == 5
    assert "Remove duplicate records and implement unique constraints" in report["recommendations"]


@pytest.mark.asyncio
async def test_data_cleanup_keeps_newest_duplicate(container):
    older = datetime(2024, 5, 5, 8, tzinfo=timezone.utc)
    newer = datetime(2024, 5, 5, 9, tzinfo=timezone.utc)
    await add_growth(container, "pond-2", date(2024, 5, 5), 11.0, 26.0, created_at=newer)
    await add_growth(container, "pond-2", date(2024, 5, 5), 10.0, 25.0, created_at=older)
    await add_growth(container, "pond-2", date(2024, 5, 6), 12.0, 27.0)
    container.cache.set("growth_stats:all:null_null", "stale")

    result = await data_cleanup_task(container)

    assert result["success"] is True
    assert result["metadata"]["duplicates_removed"] == 1
    remaining = await container.growth_repo.growth_records_by_device_and_range(
        ["pond-2"], date(2024, 5, 1), date(2024, 5, 31)
    )
    assert [(r.measurement_date.day, r.length) for r in remaining] == [(5, 11.0), (6, 12.0)]
    assert await container.growth_repo.find_duplicates() == []
    assert len(container.cache) == 0


@pytest.mark.asyncio
async def test_analytics_precompute_warms_cache(container):
    for offset in range(6):
        await add_growth(container, "pond-1", date(2024, 5, 26) + timedelta(days=offset), 10.0 + offset, 25.0 + offset)
    # Inactive for the last week
    await add_growth(container, "pond-9", date(2024, 3, 1), 10.0, 25.0)

    result = await analytics_precompute_task(container)

    assert result["success"] is True
    assert result["items_processed"] == 1
    assert container.cache.has("predictions:pond-1:30d")
    assert container.cache.has("growth_stats:all:null_null")


@pytest.mark.asyncio
async def test_analytics_precompute_reports_device_errors(container):
    await add_growth(container, "pond-1", date(2024, 5, 30), 10.0, 25.0)

    result = await analytics_precompute_task(container)

    assert result["success"] is False
    assert result["items_processed"] == 0
    assert result["errors"][0].startswith("Device pond-1:")


@pytest.mark.asyncio
async def test_health_monitoring_penalties(container):
    await add_growth(container, "pond-1", date(2024, 5, 1), None, 25.0)

    result = await health_monitoring_task(container)

    # Cold cache and 100% invalid records
    assert result["metadata"]["health_score"] == 70
    assert result["success"] is True
    assert result["errors"] == ["Low cache hit rate", "High invalid record ratio"]


@pytest.mark.asyncio
async def test_scheduler_runs_registered_task(container, clock):
    clock.advance(JobIntervals.HEALTH_MONITORING)

    started = await container.scheduler.tick()

    assert started == ["health_monitoring"]
    job = container.scheduler.get_job("health_monitoring")
    assert job.run_count == 1
    assert job.metadata["health_score"] == 90


@pytest.mark.asyncio
async def test_container_start_respects_config(container):
    container.start()
    assert not container.scheduler.is_running()
    await container.scheduler.stop()
