"""
Scheduled Tasks: background job definitions for the RecomputeScheduler.

Each task takes the ServiceContainer and returns a result dict:
    success, duration (ms), items_processed, errors, metadata

Usage:
    from aquawatch.workers.scheduled_tasks import register_default_jobs

    register_default_jobs(container.scheduler, container)
    container.scheduler.start()
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from aquawatch.constants import (
    PRECOMPUTE_ACTIVITY_DAYS,
    HealthPenalties,
    JobFirstRunDelays,
    JobIntervals,
)
from aquawatch.domain import DataIntegrityReport, GrowthRecord
from aquawatch.utils.concurrency import bounded_store_call

if TYPE_CHECKING:
    from aquawatch.services.container import ServiceContainer
    from aquawatch.workers.recompute_scheduler import RecomputeScheduler

logger = logging.getLogger(__name__)

PRECOMPUTE_PREDICTION_DAYS = 30


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def _result(
    started: float,
    *,
    success: bool,
    items_processed: int,
    errors: list[str],
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    return {
        "success": success,
        "duration": _elapsed_ms(started),
        "items_processed": items_processed,
        "errors": errors,
        "metadata": metadata or {},
    }


async def _integrity_report(container: "ServiceContainer") -> DataIntegrityReport:
    counts = await bounded_store_call(
        container.growth_repo.integrity_counts(container.clock().date()),
        operation="DATA_INTEGRITY_COUNTS",
        timeout_seconds=container.config.store_timeout_seconds,
    )
    return DataIntegrityReport.from_counts(counts)


# ==================== Cache ====================


async def cache_cleanup_task(container: "ServiceContainer") -> dict[str, Any]:
    """Sweep expired entries from the result cache."""
    started = time.perf_counter()
    cleaned = container.cache.cleanup_expired()
    logger.debug("Cache cleanup removed %d expired items", cleaned)
    return _result(
        started,
        success=True,
        items_processed=cleaned,
        errors=[],
        metadata={
            "cache_stats": container.cache.stats(),
            "memory_usage": container.cache.memory_usage(),
        },
    )


# ==================== Data Quality ====================


async def data_integrity_check_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Audit growth records for missing, implausible, future-dated and
    duplicated measurements.
    """
    started = time.perf_counter()
    logger.info("Starting data integrity check")
    report = await _integrity_report(container)

    logger.info(
        "Data integrity check found %d invalid records out of %d",
        report.invalid_records,
        report.total_records,
    )
    for issue in report.issues:
        logger.warning("Data integrity issue: %s (%s)", issue.description, issue.severity)

    return _result(
        started,
        success=True,
        items_processed=report.total_records,
        errors=[],
        metadata={
            "valid_records": report.valid_records,
            "invalid_records": report.invalid_records,
            "issues": len(report.issues),
            "report": report.to_dict(),
        },
    )


async def data_cleanup_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Remove duplicate growth records.

    Within each device/date group the most recently created record is kept.
    The result cache is cleared afterwards.
    """
    started = time.perf_counter()
    timeout = container.config.store_timeout_seconds
    removed = 0
    errors: list[str] = []

    try:
        duplicates = await bounded_store_call(
            container.growth_repo.find_duplicates(),
            operation="FIND_DUPLICATES",
            timeout_seconds=timeout,
        )
        if duplicates:
            logger.info("Found %d duplicate growth records", len(duplicates))

        groups: dict[tuple[str, str], list[GrowthRecord]] = {}
        for record in duplicates:
            groups.setdefault((record.device_id, record.measurement_date.isoformat()), []).append(record)

        for group in groups.values():
            if len(group) < 2:
                continue
            # Newest first; records without a creation time sort last
            ordered = sorted(
                group,
                key=lambda r: r.created_at.timestamp() if r.created_at else float("-inf"),
                reverse=True,
            )
            for record in ordered[1:]:
                try:
                    await bounded_store_call(
                        container.growth_repo.remove_growth_record(record.id),
                        operation="REMOVE_GROWTH_RECORD",
                        timeout_seconds=timeout,
                        context={"record_id": record.id},
                    )
                    removed += 1
                except Exception as e:
                    errors.append(f"Failed to remove duplicate {record.id}: {e}")

        container.cache.clear()
    except Exception as e:
        logger.error("Data cleanup failed: %s", e, exc_info=True)
        errors.append(f"Data cleanup failed: {e}")

    logger.info("Data cleanup removed %d duplicate records", removed)
    return _result(
        started,
        success=not errors,
        items_processed=removed,
        errors=errors,
        metadata={"duplicates_removed": removed},
    )


# ==================== Analytics ====================


async def analytics_precompute_task(container: "ServiceContainer") -> dict[str, Any]:
    """Warm the cache for devices with growth records in the last 7 days."""
    started = time.perf_counter()
    processed = 0
    errors: list[str] = []
    logger.info("Starting analytics precomputation")

    try:
        since = container.clock().date() - timedelta(days=PRECOMPUTE_ACTIVITY_DAYS)
        device_ids = await bounded_store_call(
            container.growth_repo.recently_active_devices(since),
            operation="ACTIVE_DEVICES_LOOKUP",
            timeout_seconds=container.config.store_timeout_seconds,
        )

        for device_id in device_ids:
            try:
                await container.growth_statistics.growth_rate([device_id])
                await container.growth_statistics.trend_analysis(device_id)
                await container.prediction_service.predict(device_id, PRECOMPUTE_PREDICTION_DAYS)
                processed += 1
            except Exception as e:
                errors.append(f"Device {device_id}: {e}")

        await container.growth_statistics.statistics()
    except Exception as e:
        errors.append(f"Analytics precomputation failed: {e}")

    if errors:
        logger.warning("Analytics precomputation finished with %d errors", len(errors))
    logger.info("Analytics precomputation processed %d devices", processed)

    return _result(
        started,
        success=not errors,
        items_processed=processed,
        errors=errors,
        metadata={
            "devices_processed": processed,
            "cache_hit_rate": container.cache.hit_rate(),
        },
    )


# ==================== Health ====================


async def health_monitoring_task(container: "ServiceContainer") -> dict[str, Any]:
    """
    Score engine health out of 100.

    Penalties: low cache hit rate, high cache memory estimate, and a high
    share of invalid growth records.
    """
    started = time.perf_counter()
    errors: list[str] = []
    score = 100

    try:
        report = await _integrity_report(container)
        hit_rate = container.cache.hit_rate()
        memory = container.cache.memory_usage()

        if hit_rate < HealthPenalties.LOW_HIT_RATE:
            score -= HealthPenalties.LOW_HIT_RATE_PENALTY
            errors.append("Low cache hit rate")
        if memory["estimated_size_kb"] > HealthPenalties.HIGH_MEMORY_KB:
            score -= HealthPenalties.HIGH_MEMORY_PENALTY
            errors.append("High memory usage")
        if report.invalid_records > report.total_records * HealthPenalties.INVALID_RATIO:
            score -= HealthPenalties.INVALID_RATIO_PENALTY
            errors.append("High invalid record ratio")

        if score < HealthPenalties.HEALTHY_SCORE:
            logger.warning("System health score: %d%%, issues: %s", score, ", ".join(errors))
        else:
            logger.debug("System health score: %d%%", score)
    except Exception as e:
        logger.error("Health monitoring failed: %s", e, exc_info=True)
        errors.append(f"Health monitoring failed: {e}")
        score = 0

    return _result(
        started,
        success=score > HealthPenalties.SUCCESS_ABOVE,
        items_processed=1,
        errors=errors,
        metadata={
            "health_score": score,
            "cache_hit_rate": container.cache.hit_rate(),
            "memory_usage": container.cache.memory_usage(),
        },
    )


# ==================== Registration ====================

# (job id, name, task, interval seconds, first run delay seconds)
DEFAULT_JOBS = (
    ("cache_cleanup", "Cache Cleanup", cache_cleanup_task, JobIntervals.CACHE_CLEANUP, JobFirstRunDelays.CACHE_CLEANUP),
    (
        "data_integrity_check",
        "Data Integrity Check",
        data_integrity_check_task,
        JobIntervals.DATA_INTEGRITY_CHECK,
        JobFirstRunDelays.DATA_INTEGRITY_CHECK,
    ),
    (
        "analytics_precompute",
        "Analytics Precomputation",
        analytics_precompute_task,
        JobIntervals.ANALYTICS_PRECOMPUTE,
        JobFirstRunDelays.ANALYTICS_PRECOMPUTE,
    ),
    ("data_cleanup", "Duplicate Data Cleanup", data_cleanup_task, JobIntervals.DATA_CLEANUP, JobFirstRunDelays.DATA_CLEANUP),
    (
        "health_monitoring",
        "Health Monitoring",
        health_monitoring_task,
        JobIntervals.HEALTH_MONITORING,
        JobFirstRunDelays.HEALTH_MONITORING,
    ),
)


def register_default_jobs(
    scheduler: "RecomputeScheduler",
    container: "ServiceContainer",
) -> None:
    """
    Register the five default recompute jobs, bound to ``container``.

    This should be called once during startup.
    """
    logger.info("Registering background jobs...")

    def bind(task_fn):
        async def bound_task() -> dict[str, Any]:
            return await task_fn(container)

        bound_task.__name__ = task_fn.__name__
        return bound_task

    for job_id, name, task_fn, interval, first_delay in DEFAULT_JOBS:
        scheduler.register_job(
            job_id,
            name,
            bind(task_fn),
            interval_seconds=interval,
            first_run_delay_seconds=first_delay,
        )

    logger.info("Registered %d background jobs", len(DEFAULT_JOBS))
