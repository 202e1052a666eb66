"""
Recompute scheduler for background analytics jobs.

Runs recurring maintenance jobs (cache sweep, integrity audit, analytics
precompute, duplicate cleanup, health check) on the application's event
loop.

Implementation note on the heap:
- Entries are tuples: (run_at_ts, seq, job_id)
- seq is a monotonic counter so entries with equal timestamps stay ordered
- Entries are never removed in place; stale ones are skipped when popped:
    - job removed -> skip
    - job disabled -> skip
    - job.next_run changed since the entry was pushed -> skip

A job is re-armed with ``next_run = now + interval`` after every run, so a
job that is still running has no live heap entry and cannot start twice.
"""

from __future__ import annotations

import asyncio
import heapq
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from aquawatch.domain.exceptions import BackgroundJobError, NotFoundError
from aquawatch.enums import JobStatus
from aquawatch.utils.time import utc_now

logger = logging.getLogger(__name__)

JobFunc = Callable[[], Awaitable[dict[str, Any]]]


@dataclass
class BackgroundJob:
    """A recurring background job and its execution tracking."""

    job_id: str
    name: str
    interval_seconds: float
    func: JobFunc = field(repr=False)
    enabled: bool = True
    status: JobStatus = JobStatus.PENDING

    # Execution tracking
    next_run: datetime | None = None
    last_run: datetime | None = None
    duration_ms: float | None = None
    last_error: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    run_count: int = 0
    success_count: int = 0
    failure_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary (for status endpoints)."""
        return {
            "job_id": self.job_id,
            "name": self.name,
            "interval_seconds": self.interval_seconds,
            "enabled": self.enabled,
            "status": str(self.status),
            "next_run": self.next_run.isoformat() if self.next_run else None,
            "last_run": self.last_run.isoformat() if self.last_run else None,
            "duration_ms": self.duration_ms,
            "last_error": self.last_error,
            "metadata": dict(self.metadata),
            "run_count": self.run_count,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
        }


class RecomputeScheduler:
    """
    Heap-driven asyncio scheduler for recurring jobs.

    ``start()`` spawns a loop task that calls ``tick()`` every
    ``tick_seconds``; tests drive ``tick(now)`` directly with a fake clock.
    Job failures are recorded on the job and logged, never propagated.
    """

    def __init__(
        self,
        *,
        tick_seconds: float = 1.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Args:
            tick_seconds: How often the loop checks for due jobs
            clock: Returns the current UTC datetime; injectable for tests
        """
        self._tick_seconds = float(tick_seconds)
        self._clock = clock or utc_now

        self._jobs: dict[str, BackgroundJob] = {}

        # Entries: (run_at_ts, seq, job_id)
        self._job_heap: list[tuple[float, int, str]] = []
        self._heap_seq = 0

        self._running = False
        self._loop_task: asyncio.Task | None = None
        self._inflight: set[asyncio.Task] = set()

    # ==================== Registration ====================

    def register_job(
        self,
        job_id: str,
        name: str,
        func: JobFunc,
        *,
        interval_seconds: float,
        first_run_delay_seconds: float | None = None,
        enabled: bool = True,
    ) -> BackgroundJob:
        """Register a recurring job; the first run is after ``first_run_delay_seconds``."""
        delay = interval_seconds if first_run_delay_seconds is None else first_run_delay_seconds
        job = BackgroundJob(
            job_id=job_id,
            name=name,
            interval_seconds=interval_seconds,
            func=func,
            enabled=enabled,
            next_run=self._clock() + timedelta(seconds=delay),
        )
        self._jobs[job_id] = job
        self._push_heap(job)
        logger.info("Registered background job %s (every %ss, first run in %ss)", job_id, interval_seconds, delay)
        return job

    def remove_job(self, job_id: str) -> bool:
        return self._jobs.pop(job_id, None) is not None

    def enable_job(self, job_id: str, enabled: bool = True) -> bool:
        job = self._jobs.get(job_id)
        if job is None:
            return False
        job.enabled = bool(enabled)
        if job.enabled:
            if job.next_run is None:
                job.next_run = self._clock() + timedelta(seconds=job.interval_seconds)
            self._push_heap(job)
        logger.info("Job %s %s", job_id, "enabled" if job.enabled else "disabled")
        return True

    def get_job(self, job_id: str) -> BackgroundJob | None:
        return self._jobs.get(job_id)

    def get_jobs(self) -> list[BackgroundJob]:
        return list(self._jobs.values())

    # ==================== Heap Helpers ====================

    def _push_heap(self, job: BackgroundJob) -> None:
        if not job.enabled or not job.next_run:
            return
        self._heap_seq += 1
        heapq.heappush(self._job_heap, (job.next_run.timestamp(), self._heap_seq, job.job_id))

    def _pop_due(self, now: datetime) -> list[str]:
        now_ts = now.timestamp()
        due: list[str] = []
        while self._job_heap:
            run_at_ts, _seq, job_id = self._job_heap[0]
            if run_at_ts > now_ts:
                break
            heapq.heappop(self._job_heap)

            job = self._jobs.get(job_id)
            if not job or not job.enabled or not job.next_run:
                continue
            if abs(job.next_run.timestamp() - run_at_ts) > 1e-6:
                continue
            if job_id not in due:
                due.append(job_id)
        return due

    # ==================== Scheduler Control ====================

    def start(self) -> None:
        """Start the scheduler loop on the running event loop."""
        if self._running:
            logger.warning("Recompute scheduler already running")
            return
        self._running = True
        self._loop_task = asyncio.get_running_loop().create_task(self._run_loop(), name="RecomputeScheduler")
        logger.info("Recompute scheduler started with %d jobs", len(self._jobs))

    async def stop(self, timeout: float = 5.0) -> None:
        """Stop the loop and wait up to ``timeout`` seconds for running jobs."""
        if not self._running:
            return
        self._running = False

        if self._loop_task is not None:
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
            self._loop_task = None

        if self._inflight:
            _done, pending = await asyncio.wait(set(self._inflight), timeout=timeout)
            for task in pending:
                task.cancel()
        logger.info("Recompute scheduler stopped")

    def is_running(self) -> bool:
        return self._running

    async def _run_loop(self) -> None:
        logger.debug("Scheduler loop started")
        while self._running:
            try:
                await self.tick(wait=False)
            except Exception as e:
                logger.error("Error in scheduler loop: %s", e, exc_info=True)
            await asyncio.sleep(self._tick_seconds)

    async def tick(self, now: datetime | None = None, *, wait: bool = True) -> list[str]:
        """
        Start every job due at ``now``.

        Args:
            now: Reference instant; defaults to the scheduler clock
            wait: Await the started runs before returning

        Returns:
            Ids of the jobs started
        """
        due = self._pop_due(now or self._clock())
        tasks = []
        for job_id in due:
            task = asyncio.get_running_loop().create_task(self.run_job(job_id))
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)
            tasks.append(task)
        if wait and tasks:
            await asyncio.gather(*tasks)
        return due

    # ==================== Execution ====================

    async def run_job(self, job_id: str) -> dict[str, Any] | None:
        """
        Execute one run of ``job_id`` now.

        Returns the task result, or None when the job was already running
        or raised.

        Raises:
            NotFoundError: unknown job id
        """
        job = self._jobs.get(job_id)
        if job is None:
            raise NotFoundError(f"Background job {job_id} not found", detail={"job_id": job_id})

        if job.status == JobStatus.RUNNING:
            logger.warning("Job %s is already running, skipping", job_id)
            return None

        job.status = JobStatus.RUNNING
        job.last_run = self._clock()
        job.run_count += 1
        started = time.perf_counter()
        result: dict[str, Any] | None = None

        try:
            result = await job.func()
            job.duration_ms = result.get("duration", (time.perf_counter() - started) * 1000)
            job.metadata = dict(result.get("metadata") or {})
            errors = result.get("errors") or []
            job.last_error = "; ".join(errors) if errors else None

            if result.get("success"):
                job.status = JobStatus.COMPLETED
                job.success_count += 1
            else:
                job.status = JobStatus.FAILED
                job.failure_count += 1
                logger.error("Job %s failed: %s", job_id, job.last_error)

        except asyncio.CancelledError:
            job.status = JobStatus.FAILED
            job.failure_count += 1
            job.last_error = "cancelled"
            raise
        # Job functions are arbitrary coroutines
        except Exception as e:
            error = BackgroundJobError(job_id, str(e), detail={"job_name": job.name})
            job.status = JobStatus.FAILED
            job.failure_count += 1
            job.duration_ms = (time.perf_counter() - started) * 1000
            job.last_error = error.message
            logger.error(
                "Job %s execution failed (correlation_id=%s)",
                job_id,
                error.correlation_id,
                exc_info=True,
            )
            result = None
        finally:
            job.next_run = self._clock() + timedelta(seconds=job.interval_seconds)
            self._push_heap(job)

        return result

    # ==================== Monitoring ====================

    def get_statistics(self) -> dict[str, Any]:
        jobs = list(self._jobs.values())
        completed = [j for j in jobs if j.status == JobStatus.COMPLETED]
        average_duration = (
            sum(j.duration_ms or 0 for j in completed) / len(completed) if completed else 0
        )
        return {
            "total_jobs": len(jobs),
            "running_jobs": sum(1 for j in jobs if j.status == JobStatus.RUNNING),
            "completed_jobs": len(completed),
            "failed_jobs": sum(1 for j in jobs if j.status == JobStatus.FAILED),
            "pending_jobs": sum(1 for j in jobs if j.status == JobStatus.PENDING),
            "average_duration_ms": round(average_duration),
        }

    def health_check(self) -> dict[str, Any]:
        """Scheduler liveness and failed job summary."""
        failed = [j.job_id for j in self._jobs.values() if j.status == JobStatus.FAILED]
        return {
            "running": self._running,
            "healthy": self._running and not failed,
            "failed_jobs": failed,
            "statistics": self.get_statistics(),
        }
