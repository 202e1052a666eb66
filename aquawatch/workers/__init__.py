"""Background workers: the recompute scheduler and its scheduled tasks."""

from aquawatch.workers.recompute_scheduler import BackgroundJob, RecomputeScheduler

__all__ = ["BackgroundJob", "RecomputeScheduler"]
