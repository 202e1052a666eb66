from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from aquawatch.config import AnalyticsConfig
from aquawatch.services.application.accuracy_assessor import AccuracyAssessor
from aquawatch.services.application.comparison_service import MeasurementComparisonService
from aquawatch.services.application.feed_analytics_service import FeedAnalyticsService
from aquawatch.services.application.growth_statistics import GrowthStatisticsService
from aquawatch.services.application.prediction_service import GrowthPredictionService
from aquawatch.services.application.temporal_matcher import TemporalMatcher
from aquawatch.utils.cache import ResultCache
from aquawatch.utils.time import utc_now
from aquawatch.workers.recompute_scheduler import RecomputeScheduler
from aquawatch.workers.scheduled_tasks import register_default_jobs
from infrastructure.database.repositories import (
    FeedRecordRepository,
    GrowthRecordRepository,
    ManualMeasurementRepository,
    SensorReadingRepository,
)
from infrastructure.database.sqlite_handler import SQLiteDatabaseHandler

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Aggregate and manage the analytics engine services."""

    config: AnalyticsConfig
    database: SQLiteDatabaseHandler
    sensor_repo: SensorReadingRepository
    measurement_repo: ManualMeasurementRepository
    growth_repo: GrowthRecordRepository
    feed_repo: FeedRecordRepository
    cache: ResultCache
    matcher: TemporalMatcher
    assessor: AccuracyAssessor
    comparison_service: MeasurementComparisonService
    growth_statistics: GrowthStatisticsService
    prediction_service: GrowthPredictionService
    feed_analytics: FeedAnalyticsService
    scheduler: RecomputeScheduler
    clock: Callable[[], datetime] = field(default=utc_now)

    @classmethod
    def build(
        cls,
        config: AnalyticsConfig,
        *,
        clock: Callable[[], datetime] | None = None,
        cache_clock: Callable[[], float] | None = None,
    ) -> "ServiceContainer":
        """
        Construct the database, repositories, cache, engines and scheduler.

        Args:
            config: Validated runtime configuration
            clock: Wall clock (UTC datetime) for engines and the scheduler
            cache_clock: Monotonic seconds source for cache expiry
        """
        clock = clock or utc_now
        timeout = config.store_timeout_seconds

        logger.info("Building infrastructure components...")
        database = SQLiteDatabaseHandler(config.database_path)
        database.init_db()
        sensor_repo = SensorReadingRepository(database)
        measurement_repo = ManualMeasurementRepository(database)
        growth_repo = GrowthRecordRepository(database)
        feed_repo = FeedRecordRepository(database)

        cache = ResultCache(
            max_entries=config.cache_max_entries,
            default_ttl_seconds=config.cache_default_ttl_seconds,
            single_flight=config.cache_single_flight,
            clock=cache_clock,
        )

        logger.info("Building analytics services...")
        matcher = TemporalMatcher(sensor_repo, store_timeout_seconds=timeout)
        assessor = AccuracyAssessor()
        comparison_service = MeasurementComparisonService(
            matcher,
            cache,
            assessor,
            default_tolerance_minutes=config.comparison_tolerance_minutes,
            measurement_store=measurement_repo,
            store_timeout_seconds=timeout,
        )
        growth_statistics = GrowthStatisticsService(
            growth_repo,
            cache,
            window_days=config.analytics_window_days,
            store_timeout_seconds=timeout,
            clock=clock,
        )
        prediction_service = GrowthPredictionService(growth_repo, cache, store_timeout_seconds=timeout)
        feed_analytics = FeedAnalyticsService(
            feed_repo,
            growth_repo,
            window_days=config.analytics_window_days,
            store_timeout_seconds=timeout,
            clock=clock,
        )

        scheduler = RecomputeScheduler(tick_seconds=config.scheduler_tick_seconds, clock=clock)

        container = cls(
            config=config,
            database=database,
            sensor_repo=sensor_repo,
            measurement_repo=measurement_repo,
            growth_repo=growth_repo,
            feed_repo=feed_repo,
            cache=cache,
            matcher=matcher,
            assessor=assessor,
            comparison_service=comparison_service,
            growth_statistics=growth_statistics,
            prediction_service=prediction_service,
            feed_analytics=feed_analytics,
            scheduler=scheduler,
            clock=clock,
        )
        register_default_jobs(scheduler, container)
        logger.info("✓ Service container built")
        return container

    def start(self) -> None:
        """Start background jobs; requires a running event loop."""
        if not self.config.scheduler_enabled:
            logger.info("Recompute scheduler disabled by configuration")
            return
        self.scheduler.start()

    async def stop(self) -> None:
        """Stop the scheduler and release the database."""
        try:
            await self.scheduler.stop()
        except Exception as e:
            logger.warning("Failed to stop recompute scheduler: %s", e)
        self.shutdown()

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        self.database.close_db()
        logger.info("✓ Service container shut down")
