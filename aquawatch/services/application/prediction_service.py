"""
Growth Prediction Service
=========================
Linear extrapolation of fish length and weight from recent growth records.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from aquawatch.constants import (
    PREDICTION_CONFIDENCE_CEILING,
    PREDICTION_CONFIDENCE_DECAY,
    PREDICTION_CONFIDENCE_FLOOR,
    PREDICTION_HISTORY_LIMIT,
    CacheTTL,
    MinimumRecords,
)
from aquawatch.domain import GrowthPrediction, GrowthRecord, PredictionPoint
from aquawatch.domain import regression
from aquawatch.domain.exceptions import AquaWatchError, CalculationError, InsufficientDataError
from aquawatch.schemas import PredictionQuery, validate_query
from aquawatch.services.application.growth_statistics import lengths, sort_by_date, weights
from aquawatch.utils.cache import ResultCache
from aquawatch.utils.concurrency import bounded_store_call
from infrastructure.database.repositories.base import GrowthRecordStore

logger = logging.getLogger(__name__)

LATEST_GROWTH_LOOKUP = "LATEST_GROWTH_LOOKUP"
ALGORITHM = "linear_regression"


class GrowthPredictionService:
    """Forecasts growth over the next ``days_ahead`` days."""

    def __init__(
        self,
        growth_store: GrowthRecordStore,
        cache: ResultCache,
        *,
        store_timeout_seconds: float | None = None,
    ) -> None:
        self.growth_store = growth_store
        self.cache = cache
        self.store_timeout_seconds = store_timeout_seconds

    async def predict(self, device_id: str, days_ahead: int = 30) -> GrowthPrediction:
        """
        Predict daily length and weight for ``days_ahead`` days past the last record.

        Uses at most the latest 50 records. Confidence decays linearly from
        0.9 towards 0.3 over the horizon.

        Raises:
            ValidationError: ``days_ahead`` outside 1..365
            InsufficientDataError: fewer than five records
        """
        query = validate_query(PredictionQuery, device_id=device_id, days_ahead=days_ahead)
        key = ResultCache.predictions_key(query.device_id, query.days_ahead)

        async def compute() -> GrowthPrediction:
            records = await bounded_store_call(
                self.growth_store.latest_growth_records(query.device_id, PREDICTION_HISTORY_LIMIT),
                operation=LATEST_GROWTH_LOOKUP,
                timeout_seconds=self.store_timeout_seconds,
                context={"device_id": query.device_id, "limit": PREDICTION_HISTORY_LIMIT},
            )
            if len(records) < MinimumRecords.PREDICTION:
                raise InsufficientDataError(
                    "growth predictions",
                    MinimumRecords.PREDICTION,
                    len(records),
                    detail={"device_id": query.device_id},
                )
            # Store returns newest first
            return self._extrapolate(query.device_id, sort_by_date(records[::-1]), query.days_ahead)

        try:
            return await self.cache.get_or_compute(key, compute, CacheTTL.PREDICTIONS)
        except AquaWatchError:
            raise
        except Exception as exc:
            error = CalculationError(
                f"growth predictions failed: {exc}",
                detail={"device_id": query.device_id, "days_ahead": query.days_ahead},
            )
            logger.error("Prediction for %s failed (correlation_id=%s)", device_id, error.correlation_id, exc_info=True)
            raise error from exc

    @staticmethod
    def _extrapolate(device_id: str, records: list[GrowthRecord], days_ahead: int) -> GrowthPrediction:
        length_series = lengths(records)
        weight_series = weights(records)
        length_fit = regression.linear_regression(length_series, operation="length prediction")
        weight_fit = regression.linear_regression(weight_series, operation="weight prediction")

        last_index = len(records) - 1
        last_date = records[-1].measurement_date
        points = []
        for i in range(1, days_ahead + 1):
            index = last_index + i
            points.append(
                PredictionPoint(
                    date=last_date + timedelta(days=i),
                    predicted_length=max(0.0, length_fit.predict(index)),
                    predicted_weight=max(0.0, weight_fit.predict(index)),
                    confidence=max(
                        PREDICTION_CONFIDENCE_FLOOR,
                        PREDICTION_CONFIDENCE_CEILING - (i / days_ahead) * PREDICTION_CONFIDENCE_DECAY,
                    ),
                )
            )

        logger.debug("Predicted %d days for %s from %d records", days_ahead, device_id, len(records))
        return GrowthPrediction(
            device_id=device_id,
            predictions=points,
            algorithm=ALGORITHM,
            accuracy=regression.fit_accuracy(length_series, length_fit),
            parameters={
                "length_slope": length_fit.slope,
                "length_intercept": length_fit.intercept,
                "weight_slope": weight_fit.slope,
                "weight_intercept": weight_fit.intercept,
                "data_points": len(records),
            },
        )
