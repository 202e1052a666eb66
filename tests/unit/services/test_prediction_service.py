"""
Growth Prediction Tests
=======================
Tests for GrowthPredictionService linear extrapolation.
"""

from datetime import date

import pytest

from aquawatch.domain.exceptions import InsufficientDataError, ValidationError
from aquawatch.services.application.prediction_service import GrowthPredictionService


@pytest.fixture
def service(mock_growth_store, cache):
    return GrowthPredictionService(mock_growth_store, cache)


@pytest.fixture
def newest_first(make_growth):
    """Five days of steady growth, as the store returns them."""
    records = [make_growth("pond-1", day, 10.0 + day, 20.0 + 2 * day, day + 1) for day in range(5)]
    return records[::-1]


@pytest.mark.asyncio
async def test_extrapolates_past_last_record(service, mock_growth_store, newest_first):
    mock_growth_store.latest_growth_records.return_value = newest_first

    prediction = await service.predict("pond-1", days_ahead=3)

    mock_growth_store.latest_growth_records.assert_awaited_once_with("pond-1", 50)
    assert [p.date for p in prediction.predictions] == [date(2024, 5, 6), date(2024, 5, 7), date(2024, 5, 8)]
    assert [p.predicted_length for p in prediction.predictions] == pytest.approx([15.0, 16.0, 17.0])
    assert [p.predicted_weight for p in prediction.predictions] == pytest.approx([30.0, 32.0, 34.0])
    assert [p.confidence for p in prediction.predictions] == pytest.approx([0.7, 0.5, 0.3])
    assert prediction.algorithm == "linear_regression"
    assert prediction.accuracy == pytest.approx(1.0)
    assert prediction.parameters["length_slope"] == pytest.approx(1.0)
    assert prediction.parameters["length_intercept"] == pytest.approx(10.0)
    assert prediction.parameters["weight_slope"] == pytest.approx(2.0)
    assert prediction.parameters["data_points"] == 5


@pytest.mark.asyncio
async def test_four_records_are_insufficient(service, mock_growth_store, newest_first):
    mock_growth_store.latest_growth_records.return_value = newest_first[:4]

    with pytest.raises(InsufficientDataError) as exc_info:
        await service.predict("pond-1")

    assert exc_info.value.required == 5
    assert exc_info.value.available == 4


@pytest.mark.asyncio
async def test_predictions_never_go_negative(service, mock_growth_store, make_growth):
    shrinking = [make_growth("pond-1", day, 5.0 - day, 50.0 - 10 * day, day + 1) for day in range(5)]
    mock_growth_store.latest_growth_records.return_value = shrinking[::-1]

    prediction = await service.predict("pond-1", days_ahead=30)

    assert len(prediction.predictions) == 30
    assert prediction.predictions[-1].predicted_length == 0.0
    assert prediction.predictions[-1].predicted_weight == 0.0
    assert prediction.predictions[-1].confidence == pytest.approx(0.3)


@pytest.mark.asyncio
@pytest.mark.parametrize("days_ahead", [0, -1, 366])
async def test_horizon_is_validated(service, mock_growth_store, days_ahead):
    with pytest.raises(ValidationError):
        await service.predict("pond-1", days_ahead=days_ahead)

    mock_growth_store.latest_growth_records.assert_not_awaited()


@pytest.mark.asyncio
async def test_prediction_is_cached_per_horizon(service, mock_growth_store, newest_first):
    mock_growth_store.latest_growth_records.return_value = newest_first

    await service.predict("pond-1", days_ahead=7)
    await service.predict("pond-1", days_ahead=7)
    await service.predict("pond-1", days_ahead=14)

    assert mock_growth_store.latest_growth_records.await_count == 2
    assert service.cache.has("predictions:pond-1:7d")
