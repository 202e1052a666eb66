"""
Regression Helpers
==================
Ordinary least-squares fitting and the derived goodness metrics used by the
growth statistics and prediction engines.

All series are fitted against their sequence index (0, 1, 2, ...), never
against calendar time.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from aquawatch.domain.exceptions import CalculationError


@dataclass(frozen=True)
class LinearFit:
    """y = slope * x + intercept"""

    slope: float
    intercept: float

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept


def _as_array(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=float)


def linear_regression(values: Sequence[float], *, operation: str = "linear regression") -> LinearFit:
    """
    Fit ``values`` against their index with ordinary least squares.

    Raises:
        CalculationError: fewer than two points, or a non-finite fit.
    """
    y = _as_array(values)
    n = y.size
    if n < 2:
        raise CalculationError(
            f"{operation}: at least two points are required",
            detail={"operation": operation, "points": int(n)},
        )

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    sum_xy = float(np.dot(x, y))
    sum_xx = float(np.dot(x, x))

    denominator = n * sum_xx - sum_x * sum_x
    with np.errstate(divide="ignore", invalid="ignore"):
        slope = (n * sum_xy - sum_x * sum_y) / denominator
        intercept = (sum_y - slope * sum_x) / n

    if not (math.isfinite(slope) and math.isfinite(intercept)):
        raise CalculationError(
            f"{operation}: regression produced a non-finite result",
            detail={"operation": operation, "values": y.tolist()},
        )
    return LinearFit(slope=float(slope), intercept=float(intercept))


def pearson_correlation(values: Sequence[float]) -> float:
    """Pearson r between index and value; 0 when either side has no variance."""
    y = _as_array(values)
    n = y.size
    if n < 2:
        return 0.0

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    numerator = n * float(np.dot(x, y)) - sum_x * sum_y
    denominator = math.sqrt(
        max(0.0, (n * float(np.dot(x, x)) - sum_x**2) * (n * float(np.dot(y, y)) - sum_y**2))
    )
    if denominator == 0:
        return 0.0
    return float(numerator / denominator)


def population_std(values: Sequence[float]) -> float:
    y = _as_array(values)
    if y.size < 2:
        return 0.0
    return float(np.std(y))


def volatility(values: Sequence[float]) -> float:
    """Population standard deviation divided by the mean (0 for a zero mean)."""
    y = _as_array(values)
    if y.size < 2:
        return 0.0
    mean = float(y.mean())
    if mean == 0:
        return 0.0
    return float(np.std(y)) / mean


def mean_absolute_residual(values: Sequence[float], fit: LinearFit) -> float:
    y = _as_array(values)
    if y.size == 0:
        return 0.0
    predicted = fit.slope * np.arange(y.size, dtype=float) + fit.intercept
    return float(np.mean(np.abs(y - predicted)))


def fit_accuracy(values: Sequence[float], fit: LinearFit) -> float:
    """``max(0, 1 - MAE / mean)``; 0 when the mean is zero."""
    y = _as_array(values)
    if y.size == 0:
        return 0.0
    mean = float(y.mean())
    if mean == 0:
        return 0.0
    return max(0.0, 1 - mean_absolute_residual(y, fit) / mean)


def consistency(values: Sequence[float]) -> float:
    """How closely a series follows its own regression line, in [0, 1]."""
    if len(values) < 2:
        return 0.0
    return fit_accuracy(values, linear_regression(values, operation="consistency"))
