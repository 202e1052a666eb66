"""Centralized exception hierarchy for AquaWatch analytics.

All engine and scheduler exceptions inherit from :class:`AquaWatchError` so
that request-handling services can catch a single base class when they need a
broad safety net, yet still match on specific subclasses where narrower
handling is appropriate.

Every error carries a correlation id generated where it is raised, so logs
from the engine and from its caller can be joined. ``http_status`` lets the
calling service map errors to status codes without knowing the subclasses.

Hierarchy
---------
::

    AquaWatchError (base, maps to 500)
    ├── ValidationError          (400, bad input from caller)
    ├── NotFoundError            (404, entity does not exist)
    ├── InsufficientDataError    (422, fewer records than required)
    ├── ServiceError             (500, business-logic failure)
    │   ├── CalculationError         (500, non-finite / degenerate maths)
    │   ├── ComparisonFailedError    (500, measurement comparison failure)
    │   ├── DatabaseOperationError   (500, store access failure)
    │   └── BackgroundJobError       (500, recompute job failure)
    └── ConfigurationError       (500, missing / invalid config)
"""

from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from typing import Any

_BASE36 = string.digits + string.ascii_lowercase


def generate_correlation_id() -> str:
    """Return a fresh correlation id of the form ``aqw-<ms>-<9 base36 chars>``."""
    suffix = "".join(random.choices(_BASE36, k=9))
    return f"aqw-{int(time.time() * 1000)}-{suffix}"


class AquaWatchError(Exception):
    """Base exception for all AquaWatch analytics errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    correlation_id:
        Correlation id to propagate; a new one is generated when omitted.
    """

    http_status: int = 500
    code: str = "AQUAWATCH_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        detail: dict | None = None,
        correlation_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
        self.correlation_id = correlation_id or generate_correlation_id()
        self.timestamp = datetime.now(timezone.utc)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for structured logs and error responses."""
        return {
            "error": self.code,
            "message": self.message,
            "status": self.http_status,
            "detail": self.detail,
            "correlation_id": self.correlation_id,
            "timestamp": self.timestamp.isoformat(),
        }


# ── Client errors (4xx) ──────────────────────────────────────────────


class ValidationError(AquaWatchError):
    """Caller supplied invalid or incomplete input (HTTP 400)."""

    http_status: int = 400
    code = "VALIDATION_ERROR"


class NotFoundError(AquaWatchError):
    """Requested entity does not exist (HTTP 404)."""

    http_status: int = 404
    code = "NOT_FOUND"


class InsufficientDataError(AquaWatchError):
    """Fewer records than the operation needs (HTTP 422).

    Client-correctable; never retried automatically.
    """

    http_status: int = 422
    code = "INSUFFICIENT_DATA"

    def __init__(
        self,
        operation: str,
        required: int,
        available: int,
        *,
        detail: dict | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.required = required
        self.available = available
        merged = {"operation": operation, "required": required, "available": available}
        merged.update(detail or {})
        super().__init__(
            f"Insufficient data for {operation}: required {required}, available {available}",
            detail=merged,
            correlation_id=correlation_id,
        )


# ── Server errors (5xx) ──────────────────────────────────────────────


class ServiceError(AquaWatchError):
    """Business-logic failure in a service method (HTTP 500)."""

    http_status: int = 500
    code = "SERVICE_ERROR"


class CalculationError(ServiceError):
    """A derived computation produced a mathematically invalid result."""

    code = "CALCULATION_ERROR"


class ComparisonFailedError(ServiceError):
    """Manual vs. sensor comparison failed unexpectedly."""

    code = "COMPARISON_FAILED"


class DatabaseOperationError(ServiceError):
    """The store access layer raised or timed out.

    Wraps the underlying error message together with the operation name.
    """

    code = "DATABASE_OPERATION_FAILED"

    def __init__(
        self,
        operation: str,
        error_message: str,
        *,
        detail: dict | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self.operation = operation
        self.error_message = error_message
        merged = {"operation": operation, "error": error_message}
        merged.update(detail or {})
        super().__init__(
            f"Database operation {operation} failed: {error_message}",
            detail=merged,
            correlation_id=correlation_id,
        )


class BackgroundJobError(ServiceError):
    """A recompute job run failed. Never propagated past the scheduler."""

    code = "BACKGROUND_JOB_FAILED"

    def __init__(
        self,
        job_id: str,
        message: str,
        *,
        detail: dict | None = None,
        correlation_id: str | None = None,
    ) -> None:
        self.job_id = job_id
        merged = {"job_id": job_id}
        merged.update(detail or {})
        super().__init__(
            f"Background job {job_id} failed: {message}",
            detail=merged,
            correlation_id=correlation_id,
        )


class ConfigurationError(AquaWatchError):
    """Missing or invalid application configuration (HTTP 500)."""

    http_status: int = 500
    code = "CONFIGURATION_ERROR"
