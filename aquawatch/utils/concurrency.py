"""
Concurrency utilities.

Provides :func:`bounded_store_call`, which awaits a store coroutine under a
timeout and converts any store failure into ``DatabaseOperationError``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from aquawatch.domain.exceptions import AquaWatchError, DatabaseOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def bounded_store_call(
    awaitable: Awaitable[T],
    *,
    operation: str,
    timeout_seconds: float | None,
    context: dict[str, Any] | None = None,
) -> T:
    """Await a store call, bounded by ``timeout_seconds`` when set.

    Taxonomy errors raised by the store pass through unchanged; anything else,
    including a timeout, becomes ``DatabaseOperationError``.
    """
    try:
        if timeout_seconds is None:
            return await awaitable
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except AquaWatchError:
        raise
    except asyncio.TimeoutError:
        error = DatabaseOperationError(
            operation,
            f"store call timed out after {timeout_seconds}s",
            detail=context,
        )
        logger.error(
            "Store call %s timed out (correlation_id=%s, context=%s)",
            operation,
            error.correlation_id,
            context,
        )
        raise error from None
    except Exception as exc:
        error = DatabaseOperationError(operation, str(exc), detail=context)
        logger.error(
            "Store call %s failed: %s (correlation_id=%s, context=%s)",
            operation,
            exc,
            error.correlation_id,
            context,
            exc_info=True,
        )
        raise error from exc
