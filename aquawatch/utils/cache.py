# aquawatch/utils/cache.py
"""Per-process TTL result cache shared by the analytics engines."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import OrderedDict
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass
from datetime import date, datetime
from threading import Lock
from typing import Any, Callable

from aquawatch.constants import CACHE_ENTRY_SIZE_KB, CACHE_MAX_ENTRIES

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

_MISSING = object()


@dataclass
class CacheEntry:
    key: str
    value: Any
    expires_at: float
    inserted_at: float


def _date_part(value: date | datetime | None) -> str:
    return value.isoformat() if value is not None else "null"


class ResultCache:
    """TTL cache with insertion-order eviction and hit/miss accounting.

    Entries expire lazily: a read past the expiry instant counts as a miss
    and drops the entry. When full, inserting a new key evicts the single
    oldest-inserted entry. Overwriting a key keeps its insertion position.
    """

    def __init__(
        self,
        *,
        max_entries: int = CACHE_MAX_ENTRIES,
        default_ttl_seconds: float = 300,
        single_flight: bool = False,
        clock: Clock | None = None,
    ) -> None:
        """Initialize the result cache.
        Args:
            max_entries: Maximum number of entries held at once
            default_ttl_seconds: TTL applied when ``set`` is called without one
            single_flight: Collapse concurrent ``get_or_compute`` calls per key
            clock: Monotonic seconds source, injectable for tests
        """
        self.max_entries = max(1, max_entries)
        self.default_ttl = default_ttl_seconds
        self.single_flight = single_flight
        self._clock = clock or time.monotonic
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._inflight: dict[str, asyncio.Future] = {}
        self._lock = Lock()

        # Metrics tracking, cumulative for the cache's lifetime
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def __len__(self) -> int:
        return len(self._store)

    def get(self, key: str, default: Any = None) -> Any:
        """Return the cached value, or ``default`` on a miss."""
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._misses += 1
                return default
            if now > entry.expires_at:
                del self._store[key]
                self._misses += 1
                self._evictions += 1
                return default
            self._hits += 1
            return entry.value

    def set(self, key: str, value: Any, ttl_seconds: float | None = None) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        ttl = self.default_ttl if ttl_seconds is None else ttl_seconds
        now = self._clock()
        with self._lock:
            existing = self._store.get(key)
            if existing is None and len(self._store) >= self.max_entries:
                oldest, _ = self._store.popitem(last=False)
                self._evictions += 1
                logger.debug("Evicted oldest cache item: %s", oldest)
            inserted_at = existing.inserted_at if existing is not None else now
            self._store[key] = CacheEntry(key=key, value=value, expires_at=now + ttl, inserted_at=inserted_at)

    async def get_or_compute(
        self,
        key: str,
        factory: Callable[[], Awaitable[Any]],
        ttl_seconds: float | None = None,
    ) -> Any:
        """Return the cached value or await ``factory`` and cache its result.

        Without single-flight, concurrent misses on the same key each run the
        factory and the last writer wins.
        """
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        if not self.single_flight:
            value = await factory()
            self.set(key, value, ttl_seconds)
            return value

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = future
        try:
            value = await factory()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as exc:
            future.set_exception(exc)
            # Mark retrieved so an unawaited future does not warn on GC
            future.exception()
            raise
        else:
            self.set(key, value, ttl_seconds)
            future.set_result(value)
            return value
        finally:
            self._inflight.pop(key, None)

    def has(self, key: str) -> bool:
        """Check for a live entry without touching hit/miss counters."""
        now = self._clock()
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return False
            if now > entry.expires_at:
                del self._store[key]
                self._evictions += 1
                return False
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._store.pop(key, None) is not None

    def delete_prefix(self, prefix: str) -> int:
        """Delete every entry whose key starts with ``prefix``."""
        with self._lock:
            doomed = [key for key in self._store if key.startswith(prefix)]
            for key in doomed:
                del self._store[key]
        return len(doomed)

    def clear(self) -> None:
        """Clear the entire cache."""
        with self._lock:
            self._store.clear()
        logger.info("Result cache cleared")

    def cleanup_expired(self) -> int:
        """Remove all expired entries; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._store.items() if now > entry.expires_at]
            for key in expired:
                del self._store[key]
            self._evictions += len(expired)

        if expired:
            logger.info("Cleaned up %d expired cache items", len(expired))
        return len(expired)

    def hit_rate(self) -> float:
        """Hits over total lookups, in [0, 1]; 0 before any lookup."""
        total = self._hits + self._misses
        if total == 0:
            return 0.0
        return self._hits / total

    def memory_usage(self) -> dict[str, Any]:
        """Rough memory estimate at a fixed size per entry."""
        item_count = len(self._store)
        if item_count == 0:
            return {"estimated_size_kb": 0, "item_count": 0, "average_item_size_kb": 0}
        return {
            "estimated_size_kb": item_count * CACHE_ENTRY_SIZE_KB,
            "item_count": item_count,
            "average_item_size_kb": CACHE_ENTRY_SIZE_KB,
        }

    def stats(self) -> dict[str, Any]:
        """
        Get cache statistics for monitoring.

        Returns:
            Dictionary with cache metrics including:
            - hits / misses / evictions: cumulative counters
            - item_count: Current number of entries
            - max_entries: Maximum capacity
            - hit_rate: Hit rate percentage (0-100)
            - utilization: Cache utilization percentage (0-100)
        """
        with self._lock:
            item_count = len(self._store)
            hits = self._hits
            misses = self._misses
            evictions = self._evictions

        return {
            "hits": hits,
            "misses": misses,
            "evictions": evictions,
            "item_count": item_count,
            "max_entries": self.max_entries,
            "hit_rate": round(self.hit_rate() * 100, 2),
            "utilization": round(item_count / self.max_entries * 100, 2),
            "single_flight": self.single_flight,
        }

    # ------------------------------------------------------------------
    # Key builders. Device id sets are sorted so identical logical queries
    # always map to the same key.
    # ------------------------------------------------------------------

    @staticmethod
    def _device_part(device_ids: Iterable[str] | None, *, empty: str = "all") -> str:
        if device_ids is None:
            return empty
        return ",".join(sorted(device_ids))

    @classmethod
    def analytics_key(
        cls,
        device_ids: Iterable[str],
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> str:
        return f"analytics:{cls._device_part(device_ids)}:{_date_part(start)}_{_date_part(end)}"

    @classmethod
    def growth_stats_key(
        cls,
        device_ids: Iterable[str] | None = None,
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> str:
        return f"growth_stats:{cls._device_part(device_ids)}:{_date_part(start)}_{_date_part(end)}"

    @classmethod
    def performance_key(
        cls,
        device_ids: Iterable[str],
        start: date | datetime | None = None,
        end: date | datetime | None = None,
    ) -> str:
        return f"performance:{cls._device_part(device_ids)}:{_date_part(start)}_{_date_part(end)}"

    @staticmethod
    def trends_key(device_id: str, period: str) -> str:
        return f"trends:{device_id}:{period}"

    @staticmethod
    def period_label(start: date | datetime | None, end: date | datetime | None) -> str:
        return f"{_date_part(start)}_{_date_part(end)}"

    @staticmethod
    def predictions_key(device_id: str, days: int) -> str:
        return f"predictions:{device_id}:{days}d"

    @staticmethod
    def comparison_key(measurement_id: str, tolerance_minutes: float) -> str:
        return f"comparison:{measurement_id}:{tolerance_minutes:g}"

