from __future__ import annotations

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from offline_cache.cache.models import CacheStats, MetadataRecord

if TYPE_CHECKING:
    from offline_cache.cache.engine import ResourceCache

logger = logging.getLogger(__name__)


def build_stats(
    records: Iterable[MetadataRecord],
    *,
    offline_pages_count: int,
    max_cache_size: int,
) -> CacheStats:
    """
    Aggregate cache metrics.

    ``hit_rate`` is the mean access count over live entries. It is an approximation:
    misses are not counted anywhere.
    """
    total_size = 0
    entry_count = 0
    total_access = 0
    for record in records:
        total_size += record.size_bytes
        entry_count += 1
        total_access += record.access_count
    hit_rate = total_access / entry_count if entry_count else 0.0
    return CacheStats(
        total_size=total_size,
        entry_count=entry_count,
        offline_pages_count=offline_pages_count,
        max_cache_size=max_cache_size,
        hit_rate=hit_rate,
    )


class StatsPoller:
    """Periodically collects ``ResourceCache.stats()`` and hands the result to a callback."""

    def __init__(
        self,
        cache: "ResourceCache",
        *,
        interval_seconds: float = 30.0,
        on_stats: Optional[Callable[[CacheStats], None]] = None,
    ) -> None:
        self._cache = cache
        self._interval_seconds = max(0.0, interval_seconds)
        self._on_stats = on_stats or self._log_stats
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()
        self.latest: Optional[CacheStats] = None

    @staticmethod
    def _log_stats(stats: CacheStats) -> None:
        logger.info(
            "Cache stats. total_size=%d entries=%d offline_pages=%d max_size=%d hit_rate=%.2f",
            stats.total_size,
            stats.entry_count,
            stats.offline_pages_count,
            stats.max_cache_size,
            stats.hit_rate,
        )

    def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._stop_event.clear()
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if not self._task:
            return
        self._stop_event.set()
        await self._task
        self._task = None

    async def poll_once(self) -> CacheStats:
        stats = await self._cache.stats()
        self.latest = stats
        self._on_stats(stats)
        return stats

    async def _loop(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Cache stats poll failed.")
            elapsed = time.monotonic() - started
            sleep_seconds = max(0.0, self._interval_seconds - elapsed)
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=sleep_seconds)
            except asyncio.TimeoutError:
                continue
