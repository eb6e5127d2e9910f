from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from offline_cache.cache.io import decode_snapshots, encode_snapshots
from offline_cache.cache.keys import OFFLINE_PAGES_KEY
from offline_cache.cache.models import OfflineSnapshot
from offline_cache.store.interfaces import KeyValueStore
from offline_cache.utils import byte_size, utc_now

logger = logging.getLogger(__name__)


class OfflineSnapshotStore:
    """
    Full-page HTML captures keyed by the raw page URL.

    Unlike the resource cache this store has no size cap and no expiry; a capture
    stays until it is overwritten or the cache is cleared.
    """

    def __init__(self, store: KeyValueStore, *, clock: Callable[[], datetime] = utc_now) -> None:
        self._store = store
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    async def _load(self) -> Dict[str, OfflineSnapshot]:
        raw = await self._store.get(OFFLINE_PAGES_KEY)
        return decode_snapshots(raw)

    async def save_snapshot(self, url: str, html: str) -> bool:
        async with self._lock:
            try:
                snapshots = await self._load()
                snapshots[url] = OfflineSnapshot(
                    html=html,
                    captured_at=self._clock(),
                    size_bytes=byte_size(html),
                )
                await self._store.set(OFFLINE_PAGES_KEY, encode_snapshots(snapshots))
            except Exception:
                logger.exception("Failed to save offline snapshot. url=%s", url)
                return False
        logger.debug("Offline snapshot saved. url=%s size=%d", url, snapshots[url].size_bytes)
        return True

    async def get_snapshot(self, url: str) -> Optional[OfflineSnapshot]:
        return (await self.list_snapshots()).get(url)

    async def list_snapshots(self) -> Dict[str, OfflineSnapshot]:
        try:
            return await self._load()
        except Exception:
            logger.exception("Failed to read offline snapshots.")
            return {}

    async def count(self) -> int:
        return len(await self.list_snapshots())

    async def clear(self) -> bool:
        async with self._lock:
            try:
                await self._store.remove(OFFLINE_PAGES_KEY)
            except Exception:
                logger.exception("Failed to clear offline snapshots.")
                return False
        return True
