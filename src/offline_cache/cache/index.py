from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, Optional

from offline_cache.cache.io import decode_index, encode_index
from offline_cache.cache.keys import METADATA_KEY
from offline_cache.cache.models import MetadataRecord
from offline_cache.store.interfaces import KeyValueStore

logger = logging.getLogger(__name__)


class MetadataIndex:
    """
    In-memory accounting for cached entries, mirrored to the store after every mutation.

    Not safe for concurrent mutation on its own; the engine serializes callers.
    A failed flush is logged and leaves the in-memory state authoritative until the
    next successful flush.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._records: Dict[str, MetadataRecord] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def get(self, key: str) -> Optional[MetadataRecord]:
        return self._records.get(key)

    async def load(self) -> None:
        try:
            raw = await self._store.get(METADATA_KEY)
        except Exception:
            logger.exception("Failed to read cache metadata, starting with an empty index.")
            self._records = {}
            return
        self._records = decode_index(raw).records
        logger.debug("Cache metadata loaded. entries=%d", len(self._records))

    async def flush(self) -> bool:
        try:
            await self._store.set(METADATA_KEY, encode_index(self._records))
            return True
        except Exception:
            logger.exception("Failed to save cache metadata. entries=%d", len(self._records))
            return False

    async def record_write(self, key: str, record: MetadataRecord) -> None:
        self._records[key] = record
        await self.flush()

    async def record_writes(self, records: Dict[str, MetadataRecord]) -> None:
        if not records:
            return
        self._records.update(records)
        await self.flush()

    async def record_access(self, key: str, now: datetime) -> None:
        record = self._records.get(key)
        if record is None:
            return
        record.access_count += 1
        record.last_accessed_at = now
        await self.flush()

    async def record_removal(self, key: str) -> None:
        if self._records.pop(key, None) is not None:
            await self.flush()

    async def record_removals(self, keys: Iterable[str]) -> None:
        removed = [key for key in keys if self._records.pop(key, None) is not None]
        if removed:
            await self.flush()

    def reset(self) -> None:
        self._records = {}

    def current_total_size(self) -> int:
        return sum(record.size_bytes for record in self._records.values())

    def all_records(self) -> list[tuple[str, MetadataRecord]]:
        return list(self._records.items())
