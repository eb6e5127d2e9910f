from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional

from pydantic import ValidationError

from offline_cache.cache.admission import should_cache
from offline_cache.cache.codec import decode_binary, encode_binary, get_codec
from offline_cache.cache.eviction import select_victims
from offline_cache.cache.index import MetadataIndex
from offline_cache.cache.io import decode_entry, encode_entry
from offline_cache.cache.keys import (
    CONFIG_KEY,
    METADATA_KEY,
    OFFLINE_PAGES_KEY,
    derive_key,
    is_cache_key,
)
from offline_cache.cache.models import CacheEntry, CacheStats, MetadataRecord, Payload
from offline_cache.cache.snapshots import OfflineSnapshotStore
from offline_cache.cache.stats import build_stats
from offline_cache.config.models import CacheConfig
from offline_cache.store.interfaces import KeyValueStore
from offline_cache.utils import byte_size, utc_now

logger = logging.getLogger(__name__)


def _explicit_fields(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a partial config and return only the fields it sets, keyed by field name."""
    return CacheConfig.model_validate(dict(values)).model_dump(exclude_unset=True)


class ResourceCache:
    """
    Size- and age-bounded cache of fetched web resources on top of a key/value store.

    Every sequence that reads the current size and then changes the store or the index
    runs under one asyncio lock, so overlapping ``put`` calls cannot jointly overshoot
    ``max_cache_size``. Store failures never escape: they are logged and reported as
    ``False`` or ``None``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[CacheConfig] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        snapshots: Optional[OfflineSnapshotStore] = None,
    ) -> None:
        self._store = store
        self._config = config or CacheConfig()
        self._clock = clock
        self._index = MetadataIndex(store)
        self._snapshots = snapshots or OfflineSnapshotStore(store, clock=clock)
        self._lock = asyncio.Lock()
        self._initialized = False

    @property
    def config(self) -> CacheConfig:
        return self._config

    @property
    def index(self) -> MetadataIndex:
        return self._index

    @property
    def snapshots(self) -> OfflineSnapshotStore:
        return self._snapshots

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """
        Load configuration and metadata, then drop anything stale or inconsistent.

        The effective config is the defaults, overlaid by the stored config, overlaid by
        the fields explicitly set on the config this cache was constructed with.
        """
        try:
            stored = await self._load_stored_config()
            self._config = CacheConfig.model_validate({**stored, **self._config.model_dump(exclude_unset=True)})
            async with self._lock:
                await self._index.load()
                await self._reconcile_locked()
                removed = await self._sweep_expired_locked(self._clock())
        except Exception:
            logger.exception("Failed to initialize resource cache.")
            return False

        self._initialized = True
        logger.info(
            "Resource cache initialized. entries=%d total_size=%d max_size=%d expired_removed=%d",
            len(self._index),
            self._index.current_total_size(),
            self._config.max_cache_size,
            removed,
        )
        return True

    async def _load_stored_config(self) -> Dict[str, Any]:
        try:
            raw = await self._store.get(CONFIG_KEY)
        except Exception:
            logger.exception("Failed to read stored cache config, using process config.")
            return {}
        if not raw:
            return {}
        try:
            return _explicit_fields(json.loads(raw))
        except (ValueError, TypeError, ValidationError) as e:
            logger.warning("Ignoring invalid stored cache config. error=%s", e)
            return {}

    async def update_config(self, changes: Mapping[str, Any]) -> bool:
        """Merge ``changes`` into the live config, persist it, and evict down to a smaller budget."""
        async with self._lock:
            try:
                merged = CacheConfig.model_validate({**self._config.model_dump(), **_explicit_fields(changes)})
            except ValidationError as e:
                logger.warning("Rejected cache config update. error=%s", e)
                return False
            try:
                await self._store.set(CONFIG_KEY, json.dumps(merged.model_dump(mode="json")))
            except Exception:
                logger.exception("Failed to persist cache config.")
                return False
            self._config = merged
            try:
                await self._make_room_locked(0)
            except Exception:
                logger.exception("Failed to evict down to the updated cache budget.")
                return False
        return True

    async def _reconcile_locked(self) -> None:
        """Make the index and the stored entries describe the same set of keys."""
        try:
            keys = await self._store.list_keys()
        except Exception:
            logger.exception("Failed to list store keys, skipping cache reconciliation.")
            return

        present = {key for key in keys if is_cache_key(key)}
        missing = [key for key, _ in self._index.all_records() if key not in present]
        if missing:
            await self._index.record_removals(missing)

        untracked = sorted(key for key in present if key not in self._index)
        adopted, unreadable = await self._adopt_untracked_locked(untracked)
        if unreadable:
            try:
                await self._store.remove_many(unreadable)
            except Exception:
                logger.exception("Failed to remove unreadable cache entries. count=%d", len(unreadable))
        if adopted:
            try:
                await self._make_room_locked(0)
            except Exception:
                logger.exception("Failed to evict adopted cache entries down to budget.")
        if missing or untracked:
            logger.warning(
                "Cache index reconciled with store. dropped_records=%d adopted=%d removed_unreadable=%d",
                len(missing),
                len(adopted),
                len(unreadable),
            )

    async def _adopt_untracked_locked(self, keys: list[str]) -> tuple[Dict[str, MetadataRecord], list[str]]:
        """Rebuild index records from stored entries the index does not know about."""
        adopted: Dict[str, MetadataRecord] = {}
        unreadable: list[str] = []
        for key in keys:
            try:
                raw = await self._store.get(key)
            except Exception:
                logger.exception("Failed to read untracked cache entry, leaving it in place. key=%s", key)
                continue
            if raw is None:
                continue
            try:
                entry = decode_entry(raw)
            except Exception as e:
                logger.warning("Untracked cache entry is malformed. key=%s error=%s", key, e)
                unreadable.append(key)
                continue
            adopted[key] = MetadataRecord(
                url=entry.url,
                created_at=entry.created_at,
                size_bytes=entry.size_bytes,
                content_type=entry.content_type,
                access_count=0,
                last_accessed_at=entry.created_at,
            )
        await self._index.record_writes(adopted)
        return adopted, unreadable

    def _build_entry(
        self,
        url: str,
        payload: Payload,
        content_type: str,
        headers: Optional[Mapping[str, str]],
        now: datetime,
    ) -> CacheEntry:
        config = self._config
        encoded = False
        binary = False
        codec_name: Optional[str] = None
        if isinstance(payload, (bytes, bytearray)):
            stored = encode_binary(bytes(payload))
            binary = True
        elif config.payload_encoding_enabled:
            codec = get_codec(config.payload_codec)
            stored = codec.encode(payload)
            encoded = True
            codec_name = codec.name
        else:
            stored = payload
        return CacheEntry(
            url=url,
            payload=stored,
            content_type=content_type,
            headers={str(k): str(v) for k, v in (headers or {}).items()},
            created_at=now,
            size_bytes=byte_size(stored),
            encoded=encoded,
            codec=codec_name,
            binary=binary,
        )

    async def put(
        self,
        url: str,
        payload: Payload,
        content_type: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        if not should_cache(url, content_type, self._config):
            logger.debug("Resource not admitted. url=%s content_type=%s", url, content_type)
            return False

        key = derive_key(url)
        async with self._lock:
            try:
                now = self._clock()
                entry = self._build_entry(url, payload, content_type, headers, now)
                if entry.size_bytes > self._config.max_cache_size:
                    logger.warning(
                        "Resource larger than the whole cache, not cached. url=%s size=%d max_size=%d",
                        url,
                        entry.size_bytes,
                        self._config.max_cache_size,
                    )
                    return False

                await self._make_room_locked(entry.size_bytes, replacing=key)
                await self._store.set(key, encode_entry(entry))
                # A re-cached URL starts over with no access history.
                await self._index.record_write(
                    key,
                    MetadataRecord(
                        url=url,
                        created_at=now,
                        size_bytes=entry.size_bytes,
                        content_type=content_type,
                        access_count=0,
                        last_accessed_at=now,
                    ),
                )
            except Exception:
                logger.exception("Failed to cache resource. url=%s", url)
                return False

        logger.debug("Resource cached. url=%s size=%d encoded=%s", url, entry.size_bytes, entry.encoded)
        return True

    async def _make_room_locked(self, incoming_bytes: int, *, replacing: Optional[str] = None) -> None:
        # The record being replaced is about to be overwritten: not counted, never a victim.
        others = [(key, record) for key, record in self._index.all_records() if key != replacing]
        current = sum(record.size_bytes for _, record in others)
        needed = current + incoming_bytes - self._config.max_cache_size
        if needed <= 0:
            return

        victims = select_victims(needed, others)
        removed: list[str] = []
        try:
            for key in victims:
                await self._store.remove(key)
                removed.append(key)
        finally:
            # Only keys whose entry is really gone lose their record.
            await self._index.record_removals(removed)
        logger.info("Evicted cache entries. count=%d needed_bytes=%d", len(victims), needed)

    async def get(self, url: str) -> Optional[CacheEntry]:
        """
        Return the cached entry for ``url`` with its payload decoded, or None.

        ``encoded``/``codec``/``binary`` on the returned entry describe how it was stored.
        """
        key = derive_key(url)
        try:
            raw = await self._store.get(key)
        except Exception:
            logger.exception("Failed to read cached resource. url=%s", url)
            return None
        if raw is None:
            return None

        try:
            entry = decode_entry(raw)
        except Exception as e:
            logger.warning("Malformed cache entry treated as a miss. url=%s error=%s", url, e)
            return None

        now = self._clock()
        expired = now - entry.created_at > self._config.max_cache_age
        async with self._lock:
            record = self._index.get(key)
            if record is None:
                # Evicted or removed after our read.
                return None
            # Rewritten by a concurrent put after our read.
            superseded = record.created_at != entry.created_at
            if expired:
                if not superseded:
                    logger.debug("Expired cache entry removed on read. url=%s", url)
                    await self._remove_locked(key)
                return None
            if not superseded:
                await self._index.record_access(key, now)

        return self._restore_payload(entry)

    def _restore_payload(self, entry: CacheEntry) -> Optional[CacheEntry]:
        stored = entry.payload
        if not isinstance(stored, str):
            return entry
        if entry.binary:
            try:
                return dataclasses.replace(entry, payload=decode_binary(stored))
            except ValueError:
                logger.warning("Corrupt binary cache entry treated as a miss. url=%s", entry.url)
                return None
        if entry.encoded:
            try:
                codec = get_codec(entry.codec or "base64")
            except ValueError:
                logger.warning("Unknown payload codec, returning stored text. url=%s codec=%s", entry.url, entry.codec)
                return entry
            return dataclasses.replace(entry, payload=codec.decode(stored))
        return entry

    async def remove(self, url: str) -> bool:
        key = derive_key(url)
        async with self._lock:
            return await self._remove_locked(key)

    async def _remove_locked(self, key: str) -> bool:
        try:
            await self._store.remove(key)
        except Exception:
            logger.exception("Failed to remove cached resource. key=%s", key)
            return False
        await self._index.record_removal(key)
        return True

    async def sweep_expired(self, now: Optional[datetime] = None) -> int:
        async with self._lock:
            return await self._sweep_expired_locked(now or self._clock())

    async def _sweep_expired_locked(self, now: datetime) -> int:
        max_age = self._config.max_cache_age
        expired = [key for key, record in self._index.all_records() if now - record.created_at > max_age]
        removed: list[str] = []
        for key in expired:
            try:
                await self._store.remove(key)
            except Exception:
                logger.exception("Failed to remove expired cache entry. key=%s", key)
                continue
            removed.append(key)
        await self._index.record_removals(removed)
        if removed:
            logger.info("Expired cache entries swept. count=%d", len(removed))
        return len(removed)

    async def clear_all(self) -> bool:
        async with self._lock, self._snapshots.lock:
            try:
                keys = await self._store.list_keys()
                targets = [key for key in keys if is_cache_key(key) or key in (METADATA_KEY, OFFLINE_PAGES_KEY)]
                await self._store.remove_many(targets)
            except Exception:
                logger.exception("Failed to clear cache.")
                return False
            self._index.reset()
        logger.info("Cache cleared. removed_keys=%d", len(targets))
        return True

    async def stats(self) -> CacheStats:
        records = [record for _, record in self._index.all_records()]
        offline_pages_count = await self._snapshots.count()
        return build_stats(
            records,
            offline_pages_count=offline_pages_count,
            max_cache_size=self._config.max_cache_size,
        )
