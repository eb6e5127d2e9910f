"""Resource cache: admission, keys, payload codecs, accounting, eviction and offline snapshots."""

from offline_cache.cache.engine import ResourceCache
from offline_cache.cache.models import CacheEntry, CacheStats, MetadataRecord, OfflineSnapshot
from offline_cache.cache.snapshots import OfflineSnapshotStore

__all__ = [
    "CacheEntry",
    "CacheStats",
    "MetadataRecord",
    "OfflineSnapshot",
    "OfflineSnapshotStore",
    "ResourceCache",
]
