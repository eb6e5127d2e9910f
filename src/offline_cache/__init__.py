"""Bounded, persistent resource cache for a web content wrapper."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from offline_cache.cache.engine import ResourceCache
    from offline_cache.cache.snapshots import OfflineSnapshotStore
    from offline_cache.config.models import CacheConfig

__all__ = ["CacheConfig", "OfflineSnapshotStore", "ResourceCache"]


def __getattr__(name: str):
    if name == "ResourceCache":
        from offline_cache.cache.engine import ResourceCache as _ResourceCache

        return _ResourceCache
    if name == "OfflineSnapshotStore":
        from offline_cache.cache.snapshots import OfflineSnapshotStore as _OfflineSnapshotStore

        return _OfflineSnapshotStore
    if name == "CacheConfig":
        from offline_cache.config.models import CacheConfig as _CacheConfig

        return _CacheConfig
    raise AttributeError(name)
