from __future__ import annotations

from offline_cache.config.models import StoreSettings
from offline_cache.store.file_store import FileStore
from offline_cache.store.interfaces import KeyValueStore
from offline_cache.store.memory import MemoryStore


def build_store(settings: StoreSettings) -> KeyValueStore:
    if settings.backend == "memory":
        return MemoryStore()
    return FileStore(settings.path)


__all__ = ["FileStore", "KeyValueStore", "MemoryStore", "build_store"]
