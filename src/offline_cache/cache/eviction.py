from __future__ import annotations

from typing import Iterable, Tuple

from offline_cache.cache.models import MetadataRecord


def _eviction_order(item: Tuple[str, MetadataRecord]):
    key, record = item
    return (record.last_accessed_at or record.created_at, record.size_bytes, key)


def select_victims(needed_bytes: int, records: Iterable[Tuple[str, MetadataRecord]]) -> list[str]:
    """
    Pick the keys to evict so that at least ``needed_bytes`` are freed.

    Least recently used first; among equally stale entries the smaller one goes first.
    Returns the shortest such prefix, or every key when even that is not enough.
    """
    if needed_bytes <= 0:
        return []

    victims: list[str] = []
    freed = 0
    for key, record in sorted(records, key=_eviction_order):
        if freed >= needed_bytes:
            break
        victims.append(key)
        freed += record.size_bytes
    return victims
