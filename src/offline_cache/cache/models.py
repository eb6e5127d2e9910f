from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Optional, Union

SchemaVersion = 1

Payload = Union[str, bytes]


@dataclass(slots=True)
class CacheEntry:
    url: str
    payload: Payload
    content_type: str
    headers: Dict[str, str]
    created_at: datetime
    size_bytes: int
    # True when ``payload`` went through a payload codec before storage.
    encoded: bool = False
    codec: Optional[str] = None
    # True when the caller passed bytes (stored base64-wrapped).
    binary: bool = False


@dataclass(slots=True)
class MetadataRecord:
    url: str
    created_at: datetime
    size_bytes: int
    content_type: str
    access_count: int = 0
    last_accessed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if self.last_accessed_at is None:
            self.last_accessed_at = self.created_at


@dataclass(slots=True)
class OfflineSnapshot:
    html: str
    captured_at: datetime
    size_bytes: int


@dataclass(frozen=True, slots=True)
class CacheStats:
    total_size: int = 0
    entry_count: int = 0
    offline_pages_count: int = 0
    max_cache_size: int = 0
    # Mean access count per live entry; there is no miss counter.
    hit_rate: float = 0.0


@dataclass(slots=True)
class IndexState:
    schema_version: int
    records: Dict[str, MetadataRecord] = field(default_factory=dict)
