from __future__ import annotations

import json
import logging
from typing import Dict, Optional

from offline_cache.cache.models import (
    CacheEntry,
    IndexState,
    MetadataRecord,
    OfflineSnapshot,
    SchemaVersion,
)
from offline_cache.utils import format_rfc3339, parse_rfc3339

logger = logging.getLogger(__name__)


def encode_entry(entry: CacheEntry) -> str:
    if not isinstance(entry.payload, str):
        raise TypeError("Entry payload must be a string before it is persisted.")
    payload = {
        "url": entry.url,
        "payload": entry.payload,
        "content_type": entry.content_type,
        "headers": dict(entry.headers),
        "created_at": format_rfc3339(entry.created_at),
        "size_bytes": entry.size_bytes,
        "encoded": entry.encoded,
        "codec": entry.codec,
        "binary": entry.binary,
    }
    return json.dumps(payload, ensure_ascii=False)


def decode_entry(raw: str) -> CacheEntry:
    """Parse a persisted entry. Raises ValueError, KeyError or TypeError when malformed."""
    payload = json.loads(raw)
    if not isinstance(payload, dict):
        raise ValueError("Cache entry must be a JSON object.")
    headers = payload.get("headers") or {}
    return CacheEntry(
        url=payload["url"],
        payload=payload["payload"],
        content_type=payload.get("content_type", ""),
        headers={str(k): str(v) for k, v in headers.items()},
        created_at=parse_rfc3339(payload["created_at"]),
        size_bytes=int(payload["size_bytes"]),
        encoded=bool(payload.get("encoded", False)),
        codec=payload.get("codec"),
        binary=bool(payload.get("binary", False)),
    )


def _encode_record(record: MetadataRecord) -> dict:
    return {
        "url": record.url,
        "created_at": format_rfc3339(record.created_at),
        "size_bytes": record.size_bytes,
        "content_type": record.content_type,
        "access_count": record.access_count,
        "last_accessed_at": format_rfc3339(record.last_accessed_at or record.created_at),
    }


def _decode_record(payload: dict) -> MetadataRecord:
    created_at = parse_rfc3339(payload["created_at"])
    last_accessed = payload.get("last_accessed_at")
    return MetadataRecord(
        url=payload["url"],
        created_at=created_at,
        size_bytes=int(payload["size_bytes"]),
        content_type=payload.get("content_type", ""),
        access_count=max(0, int(payload.get("access_count", 0))),
        last_accessed_at=parse_rfc3339(last_accessed) if last_accessed else created_at,
    )


def encode_index(records: Dict[str, MetadataRecord]) -> str:
    return json.dumps(
        {
            "schema_version": SchemaVersion,
            "records": {key: _encode_record(record) for key, record in records.items()},
        },
        sort_keys=True,
    )


def decode_index(raw: Optional[str]) -> IndexState:
    """Parse the persisted metadata index. Anything unreadable yields an empty index."""
    if not raw:
        return IndexState(schema_version=SchemaVersion)
    try:
        payload = json.loads(raw)
        schema_version = int(payload.get("schema_version", SchemaVersion))
        if schema_version != SchemaVersion:
            logger.warning(
                "Cache metadata schema mismatch, starting fresh. expected=%s actual=%s",
                SchemaVersion,
                schema_version,
            )
            return IndexState(schema_version=SchemaVersion)
        records = {key: _decode_record(value) for key, value in payload.get("records", {}).items()}
        return IndexState(schema_version=schema_version, records=records)
    except Exception:
        logger.exception("Failed to parse cache metadata, starting fresh.")
        return IndexState(schema_version=SchemaVersion)


def encode_snapshots(snapshots: Dict[str, OfflineSnapshot]) -> str:
    return json.dumps(
        {
            url: {
                "html": snapshot.html,
                "captured_at": format_rfc3339(snapshot.captured_at),
                "size_bytes": snapshot.size_bytes,
            }
            for url, snapshot in snapshots.items()
        },
        ensure_ascii=False,
    )


def decode_snapshots(raw: Optional[str]) -> Dict[str, OfflineSnapshot]:
    if not raw:
        return {}
    try:
        payload = json.loads(raw)
        return {
            url: OfflineSnapshot(
                html=value["html"],
                captured_at=parse_rfc3339(value["captured_at"]),
                size_bytes=int(value.get("size_bytes", 0)),
            )
            for url, value in payload.items()
        }
    except Exception:
        logger.exception("Failed to parse offline snapshots, treating as empty.")
        return {}
