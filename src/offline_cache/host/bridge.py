from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional, Union

from pydantic import ValidationError

from offline_cache.cache.engine import ResourceCache
from offline_cache.cache.models import Payload
from offline_cache.cache.snapshots import OfflineSnapshotStore
from offline_cache.host.models import CACHE_PAGE, CachePageMessage, HostMessage

logger = logging.getLogger(__name__)

RawMessage = Union[str, bytes, Mapping[str, Any]]


class HostBridge:
    """
    Entry points the rendering host calls into.

    Page-load notifications become offline snapshots; observed sub-resource responses
    are offered to the resource cache. Nothing here raises back into the host.
    """

    def __init__(self, cache: ResourceCache, snapshots: Optional[OfflineSnapshotStore] = None) -> None:
        self._cache = cache
        self._snapshots = snapshots or cache.snapshots

    async def handle_message(self, raw: RawMessage) -> bool:
        """Dispatch one host message. Returns True only when it was recognised and handled."""
        try:
            data = json.loads(raw) if isinstance(raw, (str, bytes)) else dict(raw)
            envelope = HostMessage.model_validate(data)
        except (ValueError, TypeError, ValidationError):
            logger.debug("Ignoring unparseable host message.")
            return False

        if envelope.type != CACHE_PAGE:
            logger.debug("Ignoring host message. type=%s", envelope.type)
            return False

        try:
            message = CachePageMessage.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed CACHE_PAGE message. error=%s", e)
            return False
        return await self._snapshots.save_snapshot(message.url, message.html)

    async def on_resource_loaded(
        self,
        url: str,
        body: Payload,
        content_type: str = "",
        headers: Optional[Mapping[str, str]] = None,
    ) -> bool:
        return await self._cache.put(url, body, content_type, headers)
