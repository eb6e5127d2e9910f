from __future__ import annotations

import asyncio
import logging
from typing import Dict, Optional, Sequence, Tuple

import aiohttp

from offline_cache.cache.engine import ResourceCache

logger = logging.getLogger(__name__)

FetchResult = Tuple[int, str, str, Dict[str, str]]


class UrlPreloader:
    """Warm the cache with the configured ``preload_urls`` right after initialization."""

    def __init__(self, cache: ResourceCache) -> None:
        self._cache = cache
        config = cache.config
        self._download_semaphore = asyncio.Semaphore(max(1, int(config.preload_concurrency)))
        self._timeout_seconds = config.preload_timeout_seconds

    async def run(self, urls: Optional[Sequence[str]] = None) -> int:
        """Fetch each URL and offer successful responses to the cache. Returns how many were cached."""
        targets = list(urls if urls is not None else self._cache.config.preload_urls)
        if not targets:
            return 0

        timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            tasks = [asyncio.create_task(self._preload_one(session, url)) for url in targets]
            results = await asyncio.gather(*tasks)
        cached = sum(1 for ok in results if ok)
        logger.info("Preload finished. requested=%d cached=%d", len(targets), cached)
        return cached

    async def _preload_one(self, session: aiohttp.ClientSession, url: str) -> bool:
        try:
            async with self._download_semaphore:
                status, content_type, body, headers = await self._fetch(session, url)
        except asyncio.TimeoutError:
            logger.warning("Preload request timed out. url=%s", url)
            return False
        except aiohttp.ClientError as e:
            logger.warning("Preload request failed. url=%s error=%s", url, e)
            return False
        except Exception:
            logger.exception("Unexpected preload error. url=%s", url)
            return False

        if not 200 <= status < 300:
            logger.warning("Unexpected preload status. url=%s status=%s", url, status)
            return False
        return await self._cache.put(url, body, content_type, headers)

    async def _fetch(self, session: aiohttp.ClientSession, url: str) -> FetchResult:
        async with session.get(url) as response:
            status = response.status
            content_type = response.headers.get("Content-Type", "")
            headers = {key: value for key, value in response.headers.items()}
            body = await response.text() if 200 <= status < 300 else ""
            return status, content_type, body, headers
