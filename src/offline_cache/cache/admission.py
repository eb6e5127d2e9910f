from __future__ import annotations

from offline_cache.config.models import CacheConfig

# Any URL containing one of these substrings is never cached.
DENYLIST_SUBSTRINGS = (
    "analytics",
    "tracking",
    "ads",
    "advertisement",
    "beacon",
    "ping",
    "websocket",
    "ws://",
    "wss://",
)


def should_cache(url: str, content_type: str, config: CacheConfig) -> bool:
    if not config.offline_mode:
        return False

    content_type_lower = (content_type or "").lower()
    if "image/" in content_type_lower and not config.cache_images:
        return False
    if "text/css" in content_type_lower and not config.cache_css:
        return False
    if "javascript" in content_type_lower and not config.cache_js:
        return False

    url_lower = url.lower()
    return not any(marker in url_lower for marker in DENYLIST_SUBSTRINGS)
