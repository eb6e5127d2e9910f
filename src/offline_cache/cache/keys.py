from __future__ import annotations

import hashlib
from urllib.parse import urlsplit

CACHE_KEY_PREFIX = "web_cache_"
METADATA_KEY = "cache_metadata"
CONFIG_KEY = "cache_config"
OFFLINE_PAGES_KEY = "offline_pages"


def normalize_url(url: str) -> str:
    """
    Reduce a URL to ``scheme://host[:port]/path[?query]``.

    Credentials and the fragment are dropped; scheme and host are lowercased.
    Raises ValueError when the URL has no scheme or host, or an invalid port.
    """
    parts = urlsplit(url.strip())
    host = parts.hostname
    if not parts.scheme or not host:
        raise ValueError(f"Not an absolute URL: {url!r}")
    port = parts.port
    netloc = host if port is None else f"{host}:{port}"
    if ":" in host and not host.startswith("["):
        netloc = f"[{host}]" if port is None else f"[{host}]:{port}"
    path = parts.path or "/"
    query = f"?{parts.query}" if parts.query else ""
    return f"{parts.scheme.lower()}://{netloc}{path}{query}"


def derive_key(url: str) -> str:
    """Return the store key for a resource URL. Deterministic and never raises."""
    try:
        source = normalize_url(url)
    except ValueError:
        source = url
    digest = hashlib.sha256(source.encode("utf-8", errors="surrogatepass")).hexdigest()
    return CACHE_KEY_PREFIX + digest


def is_cache_key(key: str) -> bool:
    return key.startswith(CACHE_KEY_PREFIX)
