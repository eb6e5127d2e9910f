from offline_cache.host.bridge import HostBridge
from offline_cache.host.models import CachePageMessage, HostMessage

__all__ = ["CachePageMessage", "HostBridge", "HostMessage"]
