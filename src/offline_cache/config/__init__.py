from offline_cache.config.loader import YamlConfigLoader
from offline_cache.config.models import AppConfig, CacheConfig, ConfigLoadRequest

__all__ = ["AppConfig", "CacheConfig", "ConfigLoadRequest", "YamlConfigLoader"]
