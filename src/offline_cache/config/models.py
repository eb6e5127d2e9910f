from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Literal, Optional, Sequence

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

PayloadCodecName = Literal["base64", "zlib+base64"]
StoreBackend = Literal["file", "memory"]


class FileRotationSettings(BaseModel):
    """
    Date-based rotation settings (daily).

    This maps cleanly to Python's standard library TimedRotatingFileHandler behavior.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    backup_count: int = 7


class FileLoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: str = ""
    rotation: FileRotationSettings = FileRotationSettings()


class LoggingSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    level: str = "INFO"
    file: FileLoggingSettings = FileLoggingSettings()


class StoreSettings(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    backend: StoreBackend = "file"
    path: str = "data/store"


class CacheConfig(BaseModel):
    """
    Process-lifetime cache configuration.

    Only fields explicitly set by the caller override a stored configuration when the
    cache initializes (see ``ResourceCache.initialize``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    max_cache_size: int = Field(default=50 * 1024 * 1024, ge=0)
    max_cache_age: timedelta = timedelta(days=7)

    cache_images: bool = True
    cache_css: bool = True
    cache_js: bool = True

    # Master switch: nothing is admitted when this is off.
    offline_mode: bool = True

    payload_encoding_enabled: bool = Field(
        default=True,
        validation_alias=AliasChoices("payload_encoding_enabled", "compression_enabled"),
    )
    payload_codec: PayloadCodecName = "base64"

    preload_urls: Sequence[str] = ()
    preload_timeout_seconds: float = Field(default=30.0, gt=0)
    preload_concurrency: int = Field(default=1, ge=1)


class AppConfig(BaseModel):
    """Effective runtime configuration after applying all precedence rules."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    logging: LoggingSettings = LoggingSettings()
    store: StoreSettings = StoreSettings()
    cache: CacheConfig = CacheConfig()
    stats_poll_interval_seconds: float = 30.0


@dataclass(frozen=True, slots=True)
class ConfigLoadRequest:
    """
    Optional inputs for a configuration loader.

    Implementations may use these to control where configuration is read from.
    """

    yaml_path: str = "data/config/config.yaml"
    env_prefix: str = "APP__"
    dotenv_path: Optional[str] = "data/.env"
