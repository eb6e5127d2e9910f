from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

CACHE_PAGE = "CACHE_PAGE"


class HostMessage(BaseModel):
    """Envelope of a message posted by the rendering host. Only ``type`` is inspected first."""

    model_config = ConfigDict(frozen=True, extra="allow")

    type: str


class CachePageMessage(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    type: Literal["CACHE_PAGE"]
    url: str
    html: str
