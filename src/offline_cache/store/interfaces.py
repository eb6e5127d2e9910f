from __future__ import annotations

from typing import Iterable, Optional


class KeyValueStore:
    """
    Asynchronous string key/value store consumed by the cache.

    There are no transactions and no locking; every call may raise. Callers are expected
    to catch failures at the point of use.
    """

    async def get(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""
        raise NotImplementedError

    async def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    async def remove(self, key: str) -> None:
        """Delete a key. Removing an absent key is not an error."""
        raise NotImplementedError

    async def list_keys(self) -> list[str]:
        raise NotImplementedError

    async def remove_many(self, keys: Iterable[str]) -> None:
        raise NotImplementedError
