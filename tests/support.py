from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Awaitable, Callable, Iterable, Optional

from offline_cache.store.memory import MemoryStore

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FlakyStore(MemoryStore):
    """MemoryStore whose operations can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_get = False
        self.fail_set = False
        self.fail_remove = False
        self.fail_list = False
        # Keys whose reads fail, independent of ``fail_get``.
        self.fail_get_keys: set[str] = set()
        # Successful ``remove`` calls allowed before removals start failing.
        self.remove_budget: Optional[int] = None
        # Awaited after a successful ``get``, before the value is returned.
        self.after_get: Optional[Callable[[str], Awaitable[None]]] = None

    async def get(self, key: str) -> Optional[str]:
        if self.fail_get or key in self.fail_get_keys:
            raise OSError("get failed")
        value = await super().get(key)
        if self.after_get is not None:
            await self.after_get(key)
        return value

    async def set(self, key: str, value: str) -> None:
        if self.fail_set:
            raise OSError("set failed")
        await super().set(key, value)

    async def remove(self, key: str) -> None:
        if self.fail_remove or self.remove_budget == 0:
            raise OSError("remove failed")
        if self.remove_budget is not None:
            self.remove_budget -= 1
        await super().remove(key)

    async def remove_many(self, keys: Iterable[str]) -> None:
        if self.fail_remove:
            raise OSError("remove failed")
        await super().remove_many(keys)

    async def list_keys(self) -> list[str]:
        if self.fail_list:
            raise OSError("list failed")
        return await super().list_keys()
