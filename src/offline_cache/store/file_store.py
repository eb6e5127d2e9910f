from __future__ import annotations

import asyncio
import logging
import re
from pathlib import Path
from typing import Iterable, Optional

from offline_cache.store.interfaces import KeyValueStore

logger = logging.getLogger(__name__)

_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")
_TMP_SUFFIX = ".tmp"


def atomic_write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + _TMP_SUFFIX)
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)


class FileStore(KeyValueStore):
    """
    One UTF-8 file per key under a root directory.

    Writes go through a temp file and an atomic rename so a crash never leaves a
    half-written value behind. Blocking file I/O runs in a worker thread.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key) or key.endswith(_TMP_SUFFIX) or key in {".", ".."}:
            raise ValueError(f"Store key is not filesystem-safe: {key!r}")
        return self._root / key

    def _read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, key: str, value: str) -> None:
        atomic_write_text(self._path_for(key), value)

    def _delete(self, key: str) -> None:
        self._path_for(key).unlink(missing_ok=True)

    def _list(self) -> list[str]:
        if not self._root.exists():
            return []
        return sorted(
            entry.name
            for entry in self._root.iterdir()
            if entry.is_file() and not entry.name.endswith(_TMP_SUFFIX)
        )

    def _delete_many(self, keys: list[str]) -> None:
        for key in keys:
            self._delete(key)

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)

    async def list_keys(self) -> list[str]:
        return await asyncio.to_thread(self._list)

    async def remove_many(self, keys: Iterable[str]) -> None:
        keys_list = list(keys)
        if not keys_list:
            return
        await asyncio.to_thread(self._delete_many, keys_list)
        logger.debug("Removed store keys. root=%s count=%d", self._root, len(keys_list))
