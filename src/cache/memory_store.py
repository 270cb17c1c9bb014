# src/cache/memory_store.py — v1
"""In-process key-value store (CACHE_BACKEND=memory).

Lives as long as the process. Used for tests and for short-lived CLI runs.
"""

from __future__ import annotations

from lexiread.cache.base_store import DEFAULT_QUOTA_BYTES, BaseKeyValueStore, entry_size


class MemoryKeyValueStore(BaseKeyValueStore):
    """Dict-backed store."""

    def __init__(self, quota_bytes: int = DEFAULT_QUOTA_BYTES) -> None:
        self._data: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    async def get(self, keys: list[str] | None = None) -> dict[str, str]:
        if keys is None:
            return dict(self._data)
        return {k: self._data[k] for k in keys if k in self._data}

    async def set(self, entries: dict[str, str]) -> None:
        self._data.update(entries)

    async def remove(self, keys: list[str]) -> None:
        for key in keys:
            self._data.pop(key, None)

    async def clear(self) -> None:
        self._data.clear()

    async def bytes_in_use(self) -> int:
        return sum(entry_size(k, v) for k, v in self._data.items())

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes
