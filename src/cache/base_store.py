# src/cache/base_store.py — v2
"""Abstract key-value backing store.

The cache manager's only persistence boundary. Values are serialized
strings; each key write is atomic and the last writer wins.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

DEFAULT_QUOTA_BYTES = 10 * 1024 * 1024


class BaseKeyValueStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, keys: list[str] | None = None) -> dict[str, str]:
        """Return stored values for keys (all keys when None); missing keys are omitted."""

    @abstractmethod
    async def set(self, entries: dict[str, str]) -> None:
        """Store every entry, overwriting existing keys."""

    @abstractmethod
    async def remove(self, keys: list[str]) -> None:
        """Delete keys; unknown keys are ignored."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every key."""

    @abstractmethod
    async def bytes_in_use(self) -> int:
        """Approximate storage used by keys and values."""

    @property
    @abstractmethod
    def quota_bytes(self) -> int:
        """Capacity the store is allowed to use."""

    async def close(self) -> None:
        """Release connections; default is a no-op."""


def entry_size(key: str, value: str) -> int:
    """Bytes a key/value pair occupies, as counted by every store."""
    return len(key.encode("utf-8")) + len(value.encode("utf-8"))
