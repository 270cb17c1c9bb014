# src/cache/redis_store.py — v2
"""Redis-based store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install lexiread[redis].
Suitable when several processes share one cache.
"""

from __future__ import annotations

from lexiread.cache.base_store import DEFAULT_QUOTA_BYTES, BaseKeyValueStore, entry_size

_KEY_PREFIX = "lexiread:cache:"


class RedisKeyValueStore(BaseKeyValueStore):
    """Redis-backed store; keys live under a fixed prefix."""

    def __init__(
        self, redis_url: str, quota_bytes: int = DEFAULT_QUOTA_BYTES
    ) -> None:
        try:
            import redis.asyncio as aioredis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install lexiread[redis]"
            ) from e

        self._client = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._quota_bytes = quota_bytes

    async def get(self, keys: list[str] | None = None) -> dict[str, str]:
        if keys is None:
            keys = await self._all_keys()
        if not keys:
            return {}
        values = await self._client.mget([f"{_KEY_PREFIX}{k}" for k in keys])
        return {k: v for k, v in zip(keys, values) if v is not None}

    async def set(self, entries: dict[str, str]) -> None:
        if entries:
            await self._client.mset({f"{_KEY_PREFIX}{k}": v for k, v in entries.items()})

    async def remove(self, keys: list[str]) -> None:
        if keys:
            await self._client.delete(*(f"{_KEY_PREFIX}{k}" for k in keys))

    async def clear(self) -> None:
        await self.remove(await self._all_keys())

    async def bytes_in_use(self) -> int:
        return sum(entry_size(k, v) for k, v in (await self.get()).items())

    @property
    def quota_bytes(self) -> int:
        return self._quota_bytes

    async def _all_keys(self) -> list[str]:
        return [
            key[len(_KEY_PREFIX):]
            async for key in self._client.scan_iter(match=f"{_KEY_PREFIX}*")
        ]

    async def close(self) -> None:
        """Close the connection pool."""
        await self._client.aclose()
