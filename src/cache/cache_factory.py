# src/cache/cache_factory.py — v3
"""Factory for backing-store instantiation."""

from __future__ import annotations

from lexiread.cache.base_store import BaseKeyValueStore
from lexiread.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseKeyValueStore:
    """Instantiate the configured backing store.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseKeyValueStore implementation.
    """
    if settings is None:
        from lexiread.cache.memory_store import MemoryKeyValueStore
        return MemoryKeyValueStore()

    backend = settings.cache_backend
    quota = settings.cache_quota_bytes

    if backend == "memory":
        from lexiread.cache.memory_store import MemoryKeyValueStore
        return MemoryKeyValueStore(quota_bytes=quota)

    if backend == "json":
        from lexiread.cache.json_store import JsonKeyValueStore
        return JsonKeyValueStore(cache_root=settings.cache_root, quota_bytes=quota)

    if backend == "sqlite":
        from lexiread.cache.sqlite_store import SqliteKeyValueStore
        db_path = settings.cache_root.expanduser() / "lexiread_cache.db"
        return SqliteKeyValueStore(db_path=db_path, quota_bytes=quota)

    if backend == "redis":
        from lexiread.cache.redis_store import RedisKeyValueStore
        if not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisKeyValueStore(redis_url=settings.cache_redis_url, quota_bytes=quota)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
