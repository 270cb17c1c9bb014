# src/cache/manager.py — v2
"""Namespaced, TTL-bounded result cache on top of a key-value store.

Reads and writes never raise: every store or serialization fault is logged
and degrades to a miss (reads) or a dropped write (writes). Expiry is lazy:
get() treats an expired entry as absent but leaves it in place;
perform_maintenance() deletes expired entries and enforces size bounds and
the store quota.

No locks are taken. Concurrent get/put on one key rely on the store's
per-key atomicity; the last put wins. Maintenance re-reads each key before
removing it and skips keys rewritten since its snapshot.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

from pydantic import ValidationError

from lexiread.cache.base_store import BaseKeyValueStore, entry_size
from lexiread.cache.cache_factory import create_cache_store
from lexiread.cache.keys import (
    InvalidCacheKeyError,
    build_key,
    namespace_of,
    processed_content_key,
)
from lexiread.cache.models import (
    CacheConfig,
    CacheEntry,
    CacheNamespace,
    CacheStats,
    MaintenanceReport,
    NamespacePolicy,
    ProcessType,
    StorageUsage,
    TranslationRecord,
)
from lexiread.config.settings import Settings

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

_PROBE_KEY = "__lexiread_cache_probe__"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CacheManager:
    """Content-addressed cache with per-namespace TTL and statistics."""

    def __init__(
        self,
        store: BaseKeyValueStore,
        config: CacheConfig | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._config = config or CacheConfig()
        self._clock = clock or _utcnow
        self._stats: dict[CacheNamespace, CacheStats] = {
            ns: CacheStats() for ns in CacheNamespace
        }

    @property
    def store(self) -> BaseKeyValueStore:
        return self._store

    @property
    def config(self) -> CacheConfig:
        return self._config

    # ------------------------------------------------------------------
    # Generic operations
    # ------------------------------------------------------------------

    async def get(self, namespace: CacheNamespace, *parts: object) -> Any | None:
        """Return the cached value for the key parts, or None on any kind of miss."""
        try:
            key = build_key(namespace, *parts)
        except InvalidCacheKeyError as e:
            logger.warning("Cache get with invalid key in %s: %s", namespace.value, e)
            self._record(namespace, hit=False)
            return None
        return await self._get_by_key(namespace, key)

    async def put(
        self,
        namespace: CacheNamespace,
        *parts: object,
        value: Any,
        ttl_ms: int | None = None,
    ) -> None:
        """Store value under the key parts; failures are logged and dropped."""
        try:
            key = build_key(namespace, *parts)
        except InvalidCacheKeyError as e:
            logger.warning("Cache put with invalid key in %s: %s", namespace.value, e)
            return
        await self._put_by_key(namespace, key, value, ttl_ms)

    async def invalidate(self, namespace: CacheNamespace, *parts: object) -> None:
        """Delete one entry; no-op when absent."""
        try:
            key = build_key(namespace, *parts)
        except InvalidCacheKeyError as e:
            logger.warning("Cache invalidate with invalid key: %s", e)
            return
        await self._safe_remove([key])

    async def clear_all(self) -> None:
        """Delete every entry of every namespace. Statistics are kept."""
        try:
            keys = [k for k in await self._store.get(None) if namespace_of(k) is not None]
            if keys:
                await self._store.remove(keys)
            logger.info("Cleared %d cache entries", len(keys))
        except Exception as e:
            logger.error("Cache clear failed: %s", e)

    async def perform_maintenance(self) -> MaintenanceReport:
        """Sweep expired entries, enforce namespace sizes and the store quota.

        Never raises; a failing store yields a partial (possibly empty) report.
        """
        report = MaintenanceReport()
        try:
            snapshot = await self._store.get(None)
        except Exception as e:
            logger.error("Cache maintenance could not list entries: %s", e)
            return report

        now = self._clock()
        expired: list[tuple[CacheNamespace, str]] = []
        live: dict[CacheNamespace, list[tuple[datetime, str, int]]] = {
            ns: [] for ns in CacheNamespace
        }

        for key, raw in snapshot.items():
            namespace = namespace_of(key)
            if namespace is None:
                continue
            try:
                entry = CacheEntry.model_validate_json(raw)
            except (ValidationError, ValueError):
                logger.warning("Removing unreadable cache entry %s", key)
                expired.append((namespace, key))
                continue
            if entry.is_expired(now):
                expired.append((namespace, key))
            else:
                live[namespace].append((entry.stored_at, key, entry_size(key, raw)))

        report.expired = await self._remove_counted(expired, snapshot, report)

        # Size bound per namespace, oldest first.
        evicted: list[tuple[CacheNamespace, str]] = []
        evicted_bytes = 0
        for namespace, items in live.items():
            limit = max(0, self._config.policy_for(namespace).max_entries)
            if len(items) > limit:
                items.sort()
                overflow = len(items) - limit
                evicted.extend((namespace, key) for _, key, _ in items[:overflow])
                evicted_bytes += sum(size for _, _, size in items[:overflow])
                del items[:overflow]

        # Quota: evict oldest across namespaces until under the high-water mark.
        usage = await self._safe_bytes_in_use()
        quota = self._store.quota_bytes
        if quota > 0 and usage - evicted_bytes > quota * self._config.quota_high_water:
            target = quota * self._config.quota_high_water
            remaining = sorted(
                (stored_at, namespace, key, size)
                for namespace, items in live.items()
                for stored_at, key, size in items
            )
            projected = usage - evicted_bytes
            for _, namespace, key, size in remaining:
                if projected <= target:
                    break
                evicted.append((namespace, key))
                projected -= size

        report.evicted = await self._remove_counted(evicted, snapshot, report)

        report.bytes_in_use = await self._safe_bytes_in_use()
        if report.total_removed:
            logger.info(
                "Cache maintenance removed %d entries (%d expired, %d evicted)",
                report.total_removed, report.expired, report.evicted,
            )
        return report

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def get_stats(self, namespace: CacheNamespace) -> CacheStats:
        """Snapshot of one namespace's counters."""
        return self._stats[namespace].model_copy()

    def get_all_stats(self) -> dict[CacheNamespace, CacheStats]:
        """Snapshot of every namespace's counters."""
        return {ns: stats.model_copy() for ns, stats in self._stats.items()}

    def reset_stats(self) -> None:
        """Zero all counters; the only way counters ever decrease."""
        self._stats = {ns: CacheStats() for ns in CacheNamespace}

    async def get_storage_usage(self) -> StorageUsage:
        return StorageUsage(
            bytes_in_use=await self._safe_bytes_in_use(),
            quota_bytes=self._store.quota_bytes,
        )

    # ------------------------------------------------------------------
    # Typed helpers
    # ------------------------------------------------------------------

    async def cache_article(self, article: Mapping[str, Any]) -> None:
        """Cache an extracted article keyed by URL and original language."""
        url = article.get("url")
        if not url:
            logger.warning("Not caching article without url")
            return
        language = (
            article.get("original_language") or article.get("originalLanguage") or "unknown"
        )
        await self.put(CacheNamespace.ARTICLE, url, language, value=dict(article))

    async def get_cached_article(self, url: str, language: str) -> dict[str, Any] | None:
        return await self.get(CacheNamespace.ARTICLE, url, language)

    async def is_article_cached(self, url: str, language: str) -> bool:
        return await self.get_cached_article(url, language) is not None

    async def cache_translation(
        self, text: str, source: str, target: str, translation: str
    ) -> None:
        await self.put(CacheNamespace.TRANSLATION, text, source, target, value=translation)

    async def get_cached_translation(
        self, text: str, source: str, target: str
    ) -> str | None:
        return await self.get(CacheNamespace.TRANSLATION, text, source, target)

    async def cache_batch_translations(
        self, records: Iterable[TranslationRecord | Mapping[str, Any]]
    ) -> None:
        """Cache many translations concurrently; bad records are skipped."""
        parsed: list[TranslationRecord] = []
        for record in records:
            try:
                parsed.append(TranslationRecord.model_validate(record))
            except ValidationError as e:
                logger.warning("Skipping invalid translation record: %s", e)
        await asyncio.gather(
            *(
                self.cache_translation(r.word, r.source, r.target, r.translation)
                for r in parsed
            )
        )

    async def cache_processed_content(
        self,
        content_hash: str,
        process_type: ProcessType | str,
        parameter: int,
        content: Any,
    ) -> None:
        try:
            key = processed_content_key(content_hash, process_type, parameter)
        except InvalidCacheKeyError as e:
            logger.warning("Not caching processed content: %s", e)
            return
        await self._put_by_key(CacheNamespace.PROCESSED_CONTENT, key, content, None)

    async def get_cached_processed_content(
        self,
        content_hash: str,
        process_type: ProcessType | str,
        parameter: int,
    ) -> Any | None:
        try:
            key = processed_content_key(content_hash, process_type, parameter)
        except InvalidCacheKeyError as e:
            logger.warning("Processed content lookup with invalid key: %s", e)
            self._record(CacheNamespace.PROCESSED_CONTENT, hit=False)
            return None
        return await self._get_by_key(CacheNamespace.PROCESSED_CONTENT, key)

    async def cache_vocabulary(
        self, context_hash: str, words_hash: str, analyses: list[dict[str, Any]]
    ) -> None:
        await self.put(CacheNamespace.VOCABULARY, context_hash, words_hash, value=analyses)

    async def get_cached_vocabulary(
        self, context_hash: str, words_hash: str
    ) -> list[dict[str, Any]] | None:
        return await self.get(CacheNamespace.VOCABULARY, context_hash, words_hash)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _get_by_key(self, namespace: CacheNamespace, key: str) -> Any | None:
        try:
            raw = (await self._store.get([key])).get(key)
        except Exception as e:
            logger.warning("Cache read failed for %s: %s", key, e)
            self._record(namespace, hit=False)
            return None

        if raw is None:
            self._record(namespace, hit=False)
            return None

        try:
            entry = CacheEntry.model_validate_json(raw)
            value = _decode(entry)
        except (ValidationError, ValueError, binascii.Error) as e:
            logger.warning("Corrupt cache entry %s treated as miss: %s", key, e)
            self._record(namespace, hit=False)
            return None

        if entry.is_expired(self._clock()):
            self._record(namespace, hit=False)
            return None

        self._record(namespace, hit=True)
        return value

    async def _put_by_key(
        self, namespace: CacheNamespace, key: str, value: Any, ttl_ms: int | None
    ) -> None:
        policy: NamespacePolicy = self._config.policy_for(namespace)
        ttl = policy.ttl_ms if ttl_ms is None else ttl_ms
        now = self._clock()
        try:
            is_bytes = isinstance(value, (bytes, bytearray))
            entry = CacheEntry(
                value=base64.b64encode(value).decode("ascii") if is_bytes else value,
                is_bytes=is_bytes,
                stored_at=now,
                expires_at=now + timedelta(milliseconds=ttl),
                namespace=namespace,
            )
            await self._store.set({key: entry.model_dump_json()})
        except Exception as e:
            logger.warning("Cache write dropped for %s: %s", key, e)

    async def _safe_remove(self, keys: list[str]) -> bool:
        try:
            await self._store.remove(keys)
            return True
        except Exception as e:
            logger.warning("Cache remove failed for %d keys: %s", len(keys), e)
            return False

    async def _remove_counted(
        self,
        items: list[tuple[CacheNamespace, str]],
        snapshot: Mapping[str, str],
        report: MaintenanceReport,
    ) -> int:
        """Remove keys still holding their snapshot value; return how many went."""
        if not items:
            return 0
        try:
            current = await self._store.get([key for _, key in items])
        except Exception as e:
            logger.warning("Cache maintenance could not re-read %d keys: %s", len(items), e)
            return 0

        unchanged = [(ns, key) for ns, key in items if current.get(key) == snapshot.get(key)]
        if len(unchanged) < len(items):
            logger.debug(
                "Skipping %d cache entries rewritten during maintenance",
                len(items) - len(unchanged),
            )
        if not unchanged or not await self._safe_remove([key for _, key in unchanged]):
            return 0
        for namespace, _ in unchanged:
            report.removed_per_namespace[namespace] += 1
        return len(unchanged)

    async def _safe_bytes_in_use(self) -> int:
        try:
            return await self._store.bytes_in_use()
        except Exception as e:
            logger.warning("Could not read cache storage usage: %s", e)
            return 0

    def _record(self, namespace: CacheNamespace, hit: bool) -> None:
        stats = self._stats[namespace]
        if hit:
            stats.hits += 1
        else:
            stats.misses += 1


def _decode(entry: CacheEntry) -> Any:
    if entry.is_bytes:
        return base64.b64decode(entry.value, validate=True)
    return entry.value


def cache_config_from_settings(settings: Settings) -> CacheConfig:
    """Build the cache policy from settings."""
    return CacheConfig(
        namespaces={
            CacheNamespace.ARTICLE: NamespacePolicy(
                ttl_ms=settings.cache_article_ttl_ms,
                max_entries=settings.cache_article_max_entries,
            ),
            CacheNamespace.TRANSLATION: NamespacePolicy(
                ttl_ms=settings.cache_translation_ttl_ms,
                max_entries=settings.cache_translation_max_entries,
            ),
            CacheNamespace.PROCESSED_CONTENT: NamespacePolicy(
                ttl_ms=settings.cache_processed_ttl_ms,
                max_entries=settings.cache_processed_max_entries,
            ),
            CacheNamespace.VOCABULARY: NamespacePolicy(
                ttl_ms=settings.cache_vocabulary_ttl_ms,
                max_entries=settings.cache_vocabulary_max_entries,
            ),
        },
        ttl_ms=settings.cache_ttl_ms,
        max_cache_size=settings.cache_max_cache_size,
        quota_high_water=settings.cache_quota_high_water,
    )


def create_cache_manager(
    settings: Settings | None = None,
    store: BaseKeyValueStore | None = None,
    clock: Clock | None = None,
) -> CacheManager:
    """Build a fresh CacheManager from settings (in-memory store when None)."""
    config = CacheConfig() if settings is None else cache_config_from_settings(settings)
    return CacheManager(store or create_cache_store(settings), config=config, clock=clock)


_manager: CacheManager | None = None


def get_cache_manager(settings: Settings | None = None) -> CacheManager:
    """Process-wide manager, created on first access."""
    global _manager
    if _manager is None:
        _manager = create_cache_manager(settings)
    return _manager


async def reset_cache_manager() -> None:
    """Close and forget the process-wide manager (tests, shutdown)."""
    global _manager
    if _manager is not None:
        await _manager.store.close()
        _manager = None


async def is_caching_available(store: BaseKeyValueStore) -> bool:
    """Probe the store with a write and a delete."""
    try:
        await store.set({_PROBE_KEY: "probe"})
        await store.remove([_PROBE_KEY])
        return True
    except Exception as e:
        logger.error("Caching not available: %s", e)
        return False
