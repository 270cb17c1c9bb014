# tests/unit/cache/test_unit_manager.py — v2
"""Tests for cache/manager.py — TTL, statistics, maintenance, no-throw behavior."""

from __future__ import annotations

import asyncio

import pytest

from lexiread.cache.manager import (
    CacheManager,
    create_cache_manager,
    get_cache_manager,
    is_caching_available,
    reset_cache_manager,
)
from lexiread.cache.memory_store import MemoryKeyValueStore
from lexiread.cache.models import CacheConfig, CacheNamespace, NamespacePolicy

from tests.conftest import FailingStore


class TestGetPut:
    @pytest.mark.asyncio
    async def test_round_trip(self, cache):
        await cache.put(CacheNamespace.TRANSLATION, "chat", "fr", "en", value="cat")
        assert await cache.get(CacheNamespace.TRANSLATION, "chat", "fr", "en") == "cat"

    @pytest.mark.asyncio
    async def test_missing_is_none(self, cache):
        assert await cache.get(CacheNamespace.ARTICLE, "https://x.test", "en") is None

    @pytest.mark.asyncio
    async def test_bytes_round_trip(self, cache):
        payload = bytes(range(256))
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value=payload)
        assert await cache.get(CacheNamespace.ARTICLE, "u", "en") == payload

    @pytest.mark.asyncio
    async def test_structured_value(self, cache):
        value = {"title": "T", "paragraphs": ["a", "b"], "words": 2}
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value=value)
        assert await cache.get(CacheNamespace.ARTICLE, "u", "en") == value

    @pytest.mark.asyncio
    async def test_overwrite_last_writer_wins(self, cache):
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="1")
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="2")
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") == "2"

    @pytest.mark.asyncio
    async def test_invalidate(self, cache):
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="1")
        await cache.invalidate(CacheNamespace.TRANSLATION, "a", "fr", "en")
        await cache.invalidate(CacheNamespace.TRANSLATION, "a", "fr", "en")
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") is None

    @pytest.mark.asyncio
    async def test_corrupt_entry_is_miss(self, cache, memory_store):
        await memory_store.set({"translation:a:fr:en": "{not json"})
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") is None
        assert cache.get_stats(CacheNamespace.TRANSLATION).misses == 1


class TestTtl:
    @pytest.mark.asyncio
    async def test_before_and_after_ttl(self, memory_store, clock):
        cache = CacheManager(memory_store, clock=clock)
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="x", ttl_ms=100)

        clock.advance(milliseconds=99)
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") == "x"

        clock.advance(milliseconds=51)
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") is None

    @pytest.mark.asyncio
    async def test_expired_read_leaves_entry_for_maintenance(self, memory_store, clock):
        cache = CacheManager(memory_store, clock=clock)
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="x", ttl_ms=10)
        clock.advance(seconds=1)
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") is None
        assert list(await memory_store.get(None)) == ["translation:a:fr:en"]

        report = await cache.perform_maintenance()
        assert report.expired == 1
        assert await memory_store.get(None) == {}

    @pytest.mark.asyncio
    async def test_zero_ttl_expires_immediately(self, cache):
        await cache.put(CacheNamespace.TRANSLATION, "a", "fr", "en", value="x", ttl_ms=0)
        assert await cache.get(CacheNamespace.TRANSLATION, "a", "fr", "en") is None

    @pytest.mark.asyncio
    async def test_namespace_default_ttl(self, memory_store, clock):
        config = CacheConfig(
            namespaces={
                CacheNamespace.VOCABULARY: NamespacePolicy(ttl_ms=1000, max_entries=10)
            }
        )
        cache = CacheManager(memory_store, config=config, clock=clock)
        await cache.put(CacheNamespace.VOCABULARY, "c", "w", value=[])
        clock.advance(milliseconds=1001)
        assert await cache.get(CacheNamespace.VOCABULARY, "c", "w") is None

    @pytest.mark.asyncio
    async def test_global_ttl_override(self, memory_store, clock):
        cache = CacheManager(memory_store, config=CacheConfig(ttl_ms=50), clock=clock)
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value="a")
        clock.advance(milliseconds=60)
        assert await cache.get(CacheNamespace.ARTICLE, "u", "en") is None


class TestProcessedContent:
    @pytest.mark.asyncio
    async def test_abc123_scenario(self, cache):
        await cache.cache_processed_content("abc123", "summary", 5, "S")
        assert await cache.get_cached_processed_content("abc123", "summary", 6) is None
        assert await cache.get_cached_processed_content("abc123", "summary", 5) == "S"

    @pytest.mark.asyncio
    async def test_key_discrimination(self, cache):
        await cache.cache_processed_content("h", "summary", 100, "v1")
        await cache.cache_processed_content("h", "summary", 200, "v2")
        assert await cache.get_cached_processed_content("h", "summary", 100) == "v1"
        assert await cache.get_cached_processed_content("h", "summary", 200) == "v2"
        assert await cache.get_cached_processed_content("h", "rewrite", 100) is None

    @pytest.mark.asyncio
    async def test_invalid_parameter_counts_as_miss(self, cache):
        assert await cache.get_cached_processed_content("h", "summary", "5") is None
        assert cache.get_stats(CacheNamespace.PROCESSED_CONTENT).misses == 1


class TestNoThrow:
    @pytest.mark.asyncio
    async def test_write_failure_swallowed(self):
        cache = CacheManager(FailingStore(fail_get=False, fail_set=True))
        await cache.cache_processed_content("h", "summary", 1, "S")
        await cache.cache_translation("a", "fr", "en", "b")

    @pytest.mark.asyncio
    async def test_read_failure_is_miss(self):
        cache = CacheManager(FailingStore(fail_get=True, fail_set=False))
        assert await cache.get_cached_processed_content("h", "summary", 1) is None
        assert cache.get_stats(CacheNamespace.PROCESSED_CONTENT).misses == 1

    @pytest.mark.asyncio
    async def test_maintenance_on_failing_store(self):
        cache = CacheManager(FailingStore())
        report = await cache.perform_maintenance()
        assert report.total_removed == 0

    @pytest.mark.asyncio
    async def test_clear_on_failing_store(self):
        await CacheManager(FailingStore()).clear_all()


class TestStats:
    @pytest.mark.asyncio
    async def test_counts_per_namespace(self, cache):
        await cache.cache_translation("a", "fr", "en", "b")
        await cache.get_cached_translation("a", "fr", "en")
        await cache.get_cached_translation("z", "fr", "en")
        await cache.get_cached_article("u", "en")

        tr = cache.get_stats(CacheNamespace.TRANSLATION)
        assert (tr.hits, tr.misses) == (1, 1)
        assert tr.hit_rate + tr.miss_rate == pytest.approx(1.0)
        assert cache.get_stats(CacheNamespace.ARTICLE).misses == 1
        assert cache.get_stats(CacheNamespace.VOCABULARY).total_requests == 0

    @pytest.mark.asyncio
    async def test_empty_stats_rates(self, cache):
        stats = cache.get_stats(CacheNamespace.ARTICLE)
        assert stats.hit_rate == 0.0
        assert stats.miss_rate == 0.0

    @pytest.mark.asyncio
    async def test_snapshot_is_a_copy(self, cache):
        snapshot = cache.get_stats(CacheNamespace.ARTICLE)
        await cache.get_cached_article("u", "en")
        assert snapshot.misses == 0

    @pytest.mark.asyncio
    async def test_clear_keeps_stats_reset_zeroes(self, cache):
        await cache.get_cached_article("u", "en")
        await cache.clear_all()
        assert cache.get_stats(CacheNamespace.ARTICLE).misses == 1
        cache.reset_stats()
        assert cache.get_stats(CacheNamespace.ARTICLE).misses == 0


class TestTypedHelpers:
    @pytest.mark.asyncio
    async def test_article_keyed_by_url_and_language(self, cache):
        await cache.cache_article(
            {"url": "https://x.test/a", "originalLanguage": "fr", "title": "Bonjour"}
        )
        assert await cache.is_article_cached("https://x.test/a", "fr")
        assert not await cache.is_article_cached("https://x.test/a", "en")
        article = await cache.get_cached_article("https://x.test/a", "fr")
        assert article["title"] == "Bonjour"

    @pytest.mark.asyncio
    async def test_article_without_url_ignored(self, cache, memory_store):
        await cache.cache_article({"title": "no url"})
        assert await memory_store.get(None) == {}

    @pytest.mark.asyncio
    async def test_batch_translations(self, cache):
        await cache.cache_batch_translations(
            [
                {"word": "chat", "fromLang": "fr", "toLang": "en", "translation": "cat"},
                {"word": "chien", "source": "fr", "target": "en", "translation": "dog"},
                {"word": "broken"},
            ]
        )
        assert await cache.get_cached_translation("chat", "fr", "en") == "cat"
        assert await cache.get_cached_translation("chien", "fr", "en") == "dog"

    @pytest.mark.asyncio
    async def test_vocabulary(self, cache):
        analyses = [{"word": "ephemeral", "difficulty": 8}]
        await cache.cache_vocabulary("ctx", "words", analyses)
        assert await cache.get_cached_vocabulary("ctx", "words") == analyses


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_sweeps_expired(self, memory_store, clock):
        cache = CacheManager(memory_store, clock=clock)
        await cache.put(CacheNamespace.TRANSLATION, "old", "fr", "en", value="x", ttl_ms=10)
        await cache.put(CacheNamespace.TRANSLATION, "new", "fr", "en", value="y")
        clock.advance(seconds=1)

        report = await cache.perform_maintenance()

        assert report.expired == 1
        assert report.removed_per_namespace[CacheNamespace.TRANSLATION] == 1
        assert list(await memory_store.get(None)) == ["translation:new:fr:en"]

    @pytest.mark.asyncio
    async def test_trims_namespace_oldest_first(self, memory_store, clock):
        config = CacheConfig(
            namespaces={
                CacheNamespace.TRANSLATION: NamespacePolicy(ttl_ms=60_000, max_entries=2)
            }
        )
        cache = CacheManager(memory_store, config=config, clock=clock)
        for word in ("a", "b", "c"):
            await cache.cache_translation(word, "fr", "en", word.upper())
            clock.advance(milliseconds=1)

        report = await cache.perform_maintenance()

        assert report.evicted == 1
        assert await cache.get_cached_translation("a", "fr", "en") is None
        assert await cache.get_cached_translation("c", "fr", "en") == "C"

    @pytest.mark.asyncio
    async def test_quota_high_water(self, clock):
        store = MemoryKeyValueStore(quota_bytes=1500)
        cache = CacheManager(store, clock=clock)
        for i in range(10):
            await cache.cache_translation(f"w{i}", "fr", "en", "x" * 50)
            clock.advance(milliseconds=1)
        assert await store.bytes_in_use() > 1500 * 0.9

        report = await cache.perform_maintenance()

        assert report.evicted > 0
        assert report.bytes_in_use <= 1500 * 0.9
        # newest entry survives
        assert await cache.get_cached_translation("w9", "fr", "en") == "x" * 50

    @pytest.mark.asyncio
    async def test_foreign_keys_untouched(self, cache, memory_store):
        await memory_store.set({"settings:theme": "dark"})
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value="a", ttl_ms=0)
        await cache.perform_maintenance()
        await cache.clear_all()
        assert await memory_store.get(None) == {"settings:theme": "dark"}


class _SlowReadStore(MemoryKeyValueStore):
    """Reads the data, then yields before handing it back."""

    def __init__(self, delay: float = 0.01) -> None:
        super().__init__()
        self.delay = delay
        self.after_snapshot = None

    async def get(self, keys=None):
        result = await super().get(keys)
        if keys is None and self.after_snapshot is not None:
            hook, self.after_snapshot = self.after_snapshot, None
            await hook()
        await asyncio.sleep(self.delay)
        return result


class TestInterleaving:
    @pytest.mark.asyncio
    async def test_expired_read_does_not_drop_concurrent_put(self, clock):
        store = _SlowReadStore()
        cache = CacheManager(store, clock=clock)
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value="stale", ttl_ms=10)
        clock.advance(seconds=1)

        reader = asyncio.create_task(cache.get(CacheNamespace.ARTICLE, "u", "en"))
        await asyncio.sleep(0)
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value="fresh")

        assert await reader is None
        assert await cache.get(CacheNamespace.ARTICLE, "u", "en") == "fresh"

    @pytest.mark.asyncio
    async def test_maintenance_skips_entry_rewritten_after_snapshot(self, clock):
        store = _SlowReadStore(delay=0)
        cache = CacheManager(store, clock=clock)
        await cache.put(CacheNamespace.ARTICLE, "u", "en", value="stale", ttl_ms=10)
        await cache.put(CacheNamespace.ARTICLE, "v", "en", value="gone", ttl_ms=10)
        clock.advance(seconds=1)

        async def rewrite():
            await cache.put(CacheNamespace.ARTICLE, "u", "en", value="fresh")

        store.after_snapshot = rewrite
        report = await cache.perform_maintenance()

        assert report.expired == 1
        assert await cache.get(CacheNamespace.ARTICLE, "u", "en") == "fresh"
        assert await cache.get(CacheNamespace.ARTICLE, "v", "en") is None


class TestModuleAccessors:
    @pytest.mark.asyncio
    async def test_memoized_and_reset(self):
        await reset_cache_manager()
        first = get_cache_manager()
        assert get_cache_manager() is first
        await reset_cache_manager()
        assert get_cache_manager() is not first
        await reset_cache_manager()

    def test_create_without_settings_uses_memory(self):
        manager = create_cache_manager()
        assert isinstance(manager.store, MemoryKeyValueStore)

    @pytest.mark.asyncio
    async def test_is_caching_available(self, memory_store):
        assert await is_caching_available(memory_store)
        assert not await is_caching_available(FailingStore())
