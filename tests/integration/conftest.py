# tests/integration/conftest.py — v8
"""Shared fixtures for integration tests.

Real stores (SQLite, JSON files, optional Redis) and, when reachable, a real
Ollama daemon. Tests that need a live service skip when it is absent:
- OLLAMA_HOST (default http://localhost:11434) + OLLAMA_TEST_MODEL
- REDIS_TEST_URL
"""

from __future__ import annotations

import logging
import os

import pytest
import pytest_asyncio

from lexiread.cache.manager import CacheManager
from lexiread.cache.sqlite_store import SqliteKeyValueStore

logger = logging.getLogger(__name__)

OLLAMA_HOST = os.environ.get("OLLAMA_HOST", "http://localhost:11434")
OLLAMA_LLM_MODEL = os.environ.get("OLLAMA_TEST_MODEL", "qwen2.5:0.5b")
REDIS_TEST_URL = os.environ.get("REDIS_TEST_URL", "")


# ── Pytest markers ──────────────────────────────────────────────

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marks tests that need a real model (Ollama)")
    config.addinivalue_line("markers", "ollama: marks tests requiring a running Ollama daemon")
    config.addinivalue_line("markers", "redis: marks tests requiring a Redis server")


# =====================================================================
#  STORES
# =====================================================================

@pytest_asyncio.fixture
async def sqlite_store(tmp_path):
    store = SqliteKeyValueStore(db_path=tmp_path / "lexiread_cache.db")
    yield store
    await store.close()


@pytest.fixture
def sqlite_cache(sqlite_store) -> CacheManager:
    """Cache manager on a real SQLite file with the wall clock."""
    return CacheManager(sqlite_store)


@pytest_asyncio.fixture
async def redis_store():
    if not REDIS_TEST_URL:
        pytest.skip("REDIS_TEST_URL not set")
    pytest.importorskip("redis")
    from lexiread.cache.redis_store import RedisKeyValueStore

    store = RedisKeyValueStore(redis_url=REDIS_TEST_URL)
    await store.clear()
    yield store
    await store.clear()
    await store.close()


# =====================================================================
#  OLLAMA
# =====================================================================

@pytest_asyncio.fixture
async def ollama_llm():
    """OllamaAdapter bound to a live daemon that has the test model pulled."""
    from lexiread.llm.adapters.ollama_adapter import OllamaAdapter

    adapter = OllamaAdapter(model=OLLAMA_LLM_MODEL, host=OLLAMA_HOST)
    if not await adapter.is_available():
        await adapter.destroy()
        pytest.skip(f"Ollama model {OLLAMA_LLM_MODEL} not available at {OLLAMA_HOST}")
    yield adapter
    await adapter.destroy()
