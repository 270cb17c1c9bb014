# tests/conftest.py — v2
"""Shared test fixtures for all unit and integration tests.

Provides fake AI backends, a controllable clock, failing stores and
in-memory cache managers. No network access: every backend is faked.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from lexiread.cache.base_store import BaseKeyValueStore
from lexiread.cache.manager import CacheManager
from lexiread.cache.memory_store import MemoryKeyValueStore
from lexiread.core.errors import AIError, ErrorKind
from lexiread.llm.base_client import BaseAIBackend, validate_difficulty
from lexiread.llm.models import BackendId, SummaryOptions, VocabularyAnalysis
from lexiread.llm.retry import RetryConfig, RetryHandler


# === FAKES ===


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class FakeBackend(BaseAIBackend):
    """Scriptable backend that records every call.

    Queue exceptions in `failures`; each call pops one and raises it until
    the queue is empty, then returns the canned answer.
    """

    def __init__(
        self,
        backend_id: BackendId,
        available: bool = True,
        failures: list[BaseException] | None = None,
        language: str = "en",
        vocabulary: list[VocabularyAnalysis] | None = None,
    ) -> None:
        self._id = backend_id
        self.available = available
        self.failures = list(failures or [])
        self.language = language
        self.vocabulary = vocabulary or []
        self.calls: list[tuple] = []
        self.probe_calls = 0
        self.destroy_calls = 0

    @property
    def backend_id(self) -> BackendId:
        return self._id

    def _answer(self, name: str, *args: object) -> None:
        self.calls.append((name, *args))
        if self.failures:
            raise self.failures.pop(0)

    async def detect_language(self, text: str) -> str:
        self._answer("detect_language", text)
        return self.language

    async def summarize(self, text: str, options: SummaryOptions) -> str:
        self._answer("summarize", text, options)
        return f"{self._id.value} summary"

    async def rewrite(self, text: str, difficulty: int) -> str:
        validate_difficulty(difficulty)
        self._answer("rewrite", text, difficulty)
        return f"{self._id.value} rewrite@{difficulty}"

    async def translate(self, text: str, source: str, target: str) -> str:
        self._answer("translate", text, source, target)
        return f"{self._id.value}:{target}:{text}"

    async def analyze_vocabulary(
        self, words: list[str], context: str
    ) -> list[VocabularyAnalysis]:
        self._answer("analyze_vocabulary", words, context)
        return list(self.vocabulary)

    async def is_available(self) -> bool:
        self.probe_calls += 1
        return self.available

    async def destroy(self) -> None:
        self.destroy_calls += 1


class FailingStore(BaseKeyValueStore):
    """Store whose reads and/or writes always raise."""

    def __init__(self, fail_get: bool = True, fail_set: bool = True) -> None:
        self._inner = MemoryKeyValueStore()
        self.fail_get = fail_get
        self.fail_set = fail_set

    async def get(self, keys=None):
        if self.fail_get:
            raise OSError("store read failed")
        return await self._inner.get(keys)

    async def set(self, entries):
        if self.fail_set:
            raise OSError("store write failed")
        await self._inner.set(entries)

    async def remove(self, keys):
        if self.fail_set:
            raise OSError("store remove failed")
        await self._inner.remove(keys)

    async def clear(self):
        await self._inner.clear()

    async def bytes_in_use(self):
        if self.fail_get:
            raise OSError("store usage failed")
        return await self._inner.bytes_in_use()

    @property
    def quota_bytes(self) -> int:
        return self._inner.quota_bytes


def network_error(message: str = "connection reset") -> AIError:
    return AIError(ErrorKind.NETWORK, message)


# === FIXTURES ===


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def cache(memory_store: MemoryKeyValueStore, clock: FakeClock) -> CacheManager:
    """Cache manager on an in-memory store with a fake clock."""
    return CacheManager(memory_store, clock=clock)


@pytest.fixture
def no_sleep_retry() -> RetryHandler:
    """Retry handler that records delays instead of sleeping."""
    delays: list[float] = []

    async def _sleep(seconds: float) -> None:
        delays.append(seconds)

    handler = RetryHandler(RetryConfig(max_retries=3, base_delay_s=0.01), sleep=_sleep)
    handler.recorded_delays = delays  # type: ignore[attr-defined]
    return handler


@pytest.fixture
def ollama_backend() -> FakeBackend:
    return FakeBackend(BackendId.OLLAMA)


@pytest.fixture
def gemini_backend() -> FakeBackend:
    return FakeBackend(BackendId.GEMINI)
