# src/llm/coordinator.py — v2
"""Capability dispatch across AI backends with caching and fallback.

For each call the coordinator walks the capability's backend order, skips
backends whose cached availability is false, runs each remaining backend
through the retry handler and returns the first success. Per-backend
failures are outcome values used only to decide whether to fall back; the
caller sees either a result or one aggregate AIError.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import TypeAdapter, ValidationError

from lexiread.cache.fingerprint import content_fingerprint, fingerprint_parts
from lexiread.cache.manager import CacheManager, create_cache_manager
from lexiread.cache.models import CacheNamespace, ProcessType
from lexiread.config.settings import Settings, load_settings
from lexiread.core.errors import AIError, ErrorKind
from lexiread.llm.base_client import BaseAIBackend, validate_difficulty
from lexiread.llm.client_factory import create_backend
from lexiread.llm.config import FALLBACK_ORDER, resolve_backend_order
from lexiread.llm.models import (
    BackendId,
    Capability,
    ServiceStatus,
    SummaryOptions,
    VocabularyAnalysis,
)
from lexiread.llm.retry import RetryConfig, RetryHandler
from lexiread.logging.context import (
    clear_context,
    set_backend_context,
    set_request_context,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], datetime]

DEFAULT_AVAILABILITY_SECONDS = 60.0

_ANALYSES = TypeAdapter(list[VocabularyAnalysis])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _same_language(source: str, target: str) -> bool:
    return source.strip().lower() == target.strip().lower()


class ServiceCoordinator:
    """Route capability calls to the first working backend."""

    def __init__(
        self,
        backends: Mapping[BackendId, BaseAIBackend] | Iterable[BaseAIBackend],
        settings: Settings | None = None,
        cache: CacheManager | None = None,
        retry: RetryHandler | None = None,
        clock: Clock | None = None,
    ) -> None:
        if isinstance(backends, Mapping):
            self._backends: dict[BackendId, BaseAIBackend] = dict(backends)
        else:
            self._backends = {b.backend_id: b for b in backends}
        self._settings = settings
        self._cache = cache
        self._retry = retry or RetryHandler()
        self._clock = clock or _utcnow
        self._availability_window = timedelta(
            seconds=settings.availability_cache_seconds
            if settings is not None
            else DEFAULT_AVAILABILITY_SECONDS
        )
        self._status = ServiceStatus()
        self._destroyed = False
        self._refresh_lock = asyncio.Lock()
        self._status_generation = 0

    @property
    def backends(self) -> dict[BackendId, BaseAIBackend]:
        return dict(self._backends)

    @property
    def cache(self) -> CacheManager | None:
        return self._cache

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def backend_order(self, capability: Capability) -> tuple[BackendId, ...]:
        if self._settings is None:
            return FALLBACK_ORDER
        return resolve_backend_order(capability, self._settings).backends

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    async def get_service_status(self, force: bool = False) -> ServiceStatus:
        """Cached availability, re-probed once the window has passed.

        Concurrent callers share one refresh: a caller that waited on the
        lock while another refresh completed reuses that result.
        """
        generation = self._status_generation
        if not force and self._status_fresh(self._clock()):
            return self._status

        async with self._refresh_lock:
            if self._status_generation != generation:
                return self._status
            now = self._clock()
            ids = list(self._backends)
            results = await asyncio.gather(*(self._probe(bid) for bid in ids))
            self._status = ServiceStatus(
                backend_available=dict(zip(ids, results)),
                last_checked=now,
            )
            self._status_generation += 1

        logger.debug(
            "Backend availability: %s",
            {bid.value: ok for bid, ok in self._status.backend_available.items()},
        )
        return self._status

    def _status_fresh(self, now: datetime) -> bool:
        last = self._status.last_checked
        return last is not None and now - last < self._availability_window

    async def _probe(self, backend_id: BackendId) -> bool:
        try:
            return bool(await self._backends[backend_id].is_available())
        except Exception as e:
            logger.warning("Availability probe for %s raised: %s", backend_id.value, e)
            return False

    async def is_available(self) -> bool:
        """Whether at least one backend can currently serve requests."""
        if self._destroyed:
            return False
        return (await self.get_service_status()).any_available

    def invalidate_status(self) -> None:
        """Force a re-probe on the next call."""
        self._status = ServiceStatus()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _check_alive(self) -> None:
        if self._destroyed:
            raise AIError(ErrorKind.API_UNAVAILABLE, "Service coordinator was destroyed")

    async def _dispatch(
        self,
        capability: Capability,
        operation: Callable[[BaseAIBackend], Awaitable[T]],
    ) -> T:
        """Run operation on each backend in order until one succeeds.

        Raises:
            AIError: api_unavailable when no backend was attempted,
                processing_failed when every attempted backend failed.
        """
        status = await self.get_service_status()
        failures: list[tuple[BackendId, AIError]] = []

        for bid in self.backend_order(capability):
            backend = self._backends.get(bid)
            if backend is None or not status.backend_available.get(bid, False):
                logger.debug("Skipping %s for %s (unavailable)", bid.value, capability.value)
                continue

            set_backend_context(bid.value)
            outcome = await self._retry.attempt(
                lambda b=backend: operation(b),
                label=f"{bid.value}.{capability.value}",
            )
            if outcome.succeeded:
                set_backend_context(None)
                return outcome.value  # type: ignore[return-value]

            failures.append((bid, outcome.error))  # type: ignore[arg-type]
            logger.info(
                "%s failed for %s after %d attempt(s), falling back",
                bid.value, capability.value, outcome.attempts,
            )

        set_backend_context(None)
        if not failures:
            raise AIError(
                ErrorKind.API_UNAVAILABLE,
                f"No AI services available for {capability.value}",
            )
        detail = "; ".join(f"{bid.value}: {err}" for bid, err in failures)
        raise AIError(
            ErrorKind.PROCESSING_FAILED,
            f"All AI services failed for {capability.value}: {detail}",
        )

    async def _call(
        self,
        capability: Capability,
        operation: Callable[[BaseAIBackend], Awaitable[T]],
    ) -> T:
        self._check_alive()
        set_request_context(uuid.uuid4().hex[:12], capability.value)
        try:
            return await self._dispatch(capability, operation)
        finally:
            clear_context()

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def detect_language(self, text: str) -> str:
        self._check_alive()
        content_hash = content_fingerprint(text)
        if self._cache is not None:
            cached = await self._cache.get_cached_processed_content(
                content_hash, ProcessType.LANGUAGE, 0
            )
            if _usable_text(cached, Capability.DETECT_LANGUAGE):
                return cached

        code = await self._call(
            Capability.DETECT_LANGUAGE, lambda b: b.detect_language(text)
        )
        if self._cache is not None:
            await self._cache.cache_processed_content(
                content_hash, ProcessType.LANGUAGE, 0, code
            )
        return code

    async def summarize(self, text: str, options: SummaryOptions | None = None) -> str:
        self._check_alive()
        opts = options or SummaryOptions()
        process_type = (
            ProcessType.BULLET_SUMMARY if opts.format == "bullet" else ProcessType.SUMMARY
        )
        content_hash = content_fingerprint(text)
        if self._cache is not None:
            cached = await self._cache.get_cached_processed_content(
                content_hash, process_type, opts.max_length
            )
            if _usable_text(cached, Capability.SUMMARIZE):
                return cached

        summary = await self._call(Capability.SUMMARIZE, lambda b: b.summarize(text, opts))
        if self._cache is not None:
            await self._cache.cache_processed_content(
                content_hash, process_type, opts.max_length, summary
            )
        return summary

    async def rewrite(self, text: str, difficulty: int) -> str:
        validate_difficulty(difficulty)
        self._check_alive()
        content_hash = content_fingerprint(text)
        if self._cache is not None:
            cached = await self._cache.get_cached_processed_content(
                content_hash, ProcessType.REWRITE, difficulty
            )
            if _usable_text(cached, Capability.REWRITE):
                return cached

        rewritten = await self._call(
            Capability.REWRITE, lambda b: b.rewrite(text, difficulty)
        )
        if self._cache is not None:
            await self._cache.cache_processed_content(
                content_hash, ProcessType.REWRITE, difficulty, rewritten
            )
        return rewritten

    async def translate(self, text: str, source: str, target: str) -> str:
        # Identity translation: no availability check, cache access or dispatch.
        if _same_language(source, target):
            return text
        self._check_alive()
        if self._cache is not None:
            cached = await self._cache.get_cached_translation(text, source, target)
            if _usable_text(cached, Capability.TRANSLATE):
                return cached

        translation = await self._call(
            Capability.TRANSLATE, lambda b: b.translate(text, source, target)
        )
        if self._cache is not None:
            await self._cache.cache_translation(text, source, target, translation)
        return translation

    async def translate_batch(
        self, texts: list[str], source: str, target: str
    ) -> list[str]:
        """Translate many texts; results keep the input order."""
        if _same_language(source, target):
            return list(texts)
        return list(
            await asyncio.gather(*(self.translate(t, source, target) for t in texts))
        )

    async def analyze_vocabulary(
        self, words: list[str], context: str
    ) -> list[VocabularyAnalysis]:
        """Per-word analyses with proper nouns removed."""
        self._check_alive()
        if not words:
            return []
        context_hash = content_fingerprint(context)
        words_hash = fingerprint_parts(*words)
        if self._cache is not None:
            cached = await self._cache.get_cached_vocabulary(context_hash, words_hash)
            if cached is not None:
                try:
                    return _learnable(_ANALYSES.validate_python(cached))
                except ValidationError as e:
                    logger.warning("Discarding unreadable cached vocabulary: %s", e)
                    await self._cache.invalidate(
                        CacheNamespace.VOCABULARY, context_hash, words_hash
                    )

        analyses = _learnable(
            await self._call(
                Capability.ANALYZE_VOCABULARY,
                lambda b: b.analyze_vocabulary(words, context),
            )
        )
        if self._cache is not None:
            await self._cache.cache_vocabulary(
                context_hash, words_hash, [a.model_dump() for a in analyses]
            )
        return analyses

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def set_gemini_api_key(self, api_key: str) -> None:
        """Install or replace the Gemini key, creating the backend if needed."""
        self._check_alive()
        backend = self._backends.get(BackendId.GEMINI)
        if backend is not None and hasattr(backend, "set_api_key"):
            backend.set_api_key(api_key)
        else:
            self._backends[BackendId.GEMINI] = create_backend(
                BackendId.GEMINI, self._settings, api_key=api_key
            )
        self.invalidate_status()
        logger.info("Gemini API key updated")

    async def destroy(self) -> None:
        """Release every backend exactly once. Safe to call repeatedly."""
        if self._destroyed:
            return
        self._destroyed = True
        backends, self._backends = self._backends, {}
        for bid, backend in backends.items():
            try:
                await backend.destroy()
            except Exception as e:
                logger.warning("Destroying %s backend failed: %s", bid.value, e)
        self._status = ServiceStatus()
        logger.debug("Service coordinator destroyed")


def _usable_text(cached: Any, capability: Capability) -> bool:
    """Whether a cached value can be returned as a text result."""
    if cached is None:
        return False
    if isinstance(cached, str):
        return True
    logger.warning(
        "Ignoring cached %s result of type %s", capability.value, type(cached).__name__
    )
    return False


def _learnable(analyses: Iterable[VocabularyAnalysis]) -> list[VocabularyAnalysis]:
    return [a for a in analyses if not a.is_proper_noun]


def retry_config_from_settings(settings: Settings) -> RetryConfig:
    return RetryConfig(
        max_retries=settings.retry_max_retries,
        base_delay_s=settings.retry_base_delay_s,
        backoff_factor=settings.retry_backoff_factor,
        jitter=settings.retry_jitter,
    )


def create_coordinator(
    settings: Settings | None = None,
    cache: CacheManager | None = None,
    backends: Mapping[BackendId, BaseAIBackend] | None = None,
) -> ServiceCoordinator:
    """Build a coordinator with every backend from settings.

    A cache manager is created from settings when none is given and caching
    is enabled.
    """
    settings = settings or load_settings()
    if backends is None:
        backends = {bid: create_backend(bid, settings) for bid in BackendId}
    if cache is None and settings.cache_enabled:
        cache = create_cache_manager(settings)
    return ServiceCoordinator(
        backends,
        settings=settings,
        cache=cache,
        retry=RetryHandler(retry_config_from_settings(settings)),
    )


_coordinator: ServiceCoordinator | None = None


def get_coordinator(settings: Settings | None = None) -> ServiceCoordinator:
    """Process-wide coordinator, created on first access."""
    global _coordinator
    if _coordinator is None:
        _coordinator = create_coordinator(settings)
    return _coordinator


async def reset_coordinator() -> None:
    """Destroy and forget the process-wide coordinator."""
    global _coordinator
    if _coordinator is not None:
        coordinator, _coordinator = _coordinator, None
        await coordinator.destroy()
        if coordinator.cache is not None:
            await coordinator.cache.store.close()


def describe_status(status: ServiceStatus) -> dict[str, Any]:
    """JSON-friendly view of a ServiceStatus."""
    return {
        "backends": {bid.value: ok for bid, ok in status.backend_available.items()},
        "last_checked": status.last_checked.isoformat() if status.last_checked else None,
        "any_available": status.any_available,
    }
