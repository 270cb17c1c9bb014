# src/llm/retry.py — v2
"""Same-backend retry with exponential backoff.

The handler retries one operation against one backend; falling back to a
different backend is the coordinator's job. Failures are normalized into
AIError before the retry decision, so the predicate only ever sees the
taxonomy.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar

from lexiread.core.errors import AIError, normalize_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

RetryPredicate = Callable[[AIError], bool]


@dataclass(frozen=True)
class RetryConfig:
    """Retry budget and backoff shape."""

    max_retries: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    jitter: bool = False


@dataclass
class RetryOutcome(Generic[T]):
    """Explicit result of a retried operation."""

    succeeded: bool
    value: T | None = None
    error: AIError | None = None
    attempts: int = 0
    total_delay_s: float = 0.0


def default_should_retry(error: AIError) -> bool:
    """Retry exactly the kinds the taxonomy marks retryable."""
    return error.retryable


def compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay after a failed attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


class RetryHandler:
    """Execute an async operation with bounded retries."""

    def __init__(
        self,
        config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.config = config or RetryConfig()
        self._sleep = sleep

    async def attempt(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry: RetryPredicate | None = None,
        label: str = "operation",
    ) -> RetryOutcome[T]:
        """Run operation until it succeeds, is not retryable, or the budget is spent.

        Never raises; the outcome carries either the value or the last
        normalized error.
        """
        predicate = should_retry or default_should_retry
        max_attempts = max(1, self.config.max_retries)
        attempts = 0
        total_delay = 0.0

        while True:
            try:
                value = await operation()
            except Exception as e:
                error = normalize_error(e)
                attempts += 1

                if not predicate(error):
                    logger.info(
                        "%s failed with non-retryable %s (attempt %d): %s",
                        label, error.kind.value, attempts, error.message,
                    )
                    return RetryOutcome(
                        succeeded=False, error=error,
                        attempts=attempts, total_delay_s=total_delay,
                    )

                if attempts >= max_attempts:
                    logger.warning(
                        "%s gave up after %d attempts (%s): %s",
                        label, attempts, error.kind.value, error.message,
                    )
                    return RetryOutcome(
                        succeeded=False, error=error,
                        attempts=attempts, total_delay_s=total_delay,
                    )

                delay = compute_delay(self.config, attempts - 1)
                logger.warning(
                    "%s — %s (attempt %d/%d), retrying in %.2fs",
                    label, error.kind.value, attempts, max_attempts, delay,
                )
                total_delay += delay
                await self._sleep(delay)
            else:
                attempts += 1
                return RetryOutcome(
                    succeeded=True, value=value,
                    attempts=attempts, total_delay_s=total_delay,
                )

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        should_retry: RetryPredicate | None = None,
        label: str = "operation",
    ) -> T:
        """Run operation with retries.

        Raises:
            AIError: The last normalized error once retries are exhausted or
                the error is not retryable.
        """
        outcome = await self.attempt(operation, should_retry, label=label)
        if not outcome.succeeded:
            assert outcome.error is not None
            raise outcome.error
        return outcome.value  # type: ignore[return-value]
