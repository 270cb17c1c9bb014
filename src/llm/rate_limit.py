# src/llm/rate_limit.py — v1
"""Client-side sliding window limiter for cloud backends.

Waits (instead of failing) until a slot in the window is free, so the
backend's own 429 responses stay rare.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class SlidingWindowRateLimiter:
    """At most max_requests per window_seconds."""

    def __init__(
        self,
        max_requests: int = 60,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep
        self._requests: deque[float] = deque()

    async def wait_for_slot(self) -> None:
        """Suspend until a request may be sent, then record it."""
        if self._max_requests <= 0:
            return
        while True:
            now = self._clock()
            while self._requests and now - self._requests[0] >= self._window:
                self._requests.popleft()
            if len(self._requests) < self._max_requests:
                self._requests.append(now)
                return
            wait = self._window - (now - self._requests[0])
            logger.debug("Rate limit reached, waiting %.2fs", wait)
            await self._sleep(wait)

    @property
    def in_window(self) -> int:
        return len(self._requests)

    def reset(self) -> None:
        self._requests.clear()
