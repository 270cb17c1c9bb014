# src/llm/adapters/google_adapter.py — v3
"""Cloud backend: Google Gemini via the google-generativeai SDK.

Requests go through a client-side sliding window limiter. Without an API
key the backend reports itself unavailable and every call fails with
api_unavailable.
"""

from __future__ import annotations

import logging
from typing import Any

from lexiread.core.errors import AIError, ErrorKind, classify_backend_error
from lexiread.llm.adapters.prompted import PromptedBackend
from lexiread.llm.models import BackendId
from lexiread.llm.rate_limit import SlidingWindowRateLimiter

logger = logging.getLogger(__name__)

_PROBE_PROMPT = "Reply with OK."


class GeminiAdapter(PromptedBackend):
    """Google Gemini adapter."""

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        api_key: str = "",
        requests_per_minute: int = 60,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        **kwargs: Any,
    ):
        self._model_name = model
        self._api_key = api_key
        self._limiter = rate_limiter or SlidingWindowRateLimiter(
            max_requests=requests_per_minute, window_seconds=60.0
        )
        self._model: Any = None
        self._destroyed = False

    @property
    def backend_id(self) -> BackendId:
        return BackendId.GEMINI

    @property
    def has_api_key(self) -> bool:
        return bool(self._api_key)

    def set_api_key(self, api_key: str) -> None:
        """Swap the key; the next call builds a fresh model handle."""
        self._api_key = api_key
        self._model = None
        self._limiter.reset()

    def _ensure_model(self) -> Any:
        if not self._api_key:
            raise AIError(ErrorKind.API_UNAVAILABLE, "Gemini API key is not configured")
        if self._model is None:
            try:
                import google.generativeai as genai
            except ImportError as e:
                raise AIError(
                    ErrorKind.API_UNAVAILABLE,
                    "google-generativeai is not installed",
                    original=e,
                ) from e

            genai.configure(api_key=self._api_key)
            self._model = genai.GenerativeModel(self._model_name)
        return self._model

    async def _generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        json_output: bool = False,
    ) -> str:
        self._check_alive()
        model = self._ensure_model()

        gen_config: dict[str, Any] = {
            "max_output_tokens": max_tokens,
            "temperature": temperature,
        }
        if json_output:
            gen_config["response_mime_type"] = "application/json"

        await self._limiter.wait_for_slot()
        try:
            resp = await model.generate_content_async(prompt, generation_config=gen_config)
        except Exception as e:
            raise classify_backend_error(e, "gemini") from e

        try:
            # .text raises ValueError when the candidate was blocked or empty
            return resp.text or ""
        except ValueError as e:
            raise AIError(
                ErrorKind.PROCESSING_FAILED,
                f"Gemini returned no usable text: {e}",
                original=e,
            ) from e

    async def is_available(self) -> bool:
        """Key configured and a tiny probe request succeeds."""
        if self._destroyed or not self._api_key:
            return False
        try:
            await self._generate(_PROBE_PROMPT, 5, 0.0)
        except Exception as e:
            logger.debug("Gemini probe failed: %s", e)
            return False
        return True

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        self._model = None
        self._limiter.reset()
