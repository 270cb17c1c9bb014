# src/llm/adapters/ollama_adapter.py — v2
"""On-device backend: a local model served by the Ollama daemon.

Uses the ollama Python SDK. The adapter holds one AsyncClient for its
lifetime; destroy() asks the daemon to unload the model (keep_alive=0) and
drops the client.
"""

from __future__ import annotations

import logging
from typing import Any

from lexiread.core.errors import AIError, ErrorKind, classify_backend_error
from lexiread.llm.adapters.prompted import PromptedBackend
from lexiread.llm.models import BackendId

logger = logging.getLogger(__name__)


class OllamaAdapter(PromptedBackend):
    """Ollama local inference adapter."""

    def __init__(
        self,
        model: str = "llama3.2",
        host: str = "http://localhost:11434",
        keep_alive: str = "5m",
        client: Any = None,
        **kwargs: Any,
    ):
        self._model = model
        self._host = host
        self._keep_alive = keep_alive
        self._client = client
        self._destroyed = False

    @property
    def backend_id(self) -> BackendId:
        return BackendId.OLLAMA

    def _ensure_client(self) -> Any:
        if self._client is None:
            import ollama

            self._client = ollama.AsyncClient(host=self._host)
        return self._client

    async def _generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        json_output: bool = False,
    ) -> str:
        self._check_alive()
        client = self._ensure_client()
        kwargs: dict[str, Any] = {
            "model": self._model,
            "messages": [{"role": "user", "content": prompt}],
            "options": {"num_predict": max_tokens, "temperature": temperature},
            "keep_alive": self._keep_alive,
        }
        if json_output:
            kwargs["format"] = "json"

        try:
            resp = await client.chat(**kwargs)
        except Exception as e:
            raise classify_backend_error(e, "ollama") from e

        content = resp["message"]["content"] if resp else None
        if content is None:
            raise AIError(ErrorKind.PROCESSING_FAILED, "Empty response from ollama")
        return content

    async def is_available(self) -> bool:
        """Daemon reachable and model pulled."""
        if self._destroyed:
            return False
        try:
            listing = await self._ensure_client().list()
        except Exception as e:
            logger.debug("Ollama not reachable at %s: %s", self._host, e)
            return False
        return any(self._matches(m) for m in listing["models"])

    def _matches(self, entry: Any) -> bool:
        name = entry.get("model") or entry.get("name") or ""
        return name == self._model or name.split(":", 1)[0] == self._model

    async def destroy(self) -> None:
        if self._destroyed:
            return
        self._destroyed = True
        client, self._client = self._client, None
        if client is None:
            return
        try:
            await client.generate(model=self._model, prompt="", keep_alive=0)
            logger.debug("Unloaded ollama model %s", self._model)
        except Exception as e:
            logger.warning("Could not unload ollama model %s: %s", self._model, e)
