# src/llm/client_factory.py — v3
"""Factory: instantiate an AI backend from its BackendId.

Adapters are imported lazily so a missing optional SDK only matters when
that backend is actually built.
"""

from __future__ import annotations

import importlib
import logging

from lexiread.config.settings import Settings
from lexiread.llm.base_client import BaseAIBackend
from lexiread.llm.models import BackendId

logger = logging.getLogger(__name__)

# Registry of backend id → adapter class path (lazy import).
_BACKEND_REGISTRY: dict[BackendId, str] = {
    BackendId.OLLAMA: "lexiread.llm.adapters.ollama_adapter.OllamaAdapter",
    BackendId.GEMINI: "lexiread.llm.adapters.google_adapter.GeminiAdapter",
}


class UnsupportedBackendError(ValueError):
    """Raised when a backend id is not registered."""


def create_backend(
    backend_id: BackendId | str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseAIBackend:
    """Instantiate the adapter for backend_id.

    Args:
        backend_id: BackendId or its string value.
        settings: Application settings (models, keys, URLs).
        **kwargs: Extra adapter arguments; they win over settings.

    Raises:
        UnsupportedBackendError: If the id is not registered.
    """
    try:
        bid = BackendId(backend_id)
    except ValueError:
        bid = None
    if bid is None or bid not in _BACKEND_REGISTRY:
        raise UnsupportedBackendError(
            f"Unsupported AI backend: {backend_id!r}. "
            f"Available: {', '.join(sorted(b.value for b in _BACKEND_REGISTRY))}"
        )

    adapter_cls = _import_class(_BACKEND_REGISTRY[bid])

    init_kwargs = dict(kwargs)
    if settings is not None:
        if bid is BackendId.OLLAMA:
            init_kwargs.setdefault("model", settings.ollama_model)
            init_kwargs.setdefault("host", settings.ollama_base_url)
            init_kwargs.setdefault("keep_alive", settings.ollama_keep_alive)
        elif bid is BackendId.GEMINI:
            init_kwargs.setdefault("model", settings.gemini_model)
            init_kwargs.setdefault("api_key", settings.gemini_api_key)
            init_kwargs.setdefault("requests_per_minute", settings.gemini_requests_per_minute)

    logger.debug("Creating AI backend: %s", bid.value)
    return adapter_cls(**init_kwargs)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
