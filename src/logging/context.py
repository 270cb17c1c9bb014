# src/logging/context.py — v2
"""Contextual logging support — attach request_id, capability, backend to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per enrichment request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_capability: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "capability", default=None
)
_backend: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "backend", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    capability: str | None = None
    backend: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        capability=_capability.get(),
        backend=_backend.get(),
    )


def set_request_context(request_id: str, capability: str) -> None:
    """Set request-level context (called once per coordinator call)."""
    _request_id.set(request_id)
    _capability.set(capability)


def set_backend_context(backend: str | None) -> None:
    """Set the backend currently being attempted."""
    _backend.set(backend)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _capability.set(None)
    _backend.set(None)
