# src/core/errors.py — v1
"""Closed error taxonomy for AI backend calls.

Every failure that crosses a backend, retry or coordinator boundary is an
AIError. Raw exceptions are converted with normalize_error() (generic) or
classify_backend_error() (adapter boundary, knows about SDK failures).
"""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Any

UNKNOWN_ERROR_MESSAGE = "Unknown error occurred"


class ErrorKind(str, Enum):
    """Failure kinds understood by the retry handler and the coordinator."""

    NETWORK = "network"
    RATE_LIMIT = "rate_limit"
    API_UNAVAILABLE = "api_unavailable"
    INVALID_INPUT = "invalid_input"
    PROCESSING_FAILED = "processing_failed"


# Kinds worth retrying against the same backend. api_unavailable and
# processing_failed are only recovered by falling back to another backend.
_RETRYABLE_KINDS = frozenset({ErrorKind.NETWORK, ErrorKind.RATE_LIMIT})


class AIError(Exception):
    """Normalized AI service failure."""

    def __init__(
        self,
        kind: ErrorKind | str,
        message: str,
        original: BaseException | None = None,
    ) -> None:
        self.kind = ErrorKind(kind)
        self.message = message
        self.original = original
        super().__init__(message)

    @property
    def retryable(self) -> bool:
        """Whether the same backend may be retried for this failure."""
        return self.kind in _RETRYABLE_KINDS

    def __repr__(self) -> str:
        return f"AIError(kind={self.kind.value!r}, message={self.message!r})"

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


def normalize_error(error: Any) -> AIError:
    """Turn anything raised by an operation into an AIError.

    AIError instances pass through unchanged. Other exceptions become
    non-retryable processing failures carrying the original message;
    non-exception values get a fixed message.
    """
    if isinstance(error, AIError):
        return error
    if isinstance(error, BaseException):
        message = str(error) or type(error).__name__
        return AIError(ErrorKind.PROCESSING_FAILED, message, original=error)
    return AIError(ErrorKind.PROCESSING_FAILED, UNKNOWN_ERROR_MESSAGE)


def _status_code(error: BaseException) -> int | None:
    """Best-effort HTTP status extraction from SDK exceptions."""
    for attr in ("status_code", "code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return int(value)
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return int(value) if isinstance(value, int) else None


def classify_backend_error(error: BaseException, backend: str) -> AIError:
    """Map an SDK or transport failure raised inside an adapter to an AIError.

    Args:
        error: Exception raised by the backend SDK.
        backend: Backend identifier used in the message.

    Returns:
        AIError with the kind that matches the failure.
    """
    if isinstance(error, AIError):
        return error

    msg = str(error).lower()
    name = type(error).__name__.lower()
    status = _status_code(error)

    if status == 429 or "429" in msg or "rate limit" in msg or "quota" in msg:
        return AIError(
            ErrorKind.RATE_LIMIT, f"{backend} rate limit exceeded", original=error
        )
    if status in (401, 403):
        return AIError(
            ErrorKind.API_UNAVAILABLE, f"{backend} rejected credentials", original=error
        )
    if status in (404, 503) or "unavailable" in msg:
        return AIError(
            ErrorKind.API_UNAVAILABLE,
            f"{backend} temporarily unavailable: {error}",
            original=error,
        )
    if status in (400, 422):
        return AIError(
            ErrorKind.INVALID_INPUT, f"{backend} rejected request: {error}", original=error
        )
    if (
        isinstance(error, (ConnectionError, TimeoutError, asyncio.TimeoutError))
        or "timeout" in name
        or "connect" in name
        or "timed out" in msg
    ):
        return AIError(
            ErrorKind.NETWORK, f"network error contacting {backend}: {error}", original=error
        )
    return AIError(
        ErrorKind.PROCESSING_FAILED,
        f"{backend} request failed: {error or type(error).__name__}",
        original=error,
    )


def user_message(error: AIError) -> str:
    """User-facing wording for an AIError."""
    if error.kind is ErrorKind.API_UNAVAILABLE:
        return "AI service unavailable, please try again later."
    if error.kind is ErrorKind.RATE_LIMIT:
        return "Too many requests right now, please retry in a moment."
    if error.kind is ErrorKind.NETWORK:
        return "Network problem while contacting the AI service."
    if error.kind is ErrorKind.INVALID_INPUT:
        return error.message
    return f"Processing failed: {error.message}"
