# src/llm/base_client.py — v2
"""Abstract AI backend interface.

Every backend implements the same five capabilities plus an availability
probe and an explicit resource release. Adapters raise only AIError.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from lexiread.core.errors import AIError, ErrorKind
from lexiread.llm.models import BackendId, SummaryOptions, VocabularyAnalysis

MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10


def validate_difficulty(difficulty: int) -> None:
    """Reject difficulty levels outside 1..10 before any backend call.

    Raises:
        AIError: invalid_input (never retried).
    """
    if (
        isinstance(difficulty, bool)
        or not isinstance(difficulty, int)
        or not MIN_DIFFICULTY <= difficulty <= MAX_DIFFICULTY
    ):
        raise AIError(
            ErrorKind.INVALID_INPUT,
            f"Difficulty must be between {MIN_DIFFICULTY} and {MAX_DIFFICULTY}, "
            f"got {difficulty!r}",
        )


class BaseAIBackend(ABC):
    """Unified interface for all AI backends."""

    @property
    @abstractmethod
    def backend_id(self) -> BackendId:
        """Backend identifier."""

    @abstractmethod
    async def detect_language(self, text: str) -> str:
        """ISO 639-1 code of the text's language."""

    @abstractmethod
    async def summarize(self, text: str, options: SummaryOptions) -> str:
        """Summary of text."""

    @abstractmethod
    async def rewrite(self, text: str, difficulty: int) -> str:
        """Text rewritten for a reader at difficulty 1 (beginner) .. 10 (proficient)."""

    @abstractmethod
    async def translate(self, text: str, source: str, target: str) -> str:
        """Translation of text from source to target language."""

    @abstractmethod
    async def analyze_vocabulary(
        self, words: list[str], context: str
    ) -> list[VocabularyAnalysis]:
        """Per-word difficulty and usage analysis."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Whether the backend can currently serve requests. Must not raise."""

    @abstractmethod
    async def destroy(self) -> None:
        """Release native resources held by the backend."""
