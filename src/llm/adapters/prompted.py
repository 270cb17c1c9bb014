# src/llm/adapters/prompted.py — v1
"""Capabilities implemented on top of a single text-generation call.

Both backends are chat/completion models, so the five capabilities differ
only in prompt, token budget and response parsing. Subclasses provide
_generate() and must raise AIError from it.
"""

from __future__ import annotations

import math
from abc import abstractmethod

from lexiread.core.errors import AIError, ErrorKind
from lexiread.llm import prompts
from lexiread.llm.base_client import BaseAIBackend, validate_difficulty
from lexiread.llm.models import SummaryOptions, VocabularyAnalysis


class PromptedBackend(BaseAIBackend):
    """Base class for LLM-backed adapters."""

    _destroyed = False

    @abstractmethod
    async def _generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        json_output: bool = False,
    ) -> str:
        """Run one completion and return the raw text."""

    def _check_alive(self) -> None:
        if self._destroyed:
            raise AIError(
                ErrorKind.API_UNAVAILABLE, f"{self.backend_id.value} backend was destroyed"
            )

    async def detect_language(self, text: str) -> str:
        self._check_alive()
        if not text.strip():
            raise AIError(ErrorKind.INVALID_INPUT, "Cannot detect the language of empty text")
        raw = await self._generate(prompts.language_prompt(text), 10, 0.1)
        return prompts.parse_language_code(raw, self.backend_id.value)

    async def summarize(self, text: str, options: SummaryOptions) -> str:
        self._check_alive()
        raw = await self._generate(
            prompts.summary_prompt(text, options),
            prompts.summary_token_budget(options),
            0.3,
        )
        return prompts.require_text(raw, self.backend_id.value, "summary")

    async def rewrite(self, text: str, difficulty: int) -> str:
        validate_difficulty(difficulty)
        self._check_alive()
        raw = await self._generate(
            prompts.rewrite_prompt(text, difficulty),
            max(64, math.ceil(len(text) * 1.5)),
            0.5,
        )
        return prompts.require_text(raw, self.backend_id.value, "rewrite")

    async def translate(self, text: str, source: str, target: str) -> str:
        self._check_alive()
        raw = await self._generate(
            prompts.translate_prompt(text, source, target),
            max(32, math.ceil(len(text) * 2)),
            0.3,
        )
        return prompts.require_text(raw, self.backend_id.value, "translation")

    async def analyze_vocabulary(
        self, words: list[str], context: str
    ) -> list[VocabularyAnalysis]:
        self._check_alive()
        if not words:
            return []
        raw = await self._generate(
            prompts.vocabulary_prompt(words, context), 2000, 0.7, json_output=True
        )
        return prompts.parse_vocabulary(raw, self.backend_id.value)
