# src/llm/models.py — v2
"""Backend-facing types: BackendId, Capability, SummaryOptions, VocabularyAnalysis."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class BackendId(str, Enum):
    """Closed set of AI backends."""

    OLLAMA = "ollama"  # on-device model served by the local Ollama daemon
    GEMINI = "gemini"  # Google Gemini cloud API


class Capability(str, Enum):
    """Enrichment operations every backend implements."""

    DETECT_LANGUAGE = "detect_language"
    SUMMARIZE = "summarize"
    REWRITE = "rewrite"
    TRANSLATE = "translate"
    ANALYZE_VOCABULARY = "analyze_vocabulary"


class SummaryOptions(BaseModel):
    """Summarization knobs."""

    max_length: int = 300  # approximate length in words
    format: Literal["paragraph", "bullet"] = "paragraph"


class VocabularyAnalysis(BaseModel):
    """Per-word analysis returned by analyze_vocabulary.

    Accepts both snake_case and the camelCase keys models tend to emit.
    """

    model_config = ConfigDict(populate_by_name=True)

    word: str
    difficulty: int = Field(ge=1, le=10)
    is_proper_noun: bool = Field(default=False, alias="isProperNoun")
    is_technical_term: bool = Field(default=False, alias="isTechnicalTerm")
    example_sentences: list[str] = Field(default_factory=list, alias="exampleSentences")

    @field_validator("difficulty", mode="before")
    @classmethod
    def clamp_difficulty(cls, v: object) -> object:
        """Models occasionally answer 0 or 11; pull numeric values into 1..10."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return min(10, max(1, round(v)))
        return v


class ServiceStatus(BaseModel):
    """Cached availability of each backend."""

    backend_available: dict[BackendId, bool] = Field(default_factory=dict)
    last_checked: datetime | None = None

    @property
    def any_available(self) -> bool:
        return any(self.backend_available.values())
