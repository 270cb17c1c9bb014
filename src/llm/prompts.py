# src/llm/prompts.py — v1
"""Prompt templates and response parsing shared by the LLM-backed adapters."""

from __future__ import annotations

import json
import math
import re

from pydantic import TypeAdapter, ValidationError

from lexiread.core.errors import AIError, ErrorKind
from lexiread.llm.models import SummaryOptions, VocabularyAnalysis

_LANGUAGE_SAMPLE_CHARS = 500
_LANGUAGE_CODE = re.compile(r"^[a-z]{2}$")
_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

_vocabulary_adapter = TypeAdapter(list[VocabularyAnalysis])


def difficulty_description(difficulty: int) -> str:
    """CEFR-style description of a 1..10 difficulty level."""
    if difficulty <= 2:
        return "beginner (A1)"
    if difficulty <= 4:
        return "elementary (A2)"
    if difficulty <= 6:
        return "intermediate (B1-B2)"
    if difficulty <= 8:
        return "advanced (C1)"
    return "proficient (C2)"


def language_prompt(text: str) -> str:
    return (
        "Detect the language of the following text and return ONLY the ISO 639-1 "
        'language code (e.g., "en", "es", "fr", "de", "ja", "zh").\n\n'
        f"Text: {text[:_LANGUAGE_SAMPLE_CHARS]}"
    )


def summary_prompt(text: str, options: SummaryOptions) -> str:
    style = "Use bullet points." if options.format == "bullet" else "Use paragraph format."
    return (
        f"Summarize the following text in approximately {options.max_length} words. "
        f"{style}\n\n"
        "Remove any advertisements, navigation elements, or irrelevant content. "
        "Focus only on the main article content.\n\n"
        f"Text:\n{text}"
    )


def summary_token_budget(options: SummaryOptions) -> int:
    return max(16, math.ceil(options.max_length * 1.5))


def rewrite_prompt(text: str, difficulty: int) -> str:
    return (
        f"Rewrite the following text to match a {difficulty_description(difficulty)} "
        f"language proficiency level (difficulty {difficulty}/10).\n\n"
        "Guidelines:\n"
        "- Maintain all factual information and meaning\n"
        "- Adjust vocabulary complexity appropriately\n"
        "- Keep the same structure and length\n"
        "- Do not add or remove information\n\n"
        f"Text:\n{text}"
    )


def translate_prompt(text: str, source: str, target: str) -> str:
    return (
        f"Translate the following text from {source} to {target}. "
        "Provide ONLY the translation, no explanations.\n\n"
        f"Text: {text}"
    )


def vocabulary_prompt(words: list[str], context: str) -> str:
    return (
        "Analyze the following vocabulary words in the given context. For each word:\n"
        "1. Assess difficulty level (1-10, where 1 is basic and 10 is advanced)\n"
        "2. Identify if it's a proper noun (name, place, brand)\n"
        "3. Identify if it's a technical term\n"
        "4. Generate 1-3 example sentences showing the word in different contexts\n\n"
        "Respond with a JSON array of objects with the keys word, difficulty, "
        "isProperNoun, isTechnicalTerm, exampleSentences.\n\n"
        f"Context: {context}\n\n"
        f"Words: {', '.join(words)}"
    )


def parse_language_code(raw: str, backend: str) -> str:
    """Validate a model's language answer.

    Raises:
        AIError: processing_failed when the answer is not a 2-letter code.
    """
    code = raw.strip().strip("\"'.").lower()
    if not _LANGUAGE_CODE.match(code):
        raise AIError(
            ErrorKind.PROCESSING_FAILED,
            f"{backend} returned an invalid language code: {raw.strip()[:20]!r}",
        )
    return code


def parse_vocabulary(raw: str, backend: str) -> list[VocabularyAnalysis]:
    """Parse the JSON array a model returned for analyze_vocabulary.

    Raises:
        AIError: processing_failed when the payload is not a valid analysis list.
    """
    payload = _FENCE.sub("", raw.strip())
    try:
        data = json.loads(payload)
        if isinstance(data, dict):
            # Some models wrap the array: {"words": [...]}
            data = next((v for v in data.values() if isinstance(v, list)), [data])
        return _vocabulary_adapter.validate_python(data)
    except (ValueError, ValidationError) as e:
        raise AIError(
            ErrorKind.PROCESSING_FAILED,
            f"{backend} returned malformed vocabulary analysis: {e}",
            original=e,
        ) from e


def require_text(result: str, backend: str, capability: str) -> str:
    """Reject empty model output."""
    text = result.strip()
    if not text:
        raise AIError(
            ErrorKind.PROCESSING_FAILED, f"Empty {capability} response from {backend}"
        )
    return text
