# src/cache/keys.py — v2
"""Deterministic cache-key construction.

Keys are colon-delimited, namespace prefix first, every component required:

    processed:{contentHash}:{processType}:{parameter}
    article:{url}:{language}
    translation:{text}:{source}:{target}
    vocabulary:{contextHash}:{wordsHash}

A ":" or "%" inside a component is percent-escaped, so keys are equal only
when every component is.
"""

from __future__ import annotations

from lexiread.cache.models import CacheNamespace, ProcessType

_SEPARATOR = ":"
_BY_PREFIX = {ns.prefix: ns for ns in CacheNamespace}


class InvalidCacheKeyError(ValueError):
    """Raised when a key component is missing or malformed."""


def _part(value: object) -> str:
    if isinstance(value, ProcessType):
        return value.value
    if value is None:
        raise InvalidCacheKeyError("cache key components are required (got None)")
    # Escape the separator so distinct component tuples never share a key.
    return str(value).replace("%", "%25").replace(_SEPARATOR, "%3A")


def build_key(namespace: CacheNamespace, *parts: object) -> str:
    """Compose the key for namespace from its components."""
    if not parts:
        raise InvalidCacheKeyError(f"{namespace.value} key needs at least one component")
    return _SEPARATOR.join([namespace.prefix, *(_part(p) for p in parts)])


def processed_content_key(
    content_hash: str, process_type: ProcessType | str, parameter: int
) -> str:
    """Key of a processed-content entry; parameter values are compared exactly."""
    if isinstance(parameter, bool) or not isinstance(parameter, int):
        raise InvalidCacheKeyError(f"parameter must be an int, got {parameter!r}")
    try:
        kind = ProcessType(process_type)
    except ValueError as e:
        raise InvalidCacheKeyError(f"unknown process type: {process_type!r}") from e
    if not content_hash:
        raise InvalidCacheKeyError("content hash is required")
    return build_key(CacheNamespace.PROCESSED_CONTENT, content_hash, kind, parameter)


def article_key(url: str, language: str) -> str:
    return build_key(CacheNamespace.ARTICLE, url, language)


def translation_key(text: str, source: str, target: str) -> str:
    return build_key(CacheNamespace.TRANSLATION, text, source, target)


def vocabulary_key(context_hash: str, words_hash: str) -> str:
    return build_key(CacheNamespace.VOCABULARY, context_hash, words_hash)


def namespace_of(key: str) -> CacheNamespace | None:
    """Namespace owning a stored key, None for foreign keys."""
    prefix, sep, _ = key.partition(_SEPARATOR)
    if not sep:
        return None
    return _BY_PREFIX.get(prefix)
