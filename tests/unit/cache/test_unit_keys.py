# tests/unit/cache/test_unit_keys.py — v2
"""Tests for cache/keys.py — deterministic key composition."""

from __future__ import annotations

import pytest

from lexiread.cache.keys import (
    InvalidCacheKeyError,
    article_key,
    build_key,
    namespace_of,
    processed_content_key,
    translation_key,
    vocabulary_key,
)
from lexiread.cache.models import CacheNamespace, ProcessType


class TestProcessedContentKey:
    def test_format(self):
        assert processed_content_key("abc123", "summary", 5) == "processed:abc123:summary:5"

    def test_enum_process_type(self):
        key = processed_content_key("h", ProcessType.REWRITE, 3)
        assert key == "processed:h:rewrite:3"

    def test_adjacent_parameters_differ(self):
        assert processed_content_key("h", "summary", 100) != processed_content_key(
            "h", "summary", 101
        )

    @pytest.mark.parametrize("parameter", [5.0, "5", None, True])
    def test_parameter_must_be_int(self, parameter):
        with pytest.raises(InvalidCacheKeyError):
            processed_content_key("h", "summary", parameter)

    def test_unknown_process_type(self):
        with pytest.raises(InvalidCacheKeyError):
            processed_content_key("h", "poem", 1)

    def test_empty_hash_rejected(self):
        with pytest.raises(InvalidCacheKeyError):
            processed_content_key("", "summary", 1)


class TestOtherKeys:
    def test_article(self):
        assert article_key("https://x.test/a", "fr") == "article:https%3A//x.test/a:fr"

    def test_separator_in_component_is_escaped(self):
        assert translation_key("a:en", "fr", "de") != translation_key("a", "en:fr", "de")
        assert translation_key("50%3A", "fr", "en") != translation_key("50:", "fr", "en")
        assert translation_key("a:b", "fr", "en").count(":") == 3

    def test_translation(self):
        assert translation_key("chat", "fr", "en") == "translation:chat:fr:en"

    def test_vocabulary(self):
        assert vocabulary_key("c", "w") == "vocabulary:c:w"

    def test_none_component_rejected(self):
        with pytest.raises(InvalidCacheKeyError):
            build_key(CacheNamespace.ARTICLE, "url", None)

    def test_no_components_rejected(self):
        with pytest.raises(InvalidCacheKeyError):
            build_key(CacheNamespace.ARTICLE)


class TestNamespaceOf:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("processed:h:summary:1", CacheNamespace.PROCESSED_CONTENT),
            ("article:u:en", CacheNamespace.ARTICLE),
            ("translation:a:b:c", CacheNamespace.TRANSLATION),
            ("vocabulary:a:b", CacheNamespace.VOCABULARY),
            ("settings:theme", None),
            ("noseparator", None),
        ],
    )
    def test_namespace_of(self, key, expected):
        assert namespace_of(key) is expected
