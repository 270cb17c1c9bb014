# src/cache/models.py — v2
"""Cache domain models: namespaces, entries, policies, statistics."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CacheNamespace(str, Enum):
    """Logical partitions of the cache, each with its own TTL and stats."""

    ARTICLE = "article"
    TRANSLATION = "translation"
    PROCESSED_CONTENT = "processed_content"
    VOCABULARY = "vocabulary"

    @property
    def prefix(self) -> str:
        """Leading key segment for entries of this namespace."""
        return _PREFIXES[self]


_PREFIXES = {
    CacheNamespace.ARTICLE: "article",
    CacheNamespace.TRANSLATION: "translation",
    CacheNamespace.PROCESSED_CONTENT: "processed",
    CacheNamespace.VOCABULARY: "vocabulary",
}


class ProcessType(str, Enum):
    """Kinds of processed content stored under the processed namespace."""

    SUMMARY = "summary"
    BULLET_SUMMARY = "bullet_summary"
    REWRITE = "rewrite"
    VOCABULARY = "vocabulary"
    LANGUAGE = "language"


class CacheEntry(BaseModel):
    """Stored value plus its lifetime."""

    value: Any
    is_bytes: bool = False  # value holds base64 of the original bytes
    stored_at: datetime
    expires_at: datetime
    namespace: CacheNamespace

    def is_expired(self, now: datetime) -> bool:
        """Entries are absent from expires_at on, so ttl <= 0 expires immediately."""
        return now >= self.expires_at


class NamespacePolicy(BaseModel):
    """TTL and size bound of one namespace."""

    ttl_ms: int
    max_entries: int


def _default_policies() -> dict[CacheNamespace, NamespacePolicy]:
    return {
        CacheNamespace.ARTICLE: NamespacePolicy(ttl_ms=24 * 3600 * 1000, max_entries=200),
        CacheNamespace.TRANSLATION: NamespacePolicy(
            ttl_ms=7 * 24 * 3600 * 1000, max_entries=5000
        ),
        CacheNamespace.PROCESSED_CONTENT: NamespacePolicy(
            ttl_ms=6 * 3600 * 1000, max_entries=500
        ),
        CacheNamespace.VOCABULARY: NamespacePolicy(ttl_ms=24 * 3600 * 1000, max_entries=2000),
    }


class CacheConfig(BaseModel):
    """Cache policy. Global overrides win over per-namespace values."""

    namespaces: dict[CacheNamespace, NamespacePolicy] = Field(
        default_factory=_default_policies
    )
    ttl_ms: int | None = None
    max_cache_size: int | None = None
    quota_high_water: float = 0.9

    def policy_for(self, namespace: CacheNamespace) -> NamespacePolicy:
        """Resolve the effective policy for a namespace."""
        base = self.namespaces.get(namespace) or _default_policies()[namespace]
        return NamespacePolicy(
            ttl_ms=base.ttl_ms if self.ttl_ms is None else self.ttl_ms,
            max_entries=(
                base.max_entries if self.max_cache_size is None else self.max_cache_size
            ),
        )


class CacheStats(BaseModel):
    """Hit/miss counters of one namespace."""

    hits: int = 0
    misses: int = 0

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        total = self.total_requests
        return self.hits / total if total else 0.0

    @property
    def miss_rate(self) -> float:
        total = self.total_requests
        return 1.0 - self.hit_rate if total else 0.0


class MaintenanceReport(BaseModel):
    """What a maintenance sweep removed."""

    removed_per_namespace: dict[CacheNamespace, int] = Field(
        default_factory=lambda: {ns: 0 for ns in CacheNamespace}
    )
    expired: int = 0
    evicted: int = 0
    bytes_in_use: int = 0

    @property
    def total_removed(self) -> int:
        return sum(self.removed_per_namespace.values())


class TranslationRecord(BaseModel):
    """One word translation for batch caching."""

    model_config = ConfigDict(populate_by_name=True)

    word: str
    source: str = Field(alias="fromLang")
    target: str = Field(alias="toLang")
    translation: str


class StorageUsage(BaseModel):
    """Backing-store usage against its quota."""

    bytes_in_use: int
    quota_bytes: int

    @property
    def ratio(self) -> float:
        return self.bytes_in_use / self.quota_bytes if self.quota_bytes > 0 else 0.0
