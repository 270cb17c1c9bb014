# src/llm/config.py — v2
"""Per-capability backend routing with cascade resolution.

Resolution order:
  1. Per-capability setting (BACKENDS_TRANSLATE=gemini,ollama)
  2. Global order (BACKEND_ORDER)
  3. Hardcoded fallback (ollama,gemini)
"""

from __future__ import annotations

from dataclasses import dataclass

from lexiread.config.settings import Settings
from lexiread.llm.models import BackendId, Capability

FALLBACK_ORDER: tuple[BackendId, ...] = (BackendId.OLLAMA, BackendId.GEMINI)


@dataclass(frozen=True)
class BackendOrder:
    """Resolved preference order for a capability."""

    capability: Capability
    backends: tuple[BackendId, ...]
    source: str  # "capability", "default", or "fallback"

    @property
    def key(self) -> str:
        return ",".join(b.value for b in self.backends)


def _parse_order(value: str) -> tuple[BackendId, ...]:
    """Parse 'ollama,gemini'. Duplicates keep their first position."""
    seen: list[BackendId] = []
    for part in value.split(","):
        name = part.strip().lower()
        if not name:
            continue
        bid = BackendId(name)
        if bid not in seen:
            seen.append(bid)
    return tuple(seen)


def resolve_backend_order(capability: Capability, settings: Settings) -> BackendOrder:
    """Resolve the backend order for one capability."""
    per_capability = getattr(settings, f"backends_{capability.value}", "")
    parsed = _parse_order(per_capability)
    if parsed:
        return BackendOrder(capability, parsed, "capability")

    parsed = _parse_order(settings.backend_order)
    if parsed:
        return BackendOrder(capability, parsed, "default")

    return BackendOrder(capability, FALLBACK_ORDER, "fallback")


def resolve_all(settings: Settings) -> dict[Capability, BackendOrder]:
    """Resolve backend orders for every capability."""
    return {cap: resolve_backend_order(cap, settings) for cap in Capability}
