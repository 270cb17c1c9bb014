# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for backend routing, retry budget, cache policy and
logging. TTL and size values are deliberately not range-checked: zero or
negative values produce degenerate but well-defined cache behavior.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_BACKENDS = ("ollama", "gemini")


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === BACKEND ROUTING ===
    # Comma-separated preference list, first entry tried first.
    backend_order: str = "ollama,gemini"

    # Per-capability overrides (highest priority), same format.
    backends_detect_language: str = ""
    backends_summarize: str = ""
    backends_rewrite: str = ""
    backends_translate: str = ""
    backends_analyze_vocabulary: str = ""

    # Seconds a probed availability result stays valid.
    availability_cache_seconds: float = 60.0

    # === BACKENDS ===
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    gemini_requests_per_minute: int = 60

    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    ollama_keep_alive: str = "5m"

    # === RETRY ===
    retry_max_retries: int = 3
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_jitter: bool = False

    # === CACHE ===
    cache_enabled: bool = True
    cache_backend: Literal["memory", "json", "sqlite", "redis"] = "sqlite"
    cache_root: Path = Path("~/.lexiread/cache")
    cache_redis_url: str = ""
    cache_quota_bytes: int = 10 * 1024 * 1024
    cache_quota_high_water: float = 0.9

    # Global overrides applied to every namespace when set.
    cache_ttl_ms: int | None = None
    cache_max_cache_size: int | None = None

    # Per-namespace defaults.
    cache_article_ttl_ms: int = 24 * 60 * 60 * 1000
    cache_article_max_entries: int = 200
    cache_translation_ttl_ms: int = 7 * 24 * 60 * 60 * 1000
    cache_translation_max_entries: int = 5000
    cache_processed_ttl_ms: int = 6 * 60 * 60 * 1000
    cache_processed_max_entries: int = 500
    cache_vocabulary_ttl_ms: int = 24 * 60 * 60 * 1000
    cache_vocabulary_max_entries: int = 2000

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Reject unknown backend names and incomplete cache backends."""
        errors: list[str] = []

        routing = {"backend_order": self.backend_order}
        for capability in (
            "detect_language", "summarize", "rewrite", "translate",
            "analyze_vocabulary",
        ):
            routing[f"backends_{capability}"] = getattr(self, f"backends_{capability}")

        for field_name, value in routing.items():
            for name in _split(value):
                if name not in KNOWN_BACKENDS:
                    errors.append(
                        f"{field_name.upper()} names unknown backend {name!r} "
                        f"(known: {', '.join(KNOWN_BACKENDS)})"
                    )

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_REDIS_URL must be set when CACHE_BACKEND=redis")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def backend_order_list(self) -> list[str]:
        """Parse the comma-separated default backend order."""
        return _split(self.backend_order)


def _split(value: str) -> list[str]:
    return [item.strip().lower() for item in value.split(",") if item.strip()]


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-call config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
