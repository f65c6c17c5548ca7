# src/config/settings.py — v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings.
Missing provider credentials are not a configuration error: the
corresponding agent reports itself as not configured instead.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_AGENTS = ("patent_search", "web_search", "retail_search")


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM (similarity-scoring oracle) ===
    llm_default_provider: str = "anthropic"
    llm_default_model: str = "claude-sonnet-4-20250514"
    llm_default_temperature: float = 0.2
    llm_max_tokens: int = 4096
    llm_scoring: str = ""  # provider:model override for the scoring oracle

    anthropic_api_key: str = ""
    openai_api_key: str = ""

    # === Retail provider (eBay Browse API) ===
    ebay_client_id: str = ""
    ebay_client_secret: str = ""
    ebay_marketplace_id: str = "EBAY_US"
    ebay_api_base_url: str = "https://api.ebay.com"
    ebay_token_refresh_margin_s: int = 300
    ebay_search_limit: int = 15

    # === Web provider (Tavily) ===
    tavily_api_key: str = ""
    tavily_api_url: str = "https://api.tavily.com/search"
    web_search_limit: int = 10

    # === Patent provider (PatentsView) ===
    patentsview_api_key: str = ""
    patentsview_api_url: str = "https://search.patentsview.org/api/v1/patent/"
    patent_search_limit: int = 10
    patent_novelty_threshold: float = 0.7

    # === Timeouts (seconds) ===
    provider_timeout_s: float = 20.0
    scoring_timeout_s: float = 60.0
    agent_timeout_s: float = 120.0

    # === Agents ===
    enabled_agents: str = "patent_search,web_search,retail_search"
    scoring_novelty_threshold: float = 0.7

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite", "redis"] = "sqlite"
    cache_root: Path = Path("~/.noveltyscope/cache")
    cache_redis_url: str = ""
    cache_default_ttl_days: int = 7

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("provider_timeout_s", "scoring_timeout_s", "agent_timeout_s")
    @classmethod
    def validate_timeout(cls, v: float) -> float:  # noqa: N805
        """Timeouts must be positive; no call may block unbounded."""
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        if self.cache_default_ttl_days <= 0:
            errors.append("CACHE_DEFAULT_TTL_DAYS must be > 0")

        for name in ("patent_novelty_threshold", "scoring_novelty_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                errors.append(f"{name.upper()} must be within [0, 1]")

        unknown = [a for a in self.enabled_agents_list if a not in KNOWN_AGENTS]
        if unknown:
            errors.append(f"ENABLED_AGENTS has unknown agents: {', '.join(unknown)}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def enabled_agents_list(self) -> list[str]:
        """Parse comma-separated agent list."""
        return [a.strip() for a in self.enabled_agents.split(",") if a.strip()]

    @property
    def ebay_configured(self) -> bool:
        return bool(self.ebay_client_id and self.ebay_client_secret)

    @property
    def tavily_configured(self) -> bool:
        return bool(self.tavily_api_key)


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-check config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
