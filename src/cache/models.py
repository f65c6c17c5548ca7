# src/cache/models.py — v2
"""Cache domain models: CacheEntry, CacheStats.

One entry per fingerprint; ``result_count`` always mirrors ``results``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from noveltyscope.core.models import Finding, SearchType


class CacheEntry(BaseModel):
    """Stored outcome of one external search call."""

    fingerprint: str
    search_type: SearchType
    query_params: dict[str, Any] = Field(default_factory=dict)
    results: list[Finding] = Field(default_factory=list)
    result_count: int = 0
    source_api: str
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="after")
    def _sync_result_count(self) -> CacheEntry:
        self.result_count = len(self.results)
        return self

    def is_expired(self, now: datetime) -> bool:
        """True once the clock has passed ``expires_at`` (never for null expiry)."""
        return self.expires_at is not None and self.expires_at <= now


class CacheStats(BaseModel):
    """Snapshot of store contents per partition."""

    total: int = 0
    by_search_type: dict[str, int] = Field(default_factory=dict)
    expired_pending: int = 0
