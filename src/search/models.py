# src/search/models.py — v1
"""Provider boundary models: ProviderItem, ProviderSearchResult."""

from __future__ import annotations

from pydantic import BaseModel, Field

from noveltyscope.search.errors import ProviderErrorKind


class ProviderItem(BaseModel):
    """Raw candidate normalized from any provider."""

    item_id: str
    title: str
    description: str = ""
    url: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)
    # Provider-side relevance to the query, when the source computes one.
    relevance: float | None = Field(default=None, ge=0.0, le=1.0)


class ProviderSearchResult(BaseModel):
    """Outcome of ``BaseSearchClient.search``; never raised, always returned."""

    success: bool
    items: list[ProviderItem] = Field(default_factory=list)
    total: int = 0
    query: str
    error: str | None = None
    error_kind: ProviderErrorKind | None = None
