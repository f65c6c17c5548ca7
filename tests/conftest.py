# tests/conftest.py — v2
"""Shared test fixtures for all unit tests.

Provides sample requests and findings, a controllable clock, a scripted
search client and mock LLM clients. No network: providers are either
scripted or reached through httpx.MockTransport.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock

import pytest

from noveltyscope.core.models import Finding, NoveltyCheckRequest
from noveltyscope.llm.models import LLMResponse
from noveltyscope.search.base_client import BaseSearchClient
from noveltyscope.search.models import ProviderItem


# === FIXTURES: Sample data ===


@pytest.fixture
def sample_request() -> NoveltyCheckRequest:
    """Minimal valid NoveltyCheckRequest."""
    return NoveltyCheckRequest(
        invention_name="Solar Phone Case",
        description="A phone case with a built-in solar panel that trickle-charges the battery.",
        problem_statement="Phones run out of battery outdoors.",
        target_audience="Hikers and campers",
        key_features=["foldable solar panel", "shock absorbing bumper"],
    )


def make_finding(fid: str = "f1", score: float | None = None, **overrides: Any) -> Finding:
    defaults: dict[str, Any] = dict(
        id=fid,
        title=f"Item {fid}",
        description=f"Description of {fid}",
        url=f"https://example.com/{fid}",
        source="eBay",
        similarity_score=score,
    )
    defaults.update(overrides)
    return Finding(**defaults)


@pytest.fixture
def sample_findings() -> list[Finding]:
    """Two unscored retail findings."""
    return [make_finding("item1"), make_finding("item2")]


# === FIXTURES: Clock ===


class FakeClock:
    """Manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# === FIXTURES: Search client ===


class ScriptedSearchClient(BaseSearchClient):
    """BaseSearchClient returning canned items or raising a canned error."""

    source_name = "Scripted"

    def __init__(
        self,
        items: list[ProviderItem] | None = None,
        error: Exception | None = None,
        configured: bool = True,
    ) -> None:
        super().__init__()
        self.items = items or []
        self.error = error
        self.configured = configured
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @property
    def is_configured(self) -> bool:
        return self.configured

    def credential_status(self) -> str:
        return "Scripted credentials configured" if self.configured else "Scripted API key not configured."

    async def _search(self, query: str, **options: Any) -> tuple[list[ProviderItem], int]:
        self.calls.append((query, options))
        if self.error is not None:
            raise self.error
        return list(self.items), len(self.items)


def make_item(item_id: str, relevance: float | None = None, **overrides: Any) -> ProviderItem:
    defaults: dict[str, Any] = dict(
        item_id=item_id,
        title=f"Listing {item_id}",
        description=f"New - Listing {item_id}",
        url=f"https://example.com/{item_id}",
        relevance=relevance,
    )
    defaults.update(overrides)
    return ProviderItem(**defaults)


@pytest.fixture
def scripted_client() -> ScriptedSearchClient:
    return ScriptedSearchClient(items=[make_item("item1"), make_item("item2")])


# === FIXTURES: Mock LLM ===


def verdict_json(
    scores: dict[str, float],
    is_novel: bool = False,
    confidence: float = 0.85,
    summary: str = "Similar products exist.",
) -> str:
    return json.dumps(
        {
            "is_novel": is_novel,
            "confidence": confidence,
            "item_analyses": [
                {"item_id": k, "similarity_score": v, "analysis": f"Analysis of {k}"}
                for k, v in scores.items()
            ],
            "summary": summary,
            "truth_scores": {
                "objective_truth": 0.9,
                "practical_truth": 0.8,
                "completeness": 0.7,
                "contextual_scope": 0.85,
            },
        }
    )


def llm_response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content,
        input_tokens=100,
        output_tokens=50,
        model="claude-sonnet-4-20250514",
        provider="anthropic",
        latency_ms=500,
    )


@pytest.fixture
def mock_llm_client() -> AsyncMock:
    """Mock BaseLLMClient scoring item1=0.9, item2=0.4."""
    client = AsyncMock()
    client.complete = AsyncMock(
        return_value=llm_response(verdict_json({"item1": 0.9, "item2": 0.4}))
    )
    client.provider_name = "anthropic"
    client.model_name = "claude-sonnet-4-20250514"
    return client
