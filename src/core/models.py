# src/core/models.py — v4
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Covers the novelty-check request, findings, per-agent results and the
aggregate verdict handed to the review UI.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

AgentType = Literal["patent_search", "web_search", "retail_search"]
SearchType = Literal["patent", "web", "retail"]

AGENT_SEARCH_TYPES: dict[str, str] = {
    "patent_search": "patent",
    "web_search": "web",
    "retail_search": "retail",
}


def utcnow() -> datetime:
    """Timezone-aware current time (UTC)."""
    return datetime.now(timezone.utc)


# === REQUEST ===


class NoveltyCheckRequest(BaseModel):
    """Invention description submitted for a novelty check."""

    invention_name: str
    description: str
    problem_statement: str | None = None
    target_audience: str | None = None
    key_features: list[str] = Field(default_factory=list)


# === FINDINGS ===


class Finding(BaseModel):
    """One candidate prior-art or competing item surfaced by an agent.

    ``similarity_score`` is None until the scoring oracle (or the patent
    source's own relevance) has rated the item.
    """

    id: str
    title: str
    description: str = ""
    url: str | None = None
    source: str
    similarity_score: float | None = Field(default=None, ge=0.0, le=1.0)
    metadata: dict[str, str] = Field(default_factory=dict)

    @property
    def is_scored(self) -> bool:
        return self.similarity_score is not None


class TruthScores(BaseModel):
    """Self-reported quality vector attached to an agent's analysis."""

    objective_truth: float = Field(default=0.0, ge=0.0, le=1.0)
    practical_truth: float = Field(default=0.0, ge=0.0, le=1.0)
    completeness: float = Field(default=0.0, ge=0.0, le=1.0)
    contextual_scope: float = Field(default=0.0, ge=0.0, le=1.0)

    @classmethod
    def zero(cls) -> TruthScores:
        return cls()


# === RESULTS ===


class NoveltyResult(BaseModel):
    """Local verdict of one search agent."""

    agent_type: AgentType
    is_novel: bool
    confidence: float = Field(ge=0.0, le=1.0)
    findings: list[Finding] = Field(default_factory=list)
    summary: str
    truth_scores: TruthScores = Field(default_factory=TruthScores)
    search_query_used: str = ""
    timestamp: datetime = Field(default_factory=utcnow)
    from_cache: bool = False
    degraded_reason: str | None = None


class AggregatedFinding(Finding):
    """Finding tagged with the agent that produced it."""

    agent_type: AgentType


class AgentSummary(BaseModel):
    """Per-agent line of the aggregate report, kept for attribution."""

    agent_type: AgentType
    is_novel: bool
    confidence: float
    summary: str
    finding_count: int
    unscored_count: int = 0
    degraded_reason: str | None = None


class AggregateNoveltyResult(BaseModel):
    """Combined decision over every agent invoked for one check.

    Derived only; always rebuilt from ``agent_results``.
    """

    is_novel: bool
    confidence: float
    findings: list[AggregatedFinding] = Field(default_factory=list)
    agent_summaries: list[AgentSummary] = Field(default_factory=list)
    agent_results: list[NoveltyResult] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)
