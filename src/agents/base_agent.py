# src/agents/base_agent.py — v1
"""Standard interface for novelty search agents.

An agent turns a NoveltyCheckRequest into a NoveltyResult. ``run`` never
raises: missing credentials, provider errors and scoring failures all map
onto a (possibly degraded) result so the aggregator only ever sees values.

Fetch results are cached per fingerprint of (search type, query params);
the cache is best-effort and a store failure counts as a miss.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from noveltyscope.core.models import (
    AgentType,
    Finding,
    NoveltyCheckRequest,
    NoveltyResult,
    SearchType,
    TruthScores,
)
from noveltyscope.logging.context import set_agent_context
from noveltyscope.search.query_builder import build_search_query

if TYPE_CHECKING:
    from noveltyscope.cache.base_cache_store import BaseCacheStore
    from noveltyscope.search.base_client import BaseSearchClient
    from noveltyscope.search.models import ProviderItem

logger = logging.getLogger(__name__)

# Nothing found: weak evidence of novelty, absence of evidence is not proof.
ABSENCE_CONFIDENCE = 0.7
ABSENCE_TRUTH = TruthScores(
    objective_truth=0.8, practical_truth=0.7, completeness=0.5, contextual_scope=0.8
)


@dataclass
class FetchOutcome:
    """Fetch phase output: findings, or the provider failure that prevented them."""

    query: str
    findings: list[Finding] = field(default_factory=list)
    from_cache: bool = False
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None


class BaseSearchAgent(ABC):
    """Common fetch/cache/degrade plumbing for all agent variants."""

    agent_type: AgentType
    search_type: SearchType

    def __init__(
        self,
        client: BaseSearchClient,
        cache_store: BaseCacheStore | None = None,
        search_limit: int = 10,
        cache_ttl: timedelta | None = None,
    ) -> None:
        self._client = client
        self._cache = cache_store
        self._limit = search_limit
        self._cache_ttl = cache_ttl

    @property
    def name(self) -> str:
        return self.agent_type

    @property
    def source_name(self) -> str:
        return self._client.source_name

    async def run(self, request: NoveltyCheckRequest) -> NoveltyResult:
        """Execute the agent. Always returns a NoveltyResult."""
        set_agent_context(self.agent_type)
        query = self.build_query(request)
        if not self._client.is_configured:
            logger.info("%s not configured, skipping search", self.source_name)
            return self.degraded_result("not_configured", self._client.credential_status(), query)
        try:
            return await self._run(request, query)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.exception("%s agent failed unexpectedly", self.agent_type)
            return self.degraded_result(
                "internal_error", f"{self.source_name} analysis failed: {e}", query
            )

    @abstractmethod
    async def _run(self, request: NoveltyCheckRequest, query: str) -> NoveltyResult:
        """Variant-specific pipeline on a configured provider."""

    # --- Query & fetch ---

    def build_query(self, request: NoveltyCheckRequest) -> str:
        return build_search_query(
            request.invention_name, request.description, request.key_features
        )

    def query_params(self, query: str) -> dict[str, Any]:
        """Parameters sent to the provider; also the cache fingerprint input."""
        return {"q": query, "limit": self._limit}

    async def fetch(self, query: str) -> FetchOutcome:
        """Fetch phase: cache lookup, provider call on miss, write-back."""
        params = self.query_params(query)

        cached = await self._cache_get(params)
        if cached is not None:
            return FetchOutcome(query=query, findings=list(cached), from_cache=True)

        options = {k: v for k, v in params.items() if k != "q"}
        result = await self._client.search(params["q"], **options)
        if not result.success:
            return FetchOutcome(query=query, error=result.error, error_kind=result.error_kind)

        findings = self.to_findings(result.items)
        await self._cache_put(params, findings)
        return FetchOutcome(query=query, findings=findings)

    def to_findings(self, items: list[ProviderItem]) -> list[Finding]:
        """Normalize provider items; ids are made unique within the list."""
        findings: list[Finding] = []
        seen: set[str] = set()
        for index, item in enumerate(items, start=1):
            finding_id = item.item_id or f"{self.search_type}-{index}"
            if finding_id in seen:
                finding_id = f"{finding_id}#{index}"
            seen.add(finding_id)
            findings.append(
                Finding(
                    id=finding_id,
                    title=item.title,
                    description=item.description,
                    url=item.url,
                    source=self.source_name,
                    similarity_score=item.relevance,
                    metadata=item.metadata,
                )
            )
        return findings

    async def _cache_get(self, params: dict[str, Any]) -> list[Finding] | None:
        if self._cache is None:
            return None
        try:
            entry = await self._cache.get(self.search_type, params)
        except Exception:
            logger.warning("Cache read failed for %s, treating as miss", self.search_type, exc_info=True)
            return None
        return None if entry is None else entry.results

    async def _cache_put(self, params: dict[str, Any], findings: list[Finding]) -> None:
        if self._cache is None:
            return
        try:
            await self._cache.put(
                self.search_type, params, findings, self.source_name, ttl=self._cache_ttl
            )
        except Exception:
            logger.warning("Cache write failed for %s, continuing", self.search_type, exc_info=True)

    # --- Result builders ---

    def degraded_result(self, reason: str, summary: str, query: str) -> NoveltyResult:
        """Zero-confidence result for provider/config failures."""
        logger.warning("%s degraded (%s): %s", self.agent_type, reason, summary)
        return NoveltyResult(
            agent_type=self.agent_type,
            is_novel=False,
            confidence=0.0,
            findings=[],
            summary=summary,
            truth_scores=TruthScores.zero(),
            search_query_used=query,
            degraded_reason=reason,
        )

    def provider_failure_result(self, outcome: FetchOutcome) -> NoveltyResult:
        if outcome.error_kind == "not_configured":
            summary = outcome.error or self._client.credential_status()
        else:
            summary = f"{self.source_name} API error: {outcome.error}"
        return self.degraded_result(outcome.error_kind or "request_failed", summary, outcome.query)

    def absence_result(self, outcome: FetchOutcome, summary: str) -> NoveltyResult:
        return NoveltyResult(
            agent_type=self.agent_type,
            is_novel=True,
            confidence=ABSENCE_CONFIDENCE,
            findings=[],
            summary=summary,
            truth_scores=ABSENCE_TRUTH,
            search_query_used=outcome.query,
            from_cache=outcome.from_cache,
        )


def sort_findings(findings: list[Finding]) -> list[Finding]:
    """Scored findings by similarity descending (stable), unscored after in input order."""
    scored = [f for f in findings if f.similarity_score is not None]
    unscored = [f for f in findings if f.similarity_score is None]
    scored.sort(key=lambda f: f.similarity_score, reverse=True)  # type: ignore[arg-type, return-value]
    return scored + unscored
