# src/agents/patent_agent.py — v1
"""Patent prior-art agent.

No LLM in the loop: the patent source already rates each hit by query-term
coverage, and that relevance is the finding's similarity score. The agent
is novel when no patent reaches ``novelty_threshold``.
"""

from __future__ import annotations

import logging

from noveltyscope.agents.base_agent import BaseSearchAgent, sort_findings
from noveltyscope.core.models import NoveltyCheckRequest, NoveltyResult, TruthScores

logger = logging.getLogger(__name__)


class PatentSearchAgent(BaseSearchAgent):
    """Searches granted patents and judges novelty from source relevance."""

    agent_type = "patent_search"
    search_type = "patent"

    def __init__(self, *args, novelty_threshold: float = 0.7, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._threshold = novelty_threshold

    async def _run(self, request: NoveltyCheckRequest, query: str) -> NoveltyResult:
        outcome = await self.fetch(query)
        if not outcome.ok:
            return self.provider_failure_result(outcome)

        if not outcome.findings:
            return self.absence_result(
                outcome,
                "No matching patents found in the patent database. This suggests "
                "the invention may be novel, but a professional patent search is "
                "still recommended.",
            )

        findings = sort_findings(outcome.findings)
        top = findings[0].similarity_score or 0.0
        is_novel = top < self._threshold
        closest = sum(1 for f in findings if (f.similarity_score or 0.0) >= self._threshold)
        logger.info(
            "Patent search: %d patents, top relevance %.2f (threshold %.2f)",
            len(findings), top, self._threshold,
        )

        if is_novel:
            summary = (
                f"Found {len(findings)} related patents, none closely matching the "
                f"invention (highest relevance {top:.0%}). Review the listed patents "
                "for partial overlap."
            )
        else:
            summary = (
                f"Found {len(findings)} related patents; {closest} closely match the "
                f"invention (highest relevance {top:.0%}). Potential prior art: "
                f"\"{findings[0].title}\"."
            )

        return NoveltyResult(
            agent_type=self.agent_type,
            is_novel=is_novel,
            confidence=self.margin_confidence(top),
            findings=findings,
            summary=summary,
            truth_scores=TruthScores(
                objective_truth=0.7,
                practical_truth=0.6,
                completeness=round(0.5 + 0.3 * min(1.0, len(findings) / self._limit), 4),
                contextual_scope=0.6,
            ),
            search_query_used=outcome.query,
            from_cache=outcome.from_cache,
        )

    def margin_confidence(self, top: float) -> float:
        """Confidence grows with distance from the threshold, within [0.5, 0.95]."""
        span = self._threshold if top < self._threshold else 1.0 - self._threshold
        if span <= 0:
            return 0.95
        distance = abs(top - self._threshold)
        return round(0.5 + 0.45 * min(1.0, distance / span), 4)
