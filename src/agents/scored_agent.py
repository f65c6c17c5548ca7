# src/agents/scored_agent.py — v1
"""Two-phase agent: provider fetch, then bulk LLM similarity scoring.

Shared by the web and retail agents. Cached findings are unscored, so the
scoring phase runs on every check; an oracle failure downgrades to the
unscored findings with a low fixed confidence.
"""

from __future__ import annotations

import logging

from noveltyscope.agents.base_agent import BaseSearchAgent, FetchOutcome, sort_findings
from noveltyscope.core.models import Finding, NoveltyCheckRequest, NoveltyResult, TruthScores
from noveltyscope.scoring.oracle import (
    ItemAnalysis,
    OracleVerdict,
    ScoringOracleError,
    SimilarityOracle,
)

logger = logging.getLogger(__name__)

FALLBACK_CONFIDENCE = 0.3
FALLBACK_TRUTH = TruthScores(
    objective_truth=0.6, practical_truth=0.5, completeness=0.4, contextual_scope=0.5
)


class ScoredSearchAgent(BaseSearchAgent):
    """Base for agents whose findings are rated by a SimilarityOracle."""

    absence_summary = "No matching items found."
    item_label = "items"

    def __init__(
        self,
        *args,
        oracle: SimilarityOracle | None = None,
        novelty_threshold: float = 0.7,
        **kwargs,
    ) -> None:
        super().__init__(*args, **kwargs)
        self._oracle = oracle
        self._threshold = novelty_threshold

    async def _run(self, request: NoveltyCheckRequest, query: str) -> NoveltyResult:
        outcome = await self.fetch(query)
        if not outcome.ok:
            return self.provider_failure_result(outcome)

        if not outcome.findings:
            return self.absence_result(outcome, self.absence_summary)

        if self._oracle is None:
            return self.fallback_result(outcome, "no scoring model configured")

        try:
            verdict = await self._oracle.score(request, outcome.findings)
        except ScoringOracleError as e:
            logger.warning("Similarity scoring failed, returning unscored findings: %s", e)
            return self.fallback_result(outcome, str(e))

        return self.scored_result(outcome, verdict)

    def scored_result(self, outcome: FetchOutcome, verdict: OracleVerdict) -> NoveltyResult:
        analyses = verdict.by_item_id()
        findings = sort_findings([
            self.apply_analysis(f, analyses[f.id]) if f.id in analyses else f
            for f in outcome.findings
        ])

        # A close match overrides an optimistic verdict.
        top = max((f.similarity_score for f in findings if f.is_scored), default=0.0)
        is_novel = verdict.is_novel and top < self._threshold
        if verdict.is_novel and not is_novel:
            logger.info(
                "Oracle verdict novel but top similarity %.2f >= %.2f, reporting not novel",
                top, self._threshold,
            )

        unscored = sum(1 for f in findings if not f.is_scored)
        if unscored:
            logger.info("%d of %d %s left unscored by the oracle", unscored, len(findings), self.item_label)

        return NoveltyResult(
            agent_type=self.agent_type,
            is_novel=is_novel,
            confidence=verdict.confidence,
            findings=findings,
            summary=verdict.summary,
            truth_scores=verdict.truth_scores,
            search_query_used=outcome.query,
            from_cache=outcome.from_cache,
        )

    def apply_analysis(self, finding: Finding, analysis: ItemAnalysis) -> Finding:
        """Attach the oracle's score and rationale to a finding."""
        metadata = dict(finding.metadata)
        if analysis.analysis:
            metadata["analysis"] = analysis.analysis
        return finding.model_copy(
            update={"similarity_score": analysis.similarity_score, "metadata": metadata}
        )

    def fallback_result(self, outcome: FetchOutcome, reason: str) -> NoveltyResult:
        return NoveltyResult(
            agent_type=self.agent_type,
            is_novel=False,
            confidence=FALLBACK_CONFIDENCE,
            findings=list(outcome.findings),
            summary=(
                f"Found {len(outcome.findings)} {self.item_label} but automated "
                f"analysis failed ({reason}). Manual review required."
            ),
            truth_scores=FALLBACK_TRUTH,
            search_query_used=outcome.query,
            from_cache=outcome.from_cache,
            degraded_reason="scoring_failed",
        )
