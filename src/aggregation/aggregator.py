# src/aggregation/aggregator.py — v2
"""Combine per-agent NoveltyResults into one AggregateNoveltyResult.

Rules:
  * not novel as soon as any agent says not novel;
  * confidence is the minimum agent confidence, so adding an agent can
    only keep or lower it;
  * findings are merged across agents, tagged with their agent, and
    stably sorted by similarity descending. Unscored findings stay in the
    per-agent results and are not merged.
"""

from __future__ import annotations

import logging

from noveltyscope.core.models import (
    AgentSummary,
    AggregatedFinding,
    AggregateNoveltyResult,
    NoveltyResult,
)

logger = logging.getLogger(__name__)


def aggregate(results: list[NoveltyResult]) -> AggregateNoveltyResult:
    """Build the combined verdict for one novelty check.

    Raises:
        ValueError: If ``results`` is empty.
    """
    if not results:
        raise ValueError("aggregate() needs at least one agent result")

    is_novel = all(r.is_novel for r in results)
    confidence = min(r.confidence for r in results)

    merged: list[AggregatedFinding] = []
    summaries: list[AgentSummary] = []
    for result in results:
        scored = [f for f in result.findings if f.similarity_score is not None]
        merged.extend(
            AggregatedFinding(**finding.model_dump(), agent_type=result.agent_type)
            for finding in scored
        )
        summaries.append(
            AgentSummary(
                agent_type=result.agent_type,
                is_novel=result.is_novel,
                confidence=result.confidence,
                summary=result.summary,
                finding_count=len(result.findings),
                unscored_count=len(result.findings) - len(scored),
                degraded_reason=result.degraded_reason,
            )
        )

    # list.sort is stable: ties keep agent order, then per-agent order.
    merged.sort(key=lambda f: f.similarity_score, reverse=True)  # type: ignore[arg-type, return-value]

    # Ids count per agent type over the whole merged list.
    counters: dict[str, int] = {}
    for i, finding in enumerate(merged):
        counters[finding.agent_type] = counters.get(finding.agent_type, 0) + 1
        merged[i] = finding.model_copy(
            update={"id": f"{finding.agent_type}-{counters[finding.agent_type]}"}
        )

    logger.info(
        "Aggregated %d agents: is_novel=%s confidence=%.2f findings=%d",
        len(results), is_novel, confidence, len(merged),
    )
    return AggregateNoveltyResult(
        is_novel=is_novel,
        confidence=confidence,
        findings=merged,
        agent_summaries=summaries,
        agent_results=list(results),
    )
