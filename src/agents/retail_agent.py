# src/agents/retail_agent.py — v1
"""Retail agent: marketplace listings for products already on sale."""

from __future__ import annotations

from noveltyscope.agents.scored_agent import ScoredSearchAgent
from noveltyscope.core.models import Finding
from noveltyscope.scoring.oracle import ItemAnalysis


class RetailSearchAgent(ScoredSearchAgent):

    agent_type = "retail_search"
    search_type = "retail"
    item_label = "products"
    absence_summary = (
        "No matching products found on eBay. This suggests the invention may be "
        "novel in the retail space."
    )

    def apply_analysis(self, finding: Finding, analysis: ItemAnalysis) -> Finding:
        """Listing descriptions are placeholders; the rationale replaces them."""
        scored = super().apply_analysis(finding, analysis)
        if analysis.analysis:
            scored = scored.model_copy(update={"description": analysis.analysis})
        return scored
