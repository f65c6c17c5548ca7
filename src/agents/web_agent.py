# src/agents/web_agent.py — v1
"""Web agent: open-web search for existing products, articles and prototypes."""

from __future__ import annotations

from noveltyscope.agents.scored_agent import ScoredSearchAgent


class WebSearchAgent(ScoredSearchAgent):

    agent_type = "web_search"
    search_type = "web"
    item_label = "web results"
    absence_summary = (
        "No matching web results found. This suggests the invention may be novel, "
        "although absence from search results is not proof of novelty."
    )
