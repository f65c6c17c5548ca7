# src/agents/registry.py — v1
"""Agent registry: build configured agents from Settings.

Agents are built even when their provider lacks credentials; they then
answer with a zero-confidence "not configured" result.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Callable

import httpx

from noveltyscope.agents.base_agent import BaseSearchAgent
from noveltyscope.agents.patent_agent import PatentSearchAgent
from noveltyscope.agents.retail_agent import RetailSearchAgent
from noveltyscope.agents.web_agent import WebSearchAgent
from noveltyscope.config.settings import KNOWN_AGENTS, Settings
from noveltyscope.llm.client_factory import create_component_client
from noveltyscope.scoring.oracle import SimilarityOracle
from noveltyscope.search.ebay_client import EbayBrowseClient
from noveltyscope.search.patentsview_client import PatentsViewClient
from noveltyscope.search.tavily_client import TavilyWebClient

if TYPE_CHECKING:
    from noveltyscope.cache.base_cache_store import BaseCacheStore
    from noveltyscope.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)


class UnknownAgentError(ValueError):
    """Raised when an agent name is not registered."""


def _patent(settings, llm, cache_store, transport) -> BaseSearchAgent:
    client = PatentsViewClient(
        api_key=settings.patentsview_api_key,
        api_url=settings.patentsview_api_url,
        timeout_s=settings.provider_timeout_s,
        transport=transport,
    )
    return PatentSearchAgent(
        client,
        cache_store=cache_store,
        search_limit=settings.patent_search_limit,
        novelty_threshold=settings.patent_novelty_threshold,
    )


def _web(settings, llm, cache_store, transport) -> BaseSearchAgent:
    client = TavilyWebClient(
        api_key=settings.tavily_api_key,
        api_url=settings.tavily_api_url,
        timeout_s=settings.provider_timeout_s,
        transport=transport,
    )
    return WebSearchAgent(
        client,
        cache_store=cache_store,
        search_limit=settings.web_search_limit,
        cache_ttl=timedelta(days=settings.cache_default_ttl_days),
        oracle=_oracle(llm, "web", settings),
        novelty_threshold=settings.scoring_novelty_threshold,
    )


def _retail(settings, llm, cache_store, transport) -> BaseSearchAgent:
    client = EbayBrowseClient(
        client_id=settings.ebay_client_id,
        client_secret=settings.ebay_client_secret,
        marketplace_id=settings.ebay_marketplace_id,
        base_url=settings.ebay_api_base_url,
        timeout_s=settings.provider_timeout_s,
        refresh_margin_s=settings.ebay_token_refresh_margin_s,
        transport=transport,
    )
    return RetailSearchAgent(
        client,
        cache_store=cache_store,
        search_limit=settings.ebay_search_limit,
        cache_ttl=timedelta(days=settings.cache_default_ttl_days),
        oracle=_oracle(llm, "retail", settings),
        novelty_threshold=settings.scoring_novelty_threshold,
    )


def _oracle(llm: BaseLLMClient | None, context: str, settings: Settings) -> SimilarityOracle | None:
    if llm is None:
        return None
    return SimilarityOracle(
        llm,
        context,  # type: ignore[arg-type]
        timeout_s=settings.scoring_timeout_s,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_default_temperature,
    )


_AGENT_BUILDERS: dict[str, Callable[..., BaseSearchAgent]] = {
    "patent_search": _patent,
    "web_search": _web,
    "retail_search": _retail,
}


def create_agents(
    settings: Settings,
    names: list[str] | None = None,
    llm: BaseLLMClient | None = None,
    cache_store: BaseCacheStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[BaseSearchAgent]:
    """Instantiate agents in registry order.

    Args:
        settings: Application settings (credentials, limits, thresholds).
        names: Agent names to build. Defaults to ENABLED_AGENTS.
        llm: Scoring LLM. Built from LLM_SCORING / defaults when omitted.
        cache_store: Shared search cache. None disables caching.
        transport: httpx transport for every provider client (tests).

    Raises:
        UnknownAgentError: If a requested name is not registered.
    """
    requested = names if names is not None else settings.enabled_agents_list
    unknown = [n for n in requested if n not in _AGENT_BUILDERS]
    if unknown:
        raise UnknownAgentError(
            f"Unknown agent(s): {', '.join(unknown)}. Available: {', '.join(KNOWN_AGENTS)}"
        )

    needs_llm = any(n in ("web_search", "retail_search") for n in requested)
    if llm is None and needs_llm:
        llm = create_component_client("scoring", settings)

    agents = [
        _AGENT_BUILDERS[name](settings, llm, cache_store, transport)
        for name in KNOWN_AGENTS if name in requested
    ]
    logger.debug("Created agents: %s", ", ".join(a.name for a in agents))
    return agents
