# src/api/facade.py — v2
"""Public API facade: single entry point for a novelty check.

Usage:
    from noveltyscope.api.facade import run_novelty_check
    result = await run_novelty_check(NoveltyCheckRequest(...))
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import TYPE_CHECKING

from noveltyscope.aggregation.aggregator import aggregate
from noveltyscope.config.settings import Settings
from noveltyscope.core.models import AggregateNoveltyResult, NoveltyCheckRequest, NoveltyResult
from noveltyscope.logging.context import set_agent_context, set_check_context

if TYPE_CHECKING:
    from noveltyscope.agents.base_agent import BaseSearchAgent
    from noveltyscope.cache.base_cache_store import BaseCacheStore

logger = logging.getLogger(__name__)


async def run_novelty_check(
    request: NoveltyCheckRequest,
    settings: Settings | None = None,
    agents: list[BaseSearchAgent] | None = None,
    cache_store: BaseCacheStore | None = None,
) -> AggregateNoveltyResult:
    """Run every enabled agent concurrently and aggregate their results.

    Agents share no state besides the cache store, so they run under one
    ``asyncio.gather``. Each is bounded by ``agent_timeout_s``; a timed-out
    agent contributes a zero-confidence result instead of failing the check.

    Args:
        request: Invention to check.
        settings: Global settings. Loaded from .env if None.
        agents: Pre-built agents. Built from settings if None.
        cache_store: Search cache shared by built agents. Built from
            settings (and closed afterwards) when caching is enabled.

    Returns:
        AggregateNoveltyResult over all invoked agents.

    Raises:
        ValueError: If no agent is enabled.
    """
    settings = settings or Settings()
    check_id = _generate_check_id()
    set_check_context(check_id)

    owns_store = False
    try:
        if agents is None:
            from noveltyscope.agents.registry import create_agents

            if cache_store is None and settings.cache_enabled:
                from noveltyscope.cache.cache_factory import create_cache_store

                cache_store = create_cache_store(settings)
                owns_store = True
            agents = create_agents(settings, cache_store=cache_store)

        if not agents:
            raise ValueError("No agents enabled; set ENABLED_AGENTS")

        logger.info(
            "Starting novelty check %s for %r with %s",
            check_id, request.invention_name, ", ".join(a.name for a in agents),
        )
        results = await asyncio.gather(
            *(_run_agent(agent, request, settings.agent_timeout_s) for agent in agents)
        )
    finally:
        if owns_store and cache_store is not None:
            cache_store.close()

    return aggregate(list(results))


async def _run_agent(
    agent: BaseSearchAgent, request: NoveltyCheckRequest, timeout_s: float
) -> NoveltyResult:
    set_agent_context(agent.name)
    try:
        return await asyncio.wait_for(agent.run(request), timeout=timeout_s)
    except asyncio.TimeoutError:
        logger.warning("Agent %s timed out after %.0fs", agent.name, timeout_s)
        return agent.degraded_result(
            "timeout",
            f"{agent.source_name} analysis timed out after {timeout_s:.0f}s.",
            agent.build_query(request),
        )


def _generate_check_id() -> str:
    """Short unique id for log correlation."""
    return uuid.uuid4().hex[:12]
