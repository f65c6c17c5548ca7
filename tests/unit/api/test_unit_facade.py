# tests/unit/api/test_unit_facade.py — v3
"""Tests for api/facade.py: concurrent agent runs and aggregation."""

from __future__ import annotations

import asyncio
from unittest.mock import MagicMock, patch

import pytest

from noveltyscope.agents.patent_agent import PatentSearchAgent
from noveltyscope.agents.web_agent import WebSearchAgent
from noveltyscope.api.facade import run_novelty_check
from noveltyscope.config.settings import Settings
from noveltyscope.core.models import NoveltyCheckRequest, NoveltyResult
from noveltyscope.logging.context import clear_context, get_context
from tests.conftest import ScriptedSearchClient, make_item


def _settings(**kwargs) -> Settings:
    return Settings(_env_file=None, **kwargs)


class SlowAgent(WebSearchAgent):
    async def _run(self, request, query):
        await asyncio.sleep(5)
        raise AssertionError("should have timed out")


class ContextProbeAgent(PatentSearchAgent):
    seen: dict = {}

    async def _run(self, request: NoveltyCheckRequest, query: str) -> NoveltyResult:
        ctx = get_context()
        ContextProbeAgent.seen = {"check_id": ctx.check_id, "agent": ctx.agent}
        return await super()._run(request, query)


class TestRunNoveltyCheck:
    def teardown_method(self):
        clear_context()

    @pytest.mark.asyncio
    async def test_aggregates_all_agents(self, sample_request):
        agents = [
            PatentSearchAgent(ScriptedSearchClient(items=[make_item("p1", 0.9)])),
            PatentSearchAgent(ScriptedSearchClient(items=[])),
        ]
        result = await run_novelty_check(sample_request, settings=_settings(), agents=agents)
        assert len(result.agent_results) == 2
        assert result.is_novel is False
        assert result.findings[0].title == "Listing p1"

    @pytest.mark.asyncio
    async def test_timeout_becomes_degraded_result(self, sample_request):
        agents = [
            SlowAgent(ScriptedSearchClient()),
            PatentSearchAgent(ScriptedSearchClient(items=[])),
        ]
        result = await run_novelty_check(
            sample_request, settings=_settings(agent_timeout_s=0.05), agents=agents
        )
        web = result.agent_results[0]
        assert web.degraded_reason == "timeout"
        assert web.confidence == 0
        assert "timed out" in web.summary
        assert result.agent_results[1].is_novel is True
        assert result.confidence == 0

    @pytest.mark.asyncio
    async def test_agents_run_concurrently(self, sample_request):
        class Sleeper(PatentSearchAgent):
            async def _run(self, request, query):
                await asyncio.sleep(0.2)
                return self.absence_result(await self.fetch(query), "none")

        agents = [Sleeper(ScriptedSearchClient()) for _ in range(3)]
        loop = asyncio.get_running_loop()
        start = loop.time()
        await run_novelty_check(sample_request, settings=_settings(), agents=agents)
        assert loop.time() - start < 0.5

    @pytest.mark.asyncio
    async def test_sets_log_context(self, sample_request):
        agents = [ContextProbeAgent(ScriptedSearchClient(items=[]))]
        await run_novelty_check(sample_request, settings=_settings(), agents=agents)
        assert ContextProbeAgent.seen["agent"] == "patent_search"
        assert ContextProbeAgent.seen["check_id"]

    @pytest.mark.asyncio
    async def test_no_agents(self, sample_request):
        with pytest.raises(ValueError, match="No agents"):
            await run_novelty_check(sample_request, settings=_settings(), agents=[])

    @pytest.mark.asyncio
    async def test_builds_agents_and_store(self, sample_request, tmp_path, mock_llm_client):
        settings = _settings(cache_backend="json", cache_root=tmp_path)
        with patch(
            "noveltyscope.agents.registry.create_component_client", return_value=mock_llm_client
        ):
            result = await run_novelty_check(sample_request, settings=settings)
        # No provider credentials in a bare Settings: every agent degrades.
        assert [r.degraded_reason for r in result.agent_results] == ["not_configured"] * 3
        assert result.is_novel is False
        assert result.confidence == 0

    @pytest.mark.asyncio
    async def test_owned_store_closed_when_agent_build_fails(self, sample_request):
        built_store = MagicMock()
        with patch(
            "noveltyscope.cache.cache_factory.create_cache_store", return_value=built_store
        ), patch(
            "noveltyscope.agents.registry.create_agents", side_effect=RuntimeError("bad agent")
        ):
            with pytest.raises(RuntimeError, match="bad agent"):
                await run_novelty_check(sample_request, settings=_settings(cache_enabled=True))
        built_store.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_owned_store_closed_when_no_agents_enabled(self, sample_request):
        built_store = MagicMock()
        with patch(
            "noveltyscope.cache.cache_factory.create_cache_store", return_value=built_store
        ), patch("noveltyscope.agents.registry.create_agents", return_value=[]):
            with pytest.raises(ValueError, match="No agents"):
                await run_novelty_check(sample_request, settings=_settings(cache_enabled=True))
        built_store.close.assert_called_once()
