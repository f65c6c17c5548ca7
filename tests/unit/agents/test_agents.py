# tests/unit/agents/test_agents.py — v1
"""Tests for agents: fetch/cache/score pipelines and degradation paths."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from noveltyscope.agents.base_agent import ABSENCE_CONFIDENCE, sort_findings
from noveltyscope.agents.patent_agent import PatentSearchAgent
from noveltyscope.agents.retail_agent import RetailSearchAgent
from noveltyscope.agents.scored_agent import FALLBACK_CONFIDENCE
from noveltyscope.agents.web_agent import WebSearchAgent
from noveltyscope.cache.fingerprint import compute_fingerprint
from noveltyscope.cache.json_store import JsonCacheStore
from noveltyscope.scoring.oracle import SimilarityOracle
from noveltyscope.search.errors import ProviderRateLimitedError, ProviderRequestError
from tests.conftest import ScriptedSearchClient, llm_response, make_finding, make_item, verdict_json


def _retail(client, llm=None, **kwargs) -> RetailSearchAgent:
    oracle = SimilarityOracle(llm, "retail", retry_configs={}) if llm is not None else None
    return RetailSearchAgent(client, oracle=oracle, **kwargs)


class TestRunNeverRaises:
    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, sample_request, mock_llm_client):
        client = ScriptedSearchClient(configured=False)
        result = await _retail(client, mock_llm_client).run(sample_request)
        assert result.confidence == 0
        assert result.findings == []
        assert result.is_novel is False
        assert "not configured" in result.summary
        assert result.degraded_reason == "not_configured"
        assert result.truth_scores.objective_truth == 0
        mock_llm_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unconfigured_skips_cache(self, sample_request, tmp_path):
        store = JsonCacheStore(cache_root=tmp_path)
        store.get = AsyncMock()
        await _retail(ScriptedSearchClient(configured=False), cache_store=store).run(sample_request)
        store.get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_provider_request_failed(self, sample_request, mock_llm_client):
        client = ScriptedSearchClient(error=ProviderRequestError("eBay search failed (500): boom"))
        result = await _retail(client, mock_llm_client).run(sample_request)
        assert result.confidence == 0
        assert "boom" in result.summary
        assert result.degraded_reason == "request_failed"

    @pytest.mark.asyncio
    async def test_rate_limited(self, sample_request):
        client = ScriptedSearchClient(error=ProviderRateLimitedError("rate limit exceeded"))
        result = await WebSearchAgent(client).run(sample_request)
        assert result.confidence == 0
        assert result.degraded_reason == "rate_limited"

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_result(self, sample_request):
        client = ScriptedSearchClient(error=RuntimeError("kaboom"))
        client.search = AsyncMock(side_effect=RuntimeError("kaboom"))
        result = await WebSearchAgent(client).run(sample_request)
        assert result.confidence == 0
        assert result.degraded_reason == "internal_error"
        assert "kaboom" in result.summary

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, sample_request):
        client = ScriptedSearchClient()
        client.search = AsyncMock(side_effect=asyncio.CancelledError())
        with pytest.raises(asyncio.CancelledError):
            await WebSearchAgent(client).run(sample_request)


class TestScoredAgents:
    @pytest.mark.asyncio
    async def test_zero_candidates_is_weakly_novel(self, sample_request, mock_llm_client):
        result = await _retail(ScriptedSearchClient(items=[]), mock_llm_client).run(sample_request)
        assert result.is_novel is True
        assert result.confidence == ABSENCE_CONFIDENCE < 1.0
        assert result.findings == []
        mock_llm_client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scored_and_sorted(self, sample_request, mock_llm_client, scripted_client):
        mock_llm_client.complete.return_value = llm_response(
            verdict_json({"item2": 0.9, "item1": 0.4})
        )
        result = await _retail(scripted_client, mock_llm_client).run(sample_request)
        assert [f.id for f in result.findings] == ["item2", "item1"]
        assert [f.similarity_score for f in result.findings] == [0.9, 0.4]
        assert result.is_novel is False
        assert result.confidence == 0.85
        assert result.truth_scores.objective_truth == 0.9
        assert result.search_query_used == "solar phone case foldable panel"

    @pytest.mark.asyncio
    async def test_retail_description_replaced_by_rationale(
        self, sample_request, mock_llm_client, scripted_client
    ):
        result = await _retail(scripted_client, mock_llm_client).run(sample_request)
        by_id = {f.id: f for f in result.findings}
        assert by_id["item1"].description == "Analysis of item1"
        assert by_id["item1"].source == "Scripted"

    @pytest.mark.asyncio
    async def test_web_keeps_description(self, sample_request, mock_llm_client, scripted_client):
        oracle = SimilarityOracle(mock_llm_client, "web")
        result = await WebSearchAgent(scripted_client, oracle=oracle).run(sample_request)
        by_id = {f.id: f for f in result.findings}
        assert by_id["item1"].description == "New - Listing item1"
        assert by_id["item1"].metadata["analysis"] == "Analysis of item1"

    @pytest.mark.asyncio
    async def test_close_match_overrides_novel_verdict(self, sample_request, mock_llm_client, scripted_client):
        mock_llm_client.complete.return_value = llm_response(
            verdict_json({"item1": 0.95, "item2": 0.1}, is_novel=True)
        )
        result = await _retail(scripted_client, mock_llm_client).run(sample_request)
        assert result.is_novel is False

    @pytest.mark.asyncio
    async def test_novel_verdict_kept_below_threshold(self, sample_request, mock_llm_client, scripted_client):
        mock_llm_client.complete.return_value = llm_response(
            verdict_json({"item1": 0.3, "item2": 0.1}, is_novel=True, confidence=0.8)
        )
        result = await _retail(scripted_client, mock_llm_client).run(sample_request)
        assert result.is_novel is True
        assert result.confidence == 0.8

    @pytest.mark.asyncio
    async def test_unrated_items_stay_unscored_and_last(self, sample_request, mock_llm_client):
        client = ScriptedSearchClient(items=[make_item("a"), make_item("b"), make_item("c")])
        mock_llm_client.complete.return_value = llm_response(verdict_json({"c": 0.5, "a": 0.2}))
        result = await _retail(client, mock_llm_client).run(sample_request)
        assert [f.id for f in result.findings] == ["c", "a", "b"]
        assert result.findings[-1].similarity_score is None

    @pytest.mark.asyncio
    async def test_oracle_failure_falls_back(self, sample_request, scripted_client):
        llm = AsyncMock()
        llm.complete = AsyncMock(return_value=llm_response("{broken"))
        result = await _retail(scripted_client, llm).run(sample_request)
        assert result.is_novel is False
        assert result.confidence == FALLBACK_CONFIDENCE
        assert len(result.findings) == 2
        assert all(f.similarity_score is None for f in result.findings)
        assert "Manual review required" in result.summary
        assert result.degraded_reason == "scoring_failed"

    @pytest.mark.asyncio
    async def test_no_oracle_falls_back(self, sample_request, scripted_client):
        result = await WebSearchAgent(scripted_client).run(sample_request)
        assert result.confidence == FALLBACK_CONFIDENCE
        assert "no scoring model configured" in result.summary


class TestCaching:
    @pytest.mark.asyncio
    async def test_second_run_served_from_cache(
        self, sample_request, mock_llm_client, scripted_client, tmp_path, clock
    ):
        store = JsonCacheStore(cache_root=tmp_path, clock=clock)
        agent = _retail(scripted_client, mock_llm_client, cache_store=store, search_limit=15)

        first = await agent.run(sample_request)
        second = await agent.run(sample_request)

        assert len(scripted_client.calls) == 1
        assert first.from_cache is False
        assert second.from_cache is True
        assert [f.id for f in second.findings] == [f.id for f in first.findings]
        # The oracle scores every run; the cache holds fetch-phase findings only.
        assert mock_llm_client.complete.await_count == 2

    @pytest.mark.asyncio
    async def test_cache_entry_shape(self, sample_request, scripted_client, tmp_path, clock):
        store = JsonCacheStore(cache_root=tmp_path, clock=clock)
        agent = WebSearchAgent(
            scripted_client, cache_store=store, search_limit=10, cache_ttl=timedelta(days=7)
        )
        await agent.run(sample_request)
        fp = compute_fingerprint("web", {"q": "solar phone case foldable panel", "limit": 10})
        entry = await store.get_by_fingerprint(fp)
        assert entry.source_api == "Scripted"
        assert entry.result_count == 2
        assert entry.expires_at == clock.now + timedelta(days=7)
        assert all(f.similarity_score is None for f in entry.results)

    @pytest.mark.asyncio
    async def test_failed_fetch_not_cached(self, sample_request, tmp_path):
        store = JsonCacheStore(cache_root=tmp_path)
        client = ScriptedSearchClient(error=ProviderRequestError("down"))
        await WebSearchAgent(client, cache_store=store).run(sample_request)
        assert await store.list_entries() == []

    @pytest.mark.asyncio
    async def test_cache_failure_is_miss(self, sample_request, scripted_client):
        store = MagicMock()
        store.get = AsyncMock(side_effect=OSError("disk gone"))
        store.put = AsyncMock(side_effect=OSError("disk gone"))
        result = await WebSearchAgent(scripted_client, cache_store=store).run(sample_request)
        assert len(result.findings) == 2
        assert len(scripted_client.calls) == 1

    @pytest.mark.asyncio
    async def test_provider_options_passed(self, sample_request, scripted_client):
        await WebSearchAgent(scripted_client, search_limit=7).run(sample_request)
        query, options = scripted_client.calls[0]
        assert query == "solar phone case foldable panel"
        assert options == {"limit": 7}


class TestPatentAgent:
    @pytest.mark.asyncio
    async def test_no_patents(self, sample_request):
        result = await PatentSearchAgent(ScriptedSearchClient(items=[])).run(sample_request)
        assert result.is_novel is True
        assert 0 < result.confidence < 1

    @pytest.mark.asyncio
    async def test_close_patent_not_novel(self, sample_request):
        client = ScriptedSearchClient(items=[make_item("p1", 0.4), make_item("p2", 0.85)])
        result = await PatentSearchAgent(client, novelty_threshold=0.7).run(sample_request)
        assert result.is_novel is False
        assert [f.id for f in result.findings] == ["p2", "p1"]
        assert "Listing p2" in result.summary

    @pytest.mark.asyncio
    async def test_distant_patents_novel(self, sample_request):
        client = ScriptedSearchClient(items=[make_item("p1", 0.1)])
        result = await PatentSearchAgent(client, novelty_threshold=0.7).run(sample_request)
        assert result.is_novel is True
        assert result.findings[0].similarity_score == 0.1

    def test_margin_confidence_bounds(self):
        agent = PatentSearchAgent(ScriptedSearchClient(), novelty_threshold=0.7)
        assert agent.margin_confidence(0.0) == 0.95
        assert agent.margin_confidence(1.0) == 0.95
        assert agent.margin_confidence(0.7) == 0.5
        assert 0.5 < agent.margin_confidence(0.35) < 0.95

    @pytest.mark.asyncio
    async def test_patent_cache_never_expires(self, sample_request, tmp_path, clock):
        store = JsonCacheStore(cache_root=tmp_path, clock=clock)
        client = ScriptedSearchClient(items=[make_item("p1", 0.2)])
        agent = PatentSearchAgent(client, cache_store=store, cache_ttl=timedelta(hours=1))
        await agent.run(sample_request)
        clock.advance(days=365)
        result = await agent.run(sample_request)
        assert result.from_cache is True
        assert len(client.calls) == 1

    @pytest.mark.asyncio
    async def test_provider_failure(self, sample_request):
        client = ScriptedSearchClient(error=ProviderRequestError("PatentsView down"))
        result = await PatentSearchAgent(client).run(sample_request)
        assert result.is_novel is False
        assert result.confidence == 0
        assert "PatentsView down" in result.summary


class TestHelpers:
    def test_sort_findings_stable(self):
        findings = [
            make_finding("a", 0.5), make_finding("b"), make_finding("c", 0.9), make_finding("d", 0.5),
        ]
        assert [f.id for f in sort_findings(findings)] == ["c", "a", "d", "b"]

    def test_duplicate_item_ids_made_unique(self):
        agent = WebSearchAgent(ScriptedSearchClient())
        findings = agent.to_findings([make_item("x"), make_item("x"), make_item("")])
        ids = [f.id for f in findings]
        assert len(set(ids)) == 3
        assert ids[0] == "x"
        assert ids[2] == "web-3"
