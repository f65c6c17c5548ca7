# tests/unit/cache/test_unit_sqlite_store.py — v3
"""Tests for cache/sqlite_store.py: full functional tests (stdlib sqlite3)."""

from __future__ import annotations

import asyncio
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from noveltyscope.cache.access import AUTHENTICATED_ROLE, CacheAccessDenied, Principal
from noveltyscope.cache.fingerprint import compute_fingerprint
from noveltyscope.cache.sqlite_store import SqliteCacheStore
from tests.conftest import make_finding


@pytest.fixture
def store(tmp_path, clock):
    s = SqliteCacheStore(db_path=tmp_path / "test_cache.db", clock=clock)
    yield s
    s.close()


PARAMS = {"q": "solar phone case"}


class TestSqliteCacheStore:
    @pytest.mark.asyncio
    async def test_put_and_get(self, store, sample_findings):
        await store.put("retail", PARAMS, sample_findings, "ebay")
        entry = await store.get("retail", PARAMS)
        assert entry is not None
        assert [f.id for f in entry.results] == ["item1", "item2"]
        assert entry.result_count == 2

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("web", {"q": "nothing"}) is None

    @pytest.mark.asyncio
    async def test_retail_default_ttl_scenario(self, store, clock, sample_findings):
        await store.put("retail", PARAMS, sample_findings, "ebay", ttl=timedelta(days=7))
        entry = await store.get("retail", PARAMS)
        assert entry.source_api == "ebay"
        assert entry.result_count == 2
        assert entry.expires_at == clock.now + timedelta(days=7)

    @pytest.mark.asyncio
    async def test_patent_never_expires(self, store, clock):
        entry = await store.put(
            "patent", PARAMS, [make_finding("p1", 0.5)], "patentsview", ttl=timedelta(seconds=1)
        )
        assert entry.expires_at is None
        clock.advance(days=3650)
        assert await store.get("patent", PARAMS) is not None

    @pytest.mark.asyncio
    async def test_lazy_expiry_before_sweep(self, store, clock, sample_findings):
        await store.put("web", PARAMS, sample_findings, "tavily", ttl=timedelta(hours=1))
        clock.advance(hours=2)
        assert await store.get("web", PARAMS) is None
        # Still physically present until the sweep runs.
        fp = compute_fingerprint("web", PARAMS)
        assert await store.get_by_fingerprint(fp) is not None

    @pytest.mark.asyncio
    async def test_upsert_replaces_and_keeps_created_at(self, store, clock, sample_findings):
        first = await store.put("retail", PARAMS, sample_findings, "ebay")
        clock.advance(minutes=10)
        second = await store.put("retail", PARAMS, [make_finding("item3")], "ebay-v2")
        assert second.created_at == first.created_at
        assert second.updated_at > first.updated_at
        assert second.result_count == 1
        assert second.source_api == "ebay-v2"
        assert len(await store.list_entries()) == 1

    @pytest.mark.asyncio
    async def test_fingerprint_is_unique_column(self, store, tmp_path, sample_findings):
        await store.put("retail", PARAMS, sample_findings, "ebay")
        fp = compute_fingerprint("retail", PARAMS)
        conn = sqlite3.connect(str(tmp_path / "test_cache.db"))
        try:
            with pytest.raises(sqlite3.IntegrityError):
                conn.execute(
                    "INSERT INTO search_cache (id, query_hash, search_type, query_params, "
                    "source_api, created_at, updated_at) VALUES ('x', ?, 'retail', '{}', 'e', 0, 0)",
                    (fp,),
                )
        finally:
            conn.close()

    def test_threaded_puts_from_two_stores_leave_one_entry(self, store, tmp_path, clock):
        other = SqliteCacheStore(db_path=tmp_path / "test_cache.db", clock=clock)
        stores = [store, other]

        def write(i: int) -> None:
            findings = [make_finding(f"w{i}-{j}") for j in range(i % 5 + 1)]
            asyncio.run(stores[i % 2].put("retail", PARAMS, findings, "ebay"))

        try:
            with ThreadPoolExecutor(max_workers=8) as pool:
                list(pool.map(write, range(20)))
            for s in stores:
                entries = asyncio.run(s.list_entries("retail"))
                assert len(entries) == 1
                assert entries[0].result_count == len(entries[0].results)
                assert entries[0].result_count in range(1, 6)
        finally:
            other.close()

    def test_sweep_races_put_on_same_fingerprint(self, store, tmp_path, clock):
        hour = timedelta(hours=1)
        asyncio.run(store.put("web", PARAMS, [make_finding("old")], "tavily", ttl=hour))
        asyncio.run(store.put("web", {"q": "other"}, [make_finding("o")], "tavily", ttl=hour))
        clock.advance(hours=2)
        sweeper = SqliteCacheStore(db_path=tmp_path / "test_cache.db", clock=clock)
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                swept = pool.submit(asyncio.run, sweeper.cleanup_expired())
                written = pool.submit(
                    asyncio.run, store.put("web", PARAMS, [make_finding("new")], "tavily")
                )
                removed = swept.result()
                written.result()
        finally:
            sweeper.close()

        assert removed in (1, 2)
        entry = asyncio.run(store.get("web", PARAMS))
        assert [f.id for f in entry.results] == ["new"]
        assert asyncio.run(store.get("web", {"q": "other"})) is None

    @pytest.mark.asyncio
    async def test_invalidate_idempotent(self, store, sample_findings):
        await store.put("web", PARAMS, sample_findings, "tavily")
        fp = compute_fingerprint("web", PARAMS)
        await store.invalidate(fp)
        await store.invalidate(fp)
        assert await store.get("web", PARAMS) is None

    @pytest.mark.asyncio
    async def test_cleanup_removes_exactly_expired(self, store, clock, sample_findings):
        await store.put("patent", {"q": "p"}, [make_finding("p1", 0.3)], "patentsview")
        await store.put("web", {"q": "old"}, sample_findings, "tavily", ttl=timedelta(hours=1))
        await store.put("retail", {"q": "fresh"}, sample_findings, "ebay", ttl=timedelta(days=7))
        clock.advance(hours=2)

        assert await store.cleanup_expired() == 1
        assert await store.cleanup_expired() == 0

        remaining = {e.search_type for e in await store.list_entries()}
        assert remaining == {"patent", "retail"}

    @pytest.mark.asyncio
    async def test_stats(self, store, clock, sample_findings):
        await store.put("patent", {"q": "p"}, [], "patentsview")
        await store.put("web", {"q": "w"}, sample_findings, "tavily", ttl=timedelta(minutes=1))
        clock.advance(minutes=5)
        stats = await store.stats()
        assert stats.total == 2
        assert stats.by_search_type == {"patent": 1, "web": 1}
        assert stats.expired_pending == 1

    @pytest.mark.asyncio
    async def test_findings_round_trip_metadata(self, store):
        finding = make_finding("item1", 0.42, metadata={"price": "USD 19.99"})
        await store.put("retail", PARAMS, [finding], "ebay")
        entry = await store.get("retail", PARAMS)
        assert entry.results[0].metadata == {"price": "USD 19.99"}
        assert entry.results[0].similarity_score == 0.42

    @pytest.mark.asyncio
    async def test_authenticated_principal_cannot_write(self, store, sample_findings):
        reader = Principal(role=AUTHENTICATED_ROLE, subject="user-1")
        with pytest.raises(CacheAccessDenied):
            await store.put("web", PARAMS, sample_findings, "tavily", principal=reader)
        assert await store.get("web", PARAMS, principal=reader) is None
