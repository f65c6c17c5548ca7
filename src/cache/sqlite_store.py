# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite, the default).

Uses stdlib sqlite3, no external dependency.
``query_hash`` carries a UNIQUE constraint; writes go through
``INSERT ... ON CONFLICT DO UPDATE`` so concurrent puts for one fingerprint
leave exactly one row holding the last committed write.
Timestamps are stored as UTC epoch seconds.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Callable

from noveltyscope.cache.access import CacheAccessPolicy
from noveltyscope.cache.base_cache_store import DEFAULT_TTL, BaseCacheStore
from noveltyscope.cache.models import CacheEntry
from noveltyscope.core.models import Finding

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS search_cache (
    id TEXT PRIMARY KEY,
    query_hash TEXT NOT NULL UNIQUE,
    search_type TEXT NOT NULL CHECK (search_type IN ('patent', 'web', 'retail')),
    query_params TEXT NOT NULL,
    results TEXT NOT NULL DEFAULT '[]',
    result_count INTEGER NOT NULL DEFAULT 0,
    source_api TEXT NOT NULL,
    expires_at REAL,
    created_at REAL NOT NULL,
    updated_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_search_cache_query_hash ON search_cache(query_hash);
CREATE INDEX IF NOT EXISTS idx_search_cache_type ON search_cache(search_type);
CREATE INDEX IF NOT EXISTS idx_search_cache_created ON search_cache(created_at);
CREATE INDEX IF NOT EXISTS idx_search_cache_expires
    ON search_cache(expires_at) WHERE expires_at IS NOT NULL;
"""

_UPSERT = """
INSERT INTO search_cache
    (id, query_hash, search_type, query_params, results, result_count,
     source_api, expires_at, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(query_hash) DO UPDATE SET
    query_params = excluded.query_params,
    results = excluded.results,
    result_count = excluded.result_count,
    source_api = excluded.source_api,
    expires_at = excluded.expires_at,
    updated_at = excluded.updated_at
"""

_COLUMNS = (
    "query_hash, search_type, query_params, results, source_api, "
    "expires_at, created_at, updated_at"
)


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed search cache."""

    def __init__(
        self,
        db_path: Path | str,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
        access_policy: CacheAccessPolicy | None = None,
    ) -> None:
        super().__init__(default_ttl=default_ttl, clock=clock, access_policy=access_policy)
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        # The sweep may run from another thread than the request handlers.
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def _load(self, fingerprint: str) -> CacheEntry | None:
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM search_cache WHERE query_hash = ?",
                (fingerprint,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_entry(row)

    async def _upsert(self, entry: CacheEntry) -> CacheEntry:
        with self._lock, self._conn:
            self._conn.execute(
                _UPSERT,
                (
                    str(uuid.uuid4()),
                    entry.fingerprint,
                    entry.search_type,
                    json.dumps(entry.query_params, default=str),
                    json.dumps([f.model_dump(mode="json") for f in entry.results]),
                    entry.result_count,
                    entry.source_api,
                    _to_epoch(entry.expires_at),
                    _to_epoch(entry.created_at),
                    _to_epoch(entry.updated_at),
                ),
            )
            row = self._conn.execute(
                f"SELECT {_COLUMNS} FROM search_cache WHERE query_hash = ?",
                (entry.fingerprint,),
            ).fetchone()
        return self._row_to_entry(row)

    async def _delete(self, fingerprint: str) -> None:
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM search_cache WHERE query_hash = ?", (fingerprint,))

    async def _delete_expired(self, now: datetime) -> int:
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "DELETE FROM search_cache WHERE expires_at IS NOT NULL AND expires_at < ?",
                (_to_epoch(now),),
            )
            return cursor.rowcount

    async def _all(self) -> list[CacheEntry]:
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_COLUMNS} FROM search_cache ORDER BY created_at"
            ).fetchall()
        entries: list[CacheEntry] = []
        for row in rows:
            try:
                entries.append(self._row_to_entry(row))
            except (ValueError, TypeError) as e:
                logger.warning("Skipping unreadable cache row %s: %s", row[0], e)
        return entries

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    @staticmethod
    def _row_to_entry(row: tuple) -> CacheEntry:
        (query_hash, search_type, query_params, results,
         source_api, expires_at, created_at, updated_at) = row
        return CacheEntry(
            fingerprint=query_hash,
            search_type=search_type,
            query_params=json.loads(query_params),
            results=[Finding(**r) for r in json.loads(results)],
            source_api=source_api,
            expires_at=_from_epoch(expires_at),
            created_at=_from_epoch(created_at),
            updated_at=_from_epoch(updated_at),
        )


def _to_epoch(value: datetime | None) -> float | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


def _from_epoch(value: float | None) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc)
