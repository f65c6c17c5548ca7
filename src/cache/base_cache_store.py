# src/cache/base_cache_store.py — v3
"""Abstract cache store interface.

The base class owns the retention policy shared by every backend:

  * patent entries never expire, whatever TTL the caller passes;
  * web/retail entries expire ``default_ttl`` after each write unless a
    TTL is given per call;
  * reads treat an entry past ``expires_at`` as absent even when the
    sweep has not removed it yet.

Backends only provide primitive row operations keyed by fingerprint and
must make ``_upsert`` atomic per fingerprint.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime, timedelta
from typing import Any, Callable

from noveltyscope.cache.access import CacheAccessPolicy, Principal
from noveltyscope.cache.fingerprint import compute_fingerprint
from noveltyscope.cache.models import CacheEntry, CacheStats
from noveltyscope.core.models import Finding, SearchType, utcnow

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(days=7)
NON_EXPIRING_TYPES: frozenset[str] = frozenset({"patent"})


class BaseCacheStore(ABC):
    """Unified interface for search cache backends."""

    def __init__(
        self,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
        access_policy: CacheAccessPolicy | None = None,
    ) -> None:
        self._default_ttl = default_ttl
        self._clock = clock or utcnow
        self._access = access_policy or CacheAccessPolicy()

    # --- Public API ---

    async def get(
        self,
        search_type: SearchType,
        query_params: dict[str, Any],
        principal: Principal | None = None,
    ) -> CacheEntry | None:
        """Look up a live entry for the request, or None."""
        self._access.check(principal, "read")
        fingerprint = compute_fingerprint(search_type, query_params)
        entry = await self._load(fingerprint)
        if entry is None:
            logger.debug("Cache miss: %s %s", search_type, fingerprint[:12])
            return None
        if entry.is_expired(self._clock()):
            logger.debug("Cache entry expired: %s %s", search_type, fingerprint[:12])
            return None
        logger.debug("Cache hit: %s %s (%d results)", search_type, fingerprint[:12], entry.result_count)
        return entry

    async def put(
        self,
        search_type: SearchType,
        query_params: dict[str, Any],
        results: list[Finding],
        source_api: str,
        ttl: timedelta | None = None,
        principal: Principal | None = None,
    ) -> CacheEntry:
        """Insert or replace the entry for the request (upsert by fingerprint)."""
        self._access.check(principal, "write")
        now = self._clock()
        fingerprint = compute_fingerprint(search_type, query_params)
        entry = CacheEntry(
            fingerprint=fingerprint,
            search_type=search_type,
            query_params=dict(query_params),
            results=list(results),
            source_api=source_api,
            expires_at=self._expiry_for(search_type, now, ttl),
            created_at=now,
            updated_at=now,
        )
        stored = await self._upsert(entry)
        logger.debug(
            "Cache write: %s %s (%d results, expires_at=%s)",
            search_type, fingerprint[:12], stored.result_count, stored.expires_at,
        )
        return stored

    async def invalidate(self, fingerprint: str, principal: Principal | None = None) -> None:
        """Delete the entry if present (idempotent)."""
        self._access.check(principal, "invalidate")
        await self._delete(fingerprint)

    async def cleanup_expired(self, principal: Principal | None = None) -> int:
        """Purge entries whose non-null ``expires_at`` has passed.

        Returns:
            Number of entries removed.
        """
        self._access.check(principal, "sweep")
        removed = await self._delete_expired(self._clock())
        logger.info("Cache sweep removed %d expired entries", removed)
        return removed

    async def get_by_fingerprint(self, fingerprint: str) -> CacheEntry | None:
        """Raw lookup by key, including expired-but-not-purged entries."""
        return await self._load(fingerprint)

    async def list_entries(self, search_type: SearchType | None = None) -> list[CacheEntry]:
        """List stored entries, optionally restricted to one partition."""
        entries = await self._all()
        if search_type is None:
            return entries
        return [e for e in entries if e.search_type == search_type]

    async def stats(self) -> CacheStats:
        entries = await self._all()
        now = self._clock()
        return CacheStats(
            total=len(entries),
            by_search_type=dict(Counter(e.search_type for e in entries)),
            expired_pending=sum(1 for e in entries if e.is_expired(now)),
        )

    def close(self) -> None:
        """Release backend resources (no-op by default)."""

    # --- Policy ---

    def _expiry_for(
        self, search_type: str, now: datetime, ttl: timedelta | None
    ) -> datetime | None:
        if search_type in NON_EXPIRING_TYPES:
            return None
        return now + (ttl if ttl is not None else self._default_ttl)

    # --- Backend primitives ---

    @abstractmethod
    async def _load(self, fingerprint: str) -> CacheEntry | None:
        """Read the stored entry for a fingerprint."""

    @abstractmethod
    async def _upsert(self, entry: CacheEntry) -> CacheEntry:
        """Atomically write ``entry``; keep ``created_at`` of an existing row.

        Returns the entry as stored.
        """

    @abstractmethod
    async def _delete(self, fingerprint: str) -> None:
        """Remove a row if present."""

    @abstractmethod
    async def _delete_expired(self, now: datetime) -> int:
        """Remove rows with non-null ``expires_at`` before ``now``."""

    @abstractmethod
    async def _all(self) -> list[CacheEntry]:
        """Every stored row."""
