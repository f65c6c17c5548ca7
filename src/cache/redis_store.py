# src/cache/redis_store.py — v3
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments: one string key per
fingerprint (a single SET is atomic, so concurrent writers cannot leave
duplicates) and one index set listing every stored fingerprint.
Expiry is enforced by the store policy and the sweep, not by Redis TTLs,
so the sweep can report what it purged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from pydantic import ValidationError

from noveltyscope.cache.access import CacheAccessPolicy
from noveltyscope.cache.base_cache_store import DEFAULT_TTL, BaseCacheStore
from noveltyscope.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_KEY_PREFIX = "noveltyscope:search_cache:"
_INDEX_KEY = "noveltyscope:search_cache:__index__"


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(
        self,
        redis_url: str,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
        access_policy: CacheAccessPolicy | None = None,
    ) -> None:
        super().__init__(default_ttl=default_ttl, clock=clock, access_policy=access_policy)
        try:
            import redis
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client = redis.Redis.from_url(redis_url, decode_responses=True)
        self._watch_error = redis.WatchError

    async def _load(self, fingerprint: str) -> CacheEntry | None:
        return self._parse(fingerprint, self._client.get(f"{_KEY_PREFIX}{fingerprint}"))

    async def _upsert(self, entry: CacheEntry) -> CacheEntry:
        existing = await self._load(entry.fingerprint)
        if existing is not None:
            entry = entry.model_copy(update={"created_at": existing.created_at})
        pipe = self._client.pipeline(transaction=True)
        pipe.set(f"{_KEY_PREFIX}{entry.fingerprint}", entry.model_dump_json())
        pipe.sadd(_INDEX_KEY, entry.fingerprint)
        pipe.execute()
        return entry

    async def _delete(self, fingerprint: str) -> None:
        pipe = self._client.pipeline(transaction=True)
        pipe.delete(f"{_KEY_PREFIX}{fingerprint}")
        pipe.srem(_INDEX_KEY, fingerprint)
        pipe.execute()

    async def _delete_expired(self, now: datetime) -> int:
        removed = 0
        for fingerprint in self._client.smembers(_INDEX_KEY):
            key = f"{_KEY_PREFIX}{fingerprint}"
            # WATCH makes the delete fail if a writer replaced the key after the check.
            with self._client.pipeline(transaction=True) as pipe:
                try:
                    pipe.watch(key)
                    entry = self._parse(fingerprint, pipe.get(key))
                    if entry is not None and (entry.expires_at is None or entry.expires_at >= now):
                        pipe.unwatch()
                        continue
                    pipe.multi()
                    pipe.delete(key)
                    pipe.srem(_INDEX_KEY, fingerprint)
                    deleted, _ = pipe.execute()
                except self._watch_error:
                    logger.debug("Cache entry %s rewritten during sweep, kept", fingerprint[:12])
                    continue
            if entry is not None:
                removed += deleted
        return removed

    async def _all(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for fingerprint in sorted(self._client.smembers(_INDEX_KEY)):
            entry = await self._load(fingerprint)
            if entry is not None:
                entries.append(entry)
        return entries

    def close(self) -> None:
        """Close the Redis connection."""
        self._client.close()

    @staticmethod
    def _parse(fingerprint: str, data: str | None) -> CacheEntry | None:
        if data is None:
            return None
        try:
            return CacheEntry.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Failed to deserialize cache entry %s: %s", fingerprint, e)
            return None
