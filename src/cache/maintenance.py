# src/cache/maintenance.py — v1
"""Periodic purge of expired search-cache entries.

Intended for an external scheduler (cron, a platform job) rather than a
background thread. Reads never depend on it: expired entries are already
invisible to ``get``; the sweep only reclaims space.
"""

from __future__ import annotations

import logging

from noveltyscope.cache.access import SERVICE_PRINCIPAL
from noveltyscope.cache.base_cache_store import BaseCacheStore
from noveltyscope.config.settings import Settings

logger = logging.getLogger(__name__)


async def cleanup_expired_cache(
    store: BaseCacheStore | None = None,
    settings: Settings | None = None,
) -> int:
    """Delete every entry whose non-null ``expires_at`` is in the past.

    Args:
        store: Cache store to sweep. Built from settings when omitted.
        settings: Application settings used to build the store.

    Returns:
        Number of entries removed (0 on an immediate second run).
    """
    owns_store = store is None
    if store is None:
        from noveltyscope.cache.cache_factory import create_cache_store
        store = create_cache_store(settings or Settings())

    try:
        removed = await store.cleanup_expired(principal=SERVICE_PRINCIPAL)
    finally:
        if owns_store:
            store.close()

    logger.info("Expired cache cleanup finished: %d removed", removed)
    return removed
