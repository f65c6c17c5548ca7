# src/cache/cache_factory.py — v3
"""Factory for cache store instantiation."""

from __future__ import annotations

from datetime import timedelta

from noveltyscope.cache.base_cache_store import BaseCacheStore
from noveltyscope.config.settings import Settings


def create_cache_store(settings: Settings | None = None) -> BaseCacheStore:
    """Instantiate the configured cache backend.

    Args:
        settings: Application settings. Defaults to the SQLite backend.

    Returns:
        Configured BaseCacheStore implementation.
    """
    backend = "sqlite" if settings is None else settings.cache_backend
    ttl = timedelta(days=7 if settings is None else settings.cache_default_ttl_days)
    cache_root = "output/.cache" if settings is None else str(settings.cache_root)

    if backend == "json":
        from noveltyscope.cache.json_store import JsonCacheStore
        return JsonCacheStore(cache_root=cache_root, default_ttl=ttl)

    if backend == "sqlite":
        from noveltyscope.cache.sqlite_store import SqliteCacheStore
        db_path = f"{cache_root}/search_cache.db"
        return SqliteCacheStore(db_path=db_path, default_ttl=ttl)

    if backend == "redis":
        from noveltyscope.cache.redis_store import RedisCacheStore
        if settings is None or not settings.cache_redis_url:
            raise ValueError(
                "CACHE_REDIS_URL must be set when CACHE_BACKEND=redis"
            )
        return RedisCacheStore(redis_url=settings.cache_redis_url, default_ttl=ttl)

    raise ValueError(f"Unsupported cache backend: {backend!r}")
