# src/cache/json_store.py — v3
"""JSON file-based cache store (CACHE_BACKEND=json).

Stores one JSON file per fingerprint under CACHE_ROOT. Writes land in a
temporary file that is renamed over the target with ``os.replace``, so a
reader sees either the previous entry or the new one, never a mix.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from noveltyscope.cache.access import CacheAccessPolicy
from noveltyscope.cache.base_cache_store import DEFAULT_TTL, BaseCacheStore
from noveltyscope.cache.models import CacheEntry

logger = logging.getLogger(__name__)


class JsonCacheStore(BaseCacheStore):
    """File-based cache store using JSON files."""

    def __init__(
        self,
        cache_root: Path | str,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] | None = None,
        access_policy: CacheAccessPolicy | None = None,
    ) -> None:
        super().__init__(default_ttl=default_ttl, clock=clock, access_policy=access_policy)
        self._root = Path(cache_root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def _load(self, fingerprint: str) -> CacheEntry | None:
        return self._read(self._entry_path(fingerprint))

    async def _upsert(self, entry: CacheEntry) -> CacheEntry:
        path = self._entry_path(entry.fingerprint)
        existing = self._read(path)
        if existing is not None:
            entry = entry.model_copy(update={"created_at": existing.created_at})

        fd, tmp_name = tempfile.mkstemp(dir=self._root, prefix=".", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(entry.model_dump_json(indent=2))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        return entry

    async def _delete(self, fingerprint: str) -> None:
        self._entry_path(fingerprint).unlink(missing_ok=True)

    async def _delete_expired(self, now: datetime) -> int:
        removed = 0
        for path in self._root.glob("*.json"):
            entry = self._read(path)
            if entry is None or entry.expires_at is None or entry.expires_at >= now:
                continue
            if self._remove_if_expired(path, now):
                removed += 1
        return removed

    def _remove_if_expired(self, path: Path, now: datetime) -> bool:
        """Move the file aside, re-check it, and put it back if a writer refreshed it."""
        claimed = path.with_name(f".{path.stem}.{uuid.uuid4().hex}.sweep")
        try:
            os.replace(path, claimed)
        except FileNotFoundError:
            # Removed concurrently by another sweep or an invalidation.
            return False
        entry = self._read(claimed)
        if entry is not None and (entry.expires_at is None or entry.expires_at >= now):
            try:
                # link() refuses to overwrite an entry written after the move.
                os.link(claimed, path)
            except FileExistsError:
                pass
            claimed.unlink(missing_ok=True)
            logger.debug("Cache entry %s rewritten during sweep, kept", path.stem[:12])
            return False
        claimed.unlink(missing_ok=True)
        return True

    async def _all(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for path in sorted(self._root.glob("*.json")):
            entry = self._read(path)
            if entry is not None:
                entries.append(entry)
        return entries

    def _read(self, path: Path) -> CacheEntry | None:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Failed to read cache entry %s: %s", path.name, e)
            return None
        try:
            return CacheEntry(**data)
        except ValidationError as e:
            logger.warning("Invalid cache entry %s: %s", path.name, e)
            return None

    def _entry_path(self, fingerprint: str) -> Path:
        """Return file path for a fingerprint."""
        safe_key = fingerprint.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"
