# src/search/token_cache.py — v1
"""Single-slot OAuth access token cache.

Owned by a provider client and injected into it. Any task may read the
slot; a caller that finds it stale fetches a new token and overwrites the
slot. Two tasks refreshing at once both fetch (acceptable over-fetch) and
the later assignment wins, but a returned token is always inside its
refresh margin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_LIFETIME = timedelta(hours=2)
DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)


@dataclass(frozen=True)
class TokenGrant:
    """Raw token response from an authorization server."""

    access_token: str
    expires_in: int | None = None  # seconds


@dataclass(frozen=True)
class CachedToken:
    token: str
    expires_at: datetime

    def is_usable(self, now: datetime, margin: timedelta) -> bool:
        return self.expires_at - margin > now


class OAuthTokenCache:
    """Refresh-before-expiry token holder with one slot."""

    def __init__(
        self,
        fetch_token: Callable[[], Awaitable[TokenGrant]],
        refresh_margin: timedelta = DEFAULT_REFRESH_MARGIN,
        default_lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
    ) -> None:
        self._fetch_token = fetch_token
        self._refresh_margin = refresh_margin
        self._default_lifetime = default_lifetime
        self._slot: CachedToken | None = None

    @property
    def current(self) -> CachedToken | None:
        return self._slot

    async def get_or_refresh(self, now: datetime) -> str:
        """Return a token valid beyond ``now`` + margin, fetching one if needed."""
        cached = self._slot
        if cached is not None and cached.is_usable(now, self._refresh_margin):
            return cached.token

        grant = await self._fetch_token()
        lifetime = (
            timedelta(seconds=grant.expires_in) if grant.expires_in else self._default_lifetime
        )
        fresh = CachedToken(token=grant.access_token, expires_at=now + lifetime)
        self._slot = fresh
        logger.debug("OAuth token refreshed, expires at %s", fresh.expires_at.isoformat())
        return fresh.token

    def invalidate(self) -> None:
        """Drop the cached token (e.g. after the provider answered 401)."""
        self._slot = None
