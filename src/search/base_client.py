# src/search/base_client.py — v2
"""Abstract external search client.

Subclasses implement ``_search`` and may raise ProviderError or let httpx
errors escape; ``search`` maps every failure to an unsuccessful result.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from noveltyscope.search.errors import (
    ProviderAuthError,
    ProviderError,
    ProviderRateLimitedError,
    ProviderRequestError,
)
from noveltyscope.search.models import ProviderItem, ProviderSearchResult

logger = logging.getLogger(__name__)


class BaseSearchClient(ABC):
    """Unified interface for patent, web and retail data sources."""

    source_name: str = "unknown"

    def __init__(
        self,
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_s = timeout_s
        self._transport = transport

    @property
    @abstractmethod
    def is_configured(self) -> bool:
        """Whether credentials required by the provider are present."""

    @abstractmethod
    def credential_status(self) -> str:
        """Human-readable credential status, shown when not configured."""

    @abstractmethod
    async def _search(self, query: str, **options: Any) -> tuple[list[ProviderItem], int]:
        """Run the provider query; return (items, provider total)."""

    async def search(self, query: str, **options: Any) -> ProviderSearchResult:
        """Query the provider. Never raises for provider-side failures."""
        if not self.is_configured:
            return ProviderSearchResult(
                success=False,
                query=query,
                error=self.credential_status(),
                error_kind="not_configured",
            )
        try:
            items, total = await self._search(query, **options)
        except ProviderError as e:
            logger.warning("%s search failed (%s): %s", self.source_name, e.kind, e)
            return ProviderSearchResult(
                success=False, query=query, error=str(e), error_kind=e.kind
            )
        except httpx.TimeoutException:
            logger.warning("%s search timed out after %.0fs", self.source_name, self._timeout_s)
            return ProviderSearchResult(
                success=False,
                query=query,
                error=f"{self.source_name} request timed out after {self._timeout_s:.0f}s",
                error_kind="request_failed",
            )
        except (httpx.HTTPError, ValueError) as e:
            # ValueError covers undecodable JSON bodies.
            logger.warning("%s search failed: %s", self.source_name, e)
            return ProviderSearchResult(
                success=False,
                query=query,
                error=f"{self.source_name} request failed: {e}",
                error_kind="request_failed",
            )

        logger.debug("%s returned %d items (total=%d) for %r", self.source_name, len(items), total, query)
        return ProviderSearchResult(success=True, items=items, total=total, query=query)

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout_s, transport=self._transport)

    def _raise_for_status(self, response: httpx.Response) -> None:
        """Map HTTP error statuses onto the provider error taxonomy."""
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise ProviderAuthError(f"{self.source_name} rejected credentials ({status})")
        if status == 429:
            raise ProviderRateLimitedError(
                f"{self.source_name} API rate limit exceeded. Please try again later."
            )
        raise ProviderRequestError(
            f"{self.source_name} search failed ({status}): {response.text[:300]}"
        )

    def _json_object(self, response: httpx.Response) -> dict[str, Any]:
        """Decode a JSON object body; anything else is a failed request."""
        data = response.json()
        if not isinstance(data, dict):
            raise ProviderRequestError(
                f"{self.source_name} returned an unexpected response body "
                f"({type(data).__name__} instead of an object)"
            )
        return data

    def _json_records(self, data: dict[str, Any], key: str) -> list[dict[str, Any]]:
        """Return ``data[key]`` as a list of objects, skipping malformed members."""
        records = data.get(key) or []
        if not isinstance(records, list):
            raise ProviderRequestError(
                f"{self.source_name} returned a malformed '{key}' field"
            )
        return [r for r in records if isinstance(r, dict)]
