# src/search/tavily_client.py — v2
"""Tavily web search client (REST, bearer API key)."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

import httpx

from noveltyscope.search.base_client import BaseSearchClient
from noveltyscope.search.models import ProviderItem


class TavilyWebClient(BaseSearchClient):
    """Open-web search for existing products, articles and prototypes."""

    source_name = "Web Search"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://api.tavily.com/search",
        timeout_s: float = 20.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, transport=transport)
        self._api_key = api_key
        self._api_url = api_url

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    def credential_status(self) -> str:
        if self.is_configured:
            return "Web search API key configured"
        return (
            "Web search API key not configured. "
            "Add TAVILY_API_KEY to your environment variables to enable web search."
        )

    async def _search(
        self, query: str, limit: int = 10, search_depth: str = "basic", **_: Any
    ) -> tuple[list[ProviderItem], int]:
        async with self._http_client() as client:
            response = await client.post(
                self._api_url,
                json={"query": query, "max_results": limit, "search_depth": search_depth},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
        self._raise_for_status(response)

        results = self._json_records(self._json_object(response), "results")
        items = [self._to_item(i, r) for i, r in enumerate(results)]
        return items, len(items)

    @staticmethod
    def _to_item(index: int, result: dict[str, Any]) -> ProviderItem:
        url = result.get("url") or None
        metadata: dict[str, str] = {}
        if url:
            metadata["domain"] = urlparse(url).netloc
        if result.get("published_date"):
            metadata["published_date"] = str(result["published_date"])
        if result.get("score") is not None:
            metadata["search_score"] = f"{float(result['score']):.3f}"
        return ProviderItem(
            item_id=url or f"web-{index}",
            title=result.get("title") or (url or "Untitled result"),
            description=(result.get("content") or "")[:500],
            url=url,
            metadata=metadata,
        )
