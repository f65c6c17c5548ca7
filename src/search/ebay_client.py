# src/search/ebay_client.py — v2
"""eBay Browse API client with OAuth 2.0 client-credentials grant.

Endpoints:
    POST {base}/identity/v1/oauth2/token
    GET  {base}/buy/browse/v1/item_summary/search
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Callable

import httpx

from noveltyscope.core.models import utcnow
from noveltyscope.search.base_client import BaseSearchClient
from noveltyscope.search.errors import ProviderAuthError
from noveltyscope.search.models import ProviderItem
from noveltyscope.search.token_cache import OAuthTokenCache, TokenGrant

logger = logging.getLogger(__name__)

_OAUTH_SCOPE = "https://api.ebay.com/oauth/api_scope"


class EbayBrowseClient(BaseSearchClient):
    """Retail search over eBay listings."""

    source_name = "eBay"

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        marketplace_id: str = "EBAY_US",
        base_url: str = "https://api.ebay.com",
        timeout_s: float = 20.0,
        token_cache: OAuthTokenCache | None = None,
        refresh_margin_s: int = 300,
        clock: Callable[[], datetime] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(timeout_s=timeout_s, transport=transport)
        self._client_id = client_id
        self._client_secret = client_secret
        self._marketplace_id = marketplace_id
        self._base_url = base_url.rstrip("/")
        self._clock = clock or utcnow
        self.tokens = token_cache or OAuthTokenCache(
            self._fetch_token, refresh_margin=timedelta(seconds=refresh_margin_s)
        )

    @property
    def is_configured(self) -> bool:
        return bool(self._client_id and self._client_secret)

    def credential_status(self) -> str:
        if self.is_configured:
            return "eBay API credentials configured"
        return (
            "eBay API credentials not configured. "
            "To enable real eBay product search, add EBAY_CLIENT_ID and "
            "EBAY_CLIENT_SECRET to your environment variables. "
            "Get your free credentials at: https://developer.ebay.com/my/keys"
        )

    async def _fetch_token(self) -> TokenGrant:
        async with self._http_client() as client:
            response = await client.post(
                f"{self._base_url}/identity/v1/oauth2/token",
                auth=(self._client_id, self._client_secret),
                data={"grant_type": "client_credentials", "scope": _OAUTH_SCOPE},
            )
        if response.status_code != 200:
            raise ProviderAuthError(
                f"eBay OAuth failed ({response.status_code}): {response.text[:300]}"
            )
        data = self._json_object(response)
        token = data.get("access_token")
        if not isinstance(token, str) or not token:
            raise ProviderAuthError("eBay OAuth response did not include an access token")
        expires_in = data.get("expires_in")
        return TokenGrant(
            access_token=token, expires_in=expires_in if isinstance(expires_in, int) else None
        )

    async def _search(
        self,
        query: str,
        limit: int = 20,
        offset: int = 0,
        filter: str | None = None,  # noqa: A002
        sort: str | None = None,
        **_: Any,
    ) -> tuple[list[ProviderItem], int]:
        access_token = await self.tokens.get_or_refresh(self._clock())

        params: dict[str, str] = {"q": query, "limit": str(limit), "offset": str(offset)}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort

        async with self._http_client() as client:
            response = await client.get(
                f"{self._base_url}/buy/browse/v1/item_summary/search",
                params=params,
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "X-EBAY-C-MARKETPLACE-ID": self._marketplace_id,
                    "Content-Type": "application/json",
                },
            )

        if response.status_code == 401:
            self.tokens.invalidate()
            raise ProviderAuthError("eBay access token expired. Please retry.")
        self._raise_for_status(response)

        data = self._json_object(response)
        products = self._json_records(data, "itemSummaries")
        return [self._to_item(p) for p in products], int(data.get("total") or 0)

    @staticmethod
    def _to_item(product: dict[str, Any]) -> ProviderItem:
        price = product.get("price") or {}
        seller = product.get("seller") or {}
        location = product.get("itemLocation") or {}
        categories = product.get("categories") or []

        metadata: dict[str, str | None] = {
            "item_id": product.get("itemId"),
            "price": (
                f"{price.get('currency', 'USD')} {price['value']}"
                if price.get("value") else "Price not available"
            ),
            "condition": product.get("condition"),
            "image_url": (product.get("image") or {}).get("imageUrl"),
            "seller_username": seller.get("username"),
            "seller_feedback": (
                f"{seller['feedbackPercentage']}%" if seller.get("feedbackPercentage") else None
            ),
            "categories": ", ".join(c.get("categoryName", "") for c in categories) or None,
            "location": ", ".join(
                part for part in (
                    location.get("city"), location.get("stateOrProvince"), location.get("country"),
                ) if part
            ) or None,
        }
        title = product.get("title", "")
        return ProviderItem(
            item_id=str(product.get("itemId", "")),
            title=title,
            description=f"{product.get('condition') or 'New'} - {title}",
            url=product.get("itemWebUrl"),
            metadata={k: str(v) for k, v in metadata.items() if v},
        )
