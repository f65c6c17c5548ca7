# src/search/patentsview_client.py — v2
"""PatentsView search client.

Tries query strategies from most to least specific (phrase, all terms,
any terms) and keeps the first that returns patents. Each patent gets a
relevance in [0, 1] from query-term coverage of its title and abstract.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from noveltyscope.search.base_client import BaseSearchClient
from noveltyscope.search.errors import ProviderError
from noveltyscope.search.models import ProviderItem
from noveltyscope.search.query_builder import extract_keywords

logger = logging.getLogger(__name__)

_FIELDS = [
    "patent_id",
    "patent_title",
    "patent_abstract",
    "patent_date",
    "inventors",
    "patent_num_times_cited_by_us_patents",
]
_SORT = [
    {"patent_num_times_cited_by_us_patents": "desc"},
    {"patent_date": "desc"},
]
_TITLE_WEIGHT = 0.6
_ABSTRACT_WEIGHT = 0.4


def build_strategies(query: str) -> list[dict[str, Any]]:
    """PatentsView query objects, most specific first."""
    words = extract_keywords(query)
    strategies: list[dict[str, Any]] = []

    if 2 <= len(words) <= 4:
        phrase = " ".join(words[:3])
        strategies.append({"_or": [
            {"_text_phrase": {"patent_title": phrase}},
            {"_text_phrase": {"patent_abstract": phrase}},
        ]})
    if len(words) >= 2:
        terms = " ".join(words[:5])
        strategies.append({"_or": [
            {"_text_all": {"patent_title": terms}},
            {"_text_all": {"patent_abstract": terms}},
        ]})
    if len(words) >= 3:
        terms = " ".join(words[:6])
        strategies.append({"_or": [
            {"_text_any": {"patent_title": terms}},
            {"_text_any": {"patent_abstract": terms}},
        ]})
    if not strategies:
        strategies.append({"_or": [
            {"_text_any": {"patent_title": query}},
            {"_text_any": {"patent_abstract": query}},
        ]})
    return strategies


def relevance(patent: dict[str, Any], query_words: list[str]) -> float:
    """Share of query terms found in title and abstract, title weighted higher."""
    if not query_words:
        return 0.0
    title = (patent.get("patent_title") or "").lower()
    abstract = (patent.get("patent_abstract") or "").lower()
    title_cov = sum(1 for w in query_words if w in title) / len(query_words)
    abstract_cov = sum(1 for w in query_words if w in abstract) / len(query_words)
    return round(_TITLE_WEIGHT * title_cov + _ABSTRACT_WEIGHT * abstract_cov, 4)


class PatentsViewClient(BaseSearchClient):
    """Granted US patents from the PatentsView API."""

    source_name = "USPTO PatentsView"

    def __init__(
        self,
        api_key: str,
        api_url: str = "https://search.patentsview.org/api/v1/patent/",
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
            return "PatentsView API key configured"
        return (
            "PatentsView API key not configured. "
            "Add PATENTSVIEW_API_KEY to your environment variables to enable patent search."
        )

    async def _search(self, query: str, limit: int = 10, **_: Any) -> tuple[list[ProviderItem], int]:
        query_words = extract_keywords(query) or query.lower().split()
        patents: list[dict[str, Any]] = []
        last_error: ProviderError | None = None

        async with self._http_client() as client:
            for i, strategy in enumerate(build_strategies(query), start=1):
                response = await client.post(
                    self._api_url,
                    json={"q": strategy, "f": _FIELDS, "s": _SORT, "o": {"size": min(limit * 3, 50)}},
                    headers={"X-Api-Key": self._api_key},
                )
                try:
                    self._raise_for_status(response)
                except ProviderError as e:
                    logger.warning("Patent search strategy %d failed: %s", i, e)
                    last_error = e
                    continue
                patents = self._json_records(self._json_object(response), "patents")
                if patents:
                    break

        if not patents and last_error is not None:
            raise last_error

        ranked = sorted(patents, key=lambda p: relevance(p, query_words), reverse=True)[:limit]
        return [self._to_item(p, relevance(p, query_words)) for p in ranked], len(patents)

    @staticmethod
    def _to_item(patent: dict[str, Any], score: float) -> ProviderItem:
        patent_id = str(patent.get("patent_id") or "")
        inventors = patent.get("inventors") or []
        names = [
            " ".join(filter(None, (inv.get("inventor_name_first"), inv.get("inventor_name_last"))))
            for inv in inventors if isinstance(inv, dict)
        ]
        metadata = {
            "patent_id": patent_id,
            "filing_date": str(patent.get("patent_date") or ""),
            "inventors": ", ".join(n for n in names if n),
            "times_cited": str(patent.get("patent_num_times_cited_by_us_patents") or 0),
        }
        return ProviderItem(
            item_id=patent_id or patent.get("patent_title", ""),
            title=patent.get("patent_title") or "No Title",
            description=(patent.get("patent_abstract") or "")[:800],
            url=f"https://patents.google.com/patent/US{patent_id}/en" if patent_id else None,
            metadata={k: v for k, v in metadata.items() if v},
            relevance=score,
        )
