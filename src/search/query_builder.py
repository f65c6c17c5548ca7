# src/search/query_builder.py — v1
"""Keyword query construction from invention fields.

Marketplace and patent search engines rank best on a handful of product
terms, so filler words and generic invention vocabulary are dropped.
"""

from __future__ import annotations

import re

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
        "be", "have", "has", "had", "do", "does", "did", "will", "would",
        "could", "should", "may", "might", "must", "shall", "can", "need",
        "dare", "ought", "used", "using", "this", "that", "these", "those",
        "it", "its",
        # Generic invention vocabulary
        "device", "system", "apparatus", "method", "invention", "product",
        "innovative", "new", "novel", "smart", "intelligent", "advanced",
        "automatic", "automated",
    }
)

_TOKEN_RE = re.compile(r"[^\w\-]+")


def extract_keywords(text: str) -> list[str]:
    """Lower-cased words longer than two characters, minus stop words."""
    words = (_TOKEN_RE.sub("", w) for w in text.lower().split())
    return [w for w in words if len(w) > 2 and w not in STOP_WORDS]


def build_search_query(
    invention_name: str,
    description: str = "",
    key_features: list[str] | None = None,
    max_terms: int = 5,
) -> str:
    """Build a short keyword query for an invention.

    Up to 3 terms come from the name, up to 3 more from the first two key
    features; duplicates are removed keeping first occurrence. When the
    name yields nothing, description words are used, and as a last resort
    the trimmed name itself.
    """
    keywords: list[str] = extract_keywords(invention_name)[:3]

    if key_features:
        feature_words = [w for f in key_features[:2] for w in extract_keywords(f)]
        keywords.extend(feature_words[:3])

    if not keywords:
        keywords = extract_keywords(description)[:max_terms]

    unique = list(dict.fromkeys(keywords))[:max_terms]
    if not unique:
        return " ".join(invention_name.split())
    return " ".join(unique)
