# src/cache/fingerprint.py — v3
"""Search request fingerprinting.

A fingerprint is the SHA-256 of the search type plus a canonical JSON
rendering of the query parameters:

  * object keys sorted at every depth;
  * leading/trailing whitespace trimmed and inner runs collapsed in all strings;
  * free-text fields where case carries no meaning lower-cased.

Fields such as marketplace ids, sort keys or filters keep their case.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any

# Free-text parameters compared case-insensitively.
CASE_INSENSITIVE_FIELDS = frozenset(
    {
        "q",
        "query",
        "keywords",
        "invention_name",
        "description",
        "problem_statement",
        "target_audience",
        "key_features",
    }
)

_WS_RE = re.compile(r"\s+")


def compute_fingerprint(search_type: str, query_params: dict[str, Any]) -> str:
    """Compute a deterministic cache key for a search request.

    Args:
        search_type: Cache partition (patent, web, retail).
        query_params: Parameters as submitted to the provider.

    Returns:
        64-character hex digest.
    """
    canonical = canonicalize_params(query_params)
    payload = json.dumps(
        {"search_type": search_type, "params": canonical},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def canonicalize_params(query_params: dict[str, Any]) -> dict[str, Any]:
    """Return a normalized copy of ``query_params`` (keys as strings, sorted)."""
    return {
        str(key): _normalize_value(value, fold_case=str(key) in CASE_INSENSITIVE_FIELDS)
        for key, value in sorted(query_params.items(), key=lambda kv: str(kv[0]))
    }


def _normalize_value(value: Any, fold_case: bool) -> Any:
    if isinstance(value, str):
        text = _WS_RE.sub(" ", value).strip()
        return text.lower() if fold_case else text
    if isinstance(value, dict):
        return {
            str(k): _normalize_value(v, fold_case=fold_case or str(k) in CASE_INSENSITIVE_FIELDS)
            for k, v in sorted(value.items(), key=lambda kv: str(kv[0]))
        }
    if isinstance(value, (list, tuple)):
        return [_normalize_value(v, fold_case) for v in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_normalize_value(v, fold_case) for v in value), key=repr)
    return value
