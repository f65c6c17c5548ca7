# src/search/errors.py — v1
"""Provider failure taxonomy.

Clients raise these internally; ``BaseSearchClient.search`` turns them
into an unsuccessful ProviderSearchResult carrying ``error_kind``.
"""

from __future__ import annotations

from typing import Literal

ProviderErrorKind = Literal["not_configured", "request_failed", "rate_limited", "auth_expired"]


class ProviderError(Exception):
    """Base class for external search provider failures."""

    kind: ProviderErrorKind = "request_failed"


class ProviderNotConfiguredError(ProviderError):
    """Credentials for the provider are missing."""

    kind: ProviderErrorKind = "not_configured"


class ProviderRequestError(ProviderError):
    """The provider could not be reached or answered with an error."""

    kind: ProviderErrorKind = "request_failed"


class ProviderRateLimitedError(ProviderError):
    """The provider rejected the call with HTTP 429."""

    kind: ProviderErrorKind = "rate_limited"


class ProviderAuthError(ProviderError):
    """Token acquisition failed or the access token was rejected."""

    kind: ProviderErrorKind = "auth_expired"
