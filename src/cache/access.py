# src/cache/access.py — v1
"""Authorization check consulted by cache stores before external-facing calls.

The cache is global (not per-user) to maximize hits. Any authenticated
principal may read; writes, invalidation and sweeps are reserved for the
service role.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

CacheOperation = Literal["read", "write", "invalidate", "sweep"]

SERVICE_ROLE = "service_role"
AUTHENTICATED_ROLE = "authenticated"


class CacheAccessDenied(PermissionError):
    """Raised when a principal may not perform a cache operation."""

    def __init__(self, role: str, operation: str) -> None:
        self.role = role
        self.operation = operation
        super().__init__(f"Role {role!r} may not {operation} the search cache")


@dataclass(frozen=True)
class Principal:
    """Caller identity as seen by the cache."""

    role: str
    subject: str | None = None


@dataclass
class CacheAccessPolicy:
    """Role to allowed operations table."""

    rules: dict[str, frozenset[str]] = field(
        default_factory=lambda: {
            AUTHENTICATED_ROLE: frozenset({"read"}),
            SERVICE_ROLE: frozenset({"read", "write", "invalidate", "sweep"}),
        }
    )

    def allows(self, principal: Principal, operation: CacheOperation) -> bool:
        return operation in self.rules.get(principal.role, frozenset())

    def check(self, principal: Principal | None, operation: CacheOperation) -> None:
        """Raise CacheAccessDenied unless allowed. ``None`` means internal caller."""
        if principal is None:
            return
        if not self.allows(principal, operation):
            raise CacheAccessDenied(principal.role, operation)


SERVICE_PRINCIPAL = Principal(role=SERVICE_ROLE, subject="noveltyscope")
