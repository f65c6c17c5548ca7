# src/logging/context.py — v3
"""Contextual logging support: attach check_id and agent to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Set per novelty check; asyncio tasks inherit a copy, so agents running
# concurrently each see their own agent value.
_check_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "check_id", default=None
)
_agent: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "agent", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    check_id: str | None = None
    agent: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        check_id=_check_id.get(),
        agent=_agent.get(),
    )


def set_check_context(check_id: str) -> None:
    """Set check-level context (called once per novelty check)."""
    _check_id.set(check_id)


def set_agent_context(agent: str) -> None:
    """Set agent-level context (called per agent execution)."""
    _agent.set(agent)


def clear_context() -> None:
    """Reset all context variables."""
    _check_id.set(None)
    _agent.set(None)
