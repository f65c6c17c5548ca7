# src/llm/retry.py — v2
"""Bounded retry with exponential backoff for LLM calls.

Only transient failures are retried; anything else surfaces on the first
attempt wrapped in LLMRetryExhausted.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

logger = logging.getLogger(__name__)


class LLMRetryExhausted(Exception):
    """All retries exhausted (or error not retryable) for an LLM call."""

    def __init__(self, label: str, error_type: str, attempts: int, last_error: Exception):
        self.label = label
        self.error_type = error_type
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"'{label}' failed after {attempts} attempt(s) ({error_type}): {last_error}"
        )


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration for a specific error type."""

    max_retries: int
    base_delay_s: float
    backoff_factor: float = 2.0
    jitter: bool = True


DEFAULT_RETRY_CONFIGS: dict[str, RetryConfig] = {
    "rate_limit": RetryConfig(max_retries=2, base_delay_s=2.0),
    "timeout": RetryConfig(max_retries=1, base_delay_s=1.0, backoff_factor=1.0),
    "server_error": RetryConfig(max_retries=2, base_delay_s=2.0),
}


def classify_error(error: Exception) -> str:
    """Classify an exception into a retry error type."""
    status = getattr(error, "status_code", None)
    if status == 429:
        return "rate_limit"
    if isinstance(status, int) and status >= 500:
        return "server_error"

    msg = str(error).lower()
    name = type(error).__name__.lower()
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)) or "timeout" in name:
        return "timeout"
    if "429" in msg or "rate limit" in msg or "ratelimit" in name:
        return "rate_limit"
    if "overloaded" in msg or any(c in msg for c in ("500", "502", "503", "504")):
        return "server_error"
    if "connection" in name:
        return "server_error"
    return "unknown"


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = config.base_delay_s * (config.backoff_factor ** attempt)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    label: str = "llm",
    retry_configs: dict[str, RetryConfig] | None = None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> Any:
    """Execute an async function with retry logic.

    Raises:
        LLMRetryExhausted: If the error is not retryable or retries are spent.
    """
    configs = DEFAULT_RETRY_CONFIGS if retry_configs is None else retry_configs
    attempts = 0

    while True:
        try:
            return await fn(*args, **kwargs)
        except Exception as e:
            error_type = classify_error(e)
            attempts += 1
            config = configs.get(error_type)

            if config is None or attempts > config.max_retries:
                raise LLMRetryExhausted(label, error_type, attempts, e) from e

            delay = _compute_delay(config, attempts - 1)
            logger.warning(
                "'%s' %s (attempt %d/%d), retrying in %.1fs",
                label, error_type, attempts, config.max_retries, delay,
            )
            await sleep(delay)
