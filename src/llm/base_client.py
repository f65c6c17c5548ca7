# src/llm/base_client.py — v2
"""Abstract LLM client interface used by the similarity-scoring oracle."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pydantic import BaseModel

from noveltyscope.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for all LLM providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 4096,
        temperature: float = 0.2,
        response_format: type[BaseModel] | None = None,
    ) -> LLMResponse:
        """Text completion; ``response_format`` requests schema-shaped JSON."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (anthropic, openai)."""

    @property
    def model_name(self) -> str:
        return getattr(self, "_model", "unknown")
