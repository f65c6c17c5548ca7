# src/llm/client_factory.py — v3
"""Factory: instantiate LLM client from provider name.

Provider and model come from the cascade in llm/config.py.
"""

from __future__ import annotations

import importlib
import logging

from noveltyscope.config.settings import Settings
from noveltyscope.llm.base_client import BaseLLMClient
from noveltyscope.llm.config import resolve_llm

logger = logging.getLogger(__name__)

# Registry of provider name to adapter class path (lazy import).
_PROVIDER_REGISTRY: dict[str, str] = {
    "anthropic": "noveltyscope.llm.adapters.anthropic_adapter.AnthropicAdapter",
    "openai": "noveltyscope.llm.adapters.openai_adapter.OpenAIAdapter",
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(
    provider: str,
    model: str,
    settings: Settings | None = None,
    **kwargs: object,
) -> BaseLLMClient:
    """Instantiate the correct adapter from provider name.

    Args:
        provider: Provider identifier (anthropic, openai).
        model: Model name (e.g. claude-sonnet-4-20250514).
        settings: Application settings (API keys, timeout).
        **kwargs: Additional provider-specific arguments.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    module_path, class_name = _PROVIDER_REGISTRY[provider].rsplit(".", 1)
    adapter_cls = getattr(importlib.import_module(module_path), class_name)

    init_kwargs = dict(kwargs)
    init_kwargs["model"] = model
    if settings is not None:
        init_kwargs.setdefault("timeout_s", settings.scoring_timeout_s)
        if provider == "anthropic":
            init_kwargs.setdefault("api_key", settings.anthropic_api_key)
        elif provider == "openai":
            init_kwargs.setdefault("api_key", settings.openai_api_key)

    logger.debug("Creating LLM client: provider=%s, model=%s", provider, model)
    return adapter_cls(**init_kwargs)


def create_component_client(component: str, settings: Settings) -> BaseLLMClient:
    """Resolve provider:model for a component and build its client."""
    assignment = resolve_llm(component, settings)
    return create_llm_client(assignment.provider, assignment.model, settings)


def register_provider(name: str, class_path: str) -> None:
    """Register a custom provider adapter (fully qualified class path)."""
    _PROVIDER_REGISTRY[name] = class_path
    logger.info("Registered LLM provider: %s -> %s", name, class_path)
