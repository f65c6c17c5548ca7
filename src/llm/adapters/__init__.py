"""Provider adapters for BaseLLMClient."""
