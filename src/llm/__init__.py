"""LLM clients used by the similarity-scoring oracle."""
