"""Similarity-scoring oracle."""
