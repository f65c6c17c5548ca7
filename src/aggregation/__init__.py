"""Cross-agent aggregation of novelty results."""
