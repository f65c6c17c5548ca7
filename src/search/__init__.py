"""External search provider clients."""
