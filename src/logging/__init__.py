"""Structured logging with per-check context."""
