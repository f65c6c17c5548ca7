"""noveltyscope: cached search agents and aggregated novelty verdicts for inventions."""

from noveltyscope.version import __version__

__all__ = ["__version__"]
