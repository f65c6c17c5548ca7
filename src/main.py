# src/main.py — v2
"""CLI entry point: check, cache-cleanup, cache-invalidate, cache-stats.

Usage:
    noveltyscope check "<name>" "<description>" [options]
    noveltyscope cache-cleanup
    noveltyscope cache-invalidate <fingerprint>
    noveltyscope cache-stats
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from noveltyscope.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    from noveltyscope.config.settings import ConfigurationError, Settings
    from noveltyscope.logging.logger import setup_logging_from_settings

    try:
        settings = Settings()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    setup_logging_from_settings(settings, verbose=args.verbose)

    try:
        return asyncio.run(args.func(args, settings))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="noveltyscope",
        description=f"noveltyscope v{__version__} - invention novelty checks",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- check ---
    p_check = subparsers.add_parser(
        "check", help="Run a novelty check for one invention",
    )
    p_check.add_argument("name", help="Invention name")
    p_check.add_argument("description", help="Invention description")
    p_check.add_argument("--problem", default=None, help="Problem statement")
    p_check.add_argument("--audience", default=None, help="Target audience")
    p_check.add_argument(
        "-f", "--feature", dest="features", action="append", default=[],
        help="Key feature (repeatable)",
    )
    p_check.add_argument(
        "--agents", default=None,
        help="Comma-separated agents to run (default: ENABLED_AGENTS)",
    )
    p_check.add_argument(
        "--no-cache", action="store_true", help="Bypass the search cache",
    )
    p_check.add_argument(
        "--json", dest="as_json", action="store_true", help="Print the full result as JSON",
    )
    p_check.set_defaults(func=_cmd_check)

    # --- cache-cleanup ---
    p_cleanup = subparsers.add_parser(
        "cache-cleanup", help="Purge expired search-cache entries",
    )
    p_cleanup.set_defaults(func=_cmd_cache_cleanup)

    # --- cache-invalidate ---
    p_invalidate = subparsers.add_parser(
        "cache-invalidate", help="Delete one cache entry by fingerprint",
    )
    p_invalidate.add_argument("fingerprint", help="Entry fingerprint (sha256 hex)")
    p_invalidate.set_defaults(func=_cmd_cache_invalidate)

    # --- cache-stats ---
    p_stats = subparsers.add_parser(
        "cache-stats", help="Show search-cache statistics",
    )
    p_stats.set_defaults(func=_cmd_cache_stats)

    return parser


async def _cmd_check(args: argparse.Namespace, settings) -> int:
    """Execute one novelty check and print the aggregate verdict."""
    from noveltyscope.agents.registry import create_agents
    from noveltyscope.api.facade import run_novelty_check
    from noveltyscope.core.models import NoveltyCheckRequest

    request = NoveltyCheckRequest(
        invention_name=args.name,
        description=args.description,
        problem_statement=args.problem,
        target_audience=args.audience,
        key_features=args.features,
    )
    names = [a.strip() for a in args.agents.split(",") if a.strip()] if args.agents else None

    cache_store = None
    if settings.cache_enabled and not args.no_cache:
        from noveltyscope.cache.cache_factory import create_cache_store
        cache_store = create_cache_store(settings)

    try:
        agents = create_agents(settings, names=names, cache_store=cache_store)
        result = await run_novelty_check(request, settings=settings, agents=agents)
    finally:
        if cache_store is not None:
            cache_store.close()

    if args.as_json:
        print(result.model_dump_json(indent=2))
    else:
        _print_result_summary(result)
    return 0


async def _cmd_cache_cleanup(args: argparse.Namespace, settings) -> int:
    """Purge expired entries and print how many were removed."""
    from noveltyscope.cache.maintenance import cleanup_expired_cache

    removed = await cleanup_expired_cache(settings=settings)
    print(f"Removed {removed} expired cache entries")
    return 0


async def _cmd_cache_invalidate(args: argparse.Namespace, settings) -> int:
    """Delete one entry by fingerprint (no-op when absent)."""
    from noveltyscope.cache.access import SERVICE_PRINCIPAL
    from noveltyscope.cache.cache_factory import create_cache_store

    store = create_cache_store(settings)
    try:
        existed = await store.get_by_fingerprint(args.fingerprint) is not None
        await store.invalidate(args.fingerprint, principal=SERVICE_PRINCIPAL)
    finally:
        store.close()

    print(f"{'Invalidated' if existed else 'No entry for'} {args.fingerprint}")
    return 0


async def _cmd_cache_stats(args: argparse.Namespace, settings) -> int:
    """Display entry counts per partition."""
    from noveltyscope.cache.cache_factory import create_cache_store

    store = create_cache_store(settings)
    try:
        stats = await store.stats()
    finally:
        store.close()

    print(f"\nSearch cache ({settings.cache_backend}):")
    print(f"  Total entries:    {stats.total}")
    for search_type in ("patent", "web", "retail"):
        print(f"  {search_type + ':':<17} {stats.by_search_type.get(search_type, 0)}")
    print(f"  Expired (unswept): {stats.expired_pending}")
    return 0


def _print_result_summary(result: object) -> None:
    """Print a human-readable summary of AggregateNoveltyResult."""
    verdict = "NOVEL" if result.is_novel else "NOT NOVEL"
    print(f"\nNovelty check complete:")
    print(f"  Verdict:     {verdict}")
    print(f"  Confidence:  {result.confidence:.0%}")
    for summary in result.agent_summaries:
        status = "novel" if summary.is_novel else "not novel"
        line = f"  [{summary.agent_type}] {status}, confidence {summary.confidence:.0%}"
        if summary.degraded_reason:
            line += f" ({summary.degraded_reason})"
        print(line)
        preview = summary.summary[:200]
        if len(summary.summary) > 200:
            preview += "..."
        print(f"      {preview}")
    if result.findings:
        print(f"  Top findings:")
        for finding in result.findings[:5]:
            print(
                f"    {finding.similarity_score:.2f}  {finding.title} "
                f"({finding.source})"
            )


if __name__ == "__main__":
    sys.exit(main())
