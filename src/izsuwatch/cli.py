"""Command line interface.

Usage:
    izsuwatch fetch             # Fetch every endpoint (cache first)
    izsuwatch fetch --force     # Ignore the cache
    izsuwatch status            # Show cache status
    izsuwatch clear-cache       # Drop cached payloads (settings are kept)
    izsuwatch settings --ttl-hours 6
    izsuwatch collect           # Append today's dam levels to data/history.json
"""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from izsuwatch.cache import CacheStats, CacheStore, DuckDBStorage, Settings
from izsuwatch.collector import CollectionError, HistoryCollector
from izsuwatch.config import ServiceConfig
from izsuwatch.service import AggregateResult, DataService
from izsuwatch.utils.io import get_data_path

logger = logging.getLogger(__name__)


def open_cache(config: ServiceConfig) -> CacheStore:
    """Persistent cache at the configured path, ``data/cache.duckdb`` by default."""
    return CacheStore(DuckDBStorage(config.cache_db_path or get_data_path("cache")))


def _format_ms(ms: Optional[int]) -> str:
    if ms is None:
        return "N/A"
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _describe(data) -> str:
    if isinstance(data, list):
        return f"{len(data)} records"
    if isinstance(data, dict):
        return f"{len(data)} fields"
    return "no data"


def print_fetch_result(result: AggregateResult) -> None:
    """Print per-endpoint fetch outcome."""
    print()
    print("=" * 60)
    print("IZSU Data Fetch")
    print("=" * 60)
    for endpoint, item in result.results.items():
        if item.ok:
            print(f"  {endpoint.value:<25} OK      {item.source:<10} {_describe(item.data)}")
        else:
            print(f"  {endpoint.value:<25} FAILED  {item.error}")
    print("-" * 60)
    print(str(result))
    print("=" * 60)


def print_status(stats: CacheStats, last_update: Optional[datetime], needs_refresh: bool) -> None:
    """Print cache status in human-readable format."""
    print()
    print("=" * 60)
    print("IZSU Cache Status")
    print("=" * 60)
    print(f"Entries: {stats.entry_count}")
    print(f"Total size: {stats.total_size_kb} KB")
    print(f"Oldest entry: {_format_ms(stats.oldest_timestamp)}")
    print(f"Newest entry: {_format_ms(stats.newest_timestamp)}")
    print(f"TTL: {stats.ttl_hours}h")
    print(f"Last update: {last_update.isoformat() if last_update else 'never'}")
    print(f"Needs refresh: {'yes' if needs_refresh else 'no'}")
    print("=" * 60)


async def _fetch(config: ServiceConfig, cache: CacheStore, force: bool) -> AggregateResult:
    async with DataService.from_config(config, cache=cache) as service:
        return await service.fetch_all(force_refresh=force)


def cmd_fetch(args, config: ServiceConfig) -> int:
    cache = open_cache(config)
    try:
        result = asyncio.run(_fetch(config, cache, args.force))
    finally:
        cache.close()
    print_fetch_result(result)
    return 0 if result.ok else 1


def cmd_status(args, config: ServiceConfig) -> int:
    cache = open_cache(config)
    try:
        service = DataService(cache=cache)
        print_status(cache.get_stats(), service.get_last_update_time(), service.needs_refresh())
    finally:
        cache.close()
    return 0


def cmd_clear_cache(args, config: ServiceConfig) -> int:
    cache = open_cache(config)
    try:
        cache.clear_all()
    finally:
        cache.close()
    print("Cache cleared")
    return 0


def cmd_settings(args, config: ServiceConfig) -> int:
    updates = {}
    if args.ttl_hours is not None:
        updates["cache_duration_hours"] = args.ttl_hours
    if args.theme is not None:
        updates["theme"] = args.theme
    if args.accent is not None:
        updates["accent_color"] = args.accent

    cache = open_cache(config)
    try:
        settings = cache.get_settings()
        if updates:
            settings = Settings.model_validate({**settings.model_dump(), **updates})
            cache.save_settings(settings)
    finally:
        cache.close()

    print(f"Cache duration: {settings.cache_duration_hours}h")
    print(f"Theme: {settings.theme}")
    print(f"Accent color: {settings.accent_color}")
    return 0


def cmd_collect(args, config: ServiceConfig) -> int:
    collector = HistoryCollector(
        base_url=config.primary_base_url,
        history_path=args.history,
        verify_ssl=not args.insecure,
    )
    try:
        entry = collector.collect()
    except CollectionError as e:
        logger.error(f"Data collection failed: {e}")
        return 1
    print(
        f"Collected {entry.date}: {len(entry.dams)} dams, "
        f"average fill {entry.summary.average_fill_rate_percent}%"
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="izsuwatch",
        description="Fetch and cache Izmir water authority open data",
        epilog="""
Examples:
  izsuwatch fetch --force
  izsuwatch settings --ttl-hours 6 --theme light

Cron setup (collect history daily at 00:05):
  5 0 * * * cd /path/to/izsuwatch && izsuwatch collect >> /var/log/izsuwatch-collect.log 2>&1
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Suppress output except errors",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    fetch = commands.add_parser("fetch", help="Fetch every endpoint")
    fetch.add_argument("--force", action="store_true", help="Ignore cached data")
    fetch.set_defaults(handler=cmd_fetch)

    status = commands.add_parser("status", help="Show cache status")
    status.set_defaults(handler=cmd_status)

    clear = commands.add_parser("clear-cache", help="Remove cached payloads")
    clear.set_defaults(handler=cmd_clear_cache)

    settings = commands.add_parser("settings", help="Show or change settings")
    settings.add_argument("--ttl-hours", type=int, default=None, help="Cache duration in hours")
    settings.add_argument("--theme", default=None, help="UI theme")
    settings.add_argument("--accent", default=None, help="UI accent color")
    settings.set_defaults(handler=cmd_settings)

    collect = commands.add_parser("collect", help="Append today's dam levels to the history ledger")
    collect.add_argument(
        "--history",
        type=Path,
        default=None,
        help=f"History ledger path (default: {get_data_path('history')})",
    )
    collect.add_argument(
        "--insecure",
        action="store_true",
        help="Skip TLS certificate verification",
    )
    collect.set_defaults(handler=cmd_collect)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    if args.quiet:
        level = logging.ERROR
    elif args.verbose:
        level = logging.DEBUG
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    config = ServiceConfig.from_env()
    try:
        return args.handler(args, config)
    except ValueError as e:
        logger.error(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
