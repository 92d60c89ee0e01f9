"""Admin CLI for FIREWATCH - serving, one-off refreshes and snapshot inspection.

Usage:
    python -m firewatch.admin serve [--host 0.0.0.0] [--port 3000]
    python -m firewatch.admin refresh [--domain fires --domain tally]
    python -m firewatch.admin inspect --domain fires
"""

import argparse
import asyncio
import logging
import sys

from firewatch.config import settings
from firewatch.models.enums import Domain

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
logger = logging.getLogger("firewatch.admin")


def serve(args):
    """Run the HTTP service."""
    import uvicorn

    uvicorn.run(
        "firewatch.main:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        log_level="debug" if settings.debug else "info",
    )


async def _refresh(domains):
    from firewatch.pipelines.runner import build_refreshers, refresh_all
    from firewatch.services.cache import CacheManager
    from firewatch.services.fetcher import UpstreamFetcher
    from firewatch.services.storage import SnapshotStore

    fetcher = UpstreamFetcher(
        timeout=settings.fetch_timeout_seconds,
        max_concurrent=settings.max_concurrent_fetches,
    )
    try:
        cache = CacheManager(
            build_refreshers(fetcher, settings),
            SnapshotStore(settings.public_root),
            ttl_seconds=settings.cache_ttl_seconds,
        )
        return await refresh_all(cache, domains)
    finally:
        await fetcher.close()


def refresh(args):
    """Refresh domains once and write their snapshots."""
    domains = [Domain(d) for d in args.domain] if args.domain else None
    summary = asyncio.run(_refresh(domains))
    for name, ok in summary.items():
        print(f"  {name:<12} {'ok' if ok else 'FAILED'}")
    if not all(summary.values()):
        sys.exit(1)


def inspect(args):
    """Summarise a persisted snapshot."""
    from firewatch.services.storage import SnapshotStore

    store = SnapshotStore(settings.public_root)
    domain = Domain(args.domain)
    try:
        value = store.read(domain)
    except (OSError, ValueError) as e:
        print(f"No usable snapshot at {store.path_for(domain)}: {e}")
        sys.exit(1)

    print(f"Snapshot: {store.path_for(domain)}")
    if domain.is_feature_collection:
        print(f"  Features: {len(value.get('features', []))}")
    else:
        for year, series in value.items():
            last = series["acres"][-1] if series["acres"] else 0
            print(f"  {year:<20} {len(series['dates']):>4} days, {last:>14,.2f} acres")


def main():
    parser = argparse.ArgumentParser(description="FIREWATCH Admin CLI")
    sub = parser.add_subparsers(dest="command")
    domains = [d.value for d in Domain]

    # serve
    p_serve = sub.add_parser("serve", help="Run the HTTP service")
    p_serve.add_argument("--host", type=str, help="Bind address (default: from config)")
    p_serve.add_argument("--port", type=int, help="Listening port (default: from config)")

    # refresh
    p_refresh = sub.add_parser("refresh", help="Refresh domains once and write snapshots")
    p_refresh.add_argument(
        "--domain", action="append", choices=domains, help="Domain to refresh (repeatable)"
    )

    # inspect
    p_inspect = sub.add_parser("inspect", help="Summarise a persisted snapshot")
    p_inspect.add_argument("--domain", required=True, choices=domains)

    args = parser.parse_args()

    if args.command == "serve":
        serve(args)
    elif args.command == "refresh":
        refresh(args)
    elif args.command == "inspect":
        inspect(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
