"""
Main CLI entry point for swcache.

Provides commands for classifying requests, installing a cache version
against an origin, routing fetches through it, checking the deployed
worker version, and managing the local stores.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click

from swcache import __version__
from swcache.cli.output import (
    print_classification,
    print_error,
    print_fetch_results,
    print_info,
    print_stats,
    print_store_entries,
    print_success,
    print_warning,
)
from swcache.core.exceptions import SwCacheError
from swcache.core.models import DEFAULT_VERSION, RouterConfig
from swcache.logging import configure_logging


def run_async(coro):
    """Run an async coroutine to completion."""
    return asyncio.run(coro)


@click.group()
@click.version_option(version=__version__, prog_name="swcache")
@click.option(
    "--db",
    "db_path",
    envvar="SWCACHE_DB",
    type=click.Path(dir_okay=False, path_type=Path),
    help="SQLite database path (default: ~/.swcache/cache.db).",
)
@click.option(
    "--cache-version",
    envvar="SWCACHE_VERSION",
    default=DEFAULT_VERSION,
    show_default=True,
    help="Cache version tag that names the current stores.",
)
@click.option(
    "--log-level",
    envvar="SWCACHE_LOG_LEVEL",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="warning",
    show_default=True,
    help="Logging verbosity.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    db_path: Optional[Path],
    cache_version: str,
    log_level: str,
) -> None:
    """swcache - version-scoped asset cache for web app shells.

    Routes requests cache-first, network-first or network-only based on
    their URL, and keeps responses in named stores that are dropped when a
    new cache version activates.
    """
    configure_logging(log_level)
    ctx.ensure_object(dict)
    ctx.obj["db_path"] = db_path
    ctx.obj["cache_version"] = cache_version


@cli.command()
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--chunks-network-only",
    is_flag=True,
    help="Route compiled chunk bundles network-only instead of cache-first.",
)
@click.pass_context
def classify(ctx: click.Context, paths: tuple[str, ...], chunks_network_only: bool) -> None:
    """Show which strategy each request would be served with.

    PATHS are root-relative paths or absolute URLs, optionally prefixed
    with an HTTP method.

    \b
    Examples:
        swcache classify /logo.png /profile /api/users
        swcache classify "POST /profile"
        swcache classify --chunks-network-only /_next/static/chunks/main.js
    """
    from swcache.api import classify as classify_paths

    try:
        config = RouterConfig(
            version=ctx.obj["cache_version"],
            chunks_network_only=chunks_network_only,
        )
        print_classification(classify_paths(list(paths), config))
    except SwCacheError as e:
        print_error(f"Classification failed: {e}")
        sys.exit(1)


@cli.command()
@click.argument("origin", envvar="SWCACHE_ORIGIN")
@click.pass_context
def install(ctx: click.Context, origin: str) -> None:
    """Install and activate the current cache version for ORIGIN.

    Fetches the static manifest into the static store and deletes stores
    left behind by other versions.

    \b
    Examples:
        swcache install https://app.example.com
        swcache --cache-version v1.0.3 install https://app.example.com
    """
    from swcache.api import open_registration

    async def _install() -> list[str]:
        async with open_registration(
            origin,
            version=ctx.obj["cache_version"],
            db_path=ctx.obj["db_path"],
        ) as registration:
            router = registration.active
            return router.storage.entry_keys(router.config.static_store)

    try:
        keys = run_async(_install())
        print_success(f"Version {ctx.obj['cache_version']} active, {len(keys)} static assets cached.")
    except SwCacheError as e:
        print_error(str(e))
        sys.exit(1)


@cli.command()
@click.argument("origin", envvar="SWCACHE_ORIGIN")
@click.argument("paths", nargs=-1, required=True)
@click.option(
    "--no-precache",
    is_flag=True,
    help="Skip fetching the static manifest before routing.",
)
@click.pass_context
def fetch(ctx: click.Context, origin: str, paths: tuple[str, ...], no_precache: bool) -> None:
    """Route PATHS on ORIGIN through the cache router.

    \b
    Examples:
        swcache fetch https://app.example.com /profile /Logo.png
        swcache fetch --no-precache https://app.example.com /_next/static/css/app.css
    """
    from swcache.api import fetch as fetch_paths

    try:
        results = run_async(
            fetch_paths(
                origin,
                list(paths),
                version=ctx.obj["cache_version"],
                db_path=ctx.obj["db_path"],
                precache=not no_precache,
            )
        )
    except SwCacheError as e:
        print_error(f"Fetch failed: {e}")
        sys.exit(1)

    print_fetch_results(results)
    if any(r.response is None for r in results):
        sys.exit(1)


@cli.command()
@click.argument("url")
@click.option("--record", is_flag=True, help="Record the deployed version as the current app version.")
@click.pass_context
def version(ctx: click.Context, url: str, record: bool) -> None:
    """Check the cache version declared by the worker script at URL.

    Compares it with the app version recorded locally.

    \b
    Examples:
        swcache version https://app.example.com/sw.js
        swcache version --record https://app.example.com/sw.js
    """
    from swcache.cache.sqlite import CacheStorage
    from swcache.network.http import HttpFetcher
    from swcache.versioning import AppVersionStore, check_for_update

    async def _check():
        async with HttpFetcher() as fetcher:
            return await check_for_update(fetcher, url, versions)

    try:
        versions = AppVersionStore(CacheStorage(ctx.obj["db_path"]))
        result = run_async(_check())

        print_info(f"Deployed version: {result.latest}")
        print_info(f"Recorded version: {result.current}")

        if result.update_available:
            print_warning("A new version is available.")
            if record:
                versions.set(result.latest)
                print_success(f"Recorded {result.latest} as the current app version.")
        else:
            print_success("Up to date.")
    except SwCacheError as e:
        print_error(str(e))
        sys.exit(1)


@cli.command()
@click.option("--stats", is_flag=True, help="Show store statistics.")
@click.option("--list", "list_entries", is_flag=True, help="List the entries of every store.")
@click.option("--prune", is_flag=True, help="Delete stores not owned by the current version.")
@click.option("--clear", is_flag=True, help="Delete all stores.")
@click.pass_context
def cache(ctx: click.Context, stats: bool, list_entries: bool, prune: bool, clear: bool) -> None:
    """Manage the local stores.

    Each cache version owns three stores: static-<version> (cache-first
    assets), dynamic-<version> (network-first pages) and runtime-<version>.

    \b
    Examples:
        swcache cache --stats       # Show store statistics
        swcache cache --list        # List cached request keys
        swcache cache --prune       # Drop stores from other versions
        swcache cache --clear       # Drop everything
    """
    from swcache.cache.sqlite import CacheStorage

    try:
        storage = CacheStorage(ctx.obj["db_path"])
        config = RouterConfig(version=ctx.obj["cache_version"])

        if clear:
            count = storage.clear()
            print_success(f"Cache cleared. Removed {count} stores.")
        elif prune:
            removed = storage.prune(config.current_stores)
            print_success(f"Pruned {len(removed)} stale stores.")
        elif list_entries:
            names = storage.keys()
            if not names:
                print_info("No stores.")
            for name in names:
                print_store_entries(name, storage.entry_keys(name))
        elif stats:
            print_stats(storage.stats(), current=set(config.current_stores))
        else:
            click.echo(ctx.get_help())
    except SwCacheError as e:
        print_error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    cli()
