"""
High-level programmatic API for swcache.

This module provides simple, async-friendly functions for common operations.
For more control, use CacheRouter and Registration directly.

Example:
    import asyncio
    from swcache import fetch

    async def main():
        results = await fetch("https://app.example.com", ["/", "/logo.png"])
        for r in results:
            print(r.path, r.strategy, r.source)

    asyncio.run(main())
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Optional

from swcache.cache.sqlite import CacheStorage
from swcache.core.classifier import RequestClassifier
from swcache.core.exceptions import NetworkError
from swcache.core.models import (
    DEFAULT_VERSION,
    Request,
    Response,
    ResponseSource,
    RouterConfig,
    Strategy,
)
from swcache.core.registration import Registration
from swcache.core.router import CacheRouter
from swcache.network.base import Fetcher
from swcache.network.http import HttpFetcher
from swcache.versioning import get_worker_version


@dataclass
class FetchResult:
    """Outcome of one request routed through a registration."""

    path: str
    strategy: Optional[Strategy]
    response: Optional[Response] = None
    error: Optional[NetworkError] = None

    @property
    def source(self) -> Optional[ResponseSource]:
        return self.response.source if self.response else None


@asynccontextmanager
async def open_registration(
    origin: str,
    *,
    version: str = DEFAULT_VERSION,
    db_path: Optional[Path] = None,
    fetcher: Optional[Fetcher] = None,
    precache: bool = True,
) -> AsyncIterator[Registration]:
    """Open a registration with an installed and active router.

    Args:
        origin: Origin the router serves, e.g. "https://app.example.com".
        version: Cache version tag.
        db_path: SQLite database path. Defaults to ~/.swcache/cache.db
        fetcher: Fetcher to use. An HttpFetcher is created (and closed)
            when omitted.
        precache: Fetch the static manifest on install.

    Yields:
        The registration. Background cache writes are drained on exit.
    """
    config = RouterConfig(version=version, origin=origin)
    if not precache:
        config = RouterConfig(version=version, origin=origin, manifest=())

    storage = CacheStorage(db_path)
    owns_fetcher = fetcher is None
    fetcher = fetcher or HttpFetcher()

    try:
        registration = Registration(fetcher)
        await registration.register(CacheRouter(config, storage, fetcher))
        try:
            yield registration
        finally:
            await registration.drain()
    finally:
        if owns_fetcher:
            await fetcher.close()


async def fetch(
    origin: str,
    paths: list[str],
    *,
    version: str = DEFAULT_VERSION,
    db_path: Optional[Path] = None,
    fetcher: Optional[Fetcher] = None,
    precache: bool = True,
) -> list[FetchResult]:
    """Route paths through a cache router.

    Network failures are captured per path rather than raised.

    Example:
        >>> import asyncio
        >>> from swcache import fetch
        >>> results = asyncio.run(fetch("https://app.example.com", ["/profile"]))
        >>> print(results[0].strategy)
        network-first
    """
    results = []
    async with open_registration(
        origin,
        version=version,
        db_path=db_path,
        fetcher=fetcher,
        precache=precache,
    ) as registration:
        router = registration.active
        for path in paths:
            request = Request.get(router.config.absolute_url(path))
            strategy = router.classifier.classify(request)
            try:
                response = await registration.dispatch_fetch(request)
                results.append(FetchResult(path, strategy, response=response))
            except NetworkError as e:
                results.append(FetchResult(path, strategy, error=e))
    return results


def classify(
    paths: list[str],
    config: Optional[RouterConfig] = None,
) -> list[tuple[str, Optional[Strategy]]]:
    """Classify paths without touching the network or the cache.

    Paths may be root-relative or absolute URLs; a path prefixed with a
    method ("POST /form") is classified with that method.

    Example:
        >>> from swcache import classify
        >>> classify(["/logo.png", "/api/users"])
        [('/logo.png', <Strategy.CACHE_FIRST: 'cache-first'>), ('/api/users', None)]
    """
    config = config or RouterConfig()
    classifier = RequestClassifier(config)

    results = []
    for path in paths:
        method, _, target = path.partition(" ") if " " in path else ("GET", "", path)
        request = Request(url=config.absolute_url(target.strip()), method=method)
        results.append((path, classifier.classify(request)))
    return results


async def worker_version(url: str, fetcher: Optional[Fetcher] = None) -> str:
    """Read the cache version declared by a deployed worker script."""
    if fetcher is not None:
        return await get_worker_version(fetcher, url)
    async with HttpFetcher() as http:
        return await get_worker_version(http, url)


def fetch_sync(
    origin: str,
    paths: list[str],
    *,
    version: str = DEFAULT_VERSION,
    db_path: Optional[Path] = None,
    precache: bool = True,
) -> list[FetchResult]:
    """Synchronous wrapper for fetch().

    For use in non-async contexts. Runs a new event loop.
    """
    return asyncio.run(
        fetch(origin, paths, version=version, db_path=db_path, precache=precache)
    )
