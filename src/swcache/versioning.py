"""
Version discovery for deployed routers.

The deployed worker script declares its cache version as a literal
``const CACHE_VERSION = '...'`` line. Clients read it back by fetching the
script and matching that line, then compare it with the version they last
recorded to decide whether an update is available.
"""

import re
from dataclasses import dataclass
from typing import Optional

import structlog

from swcache.cache.sqlite import CacheStorage
from swcache.core.exceptions import NetworkError
from swcache.core.models import Request
from swcache.network.base import Fetcher

logger = structlog.get_logger(__name__)

_WORKER_VERSION_PATTERN = re.compile(r"const CACHE_VERSION = '([^']+)'")

FALLBACK_WORKER_VERSION = "v1.0.1"
DEFAULT_APP_VERSION = "v1.0.0"
APP_VERSION_KEY = "app-version"


def parse_worker_version(source: str) -> Optional[str]:
    """Extract the cache version declared in worker source text.

    Args:
        source: Worker script source.

    Returns:
        The version tag, or None if the declaration is missing.
    """
    match = _WORKER_VERSION_PATTERN.search(source)
    return match.group(1) if match else None


async def get_worker_version(
    fetcher: Fetcher,
    url: str,
    fallback: str = FALLBACK_WORKER_VERSION,
) -> str:
    """Fetch a worker script and read its cache version.

    Args:
        fetcher: Fetcher used to download the script.
        url: Absolute URL of the worker script.
        fallback: Version returned when the script is unreachable or does
            not declare a version.

    Returns:
        The declared version, or ``fallback``.
    """
    try:
        response = await fetcher.fetch(Request.get(url))
    except NetworkError as e:
        logger.error("worker_version_fetch_failed", url=url, error=str(e))
        return fallback

    if not response.ok:
        logger.error("worker_version_fetch_failed", url=url, status=response.status)
        return fallback

    version = parse_worker_version(response.text())
    if version is None:
        logger.warning("worker_version_missing", url=url)
        return fallback
    return version


class AppVersionStore:
    """Persists the version the client last ran with."""

    def __init__(self, storage: CacheStorage, default: str = DEFAULT_APP_VERSION):
        self.storage = storage
        self.default = default

    def get(self) -> str:
        return self.storage.get_meta(APP_VERSION_KEY) or self.default

    def set(self, version: str) -> None:
        self.storage.set_meta(APP_VERSION_KEY, version)


@dataclass
class UpdateCheck:
    """Outcome of comparing the deployed version with the recorded one."""

    current: str
    latest: str

    @property
    def update_available(self) -> bool:
        return self.current != self.latest


async def check_for_update(
    fetcher: Fetcher,
    url: str,
    versions: AppVersionStore,
) -> UpdateCheck:
    """Compare the deployed worker version with the recorded app version."""
    latest = await get_worker_version(fetcher, url)
    return UpdateCheck(current=versions.get(), latest=latest)
