"""
Pytest fixtures and configuration for swcache tests.

Provides a scripted in-memory fetcher, temporary storage and ready-made
routers for unit testing.
"""

from pathlib import Path
from typing import Union

import pytest
import pytest_asyncio

from swcache.cache.sqlite import CacheStorage
from swcache.core.exceptions import NetworkError
from swcache.core.models import Request, Response, RouterConfig
from swcache.core.registration import Registration
from swcache.core.router import CacheRouter
from swcache.network.base import Fetcher

ORIGIN = "https://app.example.com"


# =============================================================================
# Fake Network
# =============================================================================


class ScriptedFetcher(Fetcher):
    """Fetcher that answers from a table of canned responses.

    Routes map an absolute URL to a Response, or to an exception instance
    that is raised instead. Unknown URLs answer 404. Every request is
    recorded in ``calls``.
    """

    def __init__(self) -> None:
        super().__init__()
        self.routes: dict[str, Union[Response, Exception]] = {}
        self.calls: list[Request] = []

    def add(self, path: str, body: bytes = b"", status: int = 200) -> None:
        url = path if "://" in path else ORIGIN + path
        self.routes[url] = Response(status=status, body=body, url=url)

    def fail(self, path: str) -> None:
        url = path if "://" in path else ORIGIN + path
        self.routes[url] = NetworkError(url, details="connection refused")

    def calls_to(self, path: str) -> int:
        url = path if "://" in path else ORIGIN + path
        return sum(1 for r in self.calls if r.url == url)

    async def fetch(self, request: Request) -> Response:
        self.calls.append(request)
        route = self.routes.get(request.url)
        if isinstance(route, Exception):
            raise route
        if route is None:
            return Response(status=404, body=b"not found", url=request.url)
        return route.clone()


def manifest_routes(fetcher: ScriptedFetcher, config: RouterConfig) -> None:
    """Register a 200 response for every manifest entry."""
    for path in config.manifest:
        fetcher.add(path, body=f"asset {path}".encode())


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def config() -> RouterConfig:
    """Router configuration for the test origin."""
    return RouterConfig(version="v1.0.2", origin=ORIGIN)


@pytest.fixture
def tmp_cache_db(tmp_path: Path) -> Path:
    """Create a temporary cache database path."""
    return tmp_path / "test_cache.db"


@pytest.fixture
def storage(tmp_cache_db: Path) -> CacheStorage:
    """Storage backed by a temporary database."""
    return CacheStorage(tmp_cache_db)


@pytest.fixture
def fetcher(config: RouterConfig) -> ScriptedFetcher:
    """Scripted fetcher that already serves the static manifest."""
    fake = ScriptedFetcher()
    manifest_routes(fake, config)
    return fake


@pytest.fixture
def router(config: RouterConfig, storage: CacheStorage, fetcher: ScriptedFetcher) -> CacheRouter:
    """A router that has not been installed yet."""
    return CacheRouter(config, storage, fetcher)


@pytest.fixture
def registration(fetcher: ScriptedFetcher) -> Registration:
    """Empty registration for the test origin."""
    return Registration(fetcher)


@pytest_asyncio.fixture
async def active_router(registration: Registration, router: CacheRouter) -> CacheRouter:
    """A router that went through install and activate."""
    await registration.register(router)
    return router
