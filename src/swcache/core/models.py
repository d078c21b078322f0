"""
Core data models for swcache.

This module defines the requests and responses that flow through the cache
router, the caching strategies it chooses between, and the version-scoped
router configuration.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from urllib.parse import urlsplit

from swcache.core.validation import validate_origin, validate_version_tag

DEFAULT_VERSION = "v1.0.2"


class Strategy(Enum):
    """Caching strategy chosen for an intercepted request."""

    CACHE_FIRST = "cache-first"
    NETWORK_FIRST = "network-first"
    NETWORK_ONLY = "network-only"

    def __str__(self) -> str:
        return self.value


class ResponseSource(Enum):
    """Where a response handed back to the caller came from."""

    NETWORK = "network"
    CACHE = "cache"

    def __str__(self) -> str:
        return self.value


@dataclass
class Request:
    """An outgoing request as seen by the router.

    Only the method, URL and headers are ever consulted.
    """

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.method = self.method.upper()

    def __str__(self) -> str:
        return self.key

    @property
    def key(self) -> str:
        """Cache key: method plus URL."""
        return f"{self.method} {self.url}"

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme

    @classmethod
    def get(cls, url: str, headers: dict[str, str] | None = None) -> "Request":
        """Build a GET request."""
        return cls(url=url, method="GET", headers=dict(headers or {}))


@dataclass
class Response:
    """A fully buffered HTTP response."""

    status: int
    body: bytes = b""
    headers: dict[str, str] = field(default_factory=dict)
    url: str = ""
    source: ResponseSource = ResponseSource.NETWORK

    @property
    def ok(self) -> bool:
        """Return True for 2xx statuses."""
        return 200 <= self.status < 300

    @property
    def cacheable(self) -> bool:
        """Only plain 200 responses are written to a store."""
        return self.status == 200

    def clone(self) -> "Response":
        """Return an independent copy of this response."""
        return replace(self, headers=dict(self.headers))

    def text(self, encoding: str = "utf-8") -> str:
        """Decode the body as text."""
        return self.body.decode(encoding, errors="replace")


@dataclass(frozen=True)
class RouterConfig:
    """Version-scoped configuration for a cache router.

    Store names are derived from the version tag, so bumping the tag makes
    every store of the previous version stale on the next activation.
    """

    version: str = DEFAULT_VERSION
    origin: str = "http://localhost:3000"
    api_prefix: str = "/api/"
    static_marker: str = "/_next/static/"
    chunk_marker: str = "/_next/static/chunks/"
    static_extensions: tuple[str, ...] = (
        "css", "js", "png", "jpg", "jpeg", "svg", "webp", "woff", "woff2",
    )
    extension_schemes: tuple[str, ...] = ("chrome-extension", "moz-extension")
    manifest: tuple[str, ...] = (
        "/",
        "/manifest.json",
        "/Logo.png",
        "/icon-192.png",
        "/icon-512.png",
    )
    skip_waiting_on_install: bool = True
    # Checks the chunk rule before the static rule. Off by default: chunk
    # bundles match the static marker too and have always been cache-first.
    chunks_network_only: bool = False

    def __post_init__(self) -> None:
        validate_version_tag(self.version)
        object.__setattr__(self, "origin", validate_origin(self.origin))

    @property
    def static_store(self) -> str:
        return store_name("static", self.version)

    @property
    def dynamic_store(self) -> str:
        return store_name("dynamic", self.version)

    @property
    def runtime_store(self) -> str:
        return store_name("runtime", self.version)

    @property
    def current_stores(self) -> frozenset[str]:
        """Names of the three stores owned by this version."""
        return frozenset({self.static_store, self.dynamic_store, self.runtime_store})

    def store_for(self, strategy: Strategy) -> str:
        """Return the store a strategy writes to."""
        return {
            Strategy.CACHE_FIRST: self.static_store,
            Strategy.NETWORK_FIRST: self.dynamic_store,
            Strategy.NETWORK_ONLY: self.runtime_store,
        }[strategy]

    def absolute_url(self, path: str) -> str:
        """Resolve a root-relative path against the origin."""
        if "://" in path:
            return path
        if not path.startswith("/"):
            path = "/" + path
        return f"{self.origin}{path}"

    def with_version(self, version: str) -> "RouterConfig":
        """Return a copy of this config for another version tag."""
        return replace(self, version=version)


def store_name(kind: str, version: str) -> str:
    """Build a version-qualified store name, e.g. "static-v1.0.2"."""
    return f"{kind}-{version}"
