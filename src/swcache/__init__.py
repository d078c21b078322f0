"""
swcache

A version-scoped asset cache for web application shells. Each request is
routed cache-first, network-first or network-only depending on its URL,
responses are kept in named SQLite-backed stores, and stores from older
versions are dropped when a new version activates.

Quick Start:
    >>> import asyncio
    >>> from swcache import fetch
    >>> results = asyncio.run(fetch("https://app.example.com", ["/logo.png"]))
    >>> print(results[0].strategy, results[0].source)
    cache-first network

    # Or classify without touching the network:
    >>> from swcache import classify
    >>> classify(["/_next/static/css/app.css", "/profile"])
"""

__version__ = "0.1.0"

# High-level API (recommended for most users)
from swcache.api import (
    FetchResult,
    classify,
    fetch,
    fetch_sync,
    open_registration,
    worker_version,
)

# Storage
from swcache.cache.sqlite import CacheStorage, CacheStore

# Exceptions
from swcache.core.exceptions import (
    CacheError,
    InstallError,
    LifecycleError,
    NetworkError,
    SwCacheError,
    ValidationError,
)
from swcache.core.lifecycle import LifecycleState

# Data models
from swcache.core.messages import MessagePort, MessageType
from swcache.core.models import (
    Request,
    Response,
    ResponseSource,
    RouterConfig,
    Strategy,
)

# Core components (for advanced usage)
from swcache.core.registration import Registration
from swcache.core.router import CacheRouter
from swcache.network import Fetcher, HttpFetcher

__all__ = [
    # Version
    "__version__",
    # High-level API
    "FetchResult",
    "classify",
    "fetch",
    "fetch_sync",
    "open_registration",
    "worker_version",
    # Models
    "LifecycleState",
    "MessagePort",
    "MessageType",
    "Request",
    "Response",
    "ResponseSource",
    "RouterConfig",
    "Strategy",
    # Core
    "CacheRouter",
    "CacheStorage",
    "CacheStore",
    "Fetcher",
    "HttpFetcher",
    "Registration",
    # Exceptions
    "SwCacheError",
    "CacheError",
    "InstallError",
    "LifecycleError",
    "NetworkError",
    "ValidationError",
]
