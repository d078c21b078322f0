"""
Cache module for storing responses in named, version-scoped stores.

Provides SQLite-based persistence for the cache router.
"""

from swcache.cache.sqlite import CacheStorage, CacheStore

__all__ = ["CacheStorage", "CacheStore"]
