"""
Network fetchers used by the cache router to reach the origin.
"""

from swcache.network.base import Fetcher
from swcache.network.http import HttpFetcher

__all__ = [
    "Fetcher",
    "HttpFetcher",
]
