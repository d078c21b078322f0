"""
Abstract base class for network fetchers.

Defines the interface the cache router uses to reach the origin.
"""

from abc import ABC, abstractmethod
from typing import Any

import aiohttp

from swcache import __version__
from swcache.core.models import Request, Response
from swcache.core.validation import MAX_RESPONSE_SIZE, validate_response_size


class Fetcher(ABC):
    """Abstract base class for network fetchers.

    All fetchers share session management and response size checks.
    Concrete fetchers implement :meth:`fetch`.
    """

    # Maximum response size (10 MB) - can be overridden by subclasses
    MAX_RESPONSE_SIZE = MAX_RESPONSE_SIZE

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        timeout: float | None = None,
    ):
        """Initialize the fetcher.

        Args:
            session: Optional aiohttp session. If not provided, one will
                     be created when needed.
            timeout: Total request timeout in seconds. None (the default)
                     leaves requests unbounded.
        """
        self._session = session
        self._owns_session = session is None
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the session if we own it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "Fetcher":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()

    @abstractmethod
    async def fetch(self, request: Request) -> Response:
        """Perform a request against the network.

        Args:
            request: The request to send.

        Returns:
            The buffered response, whatever its status.

        Raises:
            NetworkError: If no response could be obtained.
        """
        pass

    def _build_headers(self, request: Request) -> dict[str, str]:
        """Build request headers.

        Request headers take precedence over the defaults.
        """
        headers = {"User-Agent": f"swcache/{__version__}"}
        headers.update(request.headers)
        return headers

    def _check_response_size(self, headers: Any) -> None:
        """Check if the announced response size is within limits.

        Raises:
            ValidationError: If the response is too large.
        """
        content_length = headers.get("Content-Length")
        if content_length is not None:
            try:
                size = int(content_length)
            except ValueError:
                return  # Malformed Content-Length, the body read decides
            validate_response_size(size, self.MAX_RESPONSE_SIZE)
