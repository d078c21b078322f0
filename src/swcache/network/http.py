"""
aiohttp-backed fetcher.

Sends requests to the origin and buffers the whole body so responses can
be cloned and written to a cache store.
"""

import asyncio

import aiohttp

from swcache.core.exceptions import NetworkError, ValidationError
from swcache.core.models import Request, Response, ResponseSource
from swcache.network.base import Fetcher


class HttpFetcher(Fetcher):
    """Async HTTP fetcher built on aiohttp."""

    async def fetch(self, request: Request) -> Response:
        """Send a request and buffer its response.

        Non-2xx responses are returned, not raised: only the absence of a
        response counts as a network failure.

        Raises:
            NetworkError: On connection errors or oversized responses.
        """
        try:
            async with self.session.request(
                request.method,
                request.url,
                headers=self._build_headers(request),
            ) as resp:
                self._check_response_size(resp.headers)
                body = await resp.read()
                if len(body) > self.MAX_RESPONSE_SIZE:
                    raise NetworkError(request.url, resp.status, "Response body too large")

                return Response(
                    status=resp.status,
                    body=body,
                    headers={k: v for k, v in resp.headers.items()},
                    url=str(resp.url),
                    source=ResponseSource.NETWORK,
                )

        except ValidationError as e:
            raise NetworkError(request.url, details=str(e))
        except aiohttp.ClientError as e:
            raise NetworkError(request.url, details=str(e))
        except asyncio.TimeoutError:
            raise NetworkError(request.url, details="Request timed out")
