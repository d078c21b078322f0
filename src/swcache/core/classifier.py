"""
Request classification.

Decides, per request, whether the router intercepts it at all and which
caching strategy serves it.
"""

import re
from typing import Optional

from swcache.core.models import Request, RouterConfig, Strategy


class RequestClassifier:
    """Map requests to caching strategies based on method and URL shape.

    Rules, evaluated in order:

    1. Non-GET requests are not intercepted.
    2. Paths under the API prefix are not intercepted.
    3. Browser-extension schemes are not intercepted.
    4. Static marker or static file extension -> cache-first.
    5. Chunk marker -> network-only.
    6. Everything else -> network-first.

    Rule 5 is only reachable with ``RouterConfig.chunks_network_only``, since
    every chunk path also contains the static marker.
    """

    def __init__(self, config: RouterConfig):
        self.config = config
        extensions = "|".join(re.escape(ext) for ext in config.static_extensions)
        self._extension_pattern = re.compile(rf"\.({extensions})$")

    def intercepts(self, request: Request) -> bool:
        """Return True if the router should handle this request."""
        if request.method != "GET":
            return False
        if request.path.startswith(self.config.api_prefix):
            return False
        if request.scheme in self.config.extension_schemes:
            return False
        return True

    def classify(self, request: Request) -> Optional[Strategy]:
        """Classify a request.

        Args:
            request: The intercepted request.

        Returns:
            The strategy to apply, or None if the request falls through to
            the network untouched.
        """
        if not self.intercepts(request):
            return None

        path = request.path

        if self.config.chunks_network_only and self._is_chunk(path):
            return Strategy.NETWORK_ONLY

        if self._is_static(path):
            return Strategy.CACHE_FIRST

        if self._is_chunk(path):
            return Strategy.NETWORK_ONLY

        return Strategy.NETWORK_FIRST

    def _is_static(self, path: str) -> bool:
        return self.config.static_marker in path or bool(self._extension_pattern.search(path))

    def _is_chunk(self, path: str) -> bool:
        return self.config.chunk_marker in path
