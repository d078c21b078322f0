"""
Cache router.

Serves intercepted requests from persistent stores, the network, or both,
depending on the strategy the classifier picks, and keeps the stores
populated with fresh successful responses.
"""

import asyncio
from typing import TYPE_CHECKING, Any, Optional, Sequence

import structlog

from swcache.core.classifier import RequestClassifier
from swcache.core.exceptions import InstallError, NetworkError, SwCacheError
from swcache.core.lifecycle import Lifecycle, LifecycleState, PhaseEvent
from swcache.core.messages import MessagePort, MessageType, version_response
from swcache.core.models import Request, Response, RouterConfig, Strategy
from swcache.network.base import Fetcher

if TYPE_CHECKING:
    from swcache.cache.sqlite import CacheStorage
    from swcache.core.registration import Registration

logger = structlog.get_logger(__name__)


class CacheRouter:
    """Version-scoped request router with cache-first, network-first and
    network-only strategies.

    A router is driven through its lifecycle by a
    :class:`~swcache.core.registration.Registration`: it is installed
    (static manifest pre-cached), waits, is activated (stale stores deleted,
    clients claimed) and finally handles fetches until a newer version
    replaces it.
    """

    def __init__(
        self,
        config: RouterConfig,
        storage: "CacheStorage",
        fetcher: Fetcher,
    ):
        """Initialize the router.

        Args:
            config: Version-scoped configuration.
            storage: Storage holding the named stores.
            fetcher: Fetcher used to reach the network.
        """
        self.config = config
        self.storage = storage
        self.fetcher = fetcher
        self.classifier = RequestClassifier(config)
        self.lifecycle = Lifecycle(config.version)
        self.registration: Optional["Registration"] = None
        self.skip_waiting_requested = False
        self.install_event: Optional[PhaseEvent] = None
        self.activate_event: Optional[PhaseEvent] = None
        self._pending_writes: set[asyncio.Task] = set()

    def __repr__(self) -> str:
        return f"CacheRouter(version={self.version!r}, state={self.state})"

    @property
    def version(self) -> str:
        return self.config.version

    @property
    def state(self) -> LifecycleState:
        return self.lifecycle.state

    @property
    def pending_writes(self) -> int:
        """Number of background cache writes still in flight."""
        return len(self._pending_writes)

    # -- lifecycle ------------------------------------------------------------

    async def install(self) -> None:
        """Pre-cache the static manifest into the static store.

        The manifest is all-or-nothing: if any entry cannot be fetched or
        answers with a non-OK status nothing is stored and the router
        becomes redundant.

        Raises:
            InstallError: If the manifest could not be cached.
        """
        self.lifecycle.transition(LifecycleState.INSTALLING)
        logger.info("installing", version=self.version)

        self.install_event = PhaseEvent("install")
        self.install_event.wait_until(self._precache())

        try:
            await self.install_event.settle()
        except SwCacheError as e:
            self.lifecycle.transition(LifecycleState.REDUNDANT)
            logger.error("install_failed", version=self.version, error=str(e))
            if isinstance(e, InstallError):
                raise
            raise InstallError(self.version, str(e)) from e

        self.lifecycle.transition(LifecycleState.WAITING)
        if self.config.skip_waiting_on_install:
            self.skip_waiting_requested = True

    async def _precache(self) -> int:
        requests = [Request.get(self.config.absolute_url(path)) for path in self.config.manifest]

        try:
            responses = await asyncio.gather(*(self.fetcher.fetch(r) for r in requests))
        except NetworkError as e:
            raise InstallError(self.version, str(e)) from e

        for request, response in zip(requests, responses):
            if not response.ok:
                raise InstallError(
                    self.version,
                    f"{request.url} answered with status {response.status}",
                )

        logger.info("caching_static_assets", store=self.config.static_store, count=len(requests))
        await asyncio.to_thread(
            self.storage.put_all,
            self.config.static_store,
            list(zip(requests, responses)),
        )
        return len(requests)

    async def activate(self) -> None:
        """Delete stores from other versions and claim all clients.

        Raises:
            LifecycleError: If the router is not waiting.
            CacheError: If a stale store could not be deleted.
        """
        self.lifecycle.transition(LifecycleState.ACTIVATING)
        logger.info("activating", version=self.version)

        self.activate_event = PhaseEvent("activate")
        self.activate_event.wait_until(self._activate())

        try:
            await self.activate_event.settle()
        except SwCacheError:
            self.lifecycle.transition(LifecycleState.REDUNDANT)
            raise

        self.lifecycle.transition(LifecycleState.ACTIVE)

    async def _activate(self) -> list[str]:
        deleted = await self.delete_stale_stores()
        if self.registration is not None:
            self.registration.clients.claim(self)
        return deleted

    async def delete_stale_stores(self) -> list[str]:
        """Delete every store not owned by this version.

        Returns:
            Names of the deleted stores.
        """
        stale = await asyncio.to_thread(self.storage.prune, self.config.current_stores)
        for name in stale:
            logger.info("deleted_old_cache", store=name, version=self.version)
        return stale

    async def skip_waiting(self) -> None:
        """Ask to be activated without waiting for the current version to go."""
        self.skip_waiting_requested = True
        if self.registration is not None and self.state is LifecycleState.WAITING:
            await self.registration.promote(self)

    def retire(self) -> None:
        """Mark the router redundant after a newer version took over."""
        self.lifecycle.transition(LifecycleState.REDUNDANT)
        logger.info("retired", version=self.version)

    # -- fetch ----------------------------------------------------------------

    async def handle_fetch(self, request: Request) -> Optional[Response]:
        """Serve an intercepted request.

        Args:
            request: The request issued by a page.

        Returns:
            The response, or None if the router does not intercept the
            request and it should go to the network untouched.

        Raises:
            LifecycleError: If the router is not active.
            NetworkError: If the network failed and no cached entry exists.
        """
        self.lifecycle.require(LifecycleState.ACTIVE)

        strategy = self.classifier.classify(request)
        if strategy is None:
            logger.debug("not_intercepted", key=request.key)
            return None

        logger.debug("routing", key=request.key, strategy=str(strategy))

        if strategy is Strategy.CACHE_FIRST:
            return await self.cache_first(request, self.config.static_store)
        if strategy is Strategy.NETWORK_ONLY:
            return await self.network_only(request)
        return await self.network_first(request, self.config.dynamic_store)

    async def cache_first(self, request: Request, store: str) -> Response:
        """Serve from cache, falling back to the network on a miss."""
        cached = await asyncio.to_thread(self.storage.match, request)
        if cached is not None:
            return cached

        response = await self.fetcher.fetch(request)
        if response.cacheable:
            self._put_in_background(store, request, response.clone())
        return response

    async def network_first(self, request: Request, store: str) -> Response:
        """Serve from the network, falling back to cache when it fails."""
        try:
            response = await self.fetcher.fetch(request)
        except NetworkError as e:
            cached = await asyncio.to_thread(self.storage.match, request)
            if cached is None:
                raise
            logger.info("network_failed_serving_cache", key=request.key, error=str(e))
            return cached

        if response.cacheable:
            self._put_in_background(store, request, response.clone())
        return response

    async def network_only(self, request: Request) -> Response:
        return await self.fetcher.fetch(request)

    def _put_in_background(self, store: str, request: Request, response: Response) -> None:
        # A fetch that outlived this router must not recreate a pruned store
        if self.state is not LifecycleState.ACTIVE:
            logger.info("cache_write_dropped", key=request.key, store=store, state=str(self.state))
            return

        task =asyncio.create_task(asyncio.to_thread(self.storage.put, store, request, response))
        self._pending_writes.add(task)
        task.add_done_callback(self._on_write_done)

    def _on_write_done(self, task: asyncio.Task) -> None:
        self._pending_writes.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning("cache_write_failed", version=self.version, error=str(error))

    async def drain(self) -> None:
        """Wait for in-flight background cache writes to finish."""
        while self._pending_writes:
            await asyncio.gather(*list(self._pending_writes), return_exceptions=True)

    # -- messages -------------------------------------------------------------

    async def handle_message(
        self,
        data: Any,
        ports: Sequence[MessagePort] = (),
    ) -> None:
        """Handle a control message from a page.

        SKIP_WAITING requests immediate activation; GET_VERSION replies on
        the first port with the version tag. Anything else is ignored.
        """
        message_type = MessageType.of(data)

        if message_type is MessageType.SKIP_WAITING:
            await self.skip_waiting()
        elif message_type is MessageType.GET_VERSION:
            if not ports:
                logger.warning("version_query_without_port", version=self.version)
                return
            ports[0].post_message(version_response(self.version))
        else:
            logger.debug("message_ignored", data=repr(data))
