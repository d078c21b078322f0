"""
Router registration.

A Registration plays the part the browser plays for a service worker: it
installs new router versions, promotes waiting versions to active, keeps
track of the pages ("clients") a router controls, and dispatches fetches
and control messages.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import structlog

from swcache.core.exceptions import InstallError, SwCacheError
from swcache.core.lifecycle import LifecycleState
from swcache.core.messages import MessagePort
from swcache.core.models import Request, Response
from swcache.core.router import CacheRouter
from swcache.network.base import Fetcher

logger = structlog.get_logger(__name__)


@dataclass(eq=False)
class Client:
    """A page under the registration's scope."""

    id: str
    url: str = "/"
    controller: Optional[CacheRouter] = None


class Clients:
    """The set of pages a registration knows about."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __iter__(self):
        return iter(list(self._clients.values()))

    def add(self, url: str = "/", client_id: Optional[str] = None) -> Client:
        client = Client(id=client_id or uuid.uuid4().hex, url=url)
        self._clients[client.id] = client
        return client

    def get(self, client_id: str) -> Optional[Client]:
        return self._clients.get(client_id)

    def remove(self, client_id: str) -> bool:
        return self._clients.pop(client_id, None) is not None

    def claim(self, router: CacheRouter) -> int:
        """Make ``router`` the controller of every known client.

        Returns:
            Number of clients claimed.
        """
        for client in self._clients.values():
            client.controller = router
        logger.info("clients_claimed", version=router.version, count=len(self._clients))
        return len(self._clients)


class Registration:
    """Holds the installing, waiting and active routers for one scope."""

    def __init__(self, fetcher: Fetcher, scope: str = "/"):
        """Initialize the registration.

        Args:
            fetcher: Fetcher used for requests no router intercepts.
            scope: Path prefix of the requests routed through this
                registration.
        """
        self.fetcher = fetcher
        self.scope = scope
        self.clients = Clients()
        self.installing: Optional[CacheRouter] = None
        self.waiting: Optional[CacheRouter] = None
        self.active: Optional[CacheRouter] = None

    @property
    def update_available(self) -> bool:
        """True when a newer router is installed and waiting."""
        return self.waiting is not None

    async def register(self, router: CacheRouter) -> CacheRouter:
        """Install a router and activate it when nothing holds it back.

        The router is promoted straight away if no router is active yet or
        it asked to skip waiting. Otherwise it waits for a SKIP_WAITING
        message.

        Raises:
            InstallError: If the install failed. The currently active
                router, if any, stays in place.
        """
        router.registration = self
        self.installing = router

        try:
            await router.install()
        except InstallError:
            logger.warning(
                "install_rejected",
                version=router.version,
                active=self.active.version if self.active else None,
            )
            raise
        finally:
            self.installing = None

        if self.waiting is not None:
            self.waiting.retire()
        self.waiting = router
        logger.info("installed", version=router.version)

        if self.active is None or router.skip_waiting_requested:
            await self.promote(router)
        return router

    async def promote(self, router: CacheRouter) -> None:
        """Replace the active router with the waiting one.

        The previous router is drained and retired before the new one
        activates, since activation deletes its stores. ``active`` is only
        set once activation succeeded; if it fails the registration is left
        with no active router and the error propagates.
        """
        if self.waiting is not router:
            return

        previous = self.active
        self.waiting = None
        self.active = None

        if previous is not None:
            await previous.drain()
            previous.retire()

        try:
            await router.activate()
        except SwCacheError:
            logger.error("activation_failed", version=router.version)
            raise

        self.active = router

    async def dispatch_fetch(
        self,
        request: Request,
        client: Optional[Client] = None,
    ) -> Response:
        """Route a request through the controlling router.

        Requests outside the scope, requests the router does not intercept,
        and requests issued while no router is active go straight to the
        network.
        """
        router = client.controller if client is not None else self.active

        if (
            router is not None
            and router.state is LifecycleState.ACTIVE
            and request.path.startswith(self.scope)
        ):
            response = await router.handle_fetch(request)
            if response is not None:
                return response

        return await self.fetcher.fetch(request)

    async def post_message(
        self,
        data: Any,
        ports: Sequence[MessagePort] = (),
        target: str = "active",
    ) -> bool:
        """Deliver a control message to the active or waiting router.

        Returns:
            False if there was no router to deliver to.
        """
        router = self.waiting if target == "waiting" else self.active
        if router is None:
            logger.debug("message_dropped", target=target)
            return False
        await router.handle_message(data, ports)
        return True

    async def drain(self) -> None:
        """Wait for the active router's background writes."""
        if self.active is not None:
            await self.active.drain()
