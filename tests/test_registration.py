"""
Tests for router registration and version upgrades.
"""

import asyncio

import pytest

from swcache.core.exceptions import CacheError, InstallError, NetworkError
from swcache.core.lifecycle import LifecycleState
from swcache.core.messages import MessagePort
from swcache.core.models import Request, Response, ResponseSource, RouterConfig
from swcache.core.registration import Registration
from swcache.core.router import CacheRouter

from conftest import ORIGIN, ScriptedFetcher, manifest_routes


def get(path: str) -> Request:
    return Request.get(ORIGIN + path)


class HeldFetcher(ScriptedFetcher):
    """Scripted fetcher that holds one URL until released."""

    def __init__(self, held_path: str) -> None:
        super().__init__()
        self.held_url = ORIGIN + held_path
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def fetch(self, request: Request) -> Response:
        if request.url == self.held_url:
            self.started.set()
            await self.release.wait()
        return await super().fetch(request)


class TestRegister:
    """Tests for the first registration."""

    @pytest.mark.asyncio
    async def test_first_router_becomes_active(self, registration, router):
        """Test that the first router is installed and activated."""
        await registration.register(router)

        assert registration.active is router
        assert registration.waiting is None
        assert registration.installing is None
        assert router.state is LifecycleState.ACTIVE
        assert router.activate_event.done

    @pytest.mark.asyncio
    async def test_claims_existing_clients(self, registration, router):
        """Test that activation takes control of open pages."""
        pages = [registration.clients.add("/"), registration.clients.add("/profile")]

        await registration.register(router)

        assert all(page.controller is router for page in pages)

    @pytest.mark.asyncio
    async def test_failed_first_install(self, registration, router, fetcher):
        """Test that a failed install leaves nothing active."""
        fetcher.fail("/manifest.json")

        with pytest.raises(InstallError):
            await registration.register(router)

        assert registration.active is None
        assert registration.installing is None
        assert router.state is LifecycleState.REDUNDANT


class TestUpgrade:
    """Tests for replacing an active version."""

    @pytest.mark.asyncio
    async def test_new_version_supersedes_old(self, registration, active_router, storage, fetcher, config):
        """Test the install/activate cycle for a newer version."""
        fetcher.add("/profile", body=b"v1 page")
        await registration.dispatch_fetch(get("/profile"))
        await registration.drain()
        assert storage.has(config.dynamic_store)

        newer = CacheRouter(config.with_version("v1.0.3"), storage, fetcher)
        await registration.register(newer)

        assert registration.active is newer
        assert active_router.state is LifecycleState.REDUNDANT
        assert set(storage.keys()) == {"static-v1.0.3"}
        assert storage.match(get("/profile")) is None

    @pytest.mark.asyncio
    async def test_failed_upgrade_keeps_previous(self, registration, active_router, storage, fetcher, config):
        """Test that a broken new version does not replace the active one."""
        fetcher.fail("/icon-192.png")
        newer = CacheRouter(config.with_version("v1.0.3"), storage, fetcher)

        with pytest.raises(InstallError):
            await registration.register(newer)

        assert registration.active is active_router
        assert active_router.state is LifecycleState.ACTIVE
        assert storage.has(config.static_store)
        assert not storage.has("static-v1.0.3")

    @pytest.mark.asyncio
    async def test_waits_without_skip_waiting(self, registration, active_router, storage, fetcher, config):
        """Test that a new version waits until asked to skip waiting."""
        newer = CacheRouter(
            RouterConfig(version="v1.0.3", origin=ORIGIN, skip_waiting_on_install=False),
            storage,
            fetcher,
        )

        await registration.register(newer)

        assert registration.active is active_router
        assert registration.waiting is newer
        assert registration.update_available
        assert newer.state is LifecycleState.WAITING
        # Both versions' stores coexist until activation
        assert storage.has(config.static_store)
        assert storage.has("static-v1.0.3")

        await registration.post_message({"type": "SKIP_WAITING"}, target="waiting")

        assert registration.active is newer
        assert registration.waiting is None
        assert not registration.update_available
        assert active_router.state is LifecycleState.REDUNDANT
        assert not storage.has(config.static_store)

    @pytest.mark.asyncio
    async def test_second_waiting_router_replaces_first(self, registration, active_router, storage, fetcher):
        """Test that only the newest waiting router is kept."""
        def waiting_router(version):
            return CacheRouter(
                RouterConfig(version=version, origin=ORIGIN, skip_waiting_on_install=False),
                storage,
                fetcher,
            )

        first = waiting_router("v1.0.3")
        second = waiting_router("v1.0.4")
        await registration.register(first)
        await registration.register(second)

        assert registration.waiting is second
        assert first.state is LifecycleState.REDUNDANT

    @pytest.mark.asyncio
    async def test_clients_move_to_new_version(self, registration, active_router, storage, fetcher, config):
        """Test that clients are claimed by the newer version."""
        page = registration.clients.add("/")
        assert page.controller is None

        newer = CacheRouter(config.with_version("v1.0.3"), storage, fetcher)
        await registration.register(newer)

        assert page.controller is newer

    @pytest.mark.asyncio
    async def test_in_flight_fetch_does_not_recreate_old_store(self, storage, config):
        """Test that a fetch outliving its router leaves only current stores."""
        fetcher = HeldFetcher("/profile")
        manifest_routes(fetcher, config)
        fetcher.add("/profile", body=b"slow page")
        registration = Registration(fetcher)
        old = CacheRouter(config, storage, fetcher)
        await registration.register(old)

        in_flight = asyncio.create_task(registration.dispatch_fetch(get("/profile")))
        await fetcher.started.wait()

        newer = CacheRouter(config.with_version("v1.0.3"), storage, fetcher)
        await registration.register(newer)
        fetcher.release.set()
        response = await in_flight
        await old.drain()

        assert response.body == b"slow page"
        assert old.state is LifecycleState.REDUNDANT
        assert set(storage.keys()) == {"static-v1.0.3"}

    @pytest.mark.asyncio
    async def test_failed_activation_leaves_no_active_router(
        self, registration, active_router, storage, fetcher, config, monkeypatch
    ):
        """Test that a router failing to activate is not kept as active."""
        def broken_prune(keep):
            raise CacheError("prune", "database is locked")

        monkeypatch.setattr(storage, "prune", broken_prune)
        newer = CacheRouter(config.with_version("v1.0.3"), storage, fetcher)

        with pytest.raises(CacheError):
            await registration.register(newer)

        assert registration.active is None
        assert registration.waiting is None
        assert newer.state is LifecycleState.REDUNDANT
        assert active_router.state is LifecycleState.REDUNDANT

        fetcher.add("/logo.png", body=b"png")
        await registration.dispatch_fetch(get("/logo.png"))
        assert fetcher.calls_to("/logo.png") == 1


class TestDispatch:
    """Tests for fetch dispatch."""

    @pytest.mark.asyncio
    async def test_no_active_router_goes_to_network(self, registration, fetcher):
        """Test fetches before any router is active."""
        fetcher.add("/logo.png", body=b"png")

        response = await registration.dispatch_fetch(get("/logo.png"))

        assert response.body == b"png"
        assert fetcher.calls_to("/logo.png") == 1

    @pytest.mark.asyncio
    async def test_api_falls_through_to_network(self, registration, active_router, fetcher, storage):
        """Test that non-intercepted requests still get a response."""
        fetcher.add("/api/users", body=b"[]")

        response = await registration.dispatch_fetch(get("/api/users"))
        await registration.drain()

        assert response.body == b"[]"
        assert storage.match(get("/api/users")) is None

    @pytest.mark.asyncio
    async def test_post_falls_through_to_network(self, registration, active_router, fetcher):
        """Test that non-GET requests reach the network directly."""
        request = Request(url=ORIGIN + "/profile", method="POST")

        await registration.dispatch_fetch(request)

        assert fetcher.calls[-1] is request

    @pytest.mark.asyncio
    async def test_out_of_scope_not_routed(self, fetcher, router, storage):
        """Test that requests outside the scope bypass the router."""
        registration = Registration(fetcher, scope="/app/")
        await registration.register(router)
        storage.put(router.config.static_store, get("/logo.png"), fetcher.routes[ORIGIN + "/Logo.png"])
        fetcher.add("/logo.png", body=b"network")

        response = await registration.dispatch_fetch(get("/logo.png"))

        assert response.source is ResponseSource.NETWORK

    @pytest.mark.asyncio
    async def test_network_failure_propagates(self, registration, active_router, fetcher):
        """Test that failures surface when nothing is cached."""
        fetcher.fail("/reports")
        with pytest.raises(NetworkError):
            await registration.dispatch_fetch(get("/reports"))

    @pytest.mark.asyncio
    async def test_client_uses_its_controller(self, registration, active_router, fetcher):
        """Test dispatch through a specific client."""
        page = registration.clients.add("/")
        page.controller = active_router
        fetcher.add("/logo.png", body=b"png")

        await registration.dispatch_fetch(get("/logo.png"), client=page)
        await registration.drain()

        response = await registration.dispatch_fetch(get("/logo.png"), client=page)
        assert response.source is ResponseSource.CACHE


class TestPostMessage:
    """Tests for message delivery."""

    @pytest.mark.asyncio
    async def test_version_query(self, registration, active_router):
        """Test GET_VERSION through the registration."""
        port = MessagePort()
        delivered = await registration.post_message({"type": "GET_VERSION"}, [port])

        assert delivered
        assert port.last == {"type": "VERSION_RESPONSE", "version": active_router.version}

    @pytest.mark.asyncio
    async def test_no_target(self, registration):
        """Test messages with nobody to receive them."""
        assert await registration.post_message({"type": "GET_VERSION"}, [MessagePort()]) is False

    @pytest.mark.asyncio
    async def test_reply_callback(self, registration, active_router):
        """Test that replies reach the port callback."""
        received = []
        port = MessagePort(on_message=received.append)

        await registration.post_message({"type": "GET_VERSION"}, [port])

        assert received == [{"type": "VERSION_RESPONSE", "version": "v1.0.2"}]
