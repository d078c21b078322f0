"""
Router lifecycle state machine.

A router moves through NEW -> INSTALLING -> WAITING -> ACTIVATING -> ACTIVE
and ends up REDUNDANT when its install fails or a newer version supersedes
it. Each install/activate phase is represented by a PhaseEvent that only
completes once every piece of work registered on it has settled.
"""

import asyncio
from enum import Enum
from typing import Any, Awaitable

import structlog

from swcache.core.exceptions import LifecycleError

logger = structlog.get_logger(__name__)


class LifecycleState(Enum):
    """Lifecycle states of a cache router."""

    NEW = "new"
    INSTALLING = "installing"
    WAITING = "waiting"
    ACTIVATING = "activating"
    ACTIVE = "active"
    REDUNDANT = "redundant"

    def __str__(self) -> str:
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self is LifecycleState.REDUNDANT


_TRANSITIONS: dict[LifecycleState, frozenset[LifecycleState]] = {
    LifecycleState.NEW: frozenset({LifecycleState.INSTALLING}),
    LifecycleState.INSTALLING: frozenset({LifecycleState.WAITING, LifecycleState.REDUNDANT}),
    LifecycleState.WAITING: frozenset({LifecycleState.ACTIVATING, LifecycleState.REDUNDANT}),
    LifecycleState.ACTIVATING: frozenset({LifecycleState.ACTIVE, LifecycleState.REDUNDANT}),
    LifecycleState.ACTIVE: frozenset({LifecycleState.REDUNDANT}),
    LifecycleState.REDUNDANT: frozenset(),
}


class Lifecycle:
    """Guarded lifecycle state holder."""

    def __init__(self, version: str):
        self.version = version
        self._state = LifecycleState.NEW

    @property
    def state(self) -> LifecycleState:
        return self._state

    def can_transition(self, target: LifecycleState) -> bool:
        return target in _TRANSITIONS[self._state]

    def transition(self, target: LifecycleState) -> None:
        """Move to a new state.

        Raises:
            LifecycleError: If the transition is not allowed from the
                current state.
        """
        if not self.can_transition(target):
            raise LifecycleError(str(self._state), str(target))

        logger.debug(
            "lifecycle_transition",
            version=self.version,
            source=str(self._state),
            target=str(target),
        )
        self._state = target

    def require(self, *states: LifecycleState) -> None:
        """Raise LifecycleError unless the current state is one of ``states``."""
        if self._state not in states:
            raise LifecycleError(str(self._state), " | ".join(str(s) for s in states))


class PhaseEvent:
    """Deferred-completion handle for an install or activate phase.

    Work is registered with :meth:`wait_until`; :meth:`settle` awaits all of
    it and records the outcome, after which :meth:`wait` can be awaited by
    anyone interested in the phase result.
    """

    def __init__(self, name: str):
        self.name = name
        self._pending: list[Awaitable[Any]] = []
        self._completed = asyncio.Event()
        self._settling = False
        self.error: BaseException | None = None

    @property
    def done(self) -> bool:
        return self._completed.is_set()

    def wait_until(self, work: Awaitable[Any]) -> None:
        """Extend the phase until ``work`` has settled."""
        if self._settling or self.done:
            raise LifecycleError(f"{self.name} settling", "wait_until")
        self._pending.append(work)

    async def settle(self) -> list[Any]:
        """Await every registered piece of work.

        Returns:
            The results of the registered work, in registration order.

        Raises:
            Exception: The first failure among the registered work.
        """
        self._settling = True
        try:
            return list(await asyncio.gather(*self._pending))
        except Exception as e:
            self.error = e
            raise
        finally:
            self._completed.set()

    async def wait(self) -> None:
        """Wait for the phase to complete, re-raising its failure if any."""
        await self._completed.wait()
        if self.error is not None:
            raise self.error
