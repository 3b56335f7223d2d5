"""Permission context: the holder of one owner's effective permission set.

State Machine:

    UNINITIALIZED --load()/refresh()--> LOADING
    LOADING --resolved--> READY
    LOADING --resolution error--> FAILED
    READY | FAILED --refresh()--> LOADING
    any --dispose()--> DISPOSED

Only READY grants anything. Every predicate answers False in the other
states, so a consumer can never allow access while the set is unresolved.

A context is created per owner (one per request on the server) and passed
explicitly to whoever needs it; there is no module-level instance.
"""

import logging
from enum import Enum
from typing import Awaitable, Callable, Dict, FrozenSet, Iterable, List, Optional, Set

from ponyknows.core.exceptions import (
    ContextDisposedError,
    InvalidTransitionError,
    PermissionResolutionError,
)

from .checker import PermissionChecker
from .permissions import PermissionLike

logger = logging.getLogger(__name__)


class ContextState(str, Enum):
    """Lifecycle states of a PermissionContext."""

    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


VALID_TRANSITIONS: Dict[ContextState, Set[ContextState]] = {
    ContextState.UNINITIALIZED: {ContextState.LOADING, ContextState.DISPOSED},
    ContextState.LOADING: {
        ContextState.LOADING,
        ContextState.READY,
        ContextState.FAILED,
        ContextState.DISPOSED,
    },
    ContextState.READY: {ContextState.LOADING, ContextState.DISPOSED},
    ContextState.FAILED: {ContextState.LOADING, ContextState.DISPOSED},
    ContextState.DISPOSED: set(),
}


PermissionLoader = Callable[[], Awaitable[Iterable[str]]]
Listener = Callable[["PermissionContext"], None]


class PermissionContext:
    """
    Fail-closed holder of an effective permission set.

    Each refresh recomputes the whole set through the loader. When refreshes
    overlap, the one started last decides the observable state; results of
    older ones are discarded when they land.
    """

    def __init__(self, loader: PermissionLoader, *, owner: Optional[object] = None):
        """
        Initialize the context.

        Args:
            loader: Coroutine function returning the effective permissions
            owner: Identifier used in log messages (typically the user id)
        """
        self._loader = loader
        self.owner = owner
        self._state = ContextState.UNINITIALIZED
        self._checker = PermissionChecker(())
        self._error: Optional[Exception] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    @property
    def state(self) -> ContextState:
        return self._state

    @property
    def is_loading(self) -> bool:
        """True until the first resolution lands, and during every refresh."""
        return self._state in (ContextState.UNINITIALIZED, ContextState.LOADING)

    @property
    def is_ready(self) -> bool:
        return self._state == ContextState.READY

    @property
    def error(self) -> Optional[Exception]:
        """The resolution error when FAILED, otherwise None."""
        return self._error

    @property
    def permissions(self) -> FrozenSet[str]:
        """The effective set; empty unless READY."""
        if self._state != ContextState.READY:
            return frozenset()
        return self._checker.permissions

    # -- predicates ---------------------------------------------------------

    def has_permission(self, permission: PermissionLike) -> bool:
        if self._state != ContextState.READY:
            return False
        return self._checker.has_permission(permission)

    def has_any(self, permissions: Iterable[PermissionLike]) -> bool:
        if self._state != ContextState.READY:
            return False
        return self._checker.has_any(permissions)

    def has_all(self, permissions: Iterable[PermissionLike]) -> bool:
        # Not ready denies even the empty requirement list
        if self._state != ContextState.READY:
            return False
        return self._checker.has_all(permissions)

    def is_admin(self) -> bool:
        if self._state != ContextState.READY:
            return False
        return self._checker.is_admin()

    def check(self, permissions: Iterable[PermissionLike], require_all: bool = False) -> bool:
        if self._state != ContextState.READY:
            return False
        return self._checker.check(permissions, require_all=require_all)

    # -- lifecycle ----------------------------------------------------------

    async def load(self) -> ContextState:
        """Resolve once; later calls return the current state unchanged."""
        if self._state == ContextState.UNINITIALIZED:
            return await self.refresh()
        if self._state == ContextState.DISPOSED:
            raise ContextDisposedError("Permission context has been disposed")
        return self._state

    async def refresh(self) -> ContextState:
        """
        Force a fresh resolution, bypassing the held set.

        Returns:
            The state after this refresh landed (or the newer state if a
            later refresh superseded it)

        Raises:
            ContextDisposedError: If the context was disposed
        """
        if self._state == ContextState.DISPOSED:
            raise ContextDisposedError("Permission context has been disposed")

        self._generation += 1
        generation = self._generation
        self._transition(ContextState.LOADING)

        try:
            resolved = frozenset(await self._loader())
        except PermissionResolutionError as exc:
            self._land_failure(generation, exc)
            return self._state
        except Exception as exc:
            logger.exception("Permission loader raised for %s", self.owner)
            error = PermissionResolutionError("Permission resolution failed", user_id=self.owner)
            error.__cause__ = exc
            self._land_failure(generation, error)
            return self._state

        if not self._is_current(generation):
            logger.debug("Discarding superseded permission resolution for %s", self.owner)
            return self._state

        self._checker = PermissionChecker(resolved)
        self._error = None
        self._transition(ContextState.READY)
        return self._state

    def dispose(self) -> None:
        """Drop the held set and all listeners. Idempotent."""
        if self._state == ContextState.DISPOSED:
            return
        self._transition(ContextState.DISPOSED)
        self._checker = PermissionChecker(())
        self._listeners.clear()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a listener called after every state change.

        Returns:
            A callable that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def __aenter__(self) -> "PermissionContext":
        await self.load()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    # -- internals ----------------------------------------------------------

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation and self._state != ContextState.DISPOSED

    def _land_failure(self, generation: int, error: PermissionResolutionError) -> None:
        if not self._is_current(generation):
            return
        logger.warning("Permission resolution failed for %s: %s", self.owner, error)
        self._checker = PermissionChecker(())
        self._error = error
        self._transition(ContextState.FAILED)

    def _transition(self, to_state: ContextState) -> None:
        if to_state not in VALID_TRANSITIONS[self._state]:
            raise InvalidTransitionError(self._state.value, to_state.value)
        self._state = to_state
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Permission context listener failed")
