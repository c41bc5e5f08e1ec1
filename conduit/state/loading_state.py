"""Lifecycle of an asynchronously loaded value.

``LoadingState`` is the immutable value a view reads; ``ResourceState`` is the
coordinator-owned holder that enforces the transitions::

    initial -> loading -> {loaded | failed} -> loading -> ...

Fetch cycles are identified by tickets. Cycles may overlap (a second search
before the first returns); each ticket closes its own cycle, so whichever
fetch completes last writes the final value.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, FrozenSet, Generic, Optional, Set, TypeVar

from conduit.shared.core.errors import InvalidTransitionError

logger = logging.getLogger(__name__)

Value = TypeVar("Value")
Failure = TypeVar("Failure")


class Phase(str, Enum):
    INITIAL = "initial"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


ALLOWED_TRANSITIONS: Dict[Phase, FrozenSet[Phase]] = {
    Phase.INITIAL: frozenset({Phase.LOADING}),
    Phase.LOADING: frozenset({Phase.LOADED, Phase.FAILED}),
    Phase.LOADED: frozenset({Phase.LOADING}),
    Phase.FAILED: frozenset({Phase.LOADING}),
}


def validate_transition(source: Phase, target: Phase) -> None:
    """Raise InvalidTransitionError unless ``source -> target`` is legal."""
    if target not in ALLOWED_TRANSITIONS[source]:
        raise InvalidTransitionError(source.value, target.value)


@dataclass(frozen=True)
class LoadingState(Generic[Value, Failure]):
    """Read-only snapshot of a resource.

    ``value`` holds the loaded value, or while loading the previous value when
    the caller asked to keep it.
    """

    phase: Phase = Phase.INITIAL
    value: Optional[Value] = None
    failure: Optional[Failure] = None

    @classmethod
    def initial(cls) -> "LoadingState[Value, Failure]":
        return cls(Phase.INITIAL)

    @classmethod
    def loading(cls, previous: Optional[Value] = None) -> "LoadingState[Value, Failure]":
        return cls(Phase.LOADING, value=previous)

    @classmethod
    def loaded(cls, value: Value) -> "LoadingState[Value, Failure]":
        return cls(Phase.LOADED, value=value)

    @classmethod
    def failed(cls, failure: Failure) -> "LoadingState[Value, Failure]":
        return cls(Phase.FAILED, failure=failure)

    @property
    def is_initial(self) -> bool:
        return self.phase is Phase.INITIAL

    @property
    def is_loading(self) -> bool:
        return self.phase is Phase.LOADING

    @property
    def is_loaded(self) -> bool:
        return self.phase is Phase.LOADED

    @property
    def is_failed(self) -> bool:
        return self.phase is Phase.FAILED

    # --- Checked transitions on plain values ---

    def to_loading(self, keep_previous: bool = False) -> "LoadingState[Value, Failure]":
        validate_transition(self.phase, Phase.LOADING)
        return LoadingState.loading(self.value if keep_previous else None)

    def to_loaded(self, value: Value) -> "LoadingState[Value, Failure]":
        validate_transition(self.phase, Phase.LOADED)
        return LoadingState.loaded(value)

    def to_failed(self, failure: Failure) -> "LoadingState[Value, Failure]":
        validate_transition(self.phase, Phase.FAILED)
        return LoadingState.failed(failure)


class ResourceState(Generic[Value, Failure]):
    """Coordinator-owned resource with ticketed fetch cycles.

    Args:
        name: Used in logs and change notifications
        initial: Starting snapshot; a resource may begin already loaded
        on_change: Called with the resource and the ticket behind the change
            (None when a cycle starts) after every change
    """

    def __init__(
        self,
        name: str,
        initial: Optional[LoadingState[Value, Failure]] = None,
        on_change: Optional[Callable[["ResourceState[Value, Failure]", Optional[int]], None]] = None,
    ) -> None:
        self.name = name
        self._state: LoadingState[Value, Failure] = initial or LoadingState.initial()
        self._on_change = on_change
        self._next_ticket = 0
        self._in_flight: Set[int] = set()

    @classmethod
    def preloaded(cls, name: str, value: Value, **kwargs: Any) -> "ResourceState[Value, Failure]":
        return cls(name, LoadingState.loaded(value), **kwargs)

    @property
    def state(self) -> LoadingState[Value, Failure]:
        return self._state

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def start_loading(self, keep_previous: bool = False) -> int:
        """Begin a fetch cycle and return its ticket.

        Starting while another fetch is in flight keeps the resource loading.
        """
        if self._state.phase is not Phase.LOADING:
            validate_transition(self._state.phase, Phase.LOADING)
            previous = self._state.value if keep_previous else None
            self._set(LoadingState.loading(previous), None)

        self._next_ticket += 1
        ticket = self._next_ticket
        self._in_flight.add(ticket)
        logger.debug(f"Resource '{self.name}' fetch #{ticket} started")
        return ticket

    def succeed(self, ticket: int, value: Value) -> None:
        """End fetch ``ticket`` with a value."""
        self._finish(ticket, Phase.LOADED)
        self._set(LoadingState.loaded(value), ticket)

    def fail(self, ticket: int, failure: Failure) -> None:
        """End fetch ``ticket`` with a failure."""
        self._finish(ticket, Phase.FAILED)
        self._set(LoadingState.failed(failure), ticket)

    def _finish(self, ticket: int, target: Phase) -> None:
        if ticket not in self._in_flight:
            raise InvalidTransitionError(
                self._state.phase.value,
                target.value,
                f"fetch #{ticket} is not in flight",
            )
        # Every ticket was issued while loading; that is the phase it leaves
        validate_transition(Phase.LOADING, target)
        self._in_flight.discard(ticket)

    def abandon(self, ticket: int) -> None:
        """Forget a fetch that will never complete (cancelled)."""
        self._in_flight.discard(ticket)

    async def run(
        self,
        fetch: Callable[[], Awaitable[Value]],
        *,
        keep_previous: bool = False,
    ) -> LoadingState[Value, Any]:
        """Run one fetch cycle, mapping any service exception to ``failed``."""
        ticket = self.start_loading(keep_previous=keep_previous)
        try:
            value = await fetch()
        except asyncio.CancelledError:
            self.abandon(ticket)
            raise
        except Exception as exc:
            logger.warning(f"Resource '{self.name}' fetch #{ticket} failed: {exc}")
            self.fail(ticket, exc)  # type: ignore[arg-type]
            return self._state
        self.succeed(ticket, value)
        return self._state

    def _set(self, state: LoadingState[Value, Failure], ticket: Optional[int]) -> None:
        self._state = state
        logger.debug(f"Resource '{self.name}' -> {state.phase.value}")
        if self._on_change is not None:
            self._on_change(self, ticket)

    def __repr__(self) -> str:
        return f"ResourceState({self.name!r}, {self._state.phase.value}, in_flight={len(self._in_flight)})"
