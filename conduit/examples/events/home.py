"""Home screen view description and its actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Union

from conduit.interface.channel import ActionChannel
from conduit.state.loading_state import LoadingState

from .services import Event


@dataclass(frozen=True)
class SearchEvents:
    query: str


@dataclass(frozen=True)
class SelectEvent:
    event_id: str


HomeAction = Union[SearchEvents, SelectEvent]


@dataclass(frozen=True)
class HomeView:
    """Search field plus results. Taps are published on ``interface``."""

    interface: ActionChannel[HomeAction]
    search_results: LoadingState[Tuple[Event, ...], Exception]
    points: int

    def search(self, query: str) -> bool:
        return self.interface.publish(SearchEvents(query))

    def tap_event(self, event_id: str) -> bool:
        return self.interface.publish(SelectEvent(event_id))

    @property
    def status(self) -> str:
        state = self.search_results
        if state.is_loaded:
            return f"{len(state.value or ())} result(s)"
        if state.is_failed:
            return f"error: {state.failure}"
        return state.phase.value
