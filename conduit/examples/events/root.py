"""Root coordinator of the events example."""

from __future__ import annotations

import logging
from typing import Any, Optional, Tuple

from conduit.coordination.coordinator import Coordinator
from conduit.state.loading_state import LoadingState

from .home import HomeAction, HomeView, SearchEvents, SelectEvent
from .services import Event, EventService

logger = logging.getLogger(__name__)


class Root(Coordinator):
    """Owns the home channel and the search resource.

    Searches run concurrently; whichever answers last decides what the view
    shows. Selecting an event is forwarded to the parent.
    """

    def __init__(self, services: EventService, *, points: int = 0, **kwargs: Any) -> None:
        kwargs.setdefault("name", "root")
        super().__init__(**kwargs)
        self.services = services
        self.home = self.channel("home")
        self.search_results = self.resource("search_results")
        self.points = self.resource("points", LoadingState.loaded(points))
        self.last_query: Optional[str] = None

    def entry_view(self) -> HomeView:
        return HomeView(
            interface=self.home,
            search_results=self.search_results.state,
            points=self.points.state.value or 0,
        )

    async def handle(self, action: HomeAction) -> None:
        match action:
            case SearchEvents(query=query):
                self.last_query = query
                await self.search_results.run(lambda: self._search(query))
            case SelectEvent():
                self.send(action)

    async def _search(self, query: str) -> Tuple[Event, ...]:
        return tuple(await self.services.search_events(query))
