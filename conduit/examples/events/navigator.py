"""Events navigator and its deep link routes.

``conduit://events/42`` resets the stack to the event list and pushes the
detail of event 42, once the service confirms the event exists.
``conduit://events`` alone resets the stack.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple, Union

from conduit.coordination.patterns import ChildCoordinator
from conduit.interface.channel import ActionChannel
from conduit.navigation.deep_link import ApplyTarget, DeepLink, DeepLinkDispatcher, LinkStep, SetPath
from conduit.navigation.navigator import Navigator, unhandled_destination

from .home import HomeAction, HomeView, SelectEvent
from .root import Root
from .services import Event, EventService

logger = logging.getLogger(__name__)

EVENTS_NAVIGATOR = "events"


@dataclass(frozen=True)
class EventList:
    pass


@dataclass(frozen=True)
class EventDetail:
    event_id: str


EventsDestination = Union[EventList, EventDetail]


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class ShowEvent:
    event_id: str


EventsTarget = Union[Reset, ShowEvent]


@dataclass(frozen=True)
class EventListView:
    results: Tuple[Event, ...]


@dataclass(frozen=True)
class EventDetailView:
    event_id: str
    title: str


class EventsNavigator(Navigator[EventsDestination, EventsTarget]):
    """Home screen at the root, event list and event details pushed above it."""

    destination_type = EventsDestination

    def __init__(self, services: EventService, **kwargs: Any) -> None:
        kwargs.setdefault("name", EVENTS_NAVIGATOR)
        super().__init__(**kwargs)
        self.services = services
        self.root = Root(
            services,
            event_bus=self.bus,
            config=self.config,
            interface=ActionChannel.consume(self.root_did_publish, name=f"{self.name}.root"),
        )

    def navigation(self) -> ChildCoordinator:
        return ChildCoordinator(self.root)

    def root_view(self) -> HomeView:
        return self.root.entry_view()

    def destination_view(self, destination: EventsDestination) -> Any:
        match destination:
            case EventList():
                results = self.root.search_results.state.value or ()
                return EventListView(results=tuple(results))
            case EventDetail(event_id=event_id):
                return EventDetailView(event_id=event_id, title=f"Event {event_id}")
            case _:
                unhandled_destination(destination)

    def target_path(self, state: EventsTarget) -> Sequence[EventsDestination]:
        match state:
            case Reset():
                return ()
            case ShowEvent(event_id=event_id):
                return (EventList(), EventDetail(event_id))
            case _:
                raise ValueError(f"Unknown target state {state!r}")

    def root_did_publish(self, action: HomeAction) -> None:
        match action:
            case SelectEvent(event_id=event_id):
                self.apply_target_state(ShowEvent(event_id))
            case _:
                logger.debug(f"{self.name}: ignoring {action!r} from root")


def register_deep_links(
    dispatcher: DeepLinkDispatcher,
    services: EventService,
    navigator_name: str = EVENTS_NAVIGATOR,
) -> None:
    """Register the ``events`` route on ``dispatcher``."""

    async def resolve(link: DeepLink) -> Optional[List[LinkStep]]:
        arguments = link.arguments
        if not arguments:
            return [ApplyTarget(navigator_name, Reset())]
        if len(arguments) != 1:
            return None
        # Raises LookupError for unknown ids; the dispatcher reports it as a resolution failure
        event = await services.event(arguments[0])
        return [SetPath(navigator_name, [EventList(), EventDetail(event.event_id)])]

    dispatcher.route("events", resolve)
