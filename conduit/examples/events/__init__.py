"""Events example: search, event details and deep links."""

from .home import HomeAction, HomeView, SearchEvents, SelectEvent
from .navigator import (
    EVENTS_NAVIGATOR,
    EventDetail,
    EventDetailView,
    EventList,
    EventListView,
    EventsNavigator,
    Reset,
    ShowEvent,
    register_deep_links,
)
from .root import Root
from .services import Event, EventService, MockEventService

__all__ = [
    "HomeAction",
    "HomeView",
    "SearchEvents",
    "SelectEvent",
    "EVENTS_NAVIGATOR",
    "EventDetail",
    "EventDetailView",
    "EventList",
    "EventListView",
    "EventsNavigator",
    "Reset",
    "ShowEvent",
    "register_deep_links",
    "Root",
    "Event",
    "EventService",
    "MockEventService",
]
