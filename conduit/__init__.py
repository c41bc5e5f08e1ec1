"""Conduit: coordinators, action channels and path-based navigation."""

from .shared import __version__
from .shared.core.event_bus import EventBus
from .interface import ActionChannel, AsyncInterfaceObserver, InterfaceObserver, observe
from .state import LoadingState, Phase, ResourceState, StateField
from .coordination import (
    ChildCoordinator,
    ChildNavigator,
    Combined,
    Coordinator,
    CoordinatorSnapshot,
    NavigationPattern,
    NoNavigation,
    Sheet,
)
from .navigation import (
    ApplyTarget,
    CoordinatorStack,
    DeepLinkDispatcher,
    Navigator,
    PlatformStack,
    SetPath,
    unhandled_destination,
)

__all__ = [
    "__version__",
    "EventBus",
    "ActionChannel",
    "InterfaceObserver",
    "AsyncInterfaceObserver",
    "observe",
    "LoadingState",
    "Phase",
    "ResourceState",
    "StateField",
    "Coordinator",
    "CoordinatorSnapshot",
    "NavigationPattern",
    "NoNavigation",
    "Sheet",
    "ChildCoordinator",
    "ChildNavigator",
    "Combined",
    "Navigator",
    "CoordinatorStack",
    "PlatformStack",
    "DeepLinkDispatcher",
    "SetPath",
    "ApplyTarget",
    "unhandled_destination",
]
