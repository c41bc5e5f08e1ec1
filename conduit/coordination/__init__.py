"""Coordinators and the navigation patterns they declare."""

from .patterns import ChildCoordinator, ChildNavigator, Combined, NavigationPattern, NoNavigation, Sheet
from .coordinator import Coordinator, CoordinatorSnapshot

__all__ = [
    "Coordinator",
    "CoordinatorSnapshot",
    "NavigationPattern",
    "NoNavigation",
    "Sheet",
    "ChildCoordinator",
    "ChildNavigator",
    "Combined",
]
