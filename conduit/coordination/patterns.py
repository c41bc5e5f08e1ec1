"""Navigation patterns a coordinator can declare.

``Coordinator.navigation()`` is re-derived from state like the entry view.
Patterns that own children (``ChildCoordinator``/``ChildNavigator``) mount and
unmount them with their parent; the others are pure descriptions.

A started coordinator re-derives its navigation on every invalidation: a
child that is no longer declared is torn down and a newly declared one is
started. Children are compared by identity, and a torn-down coordinator
cannot restart, so declare a fresh child to show it again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, Tuple

if TYPE_CHECKING:
    from conduit.coordination.coordinator import Coordinator
    from conduit.navigation.navigator import Navigator


class NavigationPattern:
    """Base class for navigation declarations."""

    def mount(self) -> None:
        """Called when the declaring coordinator starts."""

    def unmount(self) -> None:
        """Called when the declaring coordinator is torn down."""

    def describe(self) -> Dict[str, Any]:
        return {"pattern": type(self).__name__}

    def children(self) -> Tuple["Coordinator", ...]:
        """Coordinators whose lifetime this declaration owns."""
        return ()


@dataclass
class NoNavigation(NavigationPattern):
    """The coordinator does not navigate."""


@dataclass
class Sheet(NavigationPattern):
    """Modal content presented while ``is_active`` holds.

    The platform may dismiss the sheet on its own (swipe down); it reports
    that through ``dismiss()`` which forwards to ``on_dismiss`` so the owning
    coordinator can reset its flag.
    """

    is_active: bool
    content: Callable[[], Any]
    on_dismiss: Optional[Callable[[], None]] = None

    def presented_view(self) -> Any:
        return self.content() if self.is_active else None

    def dismiss(self) -> None:
        if self.is_active and self.on_dismiss is not None:
            self.on_dismiss()

    def describe(self) -> Dict[str, Any]:
        return {"pattern": "Sheet", "is_active": self.is_active}


@dataclass
class ChildCoordinator(NavigationPattern):
    """Composes a child coordinator whose lifetime follows the parent."""

    coordinator: "Coordinator"

    def mount(self) -> None:
        self.coordinator.start()

    def unmount(self) -> None:
        self.coordinator.teardown()

    def children(self) -> Tuple["Coordinator", ...]:
        return (self.coordinator,)

    def describe(self) -> Dict[str, Any]:
        return {"pattern": type(self).__name__, "child": self.coordinator.name}


@dataclass
class ChildNavigator(ChildCoordinator):
    """Composes a child navigator (a coordinator with its own path)."""

    coordinator: "Navigator"

    def describe(self) -> Dict[str, Any]:
        description = super().describe()
        description["path"] = list(self.coordinator.path)
        return description


@dataclass
class Combined(NavigationPattern):
    """Several patterns declared at once, mounted in order."""

    patterns: Tuple[NavigationPattern, ...] = field(default_factory=tuple)

    def mount(self) -> None:
        for pattern in self.patterns:
            pattern.mount()

    def unmount(self) -> None:
        for pattern in reversed(self.patterns):
            pattern.unmount()

    def children(self) -> Tuple["Coordinator", ...]:
        return tuple(child for pattern in self.patterns for child in pattern.children())

    def describe(self) -> Dict[str, Any]:
        return {"pattern": "Combined", "patterns": [p.describe() for p in self.patterns]}
