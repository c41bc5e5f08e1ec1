"""Navigators and coordinators shared by the tests."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Sequence, Union

from conduit.coordination.coordinator import Coordinator
from conduit.navigation.navigator import CoordinatorStack, Navigator, unhandled_destination


@dataclass(frozen=True)
class Target1:
    pass


@dataclass(frozen=True)
class Target2:
    pass


@dataclass(frozen=True)
class Target3:
    item_id: str


Destination = Union[Target1, Target2, Target3]


class Intent(Enum):
    RESET = "reset"
    SHOW_SECOND = "show_second"
    SHOW_ITEM = "show_item"


def intent_path(state: Intent) -> Sequence[Destination]:
    match state:
        case Intent.RESET:
            return ()
        case Intent.SHOW_SECOND:
            return (Target1(), Target2())
        case Intent.SHOW_ITEM:
            return (Target2(), Target3("42"))


@dataclass(frozen=True)
class ScreenView:
    label: str


class PathNavigator(Navigator[Destination, Intent]):
    destination_type = Destination

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("name", "main")
        super().__init__(**kwargs)
        self.rendered: List[Destination] = []

    def root_view(self) -> ScreenView:
        return ScreenView("root")

    def destination_view(self, destination: Destination) -> ScreenView:
        self.rendered.append(destination)
        match destination:
            case Target1():
                return ScreenView("one")
            case Target2():
                return ScreenView("two")
            case Target3(item_id=item_id):
                return ScreenView(f"three:{item_id}")
            case _:
                unhandled_destination(destination)

    def target_path(self, state: Intent) -> Sequence[Destination]:
        return intent_path(state)


class IncompleteNavigator(PathNavigator):
    """Forgets Target3."""

    def destination_view(self, destination: Destination) -> ScreenView:
        match destination:
            case Target1():
                return ScreenView("one")
            case Target2():
                return ScreenView("two")
            case _:
                unhandled_destination(destination)  # type: ignore[arg-type]


class ScreenCoordinator(Coordinator):
    def __init__(self, label: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.label = label

    def entry_view(self) -> ScreenView:
        return ScreenView(self.label)


class ScreenStack(CoordinatorStack[Destination, Intent]):
    destination_type = Destination

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("name", "screens")
        super().__init__(**kwargs)
        self.built: List[ScreenCoordinator] = []

    def root_view(self) -> ScreenView:
        return ScreenView("root")

    def destination_coordinator(self, destination: Destination) -> Coordinator:
        match destination:
            case Target1():
                label = "one"
            case Target2():
                label = "two"
            case Target3(item_id=item_id):
                label = f"three:{item_id}"
            case _:
                unhandled_destination(destination)
        child = ScreenCoordinator(label, name=f"{self.name}.{label}", event_bus=self.bus, config=self.config)
        self.built.append(child)
        return child

    def target_path(self, state: Intent) -> Sequence[Destination]:
        return intent_path(state)
