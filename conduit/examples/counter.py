"""Basic navigation: a tap counter that navigates when it reaches 42."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Sequence

from conduit.coordination.coordinator import Coordinator
from conduit.coordination.patterns import ChildCoordinator, NavigationPattern, Sheet
from conduit.interface.channel import ActionChannel
from conduit.navigation.navigator import CoordinatorStack, unhandled_destination
from conduit.state.observable import StateField

logger = logging.getLogger(__name__)

MAGIC_NUMBER = 42


class CounterAction(Enum):
    DID_TAP_BUTTON = "did_tap_button"
    DID_TAP_RESET = "did_tap_reset"


class RootAction(Enum):
    DID_REACH_FORTY_TWO = "did_reach_forty_two"


@dataclass(frozen=True)
class CounterView:
    interface: ActionChannel[CounterAction]
    count: int

    def tap(self) -> bool:
        return self.interface.publish(CounterAction.DID_TAP_BUTTON)

    def reset(self) -> bool:
        return self.interface.publish(CounterAction.DID_TAP_RESET)


@dataclass(frozen=True)
class MessageView:
    text: str


class CounterRoot(Coordinator):
    button_tap_count = StateField(0)
    is_showing_sheet = StateField(False)

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("name", "counter")
        super().__init__(**kwargs)
        self.buttons = self.channel("buttons")

    def entry_view(self) -> CounterView:
        return CounterView(interface=self.buttons, count=self.button_tap_count)

    def navigation(self) -> NavigationPattern:
        return Sheet(
            is_active=self.is_showing_sheet,
            content=lambda: MessageView(f"You reached {MAGIC_NUMBER}!"),
            on_dismiss=self.sheet_dismissed,
        )

    def handle(self, action: CounterAction) -> None:
        match action:
            case CounterAction.DID_TAP_BUTTON:
                self.button_tap_count += 1
                if self.button_tap_count == MAGIC_NUMBER:
                    self.is_showing_sheet = True
                    self.send(RootAction.DID_REACH_FORTY_TWO)
            case CounterAction.DID_TAP_RESET:
                self.button_tap_count = 0

    def sheet_dismissed(self) -> None:
        logger.debug(f"{self.name}: sheet dismissed by the platform")
        self.is_showing_sheet = False


@dataclass(frozen=True)
class Page:
    pass


class StateConfiguration(Enum):
    RESET = "reset"
    SHOW_PAGE = "show_page"


class PageCoordinator(Coordinator):
    def entry_view(self) -> MessageView:
        return MessageView("Page")


class RootNavigator(CoordinatorStack[Page, StateConfiguration]):
    """Counter at the root; reaching 42 pushes a page."""

    destination_type = Page

    def __init__(self, **kwargs: Any) -> None:
        kwargs.setdefault("name", "counter-navigator")
        super().__init__(**kwargs)
        self.counter = CounterRoot(
            event_bus=self.bus,
            config=self.config,
            interface=ActionChannel.consume(self.root_did_publish, name=f"{self.name}.root"),
        )

    def navigation(self) -> NavigationPattern:
        return ChildCoordinator(self.counter)

    def root_view(self) -> CounterView:
        return self.counter.entry_view()

    def destination_coordinator(self, destination: Page) -> Coordinator:
        match destination:
            case Page():
                return PageCoordinator(name=f"{self.name}.page", event_bus=self.bus, config=self.config)
            case _:
                unhandled_destination(destination)

    def target_path(self, state: StateConfiguration) -> Sequence[Page]:
        match state:
            case StateConfiguration.RESET:
                return ()
            case StateConfiguration.SHOW_PAGE:
                return (Page(),)

    def root_did_publish(self, action: RootAction) -> None:
        match action:
            case RootAction.DID_REACH_FORTY_TWO:
                self.apply_target_state(StateConfiguration.SHOW_PAGE)
