"""Coordinator lifecycle, invalidation and navigation patterns."""

import asyncio
from dataclasses import dataclass
from typing import Any, List

import pytest

from conduit.coordination import ChildCoordinator, Combined, Coordinator, NoNavigation, Sheet
from conduit.shared.core import events
from conduit.shared.core.errors import DuplicateObserverError, ProtocolViolationError
from conduit.state import Phase, StateField


@dataclass(frozen=True)
class Increment:
    amount: int = 1


@dataclass(frozen=True)
class Load:
    delay: float


class CounterCoordinator(Coordinator):
    count = StateField(0)
    tags = StateField(default_factory=list)

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.buttons = self.channel("buttons")
        self.handled: List[Any] = []

    def entry_view(self) -> dict:
        return {"count": self.count}

    def handle(self, action: Increment) -> None:
        self.handled.append(action)
        self.count += action.amount


class LoadingCoordinator(Coordinator):
    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.requests = self.channel("requests")
        self.items = self.resource("items")

    def entry_view(self) -> str:
        return self.items.phase.value

    async def handle(self, action: Load) -> None:
        async def fetch():
            await asyncio.sleep(action.delay)
            return ["item"]

        await self.items.run(fetch)


class ParentCoordinator(Coordinator):
    def __init__(self, child: Coordinator, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.child = child

    def entry_view(self) -> str:
        return "parent"

    def navigation(self):
        return ChildCoordinator(self.child)


class ToggleParent(Coordinator):
    show = StateField(False)

    def __init__(self, child: Coordinator, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.child = child

    def entry_view(self) -> str:
        return "parent"

    def navigation(self):
        return ChildCoordinator(self.child) if self.show else NoNavigation()


class SwappingParent(Coordinator):
    current = StateField(None)

    def entry_view(self) -> str:
        return "parent"

    def navigation(self):
        return ChildCoordinator(self.current) if self.current is not None else NoNavigation()


def test_start_binds_channels_to_handle(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)
    coordinator.start()

    coordinator.buttons.publish(Increment(2))
    coordinator.buttons.publish(Increment(3))

    assert coordinator.count == 5
    assert coordinator.entry_view() == {"count": 5}
    assert coordinator.handled == [Increment(2), Increment(3)]


def test_actions_before_start_are_dropped(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)

    assert coordinator.buttons.publish(Increment()) is False
    assert coordinator.count == 0


def test_state_field_changes_bump_revision(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)

    coordinator.count = 1
    coordinator.count = 1
    coordinator.tags = ["a"]

    assert coordinator.revision == 2


def test_state_field_defaults_are_per_instance(bus, config):
    first = CounterCoordinator(event_bus=bus, config=config)
    second = CounterCoordinator(event_bus=bus, config=config)

    first.tags.append("x")

    assert second.tags == []


def test_channels_are_named_after_owner(bus, config):
    coordinator = CounterCoordinator(name="counter", event_bus=bus, config=config)

    assert coordinator.buttons.name == "counter.buttons"


def test_start_twice_is_noop_and_restart_after_teardown_fails(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)
    coordinator.start()
    coordinator.start()

    coordinator.teardown()
    coordinator.teardown()

    assert not coordinator.buttons.is_attached
    with pytest.raises(ProtocolViolationError):
        coordinator.start()


def test_channel_already_observed_elsewhere_fails_start(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)
    coordinator.buttons.attach(lambda action: None)

    with pytest.raises(DuplicateObserverError):
        coordinator.start()


def test_send_without_parent_is_dropped(bus, config):
    coordinator = CounterCoordinator(event_bus=bus, config=config)

    assert coordinator.send(Increment()) is False


def test_child_coordinator_follows_parent_lifecycle(bus, config):
    child = CounterCoordinator(name="child", event_bus=bus, config=config)
    parent = ParentCoordinator(child, event_bus=bus, config=config)

    parent.start()
    assert child.is_started

    parent.teardown()
    assert not child.is_started
    assert not child.buttons.is_attached


def test_snapshot_describes_navigation(bus, config):
    child = CounterCoordinator(name="child", event_bus=bus, config=config)
    parent = ParentCoordinator(child, event_bus=bus, config=config)

    snapshot = parent.snapshot()

    assert snapshot.entry == "parent"
    assert snapshot.navigation == {"pattern": "ChildCoordinator", "child": "child"}
    assert snapshot.revision == 0


def test_sheet_presents_while_active_and_reports_dismissal():
    dismissed = []
    sheet = Sheet(is_active=True, content=lambda: "sheet", on_dismiss=lambda: dismissed.append(True))

    assert sheet.presented_view() == "sheet"
    sheet.dismiss()
    assert dismissed == [True]

    inactive = Sheet(is_active=False, content=lambda: "sheet", on_dismiss=lambda: dismissed.append(True))
    assert inactive.presented_view() is None
    inactive.dismiss()
    assert dismissed == [True]


def test_combined_unmounts_in_reverse(bus, config):
    order = []

    class Recording(NoNavigation):
        def __init__(self, label):
            self.label = label

        def mount(self):
            order.append(f"mount:{self.label}")

        def unmount(self):
            order.append(f"unmount:{self.label}")

    combined = Combined((Recording("a"), Recording("b")))
    combined.mount()
    combined.unmount()

    assert order == ["mount:a", "mount:b", "unmount:b", "unmount:a"]


@pytest.mark.asyncio
async def test_invalidation_is_published_on_bus(bus, config):
    received = []

    async def on_invalidated(payload):
        received.append(payload)

    await bus.subscribe(events.TOPIC_COORDINATOR_INVALIDATED, on_invalidated)
    coordinator = CounterCoordinator(name="counter", event_bus=bus, config=config)

    coordinator.count = 3
    await bus.wait_until_idle(timeout=1.0)

    assert len(received) == 1
    assert received[0]["coordinator"] == "counter"
    assert received[0]["field"] == "count"
    assert received[0]["revision"] == 1


@pytest.mark.asyncio
async def test_resource_changes_invalidate_owner(bus, config):
    phases = []

    async def on_resource(payload):
        phases.append(payload["phase"])

    await bus.subscribe(events.TOPIC_RESOURCE_STATE_CHANGED, on_resource)
    coordinator = LoadingCoordinator(event_bus=bus, config=config)
    coordinator.start()

    coordinator.requests.publish(Load(0.01))
    await coordinator.wait_until_idle(timeout=1.0)
    await bus.wait_until_idle(timeout=1.0)

    assert coordinator.items.phase is Phase.LOADED
    assert coordinator.revision == 2
    assert phases == ["loading", "loaded"]


@pytest.mark.asyncio
async def test_teardown_cancels_in_flight_handlers(bus, config):
    coordinator = LoadingCoordinator(event_bus=bus, config=config)
    coordinator.start()

    coordinator.requests.publish(Load(10))
    await asyncio.sleep(0)
    assert len(coordinator.tasks) == 1

    coordinator.teardown()
    assert await coordinator.wait_until_idle(timeout=1.0)

    assert coordinator.tasks.closed
    assert len(coordinator.tasks) == 0
    assert coordinator.items.in_flight == 0


def test_state_dependent_child_is_started_when_declared(bus, config):
    child = CounterCoordinator(name="child", event_bus=bus, config=config)
    parent = ToggleParent(child, event_bus=bus, config=config)
    parent.start()
    assert not child.is_started

    parent.show = True

    assert child.is_started
    assert parent.snapshot().navigation == {"pattern": "ChildCoordinator", "child": "child"}
    child.buttons.publish(Increment())
    assert child.count == 1

    parent.teardown()
    assert not child.is_started


def test_child_no_longer_declared_is_torn_down(bus, config):
    first = CounterCoordinator(name="first", event_bus=bus, config=config)
    second = CounterCoordinator(name="second", event_bus=bus, config=config)
    parent = SwappingParent(event_bus=bus, config=config)
    parent.current = first
    parent.start()
    assert first.is_started

    parent.current = second

    assert not first.is_started
    assert not first.buttons.is_attached
    assert second.is_started

    parent.current = None
    assert not second.is_started

    parent.teardown()


def test_redeclaring_same_child_keeps_it_running(bus, config):
    child = CounterCoordinator(name="child", event_bus=bus, config=config)
    parent = ToggleParent(child, event_bus=bus, config=config)
    parent.show = True
    parent.start()

    parent.invalidate("unrelated")

    assert child.is_started
    assert child.buttons.is_attached
