"""Navigator path reconciliation."""

from dataclasses import dataclass

import pytest

from conduit.navigation import PlatformStack, StackFrame, diff_paths, union_members
from conduit.shared.core import events
from conduit.shared.core.configuration import ConduitConfig
from conduit.shared.core.errors import (
    NavigationError,
    NonExhaustiveDestinationError,
    ReconciliationError,
    UnknownDestinationError,
)

from support import (
    IncompleteNavigator,
    Intent,
    PathNavigator,
    ScreenStack,
    Target1,
    Target2,
    Target3,
)


@dataclass(frozen=True)
class Stranger:
    pass


LONG_PATH = (Target1(), Target2(), Target3("a"), Target3("b"), Target1())


def test_diff_paths_keeps_common_prefix():
    diff = diff_paths((Target1(), Target2(), Target3("a")), (Target1(), Target3("b")))

    assert diff.retained == 1
    assert diff.popped == (Target2(), Target3("a"))
    assert diff.pushed == (Target3("b"),)
    assert not diff.is_noop
    assert diff_paths((Target1(),), (Target1(),)).is_noop


def test_union_members_flattens_unions():
    assert union_members(Target1 | Target2) == (Target1, Target2)
    assert union_members(Target1) == (Target1,)
    assert union_members(None) == ()


def test_start_renders_declared_path(bus, registry, config):
    navigator = PathNavigator(event_bus=bus, registry=registry, config=config, initial_path=[Target1(), Target2()])
    assert len(navigator.platform) == 0

    navigator.start()

    assert navigator.platform.destinations() == (Target1(), Target2())
    assert registry.get("main") is navigator
    view = navigator.entry_view()
    assert [frame.label for frame in view.frames] == ["one", "two"]
    assert view.top.label == "two"


def test_apply_target_state_is_idempotent(navigator):
    navigator.start()

    first = navigator.apply_target_state(Intent.SHOW_ITEM)
    rendered = list(navigator.rendered)
    revision = navigator.revision
    second = navigator.apply_target_state(Intent.SHOW_ITEM)

    assert first == second == (Target2(), Target3("42"))
    assert navigator.rendered == rendered
    assert navigator.revision == revision


def test_target_state_replaces_whole_path(navigator):
    navigator.start()
    navigator.apply_target_state(Intent.SHOW_SECOND)

    navigator.apply_target_state(Intent.SHOW_ITEM)
    assert navigator.path == (Target2(), Target3("42"))
    assert navigator.platform.destinations() == navigator.path

    navigator.apply_target_state(Intent.RESET)
    assert navigator.path == ()
    assert len(navigator.platform) == 0


def test_reconciliation_reuses_common_prefix(navigator):
    navigator.start()
    navigator.set_path([Target1(), Target2()])
    bottom = navigator.platform.frames[0]
    navigator.rendered.clear()

    navigator.set_path([Target1(), Target3("x")])

    assert navigator.platform.frames[0] is bottom
    assert navigator.rendered == [Target3("x")]


@pytest.mark.parametrize("k", range(len(LONG_PATH)))
def test_platform_pop_truncates_to_prefix(navigator, k):
    navigator.start()
    navigator.set_path(LONG_PATH)

    navigator.platform_did_pop(k)

    assert navigator.path == LONG_PATH[:k]
    assert navigator.platform.destinations() == LONG_PATH[:k]


def test_user_pop_gesture_updates_path(navigator):
    navigator.start()
    navigator.set_path(LONG_PATH)

    navigator.platform.user_pop()
    assert navigator.path == LONG_PATH[:-1]

    navigator.platform.user_pop(2)
    assert navigator.path == LONG_PATH[:2]

    navigator.platform_did_pop_frames(1)
    assert navigator.path == LONG_PATH[:1]


def test_platform_pop_is_not_undone(navigator):
    navigator.start()
    navigator.apply_target_state(Intent.SHOW_SECOND)

    navigator.platform.user_pop()
    navigator.set_path(navigator.path)

    assert navigator.path == (Target1(),)


def test_invalid_pop_lengths_are_rejected(navigator):
    navigator.start()
    navigator.set_path([Target1()])

    with pytest.raises(ValueError):
        navigator.platform_did_pop(2)
    with pytest.raises(ValueError):
        navigator.platform.user_pop(3)
    assert navigator.path == (Target1(),)


def test_unknown_destination_leaves_path_unchanged(navigator):
    navigator.start()
    navigator.set_path([Target1()])

    with pytest.raises(UnknownDestinationError) as excinfo:
        navigator.set_path([Target1(), Stranger()])

    assert isinstance(excinfo.value, NavigationError)
    assert navigator.path == (Target1(),)


def test_max_depth_is_enforced(bus, registry):
    config = ConduitConfig(navigation={"max_depth": 2})
    navigator = PathNavigator(event_bus=bus, registry=registry, config=config)

    with pytest.raises(NavigationError):
        navigator.set_path(LONG_PATH)
    assert navigator.path == ()


def test_every_destination_variant_has_a_view(navigator):
    navigator.verify_exhaustive([Target1(), Target2(), Target3("x")])

    assert set(type(d) for d in navigator.rendered) == set(navigator.destination_variants())


def test_missing_destination_case_is_detected(bus, registry, config):
    navigator = IncompleteNavigator(event_bus=bus, registry=registry, config=config)

    with pytest.raises(NonExhaustiveDestinationError):
        navigator.verify_exhaustive([Target1(), Target2(), Target3("x")])


def test_verify_exhaustive_requires_all_samples(navigator):
    with pytest.raises(ValueError, match="Target3"):
        navigator.verify_exhaustive([Target1(), Target2()])


class DriftingNavigator(PathNavigator):
    """Host that drops frames right after they were pushed."""

    def _frames_pushed(self, frames):
        self.platform.truncate(0)


def test_drifted_platform_stack_is_detected(bus, registry, config):
    navigator = DriftingNavigator(event_bus=bus, registry=registry, config=config)
    navigator.start()

    with pytest.raises(ReconciliationError):
        navigator.set_path([Target1(), Target3("x")])


def test_teardown_unregisters_and_clears_stack(navigator, registry):
    navigator.start()
    navigator.set_path([Target1()])

    navigator.teardown()

    assert registry.get("main") is None
    assert len(navigator.platform) == 0
    assert not navigator.is_mounted


def test_platform_stack_without_listener_truncates_itself():
    stack = PlatformStack()
    stack.extend([StackFrame(Target1()), StackFrame(Target2())])

    stack.user_pop()

    assert stack.destinations() == (Target1(),)
    assert stack.top() == StackFrame(Target1())


def test_coordinator_stack_starts_and_tears_down_children(bus, registry, config):
    stack = ScreenStack(event_bus=bus, registry=registry, config=config)
    stack.start()

    stack.apply_target_state(Intent.SHOW_SECOND)
    first, second = stack.children()
    assert first.is_started and second.is_started
    assert [frame.label for frame in stack.entry_view().frames] == ["one", "two"]

    stack.platform.user_pop()
    assert not second.is_started
    assert first.is_started

    stack.teardown()
    assert not first.is_started


def test_coordinator_stack_probe_children_are_released(bus, registry, config):
    stack = ScreenStack(event_bus=bus, registry=registry, config=config)

    stack.verify_exhaustive([Target1(), Target2(), Target3("x")])

    assert len(stack.built) == 3
    assert all(not child.is_started for child in stack.built)


@pytest.mark.asyncio
async def test_path_changes_are_announced(navigator, bus):
    received = []

    async def on_changed(payload):
        received.append((payload["reason"], payload["depth"]))

    async def on_popped(payload):
        received.append(("popped", payload["to_length"]))

    await bus.subscribe(events.TOPIC_PATH_CHANGED, on_changed)
    await bus.subscribe(events.TOPIC_PLATFORM_POPPED, on_popped)
    navigator.start()

    navigator.apply_target_state(Intent.SHOW_SECOND)
    navigator.apply_target_state(Intent.SHOW_SECOND)
    await bus.wait_until_idle(timeout=1.0)
    navigator.platform.user_pop()
    await bus.wait_until_idle(timeout=1.0)

    assert received == [("target_state", 2), ("popped", 1), ("platform_pop", 1)]
