"""Path-based navigation.

A ``Navigator`` owns an ordered path of destinations and keeps the platform
stack an exact rendering of it:

- ``apply_target_state`` maps a declarative intent to a whole path and assigns
  it in one step (reset, or reset-then-push several levels).
- ``set_path`` assigns an explicit path (deep links).
- ``platform_did_pop`` accepts a user-driven back navigation as authoritative;
  the path is truncated and never "corrected" back.

Destinations form a closed union of frozen dataclasses declared in
``destination_type``. ``destination_view`` must cover every variant; write
it as a ``match`` whose fallthrough calls ``unhandled_destination`` so a type
checker flags missing cases.
"""

from __future__ import annotations

import logging
import types
from abc import abstractmethod
from dataclasses import dataclass
from typing import (
    Any,
    ClassVar,
    Generic,
    Iterable,
    Never,
    NoReturn,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

from conduit.coordination.coordinator import Coordinator
from conduit.navigation.stack import PlatformStack, StackDiff, StackFrame, diff_paths
from conduit.shared.core import events
from conduit.shared.core.errors import (
    NavigationError,
    NonExhaustiveDestinationError,
    ReconciliationError,
    UnknownDestinationError,
)
from conduit.shared.core.service_registry import NavigatorRegistry, get_navigator_registry

logger = logging.getLogger(__name__)

D = TypeVar("D")
T = TypeVar("T")


def unhandled_destination(destination: Never) -> NoReturn:
    """Fallthrough for exhaustive ``match`` statements over destinations."""
    raise NonExhaustiveDestinationError(destination)


def union_members(annotation: Any) -> Tuple[type, ...]:
    """Flatten ``A | B | C`` (or ``Union[...]``, or a single class) into classes."""
    if annotation is None:
        return ()
    if get_origin(annotation) in (Union, types.UnionType):
        members: Tuple[type, ...] = ()
        for arg in get_args(annotation):
            members += union_members(arg)
        return members
    if isinstance(annotation, type):
        return (annotation,)
    raise TypeError(f"Unsupported destination type: {annotation!r}")


@dataclass(frozen=True)
class NavigationStackView:
    """View description of a navigator: its root plus one view per frame."""

    navigator: str
    root: Any
    frames: Tuple[Any, ...]
    path: Tuple[Any, ...]

    @property
    def depth(self) -> int:
        return len(self.path)

    @property
    def top(self) -> Any:
        return self.frames[-1] if self.frames else self.root


class Navigator(Coordinator, Generic[D, T]):
    """Coordinator owning a navigation path.

    Args:
        initial_path: Path declared before mounting
        registry: Where the navigator announces itself when started
        **kwargs: Passed to ``Coordinator``
    """

    destination_type: ClassVar[Any] = None

    def __init__(
        self,
        *,
        initial_path: Sequence[D] = (),
        registry: Optional[NavigatorRegistry] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.registry = registry if registry is not None else get_navigator_registry()
        self.platform: PlatformStack[D] = PlatformStack(on_user_pop=self.platform_did_pop)
        self._path: Tuple[D, ...] = ()
        self._mounted = False
        if initial_path:
            self._assign(tuple(initial_path), reason="initial")

    # --- Declarations ---

    @abstractmethod
    def root_view(self) -> Any:
        """View shown below every frame."""

    @abstractmethod
    def destination_view(self, destination: D) -> Any:
        """View for one destination. Must cover every destination variant."""

    def target_path(self, state: T) -> Sequence[D]:
        """Path a target state maps to."""
        raise NotImplementedError(f"{type(self).__name__} declares no target states")

    @classmethod
    def destination_variants(cls) -> Tuple[type, ...]:
        return union_members(cls.destination_type)

    # --- Reading ---

    @property
    def path(self) -> Tuple[D, ...]:
        return self._path

    @property
    def depth(self) -> int:
        return len(self._path)

    @property
    def is_mounted(self) -> bool:
        return self._mounted

    def entry_view(self) -> NavigationStackView:
        return NavigationStackView(
            navigator=self.name,
            root=self.root_view(),
            frames=tuple(self._frame_view(frame) for frame in self.platform.frames),
            path=self._path,
        )

    # --- Navigating ---

    def apply_target_state(self, state: T) -> Tuple[D, ...]:
        """Navigate to where ``state`` says navigation should be.

        Applying the same state twice in a row leaves the path unchanged the
        second time.
        """
        new_path = tuple(self.target_path(state))
        logger.info(f"Navigator '{self.name}': applying target state {state!r}")
        self._assign(new_path, reason="target_state")
        return self._path

    def set_path(self, destinations: Iterable[D], *, reason: str = "set_path") -> Tuple[D, ...]:
        """Replace the whole path."""
        self._assign(tuple(destinations), reason=reason)
        return self._path

    def platform_did_pop(self, to_length: int) -> Tuple[D, ...]:
        """The platform popped frames until ``to_length`` remain."""
        current = len(self._path)
        if not 0 <= to_length <= current:
            raise ValueError(f"Navigator '{self.name}': cannot pop to {to_length} from depth {current}")
        if to_length == current:
            return self._path

        removed = self._path[to_length:]
        self._path = self._path[:to_length]
        if self._mounted:
            self._frames_popped(self.platform.truncate(to_length))
            self._verify()

        logger.info(f"Navigator '{self.name}': platform pop {current} -> {to_length}")
        self.bus.publish_nowait(
            events.TOPIC_PLATFORM_POPPED,
            events.create_platform_popped_event(self.name, current, to_length),
        )
        self._announce("platform_pop", StackDiff(to_length, removed, ()))
        return self._path

    def platform_did_pop_frames(self, count: int = 1) -> Tuple[D, ...]:
        """The platform popped ``count`` frames."""
        if not 0 <= count <= len(self._path):
            raise ValueError(f"Navigator '{self.name}': cannot pop {count} frame(s) from depth {len(self._path)}")
        return self.platform_did_pop(len(self._path) - count)

    # --- Lifecycle ---

    def start(self) -> None:
        """Mount: render the declared path onto the platform stack and register."""
        if self._started:
            return
        super().start()
        self._mounted = True
        diff = self._reconcile()
        if not diff.is_noop:
            self._announce("mount", diff)
        self.registry.register(self.name, self)

    def teardown(self) -> None:
        if self._torn_down:
            return
        self.registry.unregister(self.name, self)
        if self._mounted:
            self._frames_popped(self.platform.truncate(0))
            self._mounted = False
        super().teardown()

    # --- Checks ---

    def verify_exhaustive(self, samples: Iterable[D]) -> None:
        """Render one sample of every destination variant.

        Raises:
            ValueError: If ``samples`` does not cover every variant
            NonExhaustiveDestinationError: If a variant has no view
        """
        samples = list(samples)
        covered = {type(sample) for sample in samples}
        missing = [variant.__name__ for variant in self.destination_variants() if variant not in covered]
        if missing:
            raise ValueError(f"No sample for destination variant(s): {', '.join(missing)}")
        for sample in samples:
            self._release_probe(self.destination_view(sample))

    # --- Internals ---

    def _assign(self, new_path: Tuple[D, ...], *, reason: str) -> bool:
        self._validate_path(new_path)
        if new_path == self._path:
            logger.debug(f"Navigator '{self.name}': path unchanged ({reason})")
            return False

        self._path = new_path
        diff = self._reconcile() if self._mounted else diff_paths((), new_path)
        self._announce(reason, diff)
        return True

    def _validate_path(self, path: Tuple[D, ...]) -> None:
        max_depth = self.config.navigation.max_depth
        if len(path) > max_depth:
            raise NavigationError(
                f"Navigator '{self.name}': path depth {len(path)} exceeds maximum {max_depth}"
            )
        variants = self.destination_variants()
        if not variants:
            return
        for destination in path:
            if not isinstance(destination, variants):
                raise UnknownDestinationError(self.name, destination)

    def _reconcile(self) -> StackDiff[D]:
        """Bring the platform stack in line with the path."""
        diff = diff_paths(self.platform.destinations(), self._path)
        if diff.is_noop:
            return diff

        self._frames_popped(self.platform.truncate(diff.retained))
        pushed = [StackFrame(destination, self.destination_view(destination)) for destination in diff.pushed]
        self.platform.extend(pushed)
        self._frames_pushed(pushed)
        self._verify()
        logger.debug(
            f"Navigator '{self.name}': reconciled (-{len(diff.popped)} +{len(diff.pushed)}) depth={len(self._path)}"
        )
        return diff

    def _verify(self) -> None:
        if not self.config.navigation.verify_reconciliation:
            return
        presented = self.platform.destinations()
        if presented != self._path:
            raise ReconciliationError(
                f"Navigator '{self.name}': platform stack {list(presented)} does not match path {list(self._path)}"
            )

    def _announce(self, reason: str, diff: StackDiff[D]) -> None:
        self.invalidate("path")
        self.bus.publish_nowait(
            events.TOPIC_PATH_CHANGED,
            events.create_path_changed_event(
                self.name, self._path, reason, popped=len(diff.popped), pushed=len(diff.pushed)
            ),
        )

    def _frame_view(self, frame: StackFrame[D]) -> Any:
        return frame.view

    def _frames_pushed(self, frames: Sequence[StackFrame[D]]) -> None:
        """Hook: frames were added to the platform stack."""

    def _frames_popped(self, frames: Sequence[StackFrame[D]]) -> None:
        """Hook: frames were removed from the platform stack (bottom first)."""

    def _release_probe(self, view: Any) -> None:
        """Hook: dispose of a view rendered only for ``verify_exhaustive``."""


class CoordinatorStack(Navigator[D, T]):
    """Navigator whose destinations are child coordinators.

    Each pushed frame starts the coordinator built for its destination; each
    popped frame tears it down, which cancels the child's in-flight work.
    """

    @abstractmethod
    def destination_coordinator(self, destination: D) -> Coordinator:
        """Build the coordinator for one destination. Must cover every variant."""

    def destination_view(self, destination: D) -> Coordinator:
        return self.destination_coordinator(destination)

    def children(self) -> Tuple[Coordinator, ...]:
        return tuple(frame.view for frame in self.platform.frames)

    def _frame_view(self, frame: StackFrame[D]) -> Any:
        return frame.view.entry_view()

    def _frames_pushed(self, frames: Sequence[StackFrame[D]]) -> None:
        for frame in frames:
            frame.view.start()

    def _frames_popped(self, frames: Sequence[StackFrame[D]]) -> None:
        for frame in reversed(frames):
            frame.view.teardown()

    def _release_probe(self, view: Any) -> None:
        view.teardown()
