"""Platform stack representation and path <-> stack reconciliation.

The navigation path is the declared truth; the ``PlatformStack`` is what the
host actually presents. ``diff_paths`` turns the difference into one
reconciliation step (pop to the common prefix, then push the rest) and
``frames_to_path`` converts back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, Tuple, TypeVar

logger = logging.getLogger(__name__)

D = TypeVar("D")


@dataclass(frozen=True)
class StackFrame(Generic[D]):
    """One presented screen: the destination and the view rendered for it."""

    destination: D
    view: Any = field(default=None, compare=False)


@dataclass(frozen=True)
class StackDiff(Generic[D]):
    """Pop down to ``retained`` frames, then push ``pushed``."""

    retained: int
    popped: Tuple[D, ...]
    pushed: Tuple[D, ...]

    @property
    def is_noop(self) -> bool:
        return not self.popped and not self.pushed


def diff_paths(current: Sequence[D], target: Sequence[D]) -> StackDiff[D]:
    """Compute the step that turns ``current`` into ``target``.

    Frames in the longest common prefix are kept as they are.
    """
    retained = 0
    for old, new in zip(current, target):
        if old != new:
            break
        retained += 1
    return StackDiff(
        retained=retained,
        popped=tuple(current[retained:]),
        pushed=tuple(target[retained:]),
    )


def frames_to_path(frames: Iterable[StackFrame[D]]) -> Tuple[D, ...]:
    return tuple(frame.destination for frame in frames)


class PlatformStack(Generic[D]):
    """Host-side stack of presented frames.

    ``user_pop`` models the back gesture. It does not edit the frames itself
    when a listener is installed: the owning navigator truncates its path and
    the stack together so both representations change in one step.
    """

    def __init__(self, on_user_pop: Optional[Callable[[int], Any]] = None) -> None:
        self._frames: List[StackFrame[D]] = []
        self._on_user_pop = on_user_pop

    @property
    def frames(self) -> Tuple[StackFrame[D], ...]:
        return tuple(self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def destinations(self) -> Tuple[D, ...]:
        return frames_to_path(self._frames)

    def top(self) -> Optional[StackFrame[D]]:
        return self._frames[-1] if self._frames else None

    def truncate(self, length: int) -> Tuple[StackFrame[D], ...]:
        """Drop frames above ``length`` and return them, bottom first."""
        if length < 0:
            raise ValueError(f"Stack length cannot be negative: {length}")
        popped = tuple(self._frames[length:])
        del self._frames[length:]
        return popped

    def extend(self, frames: Iterable[StackFrame[D]]) -> None:
        self._frames.extend(frames)

    def user_pop(self, count: int = 1) -> None:
        """The user navigated back ``count`` frames."""
        if count < 1 or count > len(self._frames):
            raise ValueError(f"Cannot pop {count} frame(s) from a stack of {len(self._frames)}")
        self.user_pop_to(len(self._frames) - count)

    def user_pop_to(self, length: int) -> None:
        """The user navigated back until ``length`` frames remain."""
        if not 0 <= length <= len(self._frames):
            raise ValueError(f"Cannot pop to {length} on a stack of {len(self._frames)}")
        logger.debug(f"Platform pop {len(self._frames)} -> {length}")
        if self._on_user_pop is not None:
            self._on_user_pop(length)
        else:
            self.truncate(length)
