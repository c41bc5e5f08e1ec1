"""Navigation: path reconciliation and deep links."""

from .stack import PlatformStack, StackDiff, StackFrame, diff_paths, frames_to_path
from .navigator import CoordinatorStack, NavigationStackView, Navigator, unhandled_destination, union_members
from .deep_link import ApplyTarget, DeepLink, DeepLinkDispatcher, DeepLinkOutcome, LinkStep, SetPath

__all__ = [
    "PlatformStack",
    "StackDiff",
    "StackFrame",
    "diff_paths",
    "frames_to_path",
    "Navigator",
    "CoordinatorStack",
    "NavigationStackView",
    "unhandled_destination",
    "union_members",
    "DeepLink",
    "DeepLinkDispatcher",
    "DeepLinkOutcome",
    "LinkStep",
    "SetPath",
    "ApplyTarget",
]
