"""Error taxonomy for Conduit.

Two families matter at runtime:

- ``ProtocolViolationError``: structurally broken wiring (a second observer on
  a channel, a destination the navigator cannot render, an illegal resource
  transition). These are programmer errors and are raised at the point of
  violation. Channels never swallow them.
- ``NavigationError``: recoverable navigation failures (unparseable deep link,
  unknown destination, navigator not mounted). They are reported to the caller
  as typed failures and leave navigation state unchanged.
"""

from __future__ import annotations

from typing import Any, Optional


class ConduitError(Exception):
    """Base class for all Conduit errors."""


# ============================================================================
# Protocol violations (fatal)
# ============================================================================


class ProtocolViolationError(ConduitError):
    """Raised when the coordinator/channel/navigator wiring is broken."""


class DuplicateObserverError(ProtocolViolationError):
    """Raised when a second observer is attached to a single-consumer channel."""

    def __init__(self, channel_name: str) -> None:
        self.channel_name = channel_name
        super().__init__(
            f"Channel '{channel_name}' already has an observer attached. "
            "Each ActionChannel supports exactly one consumer."
        )


class NonExhaustiveDestinationError(ProtocolViolationError):
    """Raised when a navigator has no view for a destination variant."""

    def __init__(self, destination: Any) -> None:
        self.destination = destination
        super().__init__(
            f"No destination view for {destination!r} "
            f"({type(destination).__name__}); destination_view must cover every variant"
        )


class ReconciliationError(ProtocolViolationError):
    """Raised when the platform stack no longer mirrors the navigation path."""


class InvalidTransitionError(ProtocolViolationError):
    """Raised on an illegal ResourceState transition."""

    def __init__(self, source: str, target: str, reason: Optional[str] = None) -> None:
        self.source = source
        self.target = target
        message = f"Illegal resource transition {source} -> {target}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


# ============================================================================
# Navigation errors (recoverable)
# ============================================================================


class NavigationError(ConduitError):
    """Base class for recoverable navigation failures."""


class UnknownDestinationError(NavigationError):
    """Raised when a path contains a value outside the navigator's destination set."""

    def __init__(self, navigator_name: str, destination: Any) -> None:
        self.navigator_name = navigator_name
        self.destination = destination
        super().__init__(
            f"Navigator '{navigator_name}' does not know destination {destination!r}"
        )


class NavigatorNotMountedError(NavigationError):
    """Raised when a navigation step targets a navigator that never mounted."""

    def __init__(self, navigator_name: str, timeout: float) -> None:
        self.navigator_name = navigator_name
        self.timeout = timeout
        super().__init__(
            f"Navigator '{navigator_name}' was not mounted within {timeout:.2f}s"
        )


class DeepLinkError(NavigationError):
    """Base class for deep link failures."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"{message} (url={url!r})")


class UnparseableLinkError(DeepLinkError):
    """The URL could not be parsed or uses a scheme the app does not accept."""


class UnknownRouteError(DeepLinkError):
    """The URL parsed fine but no route is registered for it."""


class LinkResolutionError(DeepLinkError):
    """A route resolver failed while translating the URL into navigation steps."""
