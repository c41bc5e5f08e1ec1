"""Canonical event definitions for Conduit."""

from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Sequence

from .event_bus import EventPayload

# Coordinator state
TOPIC_COORDINATOR_INVALIDATED = "coordinator.invalidated"
TOPIC_RESOURCE_STATE_CHANGED = "resource.state.changed"

# Navigation
TOPIC_PATH_CHANGED = "navigation.path.changed"
TOPIC_PLATFORM_POPPED = "navigation.platform.popped"

# Deep links
TOPIC_DEEP_LINK_APPLIED = "deeplink.applied"
TOPIC_DEEP_LINK_FAILED = "deeplink.failed"


def create_invalidated_event(coordinator: str, field: Optional[str], revision: int) -> EventPayload:
    """Create a coordinator invalidation event (state changed, re-derive views)."""
    return {
        "coordinator": coordinator,
        "field": field,
        "revision": revision,
        "ts": time.time(),
    }


def create_resource_state_event(resource: str, phase: str, ticket: Optional[int] = None) -> EventPayload:
    """Create a resource state change event."""
    event: EventPayload = {
        "resource": resource,
        "phase": phase,
    }
    if ticket is not None:
        event["ticket"] = ticket
    return event


def create_path_changed_event(
    navigator: str,
    path: Sequence[Any],
    reason: str,
    popped: int = 0,
    pushed: int = 0,
) -> EventPayload:
    """Create a navigation path change event.

    Args:
        navigator: Name of the navigator that owns the path
        path: The new path
        reason: What caused the change ("target_state", "set_path", "platform_pop", "rollback")
        popped: Number of frames removed from the platform stack
        pushed: Number of frames added to the platform stack
    """
    return {
        "navigator": navigator,
        "path": list(path),
        "depth": len(path),
        "reason": reason,
        "popped": popped,
        "pushed": pushed,
    }


def create_platform_popped_event(navigator: str, from_length: int, to_length: int) -> EventPayload:
    """Create an event for a user-driven back navigation."""
    return {
        "navigator": navigator,
        "from_length": from_length,
        "to_length": to_length,
    }


def create_deep_link_applied_event(url: str, navigators: List[str]) -> EventPayload:
    return {
        "url": url,
        "navigators": navigators,
        "ts": time.time(),
    }


def create_deep_link_failed_event(url: str, error: BaseException) -> EventPayload:
    """Create a deep link failure event carrying the typed error."""
    return {
        "url": url,
        "error_type": type(error).__name__,
        "message": str(error),
        "ts": time.time(),
    }


def describe_payload(payload: Dict[str, Any]) -> str:
    """Short human-readable form of a payload, used by log lines and the demo."""
    return ", ".join(f"{key}={value}" for key, value in payload.items() if key != "ts")
