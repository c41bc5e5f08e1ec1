"""Coordinator-owned state: observable fields and loading resources."""

from .loading_state import ALLOWED_TRANSITIONS, LoadingState, Phase, ResourceState, validate_transition
from .observable import StateField

__all__ = [
    "ALLOWED_TRANSITIONS",
    "LoadingState",
    "Phase",
    "ResourceState",
    "StateField",
    "validate_transition",
]
