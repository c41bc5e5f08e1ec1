"""View interface: action channels and their observers."""

from .channel import ActionChannel
from .observers import AsyncInterfaceObserver, ChannelObserver, InterfaceObserver, observe

__all__ = [
    "ActionChannel",
    "ChannelObserver",
    "InterfaceObserver",
    "AsyncInterfaceObserver",
    "observe",
]
