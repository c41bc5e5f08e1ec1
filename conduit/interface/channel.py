"""Single-consumer action channel between a view and its coordinator."""

from __future__ import annotations

import itertools
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from conduit.shared.core.configuration import ChannelConfig, ValidationLevel, get_config
from conduit.shared.core.errors import DuplicateObserverError, ProtocolViolationError

logger = logging.getLogger(__name__)

Action = TypeVar("Action")

_channel_ids = itertools.count(1)


class ActionChannel(Generic[Action]):
    """Fire-and-forget stream of view actions with exactly one consumer.

    The coordinator that creates a channel owns it; the view description it
    hands the channel to only borrows it to publish user intents. Publishing
    while nobody listens is legal and drops the action.

    Usage:
        channel: ActionChannel[HomeAction] = ActionChannel("home")
        InterfaceObserver(channel, coordinator.handle).start()
        channel.publish(SearchEvents("paris"))
    """

    def __init__(self, name: Optional[str] = None, *, config: Optional[ChannelConfig] = None) -> None:
        self.name = name or f"channel-{next(_channel_ids)}"
        self.config = config or get_config(ValidationLevel.LENIENT).channels
        self.consumed = False
        self._handler: Optional[Callable[[Action], Any]] = None
        self._observer: Any = None
        self.published_count = 0
        self.dropped_count = 0

    @classmethod
    def consume(cls, handler: Callable[[Action], Any], *, name: Optional[str] = None) -> "ActionChannel[Action]":
        """Create a channel already bound to a parent's handler.

        Coroutine functions get an async observer, plain callables a
        synchronous one.
        """
        from conduit.interface.observers import observe

        channel: ActionChannel[Action] = cls(name)
        channel.consumed = True
        # The channel keeps its observer alive for as long as it exists
        channel._observer = observe(channel, handler)
        channel._observer.start()
        return channel

    @property
    def is_attached(self) -> bool:
        return self._handler is not None

    def attach(self, handler: Callable[[Action], Any]) -> None:
        """Register the single consumer.

        Raises:
            DuplicateObserverError: If an observer is already attached
        """
        if self._handler is not None:
            logger.error(f"Second observer attached to channel '{self.name}'")
            raise DuplicateObserverError(self.name)
        self._handler = handler
        logger.debug(f"Observer attached to channel '{self.name}'")

    def detach(self, handler: Optional[Callable[[Action], Any]] = None) -> None:
        """Remove the consumer. Safe to call repeatedly.

        When ``handler`` is given, only that handler is removed.
        """
        if self._handler is None:
            return
        if handler is not None and self._handler != handler:
            return
        self._handler = None
        logger.debug(f"Observer detached from channel '{self.name}'")

    def publish(self, action: Action) -> bool:
        """Deliver ``action`` to the attached observer.

        Returns:
            True if an observer received the action, False if it was dropped
        """
        self.published_count += 1
        handler = self._handler
        if handler is None:
            self.dropped_count += 1
            if self.config.log_dropped_actions:
                logger.debug(f"Dropped {action!r} on channel '{self.name}' (no observer)")
            return False

        try:
            handler(action)
        except ProtocolViolationError:
            raise
        except Exception as exc:
            # Channels carry actions, not errors
            logger.exception(
                f"Observer of channel '{self.name}' failed on {action!r}",
                exc_info=exc,
            )
        return True

    def __repr__(self) -> str:
        state = "attached" if self.is_attached else "detached"
        return f"ActionChannel({self.name!r}, {state})"
