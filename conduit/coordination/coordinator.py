"""Coordinator base class.

A coordinator owns presentation state for one subtree: it creates the action
channels its entry view publishes on, interprets every inbound action in
``handle``, and declares how it navigates. Views never mutate coordinator
state; they only publish actions.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from conduit.interface.channel import ActionChannel
from conduit.interface.observers import ChannelObserver, observe
from conduit.coordination.patterns import NavigationPattern, NoNavigation
from conduit.shared.core import events
from conduit.shared.core.configuration import ConduitConfig, ValidationLevel, get_config
from conduit.shared.core.errors import ProtocolViolationError
from conduit.shared.core.event_bus import EventBus
from conduit.shared.core.tasks import TaskRegistry
from conduit.state.loading_state import LoadingState, ResourceState

logger = logging.getLogger(__name__)

Action = TypeVar("Action")
Value = TypeVar("Value")


@dataclass(frozen=True)
class CoordinatorSnapshot:
    """What the host renders for a coordinator at one revision."""

    name: str
    revision: int
    entry: Any
    navigation: Dict[str, Any]


class Coordinator(ABC):
    """Base class for coordinators.

    Subclasses call ``super().__init__`` before touching their state fields,
    create channels with ``channel()`` and implement ``entry_view``. By default
    every channel created through ``channel()`` is observed by ``handle``;
    override ``interfaces()`` to bind channels to other handlers.

    Args:
        name: Coordinator name used in logs, events and task names
        event_bus: Bus used for invalidation notifications
        interface: Channel to the parent coordinator (borrowed, never observed here)
        config: Toolkit configuration; loaded leniently when omitted
    """

    def __init__(
        self,
        *,
        name: Optional[str] = None,
        event_bus: Optional[EventBus] = None,
        interface: Optional[ActionChannel[Any]] = None,
        config: Optional[ConduitConfig] = None,
    ) -> None:
        self.name = name or type(self).__name__
        self.bus = event_bus or EventBus()
        self.config = config or get_config(ValidationLevel.LENIENT)
        self.interface = interface
        self.tasks = TaskRegistry(owner=self.name, config=self.config.tasks)
        self.revision = 0
        self._channels: List[ActionChannel[Any]] = []
        self._observers: List[ChannelObserver[Any]] = []
        self._mounted_pattern: Optional[NavigationPattern] = None
        self._refreshing_navigation = False
        self._started = False
        self._torn_down = False

    # --- Declarations ---

    @abstractmethod
    def entry_view(self) -> Any:
        """Pure view description derived from current state."""

    def handle(self, action: Any) -> Union[None, Awaitable[None]]:
        """Interpret an action from one of this coordinator's channels."""
        raise NotImplementedError(f"{type(self).__name__} does not handle actions")

    def interfaces(self) -> Sequence[ChannelObserver[Any]]:
        """Observers binding channels to handlers. Default: every owned channel -> ``handle``."""
        return [self.observe(channel, self.handle) for channel in self._channels]

    def navigation(self) -> NavigationPattern:
        """Navigation declared for the current state."""
        return NoNavigation()

    # --- Building blocks ---

    def channel(self, name: str) -> ActionChannel[Any]:
        """Create a channel owned by this coordinator."""
        created: ActionChannel[Any] = ActionChannel(f"{self.name}.{name}", config=self.config.channels)
        self._channels.append(created)
        return created

    def observe(
        self,
        channel: ActionChannel[Action],
        handler: Union[Callable[[Action], None], Callable[[Action], Awaitable[None]]],
    ) -> ChannelObserver[Action]:
        """Observer for ``channel``; async handlers run in this coordinator's task registry."""
        return observe(channel, handler, tasks=self.tasks)

    def resource(
        self,
        name: str,
        initial: Optional[LoadingState[Value, Any]] = None,
    ) -> ResourceState[Value, Any]:
        """Create a resource whose changes invalidate this coordinator."""
        return ResourceState(name, initial, on_change=self._resource_changed)

    def send(self, action: Any) -> bool:
        """Publish ``action`` to the parent through the borrowed interface."""
        if self.interface is None:
            logger.debug(f"{self.name}: no parent interface for {action!r}")
            return False
        return self.interface.publish(action)

    # --- Lifecycle ---

    @property
    def is_started(self) -> bool:
        return self._started

    def start(self) -> None:
        """Attach observers and mount navigation children. Idempotent."""
        if self._started:
            return
        if self._torn_down:
            raise ProtocolViolationError(f"Coordinator '{self.name}' cannot restart after teardown")

        self._observers = list(self.interfaces())
        for observer in self._observers:
            observer.start()

        pattern = self.navigation()
        pattern.mount()
        self._mounted_pattern = pattern

        self._started = True
        logger.debug(f"Coordinator '{self.name}' started with {len(self._observers)} observer(s)")

    def teardown(self) -> None:
        """Detach observers, cancel in-flight handlers, unmount children. Idempotent."""
        if self._torn_down:
            return
        self._torn_down = True

        for observer in self._observers:
            observer.stop()
        self._observers = []
        for owned in self._channels:
            owned.detach()

        cancelled = self.tasks.close()
        if self._mounted_pattern is not None:
            self._mounted_pattern.unmount()
            self._mounted_pattern = None

        self._started = False
        logger.debug(f"Coordinator '{self.name}' torn down ({cancelled} task(s) cancelled)")

    async def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for this coordinator's in-flight handlers."""
        return await self.tasks.wait_until_idle(timeout)

    # --- Invalidation ---

    def invalidate(self, field: Optional[str] = None) -> None:
        """Mark derived views stale and notify the host."""
        # StateField assignments may run before __init__ finished
        if "revision" not in self.__dict__:
            return
        self.revision += 1
        self.bus.publish_nowait(
            events.TOPIC_COORDINATOR_INVALIDATED,
            events.create_invalidated_event(self.name, field, self.revision),
        )
        if self._started:
            self._refresh_navigation()

    def _refresh_navigation(self) -> None:
        """Re-derive navigation, tearing down dropped children and starting new ones."""
        if self._refreshing_navigation:
            return
        self._refreshing_navigation = True
        try:
            pattern = self.navigation()
            previous = self._mounted_pattern.children() if self._mounted_pattern is not None else ()
            current = pattern.children()

            for child in reversed(previous):
                if not any(child is kept for kept in current):
                    logger.debug(f"Coordinator '{self.name}': child '{child.name}' no longer declared")
                    child.teardown()
            self._mounted_pattern = pattern
            for child in current:
                if not any(child is existing for existing in previous):
                    logger.debug(f"Coordinator '{self.name}': starting newly declared child '{child.name}'")
                    child.start()
        finally:
            self._refreshing_navigation = False

    def _resource_changed(self, resource: ResourceState[Any, Any], ticket: Optional[int]) -> None:
        self.bus.publish_nowait(
            events.TOPIC_RESOURCE_STATE_CHANGED,
            events.create_resource_state_event(resource.name, resource.phase.value, ticket),
        )
        self.invalidate(resource.name)

    def snapshot(self) -> CoordinatorSnapshot:
        return CoordinatorSnapshot(
            name=self.name,
            revision=self.revision,
            entry=self.entry_view(),
            navigation=self.navigation().describe(),
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, revision={self.revision})"
