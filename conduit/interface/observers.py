"""Observers binding an ActionChannel to a coordinator's handler."""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from conduit.shared.core.tasks import TaskRegistry
from conduit.interface.channel import ActionChannel

logger = logging.getLogger(__name__)

Action = TypeVar("Action")


class ChannelObserver(ABC, Generic[Action]):
    """Base observer: owns the attachment, subclasses decide how to dispatch.

    Args:
        channel: Channel to consume
        handler: Called with every action published while attached
        tasks: Registry for handler work that outlives ``publish``; a private
            one (cancelled on ``stop``) is created when omitted
    """

    def __init__(
        self,
        channel: ActionChannel[Action],
        handler: Callable[[Action], Any],
        *,
        tasks: Optional[TaskRegistry] = None,
    ) -> None:
        self.channel = channel
        self.handler = handler
        # An empty registry is falsy, compare against None
        self._owns_tasks = tasks is None
        self.tasks = tasks if tasks is not None else TaskRegistry(owner=channel.name)
        self._active = False

    @property
    def is_active(self) -> bool:
        return self._active

    def start(self) -> None:
        """Attach to the channel. Raises DuplicateObserverError if it already has a consumer."""
        if self._active:
            return
        self.channel.attach(self._dispatch)
        self._active = True

    def stop(self) -> None:
        """Detach from the channel. Safe to call twice."""
        if not self._active:
            return
        self.channel.detach(self._dispatch)
        self._active = False
        if self._owns_tasks:
            self.tasks.cancel_all()

    @abstractmethod
    def _dispatch(self, action: Action) -> None:
        """Deliver one action to the handler."""

    def _schedule(self, awaitable: Awaitable[Any], action: Action) -> None:
        coro = awaitable if inspect.iscoroutine(awaitable) else _await(awaitable)
        self.tasks.spawn(coro, label=type(action).__name__)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable


class InterfaceObserver(ChannelObserver[Action]):
    """Runs the handler inline, before ``publish`` returns.

    A plain callable that hands back an awaitable (``lambda a: self.load(a)``)
    has that awaitable scheduled like an async handler.
    """

    def _dispatch(self, action: Action) -> None:
        result = self.handler(action)
        if inspect.isawaitable(result):
            self._schedule(result, action)


class AsyncInterfaceObserver(ChannelObserver[Action]):
    """Schedules the handler as an independent task per action.

    Tasks are submitted in publish order but may complete in any order when
    the handler suspends. Serialize inside the handler if ordering matters.
    """

    def __init__(
        self,
        channel: ActionChannel[Action],
        handler: Callable[[Action], Awaitable[None]],
        *,
        tasks: Optional[TaskRegistry] = None,
    ) -> None:
        super().__init__(channel, handler, tasks=tasks)

    def _dispatch(self, action: Action) -> None:
        self._schedule(self.handler(action), action)


def observe(
    channel: ActionChannel[Action],
    handler: Union[Callable[[Action], None], Callable[[Action], Awaitable[None]]],
    *,
    tasks: Optional[TaskRegistry] = None,
) -> ChannelObserver[Action]:
    """Build the right observer for ``handler`` (not started)."""
    if inspect.iscoroutinefunction(handler):
        return AsyncInterfaceObserver(channel, handler, tasks=tasks)
    return InterfaceObserver(channel, handler, tasks=tasks)
