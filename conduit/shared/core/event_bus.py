from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeAlias

EventPayload: TypeAlias = Dict[str, Any]
EventHandler: TypeAlias = Callable[[EventPayload], Awaitable[None]]


class EventBus:
    """Invalidation and notification hub.

    Coordinators, navigators and the deep link dispatcher announce state
    changes here; the host view layer subscribes and re-derives what it
    renders. Handlers run as independent tasks so a slow or failing
    subscriber never blocks the publisher.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[EventHandler]] = defaultdict(list)
        # Created lazily so the bus can be built before the loop exists
        self._lock: Optional[asyncio.Lock] = None
        self._loop_id: Optional[int] = None
        self._logger = logging.getLogger(__name__)
        self._pending_tasks: set[asyncio.Task] = set()

    def _ensure_lock(self) -> asyncio.Lock:
        """Get or create the lock bound to the current event loop."""
        try:
            loop_id = id(asyncio.get_running_loop())
            if self._loop_id is not None and self._loop_id != loop_id:
                self._lock = None
            if self._lock is None:
                self._lock = asyncio.Lock()
                self._loop_id = loop_id
        except RuntimeError:
            if self._lock is None:
                self._lock = asyncio.Lock()
        return self._lock

    async def subscribe(self, topic: str, handler: EventHandler) -> None:
        """Register an async handler for a topic."""
        async with self._ensure_lock():
            if handler not in self._subscribers[topic]:
                self._subscribers[topic].append(handler)

    async def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        """Remove a handler from a topic."""
        async with self._ensure_lock():
            if handler in self._subscribers.get(topic, []):
                self._subscribers[topic].remove(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def publish(self, topic: str, payload: EventPayload) -> None:
        """Publish an event to all subscribers of ``topic``."""
        async with self._ensure_lock():
            handlers = list(self._subscribers.get(topic, []))

        if not handlers:
            # Invalidations are routinely published before any view subscribes
            self._logger.debug(f"No subscribers for topic '{topic}'")
            return

        self._logger.debug(f"Publishing to topic '{topic}' with {len(handlers)} handler(s)")
        for handler in handlers:
            self._track(asyncio.create_task(self._safe_dispatch(topic, handler, payload)))

    def publish_nowait(self, topic: str, payload: EventPayload) -> bool:
        """Schedule a publish from synchronous code.

        Returns False when no event loop is running; the notification is then
        skipped because nothing can be listening on this thread.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug(f"No running loop, skipping notification for '{topic}'")
            return False
        self._track(asyncio.create_task(self.publish(topic, payload)))
        return True

    def _track(self, task: asyncio.Task) -> None:
        self._pending_tasks.add(task)
        task.add_done_callback(self._pending_tasks.discard)

    async def wait_until_idle(self, timeout: float = 60.0) -> bool:
        """Wait for all pending event handlers to complete.

        Args:
            timeout: Maximum time to wait in seconds

        Returns:
            True if all tasks completed, False if timeout reached
        """
        if not self._pending_tasks:
            return True

        loop = asyncio.get_running_loop()
        start_time = loop.time()
        while self._pending_tasks:
            remaining = timeout - (loop.time() - start_time)
            if remaining <= 0:
                self._logger.warning(
                    f"EventBus: Timeout reached while waiting for {len(self._pending_tasks)} tasks"
                )
                return False
            # Handlers may publish again, so keep draining until nothing is left
            await asyncio.wait(list(self._pending_tasks), timeout=remaining)
            await asyncio.sleep(0)
        return True

    async def _safe_dispatch(
        self,
        topic: str,
        handler: EventHandler,
        payload: EventPayload,
    ) -> None:
        """Dispatch wrapper to keep one handler failure from stopping the bus."""
        handler_name = getattr(handler, "__name__", str(handler))
        try:
            await handler(payload)
        except Exception as exc:
            self._logger.exception(
                f"EventBus handler error in '{handler_name}' for topic '{topic}'",
                exc_info=exc,
            )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._subscribers.clear()
