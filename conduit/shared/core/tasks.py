"""Per-coordinator registry of in-flight handler tasks."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine, Dict, Optional

from conduit.shared.core.configuration import TaskConfig
from conduit.shared.core.errors import ProtocolViolationError

logger = logging.getLogger(__name__)


class TaskRegistry:
    """Tracks the tasks spawned on behalf of one owner.

    Every spawn gets the next generation number, so an owner can tell whether
    a finishing task is still the most recent one (``is_latest``). Closing the
    registry cancels whatever is still running and refuses new work.
    """

    def __init__(self, owner: str = "coordinator", config: Optional[TaskConfig] = None) -> None:
        self.owner = owner
        self.config = config or TaskConfig()
        self._generation = 0
        self._tasks: Dict[int, asyncio.Task] = {}
        self._closed = False

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._tasks)

    def is_latest(self, generation: int) -> bool:
        return generation == self._generation

    def spawn(self, coro: Coroutine[Any, Any, Any], *, label: Optional[str] = None) -> Optional[asyncio.Task]:
        """Run ``coro`` as an independent task on the running loop.

        Returns:
            The task, or None if the registry is closed

        Raises:
            ProtocolViolationError: If no event loop is running
        """
        if self._closed:
            logger.warning(f"{self.owner}: refusing new task '{label or 'task'}' after teardown")
            coro.close()
            return None

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            raise ProtocolViolationError(
                f"{self.owner}: async handlers need a running event loop"
            ) from None

        self._generation += 1
        generation = self._generation
        task = loop.create_task(
            self._run(coro, generation, label),
            name=f"{self.owner}:{label or 'task'}#{generation}",
        )
        self._tasks[generation] = task

        def _forget(done: asyncio.Task, generation: int = generation) -> None:
            self._tasks.pop(generation, None)
            if done.cancelled():
                # Cancelled before its first step; close so it is not reported as never awaited
                coro.close()

        task.add_done_callback(_forget)
        return task

    async def _run(self, coro: Coroutine[Any, Any, Any], generation: int, label: Optional[str]) -> None:
        """Keep one failing handler from taking the loop down."""
        try:
            await coro
        except asyncio.CancelledError:
            logger.debug(f"{self.owner}: task '{label or 'task'}' #{generation} cancelled")
            raise
        except Exception as exc:
            logger.exception(
                f"{self.owner}: unhandled error in task '{label or 'task'}' #{generation}",
                exc_info=exc,
            )

    def cancel_all(self) -> int:
        """Cancel all in-flight tasks and return how many were cancelled."""
        pending = [task for task in self._tasks.values() if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.info(f"{self.owner}: cancelled {len(pending)} in-flight task(s)")
        return len(pending)

    def close(self, cancel: Optional[bool] = None) -> int:
        """Refuse new work; cancel in-flight tasks unless configured otherwise."""
        self._closed = True
        if cancel is None:
            cancel = self.config.cancel_on_teardown
        return self.cancel_all() if cancel else 0

    async def wait_until_idle(self, timeout: Optional[float] = None) -> bool:
        """Wait for in-flight tasks to finish.

        Returns:
            True if everything finished, False on timeout
        """
        timeout = self.config.idle_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while self._tasks:
            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(f"{self.owner}: timeout waiting for {len(self._tasks)} task(s)")
                return False
            await asyncio.wait(list(self._tasks.values()), timeout=remaining)
        return True
