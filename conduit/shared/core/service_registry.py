"""Registry of mounted navigators and application cleanup handlers."""

from __future__ import annotations

import asyncio
import atexit
import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from .errors import NavigatorNotMountedError

if TYPE_CHECKING:
    from conduit.navigation.navigator import Navigator

logger = logging.getLogger(__name__)


class NavigatorRegistry:
    """Name -> mounted navigator lookup.

    Navigators register on ``start()`` and unregister on ``teardown()``. Deep
    link dispatching uses ``wait_for`` because a link may arrive before the
    navigator it targets has been mounted.
    """

    def __init__(self) -> None:
        self._navigators: Dict[str, "Navigator"] = {}
        self._waiters: Dict[str, List[asyncio.Future]] = {}

    def register(self, name: str, navigator: "Navigator") -> None:
        current = self._navigators.get(name)
        if current is not None and current is not navigator:
            logger.warning(f"Navigator '{name}' re-registered, replacing previous instance")
        self._navigators[name] = navigator
        logger.debug(f"Navigator '{name}' mounted")

        for waiter in self._waiters.pop(name, []):
            if not waiter.done():
                waiter.set_result(navigator)

    def unregister(self, name: str, navigator: Optional["Navigator"] = None) -> None:
        """Remove ``name``; when ``navigator`` is given only that instance is removed."""
        current = self._navigators.get(name)
        if current is None:
            return
        if navigator is not None and current is not navigator:
            return
        del self._navigators[name]
        logger.debug(f"Navigator '{name}' unmounted")

    def get(self, name: str) -> Optional["Navigator"]:
        return self._navigators.get(name)

    def names(self) -> List[str]:
        return sorted(self._navigators)

    async def wait_for(self, name: str, timeout: float) -> "Navigator":
        """Return the navigator called ``name``, waiting up to ``timeout`` seconds for it to mount.

        Raises:
            NavigatorNotMountedError: If it does not mount in time
        """
        navigator = self._navigators.get(name)
        if navigator is not None:
            return navigator

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.setdefault(name, []).append(waiter)
        try:
            return await asyncio.wait_for(waiter, timeout=timeout)
        except asyncio.TimeoutError:
            raise NavigatorNotMountedError(name, timeout) from None
        finally:
            pending = self._waiters.get(name)
            if pending and waiter in pending:
                pending.remove(waiter)
                if not pending:
                    del self._waiters[name]

    def clear(self) -> None:
        self._navigators.clear()
        for waiters in self._waiters.values():
            for waiter in waiters:
                waiter.cancel()
        self._waiters.clear()


# Global navigator registry
_navigator_registry: Optional[NavigatorRegistry] = None

# Global cleanup management
_cleanup_registered = False
_cleanup_handlers: List[Callable[[], None]] = []


def get_navigator_registry() -> NavigatorRegistry:
    """Get the process-wide navigator registry."""
    global _navigator_registry
    if _navigator_registry is None:
        _navigator_registry = NavigatorRegistry()
    return _navigator_registry


def reset_navigator_registry() -> None:
    """Drop the process-wide registry (tests)."""
    global _navigator_registry
    if _navigator_registry is not None:
        _navigator_registry.clear()
    _navigator_registry = None


def register_cleanup_handler(handler: Callable[[], None]) -> None:
    """Register a cleanup handler to be called on application exit."""
    global _cleanup_registered
    _cleanup_handlers.append(handler)
    if not _cleanup_registered:
        atexit.register(run_cleanup_handlers)
        _cleanup_registered = True
        logger.debug("Registered atexit cleanup handler")


def run_cleanup_handlers() -> None:
    """Run and forget all registered cleanup handlers."""
    if not _cleanup_handlers:
        return
    logger.info("Running application cleanup...")
    while _cleanup_handlers:
        handler = _cleanup_handlers.pop()
        try:
            handler()
        except Exception as e:
            logger.warning(f"Error in cleanup handler: {e}")
    logger.info("Application cleanup completed")
