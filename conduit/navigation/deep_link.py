"""Deep link dispatching.

A URL is parsed into a ``DeepLink``, handed to the resolver registered for
its route, and the resolver answers with navigation steps: an explicit path
for a navigator (``SetPath``) or a target state (``ApplyTarget``). Steps are
applied in order; each waits for its navigator to be mounted, because an
earlier step may be what mounts it.

A link is applied completely or not at all. When a step fails or the
handling task is cancelled, already-applied steps are rolled back. Failures
come back as a failed ``DeepLinkOutcome``; only protocol violations raise.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    Union,
)
from urllib.parse import parse_qs, unquote, urlsplit

from conduit.navigation.navigator import Navigator
from conduit.shared.core import events
from conduit.shared.core.configuration import DeepLinkConfig, ValidationLevel, get_config
from conduit.shared.core.errors import (
    LinkResolutionError,
    NavigationError,
    ProtocolViolationError,
    UnknownRouteError,
    UnparseableLinkError,
)
from conduit.shared.core.event_bus import EventBus
from conduit.shared.core.service_registry import NavigatorRegistry, get_navigator_registry
from conduit.shared.core.tasks import TaskRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeepLink:
    """A parsed URL.

    ``myapp://events/42?tab=info`` -> route ``events``, arguments ``("42",)``.
    Links without an authority (``myapp:events/42``) route on their first
    path segment instead.
    """

    url: str
    scheme: str
    host: str
    segments: Tuple[str, ...]
    query: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def parse(cls, url: str, allowed_schemes: Optional[Sequence[str]] = None) -> "DeepLink":
        """Parse ``url``.

        Raises:
            UnparseableLinkError: Empty, malformed, scheme-less or disallowed URL
        """
        if not isinstance(url, str) or not url.strip():
            raise UnparseableLinkError(str(url), "Empty URL")
        text = url.strip()

        try:
            parts = urlsplit(text)
        except ValueError as exc:
            raise UnparseableLinkError(text, f"Malformed URL: {exc}") from exc

        scheme = parts.scheme.lower()
        if not scheme:
            raise UnparseableLinkError(text, "URL has no scheme")
        if allowed_schemes and scheme not in allowed_schemes:
            raise UnparseableLinkError(text, f"Scheme '{scheme}' is not accepted")

        segments = tuple(unquote(segment) for segment in parts.path.split("/") if segment)
        host = parts.netloc.lower()
        if not host and not segments:
            raise UnparseableLinkError(text, "URL names no route")

        query = {key: tuple(values) for key, values in parse_qs(parts.query, keep_blank_values=True).items()}
        return cls(url=text, scheme=scheme, host=host, segments=segments, query=query)

    @property
    def route(self) -> str:
        return self.host or self.segments[0].lower()

    @property
    def arguments(self) -> Tuple[str, ...]:
        return self.segments if self.host else self.segments[1:]

    def param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        values = self.query.get(name)
        return values[0] if values else default


@dataclass(frozen=True)
class SetPath:
    """Give navigator ``navigator`` exactly this path."""

    navigator: str
    destinations: Tuple[Any, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "destinations", tuple(self.destinations))


@dataclass(frozen=True)
class ApplyTarget:
    """Apply target state ``state`` on navigator ``navigator``."""

    navigator: str
    state: Any


LinkStep = Union[SetPath, ApplyTarget]
LinkResolver = Callable[[DeepLink], Union[Optional[Sequence[LinkStep]], Awaitable[Optional[Sequence[LinkStep]]]]]


@dataclass(frozen=True)
class DeepLinkOutcome:
    """Result of handling one URL. Failed outcomes carry ``error`` and no applied steps."""

    url: str
    applied: Tuple[LinkStep, ...] = ()
    error: Optional[NavigationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


@dataclass
class _AppliedStep:
    step: LinkStep
    navigator: Navigator
    previous_path: Tuple[Any, ...]


class DeepLinkDispatcher:
    """Routes external URLs onto mounted navigators.

    Args:
        event_bus: Receives ``deeplink.applied`` / ``deeplink.failed``
        registry: Where mounted navigators are looked up
        config: Deep link settings; loaded leniently when omitted
    """

    def __init__(
        self,
        *,
        event_bus: Optional[EventBus] = None,
        registry: Optional[NavigatorRegistry] = None,
        config: Optional[DeepLinkConfig] = None,
    ) -> None:
        self.bus = event_bus or EventBus()
        self.registry = registry if registry is not None else get_navigator_registry()
        self.config = config or get_config(ValidationLevel.LENIENT).deep_links
        self.tasks = TaskRegistry(owner="deep-links")
        self._routes: Dict[str, LinkResolver] = {}
        self._pending: List[str] = []

    # --- Routes ---

    def route(self, name: str, resolver: LinkResolver) -> None:
        """Register ``resolver`` for links whose route is ``name``."""
        key = name.lower()
        if key in self._routes:
            logger.warning(f"Deep link route '{key}' re-registered")
        self._routes[key] = resolver

    def routes(self) -> List[str]:
        return sorted(self._routes)

    # --- Entry points ---

    @property
    def pending(self) -> Tuple[str, ...]:
        return tuple(self._pending)

    def on_appear(self, url: str) -> bool:
        """Best-effort hook for a link received while the UI is still coming up.

        Schedules ``handle`` when an event loop is running, otherwise queues
        the URL for ``flush_pending``.

        Returns:
            True if handling was scheduled, False if the URL was queued
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.info(f"Queued deep link until the UI loop runs: {url}")
            self._pending.append(url)
            return False
        self.tasks.spawn(self.handle(url), label="deep-link")
        return True

    async def flush_pending(self) -> List[DeepLinkOutcome]:
        """Handle queued links in arrival order."""
        outcomes = []
        while self._pending:
            outcomes.append(await self.handle(self._pending.pop(0)))
        return outcomes

    async def handle(self, url: str) -> DeepLinkOutcome:
        """Translate ``url`` into navigation and apply it.

        Returns a failed outcome for every failure except protocol violations;
        the navigation state is then exactly what it was before the call.
        A cancelled link is rolled back as well before the cancellation
        propagates.
        """
        applied: List[_AppliedStep] = []
        try:
            link = DeepLink.parse(url, self.config.allowed_schemes)
            steps = await self._resolve(link)
            for step in steps:
                navigator = await self.registry.wait_for(step.navigator, self.config.mount_timeout)
                # Recorded first so a step that fails halfway is undone too
                applied.append(_AppliedStep(step, navigator, navigator.path))
                self._apply(navigator, step)
                # Let the host render this level before the next one is applied
                await asyncio.sleep(0)
        except asyncio.CancelledError:
            if applied:
                logger.info(f"Deep link cancelled, rolling back {len(applied)} step(s): {url}")
                self._rollback(applied)
            raise
        except ProtocolViolationError:
            raise
        except NavigationError as exc:
            return self._failed(url, exc, applied)
        except Exception as exc:
            error = LinkResolutionError(url, f"Applying deep link failed: {type(exc).__name__}: {exc}")
            error.__cause__ = exc
            return self._failed(url, error, applied)

        logger.info(f"Deep link applied: {url} ({len(applied)} step(s))")
        self.bus.publish_nowait(
            events.TOPIC_DEEP_LINK_APPLIED,
            events.create_deep_link_applied_event(url, [entry.step.navigator for entry in applied]),
        )
        return DeepLinkOutcome(url=url, applied=tuple(entry.step for entry in applied))

    # --- Internals ---

    def _failed(self, url: str, error: NavigationError, applied: List[_AppliedStep]) -> DeepLinkOutcome:
        if applied and self.config.rollback_on_failure:
            self._rollback(applied)
        logger.warning(f"Deep link failed: {error}")
        self.bus.publish_nowait(
            events.TOPIC_DEEP_LINK_FAILED,
            events.create_deep_link_failed_event(url, error),
        )
        return DeepLinkOutcome(url=url, error=error)

    async def _resolve(self, link: DeepLink) -> Sequence[LinkStep]:
        resolver = self._routes.get(link.route)
        if resolver is None:
            raise UnknownRouteError(link.url, f"No deep link route for '{link.route}'")

        try:
            result = resolver(link)
            if inspect.isawaitable(result):
                result = await result
        except (NavigationError, ProtocolViolationError):
            raise
        except Exception as exc:
            raise LinkResolutionError(link.url, f"Resolver for '{link.route}' failed: {exc}") from exc

        if result is None:
            raise UnknownRouteError(link.url, f"Route '{link.route}' does not recognise this link")

        steps = tuple(result)
        for step in steps:
            if not isinstance(step, (SetPath, ApplyTarget)):
                raise LinkResolutionError(link.url, f"Resolver for '{link.route}' returned {step!r}")
        return steps

    def _apply(self, navigator: Navigator, step: LinkStep) -> None:
        if isinstance(step, SetPath):
            navigator.set_path(step.destinations, reason="deep_link")
        else:
            navigator.apply_target_state(step.state)

    def _rollback(self, applied: List[_AppliedStep]) -> None:
        for entry in reversed(applied):
            logger.debug(f"Rolling back deep link step on '{entry.step.navigator}'")
            entry.navigator.set_path(entry.previous_path, reason="rollback")

    def close(self) -> None:
        """Cancel links still being handled."""
        self.tasks.close(cancel=True)
