"""Event service used by the example app."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Protocol, Sequence

logger = logging.getLogger(__name__)

EVENT_NAMES = (
    "Jazz in the Park",
    "Night Market",
    "Harbour Regatta",
    "Open Studio Day",
    "Street Food Festival",
    "Silent Disco",
    "Book Swap",
    "Film Under the Stars",
)


@dataclass(frozen=True)
class Event:
    event_id: str
    name: str

    @classmethod
    def random(cls, rng: Optional[random.Random] = None) -> "Event":
        rng = rng or random.Random()
        return cls(event_id=str(rng.randint(1, 999)), name=rng.choice(EVENT_NAMES))


class EventService(Protocol):
    async def events(self) -> List[Event]: ...

    async def search_events(self, query: str) -> List[Event]: ...

    async def event(self, event_id: str) -> Event: ...


class MockEventService:
    """In-memory service that answers after a fixed delay.

    Args:
        delay: Seconds every call waits before answering
        query_delays: Per-query override of ``delay`` for ``search_events``
        failing_queries: Queries for which ``search_events`` raises
        catalogue: Events ``event()`` can find by id
    """

    def __init__(
        self,
        delay: float = 2.0,
        *,
        query_delays: Optional[Mapping[str, float]] = None,
        failing_queries: Sequence[str] = (),
        catalogue: Sequence[Event] = (),
        seed: Optional[int] = None,
    ) -> None:
        self.delay = delay
        self.query_delays: Dict[str, float] = dict(query_delays or {})
        self.failing_queries = set(failing_queries)
        self.catalogue: Dict[str, Event] = {event.event_id: event for event in catalogue}
        self._rng = random.Random(seed)
        self.calls: List[str] = []

    async def events(self) -> List[Event]:
        self.calls.append("events")
        await asyncio.sleep(self.delay)
        return [Event.random(self._rng) for _ in range(10)]

    async def search_events(self, query: str) -> List[Event]:
        self.calls.append(f"search:{query}")
        await asyncio.sleep(self.query_delays.get(query, self.delay))
        if query in self.failing_queries:
            raise ConnectionError(f"Search for '{query}' failed")
        logger.debug(f"Mock search '{query}' answered")
        return [Event(event_id=f"search-{query}", name=f"Mock Event: {query}")]

    async def event(self, event_id: str) -> Event:
        self.calls.append(f"event:{event_id}")
        await asyncio.sleep(self.delay)
        try:
            return self.catalogue[event_id]
        except KeyError:
            raise LookupError(f"No event with id {event_id}") from None
