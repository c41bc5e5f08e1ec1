"""Conduit example session.

Run with ``python -m conduit.examples.main``. Drives the events and counter
examples the way a host view layer would and renders what changed with rich.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from conduit.examples.counter import MAGIC_NUMBER, RootNavigator
from conduit.examples.events import (
    Event,
    EventsNavigator,
    MockEventService,
    register_deep_links,
)
from conduit.navigation.deep_link import DeepLinkDispatcher
from conduit.shared.core import events
from conduit.shared.core.configuration import ConduitConfig, ValidationLevel, get_config
from conduit.shared.core.event_bus import EventBus, EventPayload
from conduit.shared.core.logging_config import configure_logging
from conduit.shared.core.service_registry import get_navigator_registry, register_cleanup_handler

# Load environment variables from .env file in project root
env_path = Path(__file__).parent.parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

logger = logging.getLogger(__name__)

CATALOGUE = (
    Event(event_id="42", name="Harbour Regatta"),
    Event(event_id="7", name="Night Market"),
)


class SessionLog:
    """Collects bus notifications for the summary table."""

    def __init__(self, console: Console) -> None:
        self.console = console
        self.rows: List[Dict[str, Any]] = []

    async def on_path_changed(self, payload: EventPayload) -> None:
        self.rows.append({"topic": events.TOPIC_PATH_CHANGED, "detail": events.describe_payload(payload)})

    async def on_deep_link(self, payload: EventPayload) -> None:
        topic = events.TOPIC_DEEP_LINK_FAILED if "error_type" in payload else events.TOPIC_DEEP_LINK_APPLIED
        self.rows.append({"topic": topic, "detail": events.describe_payload(payload)})

    def render(self) -> Table:
        table = Table(title="Bus notifications")
        table.add_column("#", justify="right")
        table.add_column("Topic", style="cyan")
        table.add_column("Detail")
        for index, row in enumerate(self.rows, start=1):
            table.add_row(str(index), row["topic"], escape(row["detail"]))
        return table


async def run_events_session(bus: EventBus, config: ConduitConfig, console: Console) -> None:
    services = MockEventService(
        delay=0.2,
        query_delays={"paris": 0.6, "lyon": 0.2},
        catalogue=CATALOGUE,
    )
    navigator = EventsNavigator(services, event_bus=bus, config=config)
    dispatcher = DeepLinkDispatcher(event_bus=bus, config=config.deep_links)
    register_deep_links(dispatcher, services)
    register_cleanup_handler(dispatcher.close)

    # A link that arrives before the navigator is mounted waits for it
    early = asyncio.create_task(dispatcher.handle("conduit://events/7"))
    await asyncio.sleep(0)
    navigator.start()
    outcome = await early
    console.print(f"[bold]Early deep link[/bold] ok={outcome.ok} path={list(navigator.path)}")

    view = navigator.root_view()
    view.search("paris")
    view.search("lyon")
    await asyncio.sleep(0)
    console.print(f"Searching: {navigator.root_view().status}")
    await navigator.root.wait_until_idle(timeout=5.0)
    console.print(
        f"Last query '{navigator.root.last_query}', slowest answer shown: "
        f"{navigator.root_view().status} -> {navigator.root.search_results.state.value}"
    )

    for url in ("conduit://events/42", "conduit://events/42", "conduit://events/999", "https://example.com"):
        outcome = await dispatcher.handle(url)
        status = "[green]applied[/green]" if outcome.ok else f"[red]{type(outcome.error).__name__}[/red]"
        console.print(f"{url}: {status} path={list(navigator.path)}")

    navigator.platform.user_pop()
    console.print(f"After back gesture: path={list(navigator.path)}")

    navigator.root_view().tap_event("7")
    await navigator.root.wait_until_idle(timeout=5.0)
    console.print(f"After selecting event 7: path={list(navigator.path)}")

    navigator.teardown()


async def run_counter_session(bus: EventBus, config: ConduitConfig, console: Console) -> None:
    navigator = RootNavigator(event_bus=bus, config=config)
    navigator.start()

    for _ in range(MAGIC_NUMBER):
        navigator.root_view().tap()

    sheet = navigator.counter.navigation()
    console.print(
        f"Counter at {navigator.counter.button_tap_count}: "
        f"sheet={sheet.presented_view()} path={list(navigator.path)}"
    )

    sheet.dismiss()
    navigator.platform.user_pop()
    console.print(
        f"Dismissed: sheet active={navigator.counter.is_showing_sheet} path={list(navigator.path)}"
    )
    navigator.teardown()


async def main(config: Optional[ConduitConfig] = None, console: Optional[Console] = None) -> None:
    config = config or get_config(ValidationLevel.LENIENT)
    console = console or Console()

    bus = EventBus()
    session = SessionLog(console)
    await bus.subscribe(events.TOPIC_PATH_CHANGED, session.on_path_changed)
    await bus.subscribe(events.TOPIC_DEEP_LINK_APPLIED, session.on_deep_link)
    await bus.subscribe(events.TOPIC_DEEP_LINK_FAILED, session.on_deep_link)

    console.rule("Events")
    await run_events_session(bus, config, console)
    console.rule("Counter")
    await run_counter_session(bus, config, console)

    await bus.wait_until_idle(timeout=config.tasks.idle_timeout)
    console.print(session.render())
    logger.info(f"Session finished, navigators still mounted: {get_navigator_registry().names()}")


if __name__ == "__main__":
    app_config = get_config(ValidationLevel.LENIENT)
    configure_logging(app_config.logging)
    asyncio.run(main(app_config))
