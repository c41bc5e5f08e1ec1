"""Async observers and the task registry behind them."""

import asyncio
from dataclasses import dataclass

import pytest

from conduit.interface import ActionChannel, AsyncInterfaceObserver, ChannelObserver, InterfaceObserver, observe
from conduit.shared.core.errors import ProtocolViolationError
from conduit.shared.core.tasks import TaskRegistry


@dataclass(frozen=True)
class Fetch:
    key: str
    delay: float = 0.0


@pytest.mark.asyncio
async def test_async_observer_returns_before_handler_finishes():
    channel = ActionChannel("fetch")
    started = asyncio.Event()
    release = asyncio.Event()
    finished = []

    async def handler(action):
        started.set()
        await release.wait()
        finished.append(action.key)

    observer = AsyncInterfaceObserver(channel, handler)
    observer.start()

    channel.publish(Fetch("a"))
    assert finished == []

    await started.wait()
    release.set()
    assert await observer.tasks.wait_until_idle(timeout=1.0)
    assert finished == ["a"]


@pytest.mark.asyncio
async def test_async_handlers_complete_out_of_order():
    channel = ActionChannel("fetch")
    started = []
    finished = []

    async def handler(action):
        started.append(action.key)
        await asyncio.sleep(action.delay)
        finished.append(action.key)

    observer = AsyncInterfaceObserver(channel, handler)
    observer.start()

    channel.publish(Fetch("slow", 0.05))
    channel.publish(Fetch("fast", 0.01))
    await observer.tasks.wait_until_idle(timeout=1.0)

    assert started == ["slow", "fast"]
    assert finished == ["fast", "slow"]


@pytest.mark.asyncio
async def test_async_handler_errors_are_logged_not_raised(caplog):
    channel = ActionChannel("fetch")

    async def handler(action):
        raise ValueError("service down")

    observer = AsyncInterfaceObserver(channel, handler)
    observer.start()

    with caplog.at_level("ERROR"):
        channel.publish(Fetch("a"))
        assert await observer.tasks.wait_until_idle(timeout=1.0)

    assert "service down" in caplog.text


@pytest.mark.asyncio
async def test_stop_cancels_in_flight_handlers():
    channel = ActionChannel("fetch")
    cancelled = asyncio.Event()

    async def handler(action):
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.set()
            raise

    observer = AsyncInterfaceObserver(channel, handler)
    observer.start()
    channel.publish(Fetch("a"))
    await asyncio.sleep(0)

    observer.stop()
    await asyncio.wait_for(cancelled.wait(), timeout=1.0)
    assert not channel.is_attached


def test_async_observer_needs_running_loop():
    channel = ActionChannel("fetch")

    async def handler(action):
        return None

    AsyncInterfaceObserver(channel, handler).start()

    with pytest.raises(ProtocolViolationError):
        channel.publish(Fetch("a"))


@pytest.mark.asyncio
async def test_task_registry_generations_increase():
    tasks = TaskRegistry(owner="test")

    async def noop():
        return None

    tasks.spawn(noop(), label="one")
    tasks.spawn(noop(), label="two")

    assert tasks.generation == 2
    assert tasks.is_latest(2)
    assert not tasks.is_latest(1)
    assert await tasks.wait_until_idle(timeout=1.0)
    assert len(tasks) == 0


@pytest.mark.asyncio
async def test_closed_registry_refuses_new_tasks():
    tasks = TaskRegistry(owner="test")

    async def sleeper():
        await asyncio.sleep(10)

    running = tasks.spawn(sleeper())
    assert tasks.close() == 1
    assert tasks.closed

    assert tasks.spawn(sleeper()) is None
    with pytest.raises(asyncio.CancelledError):
        await running


@pytest.mark.asyncio
async def test_wait_until_idle_times_out():
    tasks = TaskRegistry(owner="test")

    async def sleeper():
        await asyncio.sleep(10)

    tasks.spawn(sleeper())

    assert await tasks.wait_until_idle(timeout=0.01) is False
    tasks.cancel_all()


@pytest.mark.asyncio
async def test_shared_registry_is_used_even_when_empty():
    channel = ActionChannel("fetch")
    tasks = TaskRegistry(owner="owner")
    assert len(tasks) == 0

    async def handler(action):
        await asyncio.sleep(10)

    observer = AsyncInterfaceObserver(channel, handler, tasks=tasks)
    observer.start()
    channel.publish(Fetch("a"))

    assert observer.tasks is tasks
    assert len(tasks) == 1

    # The owner cancels shared work, stopping the observer does not
    observer.stop()
    assert len(tasks) == 1
    assert tasks.close() == 1
    assert await tasks.wait_until_idle(timeout=1.0)


@pytest.mark.asyncio
async def test_plain_callable_returning_coroutine_is_scheduled():
    channel = ActionChannel("fetch")
    finished = []

    async def load(action):
        await asyncio.sleep(0)
        finished.append(action.key)

    observer = observe(channel, lambda action: load(action))
    assert isinstance(observer, InterfaceObserver)
    observer.start()

    channel.publish(Fetch("a"))
    assert finished == []

    assert await observer.tasks.wait_until_idle(timeout=1.0)
    assert finished == ["a"]


@pytest.mark.asyncio
async def test_plain_callable_returning_future_is_scheduled():
    channel = ActionChannel("fetch")
    future = asyncio.get_running_loop().create_future()

    observer = InterfaceObserver(channel, lambda action: future)
    observer.start()
    channel.publish(Fetch("a"))

    assert len(observer.tasks) == 1
    future.set_result(None)
    assert await observer.tasks.wait_until_idle(timeout=1.0)


def test_channel_observer_is_abstract():
    with pytest.raises(TypeError):
        ChannelObserver(ActionChannel("fetch"), lambda action: None)
