"""Shared fixtures."""

from __future__ import annotations

import pytest

from conduit.shared.core.configuration import ConduitConfig, ENV_MAP, reset_config_manager
from conduit.shared.core.event_bus import EventBus
from conduit.shared.core.service_registry import NavigatorRegistry, reset_navigator_registry

from support import PathNavigator


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """No stray config files, env overrides or mounted navigators between tests."""
    monkeypatch.chdir(tmp_path)
    for key in ENV_MAP:
        monkeypatch.delenv(key, raising=False)
    reset_config_manager()
    reset_navigator_registry()
    yield
    reset_navigator_registry()
    reset_config_manager()


@pytest.fixture
def config() -> ConduitConfig:
    return ConduitConfig()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry() -> NavigatorRegistry:
    return NavigatorRegistry()


@pytest.fixture
def navigator(bus, registry, config) -> PathNavigator:
    return PathNavigator(event_bus=bus, registry=registry, config=config)
