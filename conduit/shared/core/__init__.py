"""
Shared Core Module
==================

Event bus, task registry, configuration, logging and error taxonomy.
"""

# Event System
from .event_bus import EventBus, EventPayload
from . import events

# Tasks
from .tasks import TaskRegistry

# Registry
from .service_registry import (
    NavigatorRegistry,
    get_navigator_registry,
    reset_navigator_registry,
    register_cleanup_handler,
    run_cleanup_handlers,
)

# Configuration
from .configuration import (
    ConfigManager,
    ConduitConfig,
    ChannelConfig,
    TaskConfig,
    NavigationConfig,
    DeepLinkConfig,
    LoggingConfig,
    get_config_manager,
    get_config,
    ValidationLevel,
)
from .logging_config import configure_logging

# Errors
from .errors import (
    ConduitError,
    ProtocolViolationError,
    DuplicateObserverError,
    NonExhaustiveDestinationError,
    ReconciliationError,
    InvalidTransitionError,
    NavigationError,
    UnknownDestinationError,
    NavigatorNotMountedError,
    DeepLinkError,
    UnparseableLinkError,
    UnknownRouteError,
    LinkResolutionError,
)

__all__ = [
    # Event System
    "EventBus",
    "EventPayload",
    "events",
    # Tasks
    "TaskRegistry",
    # Registry
    "NavigatorRegistry",
    "get_navigator_registry",
    "reset_navigator_registry",
    "register_cleanup_handler",
    "run_cleanup_handlers",
    # Configuration
    "ConfigManager",
    "ConduitConfig",
    "ChannelConfig",
    "TaskConfig",
    "NavigationConfig",
    "DeepLinkConfig",
    "LoggingConfig",
    "get_config_manager",
    "get_config",
    "ValidationLevel",
    "configure_logging",
    # Errors
    "ConduitError",
    "ProtocolViolationError",
    "DuplicateObserverError",
    "NonExhaustiveDestinationError",
    "ReconciliationError",
    "InvalidTransitionError",
    "NavigationError",
    "UnknownDestinationError",
    "NavigatorNotMountedError",
    "DeepLinkError",
    "UnparseableLinkError",
    "UnknownRouteError",
    "LinkResolutionError",
]
