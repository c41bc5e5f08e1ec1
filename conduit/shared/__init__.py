"""
Conduit Shared Kernel
=====================

Infrastructure used by every layer of the toolkit.

Architecture:
- core: EventBus, TaskRegistry, configuration, logging, errors, navigator registry
"""

__version__ = "0.3.0"

__all__ = []
