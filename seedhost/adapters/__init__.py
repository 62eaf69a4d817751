"""Adapters: bindings for external tools.

Public re-exports for convenient access.
"""

from seedhost.adapters.base import Adapter, ExecutionContext
from seedhost.adapters.mock import MockAdapter
from seedhost.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
]
