"""Adapters — side-effect bindings for host tools and the filesystem.

Public re-exports for convenient access.
"""

from avocadoctl.adapters.base import Adapter, ExecutionContext
from avocadoctl.adapters.mock import MockAdapter
from avocadoctl.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "ExecutionContext",
    "MockAdapter",
    "default_registry",
]
