"""Adapters — package-manager bindings for each resource kind.

Public re-exports for convenient access.
"""

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult, CommandRunner
from devsetup.adapters.mock import MockResourceAdapter
from devsetup.adapters.registry import AdapterRegistry, default_registry

__all__ = [
    "AdapterRegistry",
    "CommandResult",
    "CommandRunner",
    "MockResourceAdapter",
    "ResourceAdapter",
    "default_registry",
]
