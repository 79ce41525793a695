"""
Adapter registry — one adapter per resource kind.

The batch runner never picks adapters itself; it asks the registry for
the adapter of a resource kind. In mock mode the registry hands out
in-memory MockResourceAdapters instead, so a whole profile can be
rehearsed without touching the system.
"""

from __future__ import annotations

import logging
from typing import Any

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandRunner
from devsetup.adapters.mock import MockResourceAdapter
from devsetup.core.models.resource import INSTALL_ORDER, ResourceKind

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Registry of resource adapters keyed by ResourceKind.

    Features:
        - Register/unregister adapters by kind
        - Mock mode: lazily create a MockResourceAdapter per kind
        - Query adapter availability
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[ResourceKind, ResourceAdapter] = {}
        self._mocks: dict[ResourceKind, MockResourceAdapter] = {}
        self._mock_mode = mock_mode

    @property
    def mock_mode(self) -> bool:
        return self._mock_mode

    def set_mock_mode(self, enabled: bool) -> None:
        self._mock_mode = enabled

    def register(self, adapter: ResourceAdapter) -> None:
        """Register an adapter for its kind."""
        kind = adapter.kind
        if kind in self._adapters:
            logger.warning("Overwriting existing adapter: %s", kind.value)
        self._adapters[kind] = adapter
        logger.debug("Registered adapter: %s (%s)", kind.value, adapter.__class__.__name__)

    def unregister(self, kind: ResourceKind) -> None:
        """Remove the adapter for a kind."""
        self._adapters.pop(kind, None)

    def get(self, kind: ResourceKind) -> ResourceAdapter | None:
        """Look up the adapter for a kind (a mock in mock mode)."""
        if self._mock_mode:
            if kind not in self._mocks:
                self._mocks[kind] = MockResourceAdapter(kind=kind)
            return self._mocks[kind]
        return self._adapters.get(kind)

    def list_kinds(self) -> list[ResourceKind]:
        """Registered kinds, in install order."""
        return [kind for kind in INSTALL_ORDER if kind in self._adapters]

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Availability of every registered adapter's underlying tool."""
        status = {}
        for kind in self.list_kinds():
            adapter = self._adapters[kind]
            try:
                available = adapter.is_available()
            except Exception as e:
                logger.debug("Availability check for %s raised: %s", kind.value, e)
                available = False
            status[kind.value] = {
                "kind": kind.value,
                "label": kind.plural,
                "tool": adapter.tool,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status


def default_registry(
    runner: CommandRunner | None = None,
    mock_mode: bool = False,
) -> AdapterRegistry:
    """Registry with the built-in adapter for every resource kind."""
    from devsetup.adapters.editors.vscode import VSCodeExtensionAdapter
    from devsetup.adapters.languages.node import NpmAdapter
    from devsetup.adapters.languages.python import PipAdapter
    from devsetup.adapters.shell.powershell import PowerShellModuleAdapter
    from devsetup.adapters.system.apt import AptAdapter

    runner = runner or CommandRunner()
    registry = AdapterRegistry(mock_mode=mock_mode)
    for adapter_cls in (
        AptAdapter,
        NpmAdapter,
        PipAdapter,
        PowerShellModuleAdapter,
        VSCodeExtensionAdapter,
    ):
        registry.register(adapter_cls(runner))
    return registry
