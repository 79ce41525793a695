"""
Adapter base — the contract between the installer engine and a package manager.

The engine only talks to package managers through this interface, never
directly to external tools. One implementation exists per resource kind
(apt, npm, pip, PowerShell modules, VS Code extensions); tests swap in
the mock adapter.

Adapters NEVER raise from probe/install/update/uninstall:
    - probe() reports a resource as absent when the query tool is missing
      or fails, and logs a warning.
    - mutations return a CommandResult; classify_failure() tells the
      installer whether a failed result is worth retrying.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable

from devsetup.adapters.command import CommandResult, CommandRunner
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)


class ResourceAdapter(ABC):
    """Abstract base class for all resource adapters.

    To create a new adapter:
        1. Subclass ResourceAdapter
        2. Implement kind, tool, probe, install, update, uninstall
        3. Register it in the AdapterRegistry
    """

    def __init__(self, runner: CommandRunner | None = None):
        self.runner = runner or CommandRunner()
        # One mutator at a time per package manager.
        self.lock = threading.Lock()

    @property
    @abstractmethod
    def kind(self) -> ResourceKind:
        """The resource kind this adapter manages."""

    @property
    @abstractmethod
    def tool(self) -> str:
        """The executable this adapter depends on (e.g. 'apt-get')."""

    def is_available(self) -> bool:
        """Check if the underlying tool is on PATH. Fast, never raises."""
        return self.runner.which(self.tool) is not None

    def prepare(self, config: RunConfig) -> CommandResult | None:
        """One-off setup before the first mutation of a batch.

        Returns None when there is nothing to do.
        """
        return None

    @abstractmethod
    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        """Report whether ``resource_id`` is installed and at which version."""

    def probe_many(
        self, resource_ids: Iterable[str], config: RunConfig
    ) -> dict[str, ResourceState]:
        """Probe several resources. Adapters with a listing command override this."""
        return {rid: self.probe(rid, config) for rid in resource_ids}

    @abstractmethod
    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        """Fresh install of an absent resource."""

    @abstractmethod
    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        """Bring a present resource to the latest version."""

    @abstractmethod
    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        """Remove a present resource."""

    def classify_failure(self, result: CommandResult) -> FailureKind:
        """Map a failed CommandResult to a failure kind.

        The default treats everything except a missing tool as transient.
        Adapters refine this with manager-specific error messages.
        """
        if result.missing:
            return FailureKind.TOOL_MISSING
        return FailureKind.TRANSIENT

    # ── Helpers ─────────────────────────────────────────────────

    def _query(self, cmd: list[str], config: RunConfig) -> CommandResult:
        """Run a read-only query command, logging a missing tool."""
        result = self.runner.run(cmd, timeout=config.probe_timeout)
        if result.missing:
            logger.warning(
                "%s not found on PATH; treating %s as not installed",
                cmd[0],
                self.kind.plural,
            )
        elif result.timed_out:
            logger.warning("Probe timed out: %s", " ".join(cmd))
        return result

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind.value!r}>"
