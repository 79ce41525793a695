"""
Mock adapter — in-memory stand-in for a package manager.

Used by ``--mock`` runs and by the tests to exercise the installer
without touching a real system. It keeps a dict of installed resources,
knows the "latest" version of each, and can be scripted to fail.
"""

from __future__ import annotations

from collections.abc import Iterable

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig


class MockResourceAdapter(ResourceAdapter):
    """In-memory adapter for testing.

    Args:
        kind: Resource kind to impersonate.
        installed: Initially installed resources, ``{id: version}``.
        latest: Version an install/update yields, ``{id: version}``.
        default_version: Version for resources missing from ``latest``.
        available: What ``is_available`` reports.
    """

    def __init__(
        self,
        kind: ResourceKind = ResourceKind.APT,
        installed: dict[str, str] | None = None,
        latest: dict[str, str] | None = None,
        default_version: str = "1.0.0",
        available: bool = True,
    ):
        super().__init__()
        self._kind = kind
        self.installed: dict[str, str] = dict(installed or {})
        self.latest: dict[str, str] = dict(latest or {})
        self.default_version = default_version
        self._available = available
        self._failures: dict[tuple[str, str], tuple[FailureKind, int | None, str]] = {}
        self._call_log: list[tuple[str, str]] = []
        self.prepare_count = 0

    @property
    def kind(self) -> ResourceKind:
        return self._kind

    @property
    def tool(self) -> str:
        return f"mock-{self._kind.value}"

    @property
    def call_log(self) -> list[tuple[str, str]]:
        """``(operation, resource_id)`` for every mutation received."""
        return self._call_log

    def calls(self, operation: str) -> list[str]:
        """Resource ids passed to one operation, in call order."""
        return [rid for op, rid in self._call_log if op == operation]

    def is_available(self) -> bool:
        return self._available

    def set_failure(
        self,
        resource_id: str,
        operation: str = "install",
        kind: FailureKind = FailureKind.TRANSIENT,
        times: int | None = None,
        message: str = "Mock failure",
    ) -> None:
        """Make ``operation`` on ``resource_id`` fail.

        Args:
            times: Fail this many times, then succeed. None = always.
        """
        self._failures[(operation, resource_id)] = (kind, times, message)

    def reset(self) -> None:
        """Clear call log and scripted failures."""
        self._call_log.clear()
        self._failures.clear()
        self.prepare_count = 0

    # ── Adapter protocol ────────────────────────────────────────

    def prepare(self, config: RunConfig) -> CommandResult | None:
        self.prepare_count += 1
        return None

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        if not self._available:
            return ResourceState.absent(tool_missing=True)
        if resource_id in self.installed:
            return ResourceState.installed(self.installed[resource_id])
        return ResourceState.absent()

    def probe_many(
        self, resource_ids: Iterable[str], config: RunConfig
    ) -> dict[str, ResourceState]:
        return {rid: self.probe(rid, config) for rid in resource_ids}

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        failed = self._record("install", resource_id, config)
        if failed:
            return failed
        self.installed[resource_id] = self._latest(resource_id)
        return self._ok("install", resource_id)

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        failed = self._record("update", resource_id, config)
        if failed:
            return failed
        self.installed[resource_id] = self._latest(resource_id)
        return self._ok("update", resource_id)

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        failed = self._record("uninstall", resource_id, config)
        if failed:
            return failed
        self.installed.pop(resource_id, None)
        return self._ok("uninstall", resource_id)

    def classify_failure(self, result: CommandResult) -> FailureKind:
        if result.missing:
            return FailureKind.TOOL_MISSING
        operation, resource_id = result.command[1], result.command[2]
        scripted = self._failures.get((operation, resource_id))
        return scripted[0] if scripted else FailureKind.TRANSIENT

    # ── Helpers ─────────────────────────────────────────────────

    def _latest(self, resource_id: str) -> str:
        return self.latest.get(resource_id, self.default_version)

    def _ok(self, operation: str, resource_id: str) -> CommandResult:
        return CommandResult(
            command=[self.tool, operation, resource_id],
            returncode=0,
            stdout=f"[mock] {operation} {resource_id}",
        )

    def _record(
        self, operation: str, resource_id: str, config: RunConfig
    ) -> CommandResult | None:
        """Log the call and return a failure result if one is scripted."""
        self._call_log.append((operation, resource_id))
        command = [self.tool, operation, resource_id]
        if not self._available:
            return CommandResult(command=command, missing=True)

        scripted = self._failures.get((operation, resource_id))
        if scripted is None:
            return None

        kind, times, message = scripted
        if kind == FailureKind.DEPENDENCY_CONFLICT and config.force:
            return None
        if times is not None:
            if times <= 0:
                return None
            self._failures[(operation, resource_id)] = (kind, times - 1, message)
        return CommandResult(command=command, returncode=1, stderr=message)
