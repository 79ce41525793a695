"""
PowerShell module adapter — modules from the PowerShell Gallery.

Each operation is a small ``pwsh -NoProfile -Command`` script wrapped in
try/catch so that PowerShell errors surface as a non-zero exit code.
"""

from __future__ import annotations

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

_NOT_FOUND_MARKERS = ("no match was found",)
_CONFLICT_MARKERS = ("depends on", "is a dependency", "required by")


def _quote(value: str) -> str:
    """Single-quote a value for a PowerShell command line."""
    return "'" + value.replace("'", "''") + "'"


def _guarded(body: str) -> str:
    return (
        "try { "
        f"{body}; exit 0 "
        "} catch { Write-Error $_.Exception.Message; exit 1 }"
    )


class PowerShellModuleAdapter(ResourceAdapter):
    """PowerShell modules via Install-Module / Update-Module / Uninstall-Module."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.PWSH

    @property
    def tool(self) -> str:
        return "pwsh"

    def prepare(self, config: RunConfig) -> CommandResult | None:
        if config.uninstall:
            return None
        return self._pwsh(
            "Set-PSRepository -Name 'PSGallery' -InstallationPolicy Trusted",
            config.operation_timeout,
        )

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        script = (
            f"$m = Get-Module -ListAvailable -Name {_quote(resource_id)} "
            "-ErrorAction SilentlyContinue | Sort-Object Version -Descending | "
            "Select-Object -First 1; "
            "if ($m) { $m.Version.ToString() } else { exit 1 }"
        )
        result = self._query(self._command(script), config)
        if not result.ok:
            return ResourceState.absent(tool_missing=result.missing)
        version = result.stdout.strip().splitlines()
        return ResourceState.installed(version[-1].strip() if version else None)

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._pwsh(
            _guarded(
                f"Install-Module -Name {_quote(resource_id)} -Force -AllowClobber "
                "-Scope CurrentUser -ErrorAction Stop"
            ),
            config.operation_timeout,
        )

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._pwsh(
            _guarded(f"Update-Module -Name {_quote(resource_id)} -Force -ErrorAction Stop"),
            config.operation_timeout,
        )

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        name = _quote(resource_id)
        force = " -Force" if config.force else ""
        return self._pwsh(
            _guarded(
                f"Remove-Module -Name {name} -Force -ErrorAction SilentlyContinue; "
                f"Uninstall-Module -Name {name} -AllVersions{force} -ErrorAction Stop"
            ),
            config.operation_timeout,
        )

    def classify_failure(self, result: CommandResult) -> FailureKind:
        text = result.output.lower()
        if any(marker in text for marker in _CONFLICT_MARKERS):
            return FailureKind.DEPENDENCY_CONFLICT
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return FailureKind.NOT_FOUND
        return super().classify_failure(result)

    def _command(self, script: str) -> list[str]:
        return ["pwsh", "-NoProfile", "-NonInteractive", "-Command", script]

    def _pwsh(self, script: str, timeout: float) -> CommandResult:
        return self.runner.run(self._command(script), timeout=timeout)
