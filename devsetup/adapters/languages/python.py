"""
pip adapter — Python packages in the current interpreter's environment.

Runs ``<python> -m pip`` so the packages land next to the interpreter
devsetup itself runs on, unless a different interpreter is given.
"""

from __future__ import annotations

import re
import sys

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult, CommandRunner
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

_NOT_FOUND_MARKERS = ("no matching distribution", "could not find a version")
_VERSION_RE = re.compile(r"^Version:\s*(\S+)", re.MULTILINE)
_NAME_END_RE = re.compile(r"[\[<>=!~;\s]")


def requirement_name(spec: str) -> str:
    """Strip extras and version specifiers: ``dbt-core[x]>=1.7`` → ``dbt-core``."""
    return _NAME_END_RE.split(spec, maxsplit=1)[0]


class PipAdapter(ResourceAdapter):
    """Python packages via ``python -m pip``."""

    def __init__(self, runner: CommandRunner | None = None, python: str | None = None):
        super().__init__(runner)
        self.python = python or sys.executable

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.PIP

    @property
    def tool(self) -> str:
        return self.python

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        result = self._query(self._pip("show", requirement_name(resource_id)), config)
        if not result.ok:
            # pip show exits 1 with a warning for unknown packages
            return ResourceState.absent(tool_missing=result.missing)
        match = _VERSION_RE.search(result.stdout)
        return ResourceState.installed(match.group(1) if match else None)

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self.runner.run(
            self._pip("install", resource_id), timeout=config.operation_timeout
        )

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self.runner.run(
            self._pip("install", "--upgrade", resource_id),
            timeout=config.operation_timeout,
        )

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self.runner.run(
            self._pip("uninstall", "-y", requirement_name(resource_id)),
            timeout=config.operation_timeout,
        )

    def classify_failure(self, result: CommandResult) -> FailureKind:
        text = result.output.lower()
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return FailureKind.NOT_FOUND
        return super().classify_failure(result)

    def _pip(self, *args: str) -> list[str]:
        return [self.python, "-m", "pip", *args, "--disable-pip-version-check"]
