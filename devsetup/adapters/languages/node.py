"""
npm adapter — globally installed Node.js packages.

Resource ids may carry a version spec (``azure-functions-core-tools@4``,
``@angular/cli@17``). The spec is passed to ``npm install`` as written;
probing and removal use the bare package name.
"""

from __future__ import annotations

import json
import logging

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)

_NOT_FOUND_MARKERS = ("e404", "etarget", "404 not found", "no matching version")


def split_package_spec(spec: str) -> tuple[str, str | None]:
    """Split ``name@range`` into ``(name, range)``.

    A leading ``@`` belongs to the scope, not to the version:
    ``@scope/pkg@1`` → ``("@scope/pkg", "1")``.
    """
    at = spec.rfind("@")
    if at <= 0:
        return spec, None
    return spec[:at], spec[at + 1:] or None


class NpmAdapter(ResourceAdapter):
    """Global npm packages."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.NPM

    @property
    def tool(self) -> str:
        return "npm"

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        name, _ = split_package_spec(resource_id)
        result = self._query(["npm", "ls", "-g", "--depth=0", "--json", name], config)
        if result.missing or result.timed_out or result.error:
            return ResourceState.absent(tool_missing=result.missing)
        # npm ls exits 1 when the package is absent but still prints JSON
        return parse_npm_ls(result.stdout, name)

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._npm(["install", "-g", resource_id], config)

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        name, version = split_package_spec(resource_id)
        # Re-installing honours a pinned range; unpinned packages go to latest.
        target = resource_id if version else f"{name}@latest"
        return self._npm(["install", "-g", target], config)

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        name, _ = split_package_spec(resource_id)
        args = ["uninstall", "-g", name]
        if config.force:
            args.append("--force")
        return self._npm(args, config)

    def classify_failure(self, result: CommandResult) -> FailureKind:
        text = result.output.lower()
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return FailureKind.NOT_FOUND
        return super().classify_failure(result)

    def _npm(self, args: list[str], config: RunConfig) -> CommandResult:
        return self.runner.run(["npm", *args], timeout=config.operation_timeout)


def parse_npm_ls(output: str, name: str) -> ResourceState:
    """Extract a package's version from ``npm ls -g --json`` output."""
    try:
        data = json.loads(output or "{}")
    except json.JSONDecodeError:
        logger.debug("Unparseable npm ls output for %s", name)
        return ResourceState.absent()

    dependencies = data.get("dependencies") or {}
    entry = dependencies.get(name)
    if not isinstance(entry, dict):
        return ResourceState.absent()
    # Entries flagged "missing"/"extraneous" without a version are not usable
    version = entry.get("version")
    if not version:
        return ResourceState.absent()
    return ResourceState.installed(version)
