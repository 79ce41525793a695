"""
APT adapter — Debian/Ubuntu system packages.

State is read from dpkg's database; mutations go through apt-get with
``sudo`` when not running as root. The package index is refreshed once
per install batch.
"""

from __future__ import annotations

import logging

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}

# Another apt/dpkg process holds the lock; waiting and retrying helps.
_LOCK_MARKERS = ("could not get lock", "unable to acquire the dpkg frontend lock")
_NOT_FOUND_MARKERS = ("unable to locate package", "has no installation candidate")


class AptAdapter(ResourceAdapter):
    """System packages via dpkg-query and apt-get."""

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.APT

    @property
    def tool(self) -> str:
        return "apt-get"

    def is_available(self) -> bool:
        return (
            self.runner.which("apt-get") is not None
            and self.runner.which("dpkg-query") is not None
        )

    def prepare(self, config: RunConfig) -> CommandResult | None:
        if config.uninstall:
            return None
        logger.debug("Refreshing apt package lists")
        return self.runner.run(
            ["apt-get", "update"],
            timeout=config.operation_timeout,
            sudo=True,
            env=_APT_ENV,
        )

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        result = self._query(
            ["dpkg-query", "-W", "-f=${Status}\t${Version}", resource_id],
            config,
        )
        if not result.ok:
            # dpkg-query exits 1 for unknown packages
            return ResourceState.absent(tool_missing=result.missing)
        return parse_dpkg_status(result.stdout)

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._apt(["install", "-y", resource_id], config)

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._apt(["install", "-y", "--only-upgrade", resource_id], config)

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._apt(["remove", "-y", resource_id], config)

    def classify_failure(self, result: CommandResult) -> FailureKind:
        text = result.output.lower()
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return FailureKind.NOT_FOUND
        if any(marker in text for marker in _LOCK_MARKERS):
            return FailureKind.TRANSIENT
        return super().classify_failure(result)

    def _apt(self, args: list[str], config: RunConfig) -> CommandResult:
        return self.runner.run(
            ["apt-get", *args],
            timeout=config.operation_timeout,
            sudo=True,
            env=_APT_ENV,
        )


def parse_dpkg_status(output: str) -> ResourceState:
    """Parse ``dpkg-query -W -f='${Status}\\t${Version}'`` output.

    A package is present only when its status is ``install ok installed``;
    removed-but-configured packages (``deinstall ok config-files``) are not.
    """
    line = output.strip().splitlines()[0] if output.strip() else ""
    status, _, version = line.partition("\t")
    words = status.split()
    if words and words[-1] == "installed":
        return ResourceState.installed(version.strip() or None)
    return ResourceState.absent()
