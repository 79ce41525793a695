"""
Resource models — what the installer manages.

A ResourceDescriptor names one installable unit (an OS package, a global
npm package, a PowerShell module, a VS Code extension...). A ResourceState
is what a probe observed about it at one point in time. Neither is ever
persisted.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class ResourceKind(StrEnum):
    """The package manager or extension host a resource belongs to."""

    APT = "apt"
    NPM = "npm"
    PIP = "pip"
    PWSH = "pwsh"
    EXTENSION = "extension"

    @property
    def noun(self) -> str:
        """Singular human label, e.g. 'system package'."""
        return _NOUNS[self][0]

    @property
    def plural(self) -> str:
        """Plural human label, e.g. 'system packages'."""
        return _NOUNS[self][1]


_NOUNS: dict[ResourceKind, tuple[str, str]] = {
    ResourceKind.APT: ("system package", "system packages"),
    ResourceKind.NPM: ("Node.js package", "Node.js packages"),
    ResourceKind.PIP: ("Python package", "Python packages"),
    ResourceKind.PWSH: ("PowerShell module", "PowerShell modules"),
    ResourceKind.EXTENSION: ("extension", "extensions"),
}

# Extensions depend on the runtimes below them, so they go last on
# install and first on uninstall.
INSTALL_ORDER: tuple[ResourceKind, ...] = (
    ResourceKind.APT,
    ResourceKind.NPM,
    ResourceKind.PIP,
    ResourceKind.PWSH,
    ResourceKind.EXTENSION,
)
UNINSTALL_ORDER: tuple[ResourceKind, ...] = tuple(reversed(INSTALL_ORDER))


class ResourceDescriptor(BaseModel):
    """One installable unit, declared in a profile.

    ``id`` is the identifier the package manager understands
    (``dotnet-sdk-8.0``, ``azure-functions-core-tools@4``,
    ``ms-python.python``). It is the unique key within a batch.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    kind: ResourceKind
    display_name: str = ""
    description: str = ""
    source_url: str | None = None

    @property
    def name(self) -> str:
        """Display name, falling back to the identifier."""
        return self.display_name or self.id


class ResourceState(BaseModel):
    """Observed installation status of a resource."""

    present: bool = False
    version: str | None = None
    tool_missing: bool = False   # the probing tool itself is not on PATH

    @classmethod
    def absent(cls, tool_missing: bool = False) -> ResourceState:
        return cls(present=False, tool_missing=tool_missing)

    @classmethod
    def installed(cls, version: str | None = None) -> ResourceState:
        return cls(present=True, version=version)
