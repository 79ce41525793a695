"""
Profile model — a named set of resources to converge together.

Loaded from a YAML file. Each resource list accepts plain identifiers,
mappings with details, or (for extensions, as written historically) a
mapping of ``id → {name, description}``:

    name: dev-csharp
    description: C# and Azure Functions development
    system_packages:
      - dotnet-sdk-8.0
    node_packages:
      - azure-functions-core-tools@4
    extensions:
      ms-dotnettools.csdevkit:
        name: C# Dev Kit
        description: Complete C# development experience
    verify_commands:
      - dotnet --version
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

from devsetup.core.models.resource import (
    INSTALL_ORDER,
    UNINSTALL_ORDER,
    ResourceDescriptor,
    ResourceKind,
)


class ResourceEntry(BaseModel):
    """One resource as declared in a profile file."""

    id: str
    name: str = ""
    description: str = ""
    source_url: str | None = None


def _coerce_entries(value: Any) -> Any:
    """Normalize the accepted list shapes into a list of entry mappings."""
    if value is None:
        return []
    if isinstance(value, dict):
        entries = []
        for key, detail in value.items():
            if isinstance(detail, dict):
                entries.append({"id": key, **detail})
            elif isinstance(detail, str):
                entries.append({"id": key, "name": detail})
            else:
                entries.append({"id": key})
        return entries
    if isinstance(value, list):
        return [{"id": item} if isinstance(item, str) else item for item in value]
    return value


# Profile field per resource kind.
_KIND_FIELDS: dict[ResourceKind, str] = {
    ResourceKind.APT: "system_packages",
    ResourceKind.NPM: "node_packages",
    ResourceKind.PIP: "python_packages",
    ResourceKind.PWSH: "pwsh_modules",
    ResourceKind.EXTENSION: "extensions",
}


class Profile(BaseModel):
    """A named bundle of resources, verification commands and notes."""

    name: str
    description: str = ""

    system_packages: list[ResourceEntry] = Field(default_factory=list)
    node_packages: list[ResourceEntry] = Field(default_factory=list)
    python_packages: list[ResourceEntry] = Field(default_factory=list)
    pwsh_modules: list[ResourceEntry] = Field(default_factory=list)
    extensions: list[ResourceEntry] = Field(default_factory=list)

    verify_commands: list[str] = Field(default_factory=list)
    notes: list[str] = Field(default_factory=list)

    @field_validator(
        "system_packages",
        "node_packages",
        "python_packages",
        "pwsh_modules",
        "extensions",
        mode="before",
    )
    @classmethod
    def _normalize_entries(cls, value: Any) -> Any:
        return _coerce_entries(value)

    def entries(self, kind: ResourceKind) -> list[ResourceEntry]:
        return getattr(self, _KIND_FIELDS[kind])

    def descriptors(self, kind: ResourceKind) -> list[ResourceDescriptor]:
        """Resource descriptors of one kind, in declaration order."""
        return [
            ResourceDescriptor(
                id=entry.id,
                kind=kind,
                display_name=entry.name,
                description=entry.description,
                source_url=entry.source_url,
            )
            for entry in self.entries(kind)
        ]

    def kinds(self, uninstall: bool = False) -> list[ResourceKind]:
        """Non-empty resource kinds, in the order the mode requires."""
        order = UNINSTALL_ORDER if uninstall else INSTALL_ORDER
        return [kind for kind in order if self.entries(kind)]

    @property
    def total_resources(self) -> int:
        return sum(len(self.entries(kind)) for kind in INSTALL_ORDER)
