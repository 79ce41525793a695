"""
Status use cases — read-only views: profile state, profile list, tool check.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from devsetup.adapters.command import CommandRunner
from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.config.loader import ConfigError, discover_profiles, load_profile, resolve_profile
from devsetup.core.engine.executor import probe_profile
from devsetup.core.models.profile import Profile
from devsetup.core.models.resource import ResourceDescriptor, ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig


@dataclass
class ProfileStatusResult:
    """Probed state of every resource in a profile."""

    profile: Profile | None = None
    states: dict[ResourceKind, tuple[list[ResourceDescriptor], dict[str, ResourceState]]] = field(
        default_factory=dict
    )
    error: str | None = None

    @property
    def installed_count(self) -> int:
        return sum(
            1 for _, states in self.states.values() for s in states.values() if s.present
        )

    @property
    def total(self) -> int:
        return sum(len(descriptors) for descriptors, _ in self.states.values())

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["profile"] = self.profile.name if self.profile else ""
        result["installed"] = self.installed_count
        result["total"] = self.total
        result["resources"] = {
            kind.value: [
                {
                    "id": d.id,
                    "name": d.name,
                    "present": states[d.id].present,
                    "version": states[d.id].version,
                    "tool_missing": states[d.id].tool_missing,
                }
                for d in descriptors
            ]
            for kind, (descriptors, states) in self.states.items()
        }
        return result


def get_profile_status(
    name_or_path: str,
    profiles_dir: Path | None = None,
    kinds: Sequence[ResourceKind] | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    config: RunConfig | None = None,
) -> ProfileStatusResult:
    """Probe a profile's resources without changing anything."""
    result = ProfileStatusResult()
    try:
        profile = resolve_profile(name_or_path, profiles_dir)
    except ConfigError as e:
        result.error = str(e)
        return result

    result.profile = profile
    registry = registry or default_registry(mock_mode=mock_mode)
    result.states = probe_profile(profile, registry, config or RunConfig(), kinds=kinds)
    return result


@dataclass
class ProfileListResult:
    """Available profiles."""

    profiles: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict:
        if self.error:
            return {"error": self.error}
        return {"profiles": self.profiles}


def list_profiles(profiles_dir: Path | None = None) -> ProfileListResult:
    """Every discoverable profile with its description and resource counts.

    A profile file that fails to load is listed with its error instead
    of hiding the others.
    """
    result = ProfileListResult()
    for name, path in discover_profiles(profiles_dir).items():
        entry: dict[str, Any] = {"name": name, "path": str(path)}
        try:
            profile = load_profile(path)
        except ConfigError as e:
            entry["error"] = str(e)
        else:
            entry["description"] = profile.description
            entry["resources"] = {
                kind.value: len(profile.entries(kind)) for kind in profile.kinds()
            }
        result.profiles.append(entry)
    return result


@dataclass
class ToolCheckResult:
    """Availability of the package managers behind each resource kind."""

    tools: dict[str, dict[str, Any]] = field(default_factory=dict)

    @property
    def missing(self) -> list[str]:
        return [kind for kind, info in self.tools.items() if not info["available"]]

    def to_dict(self) -> dict:
        return {"tools": self.tools, "missing": self.missing}


def check_tools(
    registry: AdapterRegistry | None = None,
    runner: CommandRunner | None = None,
) -> ToolCheckResult:
    registry = registry or default_registry(runner)
    return ToolCheckResult(tools=registry.adapter_status())
