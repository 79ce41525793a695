"""
Install use case — apply a profile in install or uninstall mode.

Loads the profile, picks the adapter registry (real or mock), runs every
batch and the verification commands, and returns one result object the
CLI can print or dump as JSON.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from devsetup.adapters.command import CommandRunner
from devsetup.adapters.registry import AdapterRegistry, default_registry
from devsetup.core.config.loader import ConfigError, resolve_profile
from devsetup.core.engine.executor import OutcomeCallback, ProfileReport, run_profile
from devsetup.core.models.outcome import BatchReport
from devsetup.core.models.profile import Profile
from devsetup.core.models.resource import ResourceDescriptor, ResourceKind
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of applying a profile."""

    profile: Profile | None = None
    report: ProfileReport | None = None
    config: RunConfig | None = None
    mock: bool = False
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.error or self.report is None:
            return 1
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["profile"] = self.profile.name if self.profile else ""
        result["mock"] = self.mock
        if self.config:
            result["mode"] = self.config.mode
            result["force"] = self.config.force
        if self.report:
            result["report"] = self.report.to_dict()
        result["exit_code"] = self.exit_code
        return result


def apply_profile(
    name_or_path: str,
    config: RunConfig,
    profiles_dir: Path | None = None,
    kinds: Sequence[ResourceKind] | None = None,
    mock_mode: bool = False,
    registry: AdapterRegistry | None = None,
    runner: CommandRunner | None = None,
    sleep: Callable[[float], None] = time.sleep,
    on_batch_start: Callable[[ResourceKind, list[ResourceDescriptor]], None] | None = None,
    on_outcome: OutcomeCallback | None = None,
    on_batch_end: Callable[[BatchReport], None] | None = None,
) -> InstallResult:
    """Converge the resources of a profile.

    Args:
        name_or_path: Profile name or path to a profile file.
        config: Run mode and limits.
        profiles_dir: Extra directory searched before the bundled profiles.
        kinds: Restrict to these resource kinds (None = all).
        mock_mode: Use in-memory mock adapters instead of the system.
        registry: Pre-configured adapter registry (overrides mock_mode).
        runner: Command runner for the default registry and verifications.
        sleep: Sleep function used between retries.

    Returns:
        InstallResult; ``error`` is set when the profile could not be loaded.
    """
    result = InstallResult(config=config, mock=mock_mode)

    try:
        profile = resolve_profile(name_or_path, profiles_dir)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.profile = profile

    runner = runner or CommandRunner()
    if registry is None:
        registry = default_registry(runner, mock_mode=mock_mode)

    # Verification commands exercise the real system; a mock run skips them
    verify_runner = None if registry.mock_mode else runner

    logger.info("Applying profile '%s' (%s)", profile.name, config.mode)
    result.report = run_profile(
        profile,
        registry,
        config,
        kinds=kinds,
        sleep=sleep,
        verify_runner=verify_runner,
        on_batch_start=on_batch_start,
        on_outcome=on_outcome,
        on_batch_end=on_batch_end,
    )
    return result
