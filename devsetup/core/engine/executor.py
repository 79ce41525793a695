"""
Batch runner — converge a set of resources and collect the outcomes.

A batch is all resources of one kind handled by one adapter. A profile
run is one batch per non-empty kind, in install order (or reversed for
uninstall), followed by the profile's verification commands.

Flow:
    descriptors → plan (dedupe, sort) → probe all → prepare → converge each → report
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandRunner
from devsetup.adapters.registry import AdapterRegistry
from devsetup.core.engine.installer import converge, decide_action
from devsetup.core.models.outcome import (
    BatchReport,
    FailureKind,
    OperationAction,
    OperationOutcome,
    OperationResult,
)
from devsetup.core.models.profile import Profile
from devsetup.core.models.resource import ResourceDescriptor, ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[OperationOutcome], None]


def plan_batch(descriptors: Iterable[ResourceDescriptor]) -> list[ResourceDescriptor]:
    """De-duplicate by id (first declaration wins) and sort by id."""
    seen: dict[str, ResourceDescriptor] = {}
    for descriptor in descriptors:
        if descriptor.id in seen:
            logger.debug("Duplicate resource '%s' ignored", descriptor.id)
            continue
        seen[descriptor.id] = descriptor
    return sorted(seen.values(), key=lambda d: d.id)


def run_batch(
    descriptors: Iterable[ResourceDescriptor],
    adapter: ResourceAdapter,
    config: RunConfig,
    sleep: Callable[[float], None] = time.sleep,
    on_outcome: OutcomeCallback | None = None,
) -> BatchReport:
    """Converge every descriptor through one adapter.

    Per-resource failures are recorded in the report and never abort
    the batch.

    Args:
        descriptors: Resources to converge (all of the adapter's kind).
        adapter: The adapter to use.
        config: Run mode and limits.
        sleep: Sleep function used between retries.
        on_outcome: Called with each outcome as soon as it is known.

    Returns:
        BatchReport with one outcome per unique descriptor, ordered by id.
    """
    planned = plan_batch(descriptors)
    report = BatchReport(kind=adapter.kind, mode=config.mode)
    if not planned:
        return report

    logger.info(
        "%s %d %s",
        "Uninstalling" if config.uninstall else "Installing",
        len(planned),
        adapter.kind.plural,
    )
    states = _probe_all(adapter, [d.id for d in planned], config)

    needs_mutation = any(
        decide_action(states[d.id], config) != OperationAction.SKIP for d in planned
    )
    if needs_mutation:
        _prepare(adapter, config)

    for descriptor in planned:
        outcome = converge(descriptor, states[descriptor.id], adapter, config, sleep=sleep)
        report.outcomes.append(outcome)
        if on_outcome:
            on_outcome(outcome)

    logger.info(
        "%s batch done: %d succeeded, %d failed",
        adapter.kind.value,
        report.succeeded,
        report.failed,
    )
    return report


def _probe_all(
    adapter: ResourceAdapter, ids: list[str], config: RunConfig
) -> dict[str, ResourceState]:
    """Probe a batch; anything the adapter fails to answer counts as absent."""
    try:
        states = adapter.probe_many(ids, config)
    except Exception as e:
        logger.error("Probe of %s raised: %s", adapter.kind.plural, e)
        states = {}
    return {rid: states.get(rid) or ResourceState.absent() for rid in ids}


def _prepare(adapter: ResourceAdapter, config: RunConfig) -> None:
    try:
        result = adapter.prepare(config)
    except Exception as e:
        logger.warning("Preparing %s raised: %s", adapter.kind.plural, e)
        return
    if result is not None and not result.ok:
        logger.warning(
            "Preparing %s failed, continuing: %s", adapter.kind.plural, result.describe()
        )


# ── Profile runs ────────────────────────────────────────────────


@dataclass
class VerifyResult:
    """Outcome of one profile verification command."""

    command: str
    ok: bool
    output: str = ""
    skipped: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "command": self.command,
            "ok": self.ok,
            "output": self.output,
            "skipped": self.skipped,
        }


@dataclass
class ProfileReport:
    """All batch reports of one profile run."""

    profile: str
    mode: str = "install"
    batches: list[BatchReport] = field(default_factory=list)
    verifications: list[VerifyResult] = field(default_factory=list)

    @property
    def outcomes(self) -> list[OperationOutcome]:
        return [o for batch in self.batches for o in batch.outcomes]

    @property
    def total(self) -> int:
        return sum(batch.total for batch in self.batches)

    @property
    def failed(self) -> int:
        return sum(batch.failed for batch in self.batches)

    @property
    def failures(self) -> list[OperationOutcome]:
        return [o for batch in self.batches for o in batch.failures]

    @property
    def failed_verifications(self) -> list[VerifyResult]:
        return [v for v in self.verifications if not v.ok and not v.skipped]

    @property
    def all_ok(self) -> bool:
        return self.failed == 0 and not self.failed_verifications

    @property
    def exit_code(self) -> int:
        return 0 if self.all_ok else 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "profile": self.profile,
            "mode": self.mode,
            "status": "ok" if self.all_ok else "failed",
            "total": self.total,
            "failed": self.failed,
            "batches": [batch.to_dict() for batch in self.batches],
            "verifications": [v.to_dict() for v in self.verifications],
        }


def _unavailable_batch(
    descriptors: Sequence[ResourceDescriptor], kind: ResourceKind, config: RunConfig
) -> BatchReport:
    """Report for a kind with no registered adapter."""
    report = BatchReport(kind=kind, mode=config.mode)
    for descriptor in plan_batch(descriptors):
        report.outcomes.append(
            OperationOutcome(
                resource_id=descriptor.id,
                kind=kind,
                display_name=descriptor.display_name,
                description=descriptor.description,
                action=OperationAction.UNINSTALL if config.uninstall else OperationAction.INSTALL,
                result=OperationResult.FAILURE,
                failure_kind=FailureKind.TOOL_MISSING,
                error=f"No adapter registered for {kind.plural}",
            )
        )
    return report


def run_profile(
    profile: Profile,
    registry: AdapterRegistry,
    config: RunConfig,
    kinds: Sequence[ResourceKind] | None = None,
    sleep: Callable[[float], None] = time.sleep,
    verify_runner: CommandRunner | None = None,
    on_batch_start: Callable[[ResourceKind, list[ResourceDescriptor]], None] | None = None,
    on_outcome: OutcomeCallback | None = None,
    on_batch_end: Callable[[BatchReport], None] | None = None,
) -> ProfileReport:
    """Converge every resource of a profile.

    Args:
        profile: The profile to apply.
        registry: Adapter lookup per kind.
        config: Run mode and limits.
        kinds: Restrict the run to these kinds (None = all).
        sleep: Sleep function used between retries.
        verify_runner: Runner for verify_commands. None skips them.
        on_batch_start / on_outcome / on_batch_end: Progress hooks for the CLI.

    Returns:
        ProfileReport with one BatchReport per non-empty kind.
    """
    report = ProfileReport(profile=profile.name, mode=config.mode)

    for kind in profile.kinds(uninstall=config.uninstall):
        if kinds and kind not in kinds:
            continue
        descriptors = plan_batch(profile.descriptors(kind))
        if on_batch_start:
            on_batch_start(kind, descriptors)

        adapter = registry.get(kind)
        if adapter is None:
            logger.error("No adapter registered for %s", kind.value)
            batch = _unavailable_batch(descriptors, kind, config)
            if on_outcome:
                for outcome in batch.outcomes:
                    on_outcome(outcome)
        else:
            batch = run_batch(descriptors, adapter, config, sleep=sleep, on_outcome=on_outcome)

        report.batches.append(batch)
        if on_batch_end:
            on_batch_end(batch)

    if not config.uninstall:
        report.verifications = run_verifications(
            profile.verify_commands, verify_runner, config
        )
    return report


def run_verifications(
    commands: Sequence[str],
    runner: CommandRunner | None,
    config: RunConfig,
) -> list[VerifyResult]:
    """Run a profile's verify_commands. Without a runner they are skipped."""
    results = []
    for command in commands:
        if runner is None:
            results.append(VerifyResult(command=command, ok=True, skipped=True))
            continue
        result = runner.run_shell(command, timeout=config.probe_timeout)
        output = result.output.strip() or result.describe()
        if not result.ok:
            logger.warning("Verification failed: %s (%s)", command, result.describe())
        results.append(VerifyResult(command=command, ok=result.ok, output=output))
    return results


def probe_profile(
    profile: Profile,
    registry: AdapterRegistry,
    config: RunConfig,
    kinds: Sequence[ResourceKind] | None = None,
) -> dict[ResourceKind, tuple[list[ResourceDescriptor], dict[str, ResourceState]]]:
    """Probe every resource of a profile without changing anything."""
    results: dict[ResourceKind, tuple[list[ResourceDescriptor], dict[str, ResourceState]]] = {}
    for kind in profile.kinds():
        if kinds and kind not in kinds:
            continue
        descriptors = plan_batch(profile.descriptors(kind))
        adapter = registry.get(kind)
        if adapter is None:
            states = {d.id: ResourceState.absent(tool_missing=True) for d in descriptors}
        else:
            states = _probe_all(adapter, [d.id for d in descriptors], config)
        results[kind] = (descriptors, states)
    return results
