"""
Installer — converge one resource to the requested mode.

Decision table:

    mode       probed state   action      mutation
    install    absent         install     adapter.install
    install    present        update      adapter.update  ("ensure latest")
    uninstall  present        uninstall   adapter.uninstall
    uninstall  absent         skip        none

Mutations run under the adapter's lock, are retried for transient
failures only, and are followed by a re-probe: a mutation that exits 0
but leaves the resource in the wrong state is a verification failure.

converge() never raises. Anything unexpected coming out of an adapter
is recorded as an ``error`` outcome so the batch can continue.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult
from devsetup.core.models.outcome import (
    FailureKind,
    OperationAction,
    OperationOutcome,
    OperationResult,
)
from devsetup.core.models.resource import ResourceDescriptor, ResourceState
from devsetup.core.models.run_config import RunConfig
from devsetup.core.reliability.retry import RetryPolicy

logger = logging.getLogger(__name__)


def decide_action(state: ResourceState, config: RunConfig) -> OperationAction:
    """Pick the action for a probed state in the configured mode."""
    if config.uninstall:
        return OperationAction.UNINSTALL if state.present else OperationAction.SKIP
    return OperationAction.UPDATE if state.present else OperationAction.INSTALL


def converge(
    descriptor: ResourceDescriptor,
    state: ResourceState,
    adapter: ResourceAdapter,
    config: RunConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> OperationOutcome:
    """Bring one resource to the state the mode asks for.

    Args:
        descriptor: The resource.
        state: Its state as probed before the batch started.
        adapter: Adapter for the resource's kind.
        config: Run mode and limits.
        sleep: Sleep function used between retries.

    Returns:
        Exactly one OperationOutcome.
    """
    start = time.monotonic()
    action = decide_action(state, config)
    outcome = OperationOutcome(
        resource_id=descriptor.id,
        kind=descriptor.kind,
        display_name=descriptor.display_name,
        description=descriptor.description,
        action=action,
        old_version=state.version,
    )

    if action == OperationAction.SKIP:
        logger.debug("%s %s is not installed, nothing to remove", descriptor.kind.noun, descriptor.id)
        return outcome

    try:
        _apply(outcome, descriptor, adapter, config, sleep)
    except Exception as e:
        # Adapters should never raise
        logger.error("Adapter %r raised while handling %s: %s", adapter, descriptor.id, e)
        outcome.result = OperationResult.FAILURE
        outcome.failure_kind = FailureKind.ERROR
        outcome.error = f"Unexpected error: {e}"

    outcome.duration_ms = int((time.monotonic() - start) * 1000)
    if outcome.ok:
        logger.info(
            "%s %s: %s ok (%s → %s)",
            descriptor.kind.noun,
            descriptor.id,
            action.value,
            outcome.old_version or "-",
            outcome.new_version or "-",
        )
    else:
        logger.warning(
            "%s %s: %s failed [%s] %s",
            descriptor.kind.noun,
            descriptor.id,
            action.value,
            outcome.failure_kind,
            outcome.error,
        )
    return outcome


def _apply(
    outcome: OperationOutcome,
    descriptor: ResourceDescriptor,
    adapter: ResourceAdapter,
    config: RunConfig,
    sleep: Callable[[float], None],
) -> None:
    """Run the mutation with retries, then verify. Fills in ``outcome``."""
    mutate: Callable[[str, RunConfig], CommandResult] = {
        OperationAction.INSTALL: adapter.install,
        OperationAction.UPDATE: adapter.update,
        OperationAction.UNINSTALL: adapter.uninstall,
    }[outcome.action]

    def attempt(n: int) -> CommandResult:
        logger.debug("%s %s (attempt %d)", outcome.action.value, descriptor.id, n)
        return mutate(descriptor.id, config)

    def retryable(result: CommandResult) -> bool:
        return not result.ok and adapter.classify_failure(result) == FailureKind.TRANSIENT

    policy = RetryPolicy(max_attempts=config.max_attempts, delay=config.retry_delay, sleep=sleep)

    with adapter.lock:
        result, attempts = policy.run(
            attempt, retryable, label=f"{outcome.action.value} {descriptor.id}"
        )
        outcome.attempts = attempts

        if not result.ok:
            kind = adapter.classify_failure(result)
            outcome.result = OperationResult.FAILURE
            outcome.failure_kind = kind
            outcome.error = _failure_message(kind, descriptor, adapter, result)
            return

        after = adapter.probe(descriptor.id, config)

    if outcome.action == OperationAction.UNINSTALL:
        if after.present:
            outcome.result = OperationResult.FAILURE
            outcome.failure_kind = FailureKind.VERIFICATION
            outcome.error = f"{descriptor.id} is still installed after removal"
        return

    if not after.present:
        outcome.result = OperationResult.FAILURE
        outcome.failure_kind = FailureKind.VERIFICATION
        outcome.error = f"{descriptor.id} is not installed after {outcome.action.value}"
        return
    outcome.new_version = after.version


def _failure_message(
    kind: FailureKind,
    descriptor: ResourceDescriptor,
    adapter: ResourceAdapter,
    result: CommandResult,
) -> str:
    if kind == FailureKind.DEPENDENCY_CONFLICT:
        return f"{descriptor.kind.noun} is a dependency of others; use --force to override"
    if kind == FailureKind.TOOL_MISSING:
        return f"{adapter.tool} is not available"
    if kind == FailureKind.NOT_FOUND:
        return f"{descriptor.id} was not found by {adapter.tool}"
    return result.describe() or "Operation failed"
