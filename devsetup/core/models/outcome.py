"""
Operation outcomes and batch reports — the installer's result contract.

Every resource processed in a batch produces exactly one
OperationOutcome. The BatchReport is the ordered collection of those
outcomes plus the counts the summary printout needs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel

from devsetup.core.models.resource import ResourceKind


class OperationAction(StrEnum):
    INSTALL = "install"
    UPDATE = "update"
    UNINSTALL = "uninstall"
    SKIP = "skip"


class OperationResult(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"


class FailureKind(StrEnum):
    """Why an operation failed.

    Only TRANSIENT failures are retried.
    """

    TOOL_MISSING = "tool_missing"
    TRANSIENT = "transient"
    DEPENDENCY_CONFLICT = "dependency_conflict"
    NOT_FOUND = "not_found"
    VERIFICATION = "verification"
    ERROR = "error"


class OperationOutcome(BaseModel):
    """Result of converging one resource."""

    resource_id: str
    kind: ResourceKind
    display_name: str = ""
    description: str = ""

    action: OperationAction
    result: OperationResult = OperationResult.SUCCESS
    old_version: str | None = None
    new_version: str | None = None

    attempts: int = 0
    duration_ms: int = 0
    error: str | None = None
    failure_kind: FailureKind | None = None

    @property
    def ok(self) -> bool:
        return self.result == OperationResult.SUCCESS

    @property
    def failed(self) -> bool:
        return self.result == OperationResult.FAILURE

    @property
    def name(self) -> str:
        return self.display_name or self.resource_id

    @property
    def version_changed(self) -> bool:
        return self.old_version != self.new_version


@dataclass
class BatchReport:
    """Outcomes of one batch (one resource kind, one mode)."""

    kind: ResourceKind
    mode: str = "install"
    outcomes: list[OperationOutcome] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failed(self) -> int:
        return sum(1 for o in self.outcomes if o.failed)

    @property
    def installed(self) -> int:
        """Fresh installs."""
        return self._count(OperationAction.INSTALL)

    @property
    def updated(self) -> int:
        """Updates that moved to a different version."""
        return sum(
            1 for o in self.outcomes
            if o.ok and o.action == OperationAction.UPDATE and o.version_changed
        )

    @property
    def up_to_date(self) -> int:
        """Already present and already at the latest version."""
        return sum(
            1 for o in self.outcomes
            if o.ok and o.action == OperationAction.UPDATE and not o.version_changed
        )

    @property
    def uninstalled(self) -> int:
        return self._count(OperationAction.UNINSTALL)

    @property
    def skipped(self) -> int:
        return self._count(OperationAction.SKIP)

    @property
    def failures(self) -> list[OperationOutcome]:
        return [o for o in self.outcomes if o.failed]

    @property
    def all_ok(self) -> bool:
        return self.failed == 0

    def _count(self, action: OperationAction) -> int:
        return sum(1 for o in self.outcomes if o.ok and o.action == action)

    def to_dict(self) -> dict[str, Any]:
        counts: dict[str, int]
        if self.mode == "uninstall":
            counts = {
                "uninstalled": self.uninstalled,
                "skipped": self.skipped,
                "failed": self.failed,
            }
        else:
            counts = {
                "installed": self.installed,
                "updated": self.updated,
                "up_to_date": self.up_to_date,
                "failed": self.failed,
            }
        return {
            "kind": self.kind.value,
            "mode": self.mode,
            "total": self.total,
            "succeeded": self.succeeded,
            **counts,
            "outcomes": [o.model_dump(mode="json") for o in self.outcomes],
        }
