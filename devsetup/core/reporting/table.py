"""
Reporter — plain-text rendering of batch state and results.

Every function here takes models and returns a string. Nothing prints,
probes or mutates; the CLI decides where the text goes.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence

from devsetup.core.models.outcome import BatchReport, OperationAction, OperationOutcome
from devsetup.core.models.resource import ResourceDescriptor, ResourceKind, ResourceState

NAME_WIDTH = 25
DESCRIPTION_WIDTH = 35
ID_WIDTH = 30

Row = tuple[str, str, str, str]


def _v(version: str | None) -> str:
    return f"v{version}" if version else ""


def _cell(text: str, width: int) -> str:
    """Left-align ``text`` in a column, shortening it when it does not fit."""
    if len(text) >= width:
        text = text[: width - 4] + "..."
    return text.ljust(width)


# ── Headers & tables ────────────────────────────────────────────


def render_header(kind: ResourceKind, uninstall: bool, force: bool, count: int) -> str:
    """E.g. ``Installing 6 extensions...`` or ``Uninstalling 1 extension (force)...``."""
    verb = "Uninstalling" if uninstall else "Installing"
    noun = kind.noun if count == 1 else kind.plural
    suffix = " (force)" if force and uninstall else ""
    return f"{verb} {count} {noun}{suffix}..."


def render_status_table(rows: Iterable[Row]) -> str:
    """Fixed-width Name / Description / ID / Status table."""
    header = (
        _cell("Name", NAME_WIDTH)
        + _cell("Description", DESCRIPTION_WIDTH)
        + _cell("ID", ID_WIDTH)
        + "Status"
    )
    lines = [header, "-" * (NAME_WIDTH + DESCRIPTION_WIDTH + ID_WIDTH + 20)]
    for name, description, resource_id, status in rows:
        lines.append(
            _cell(name, NAME_WIDTH)
            + _cell(description, DESCRIPTION_WIDTH)
            + _cell(resource_id, ID_WIDTH)
            + status
        )
    return "\n".join(lines)


def render_state_status(state: ResourceState) -> str:
    if state.present:
        return f"Installed {_v(state.version)}".rstrip()
    if state.tool_missing:
        return "Not installed (tool missing)"
    return "Not installed"


def render_outcome_status(outcome: OperationOutcome) -> str:
    """Status cell for one outcome."""
    if outcome.action == OperationAction.SKIP:
        return "Not installed"

    if outcome.action == OperationAction.UNINSTALL:
        if outcome.ok:
            return f"Uninstalled (was {_v(outcome.old_version)})" if outcome.old_version else "Uninstalled"
        return f"Failed to uninstall {_v(outcome.old_version)}".rstrip()

    if outcome.action == OperationAction.INSTALL:
        if outcome.ok:
            return f"Installed {_v(outcome.new_version)}".rstrip()
        return "Installation failed"

    if not outcome.ok:
        return "Update failed"
    if outcome.version_changed:
        return f"Updated {_v(outcome.old_version) or '?'} → {_v(outcome.new_version) or '?'}"
    return f"Up to date {_v(outcome.new_version)}".rstrip()


def outcome_rows(outcomes: Iterable[OperationOutcome]) -> list[Row]:
    return [
        (o.name, o.description, o.resource_id, render_outcome_status(o))
        for o in outcomes
    ]


def render_probe_table(
    descriptors: Sequence[ResourceDescriptor],
    states: Mapping[str, ResourceState],
) -> str:
    """Status table straight from probe results, without any action."""
    rows = [
        (
            d.name,
            d.description,
            d.id,
            render_state_status(states.get(d.id) or ResourceState.absent()),
        )
        for d in descriptors
    ]
    return render_status_table(rows)


# ── Summaries ───────────────────────────────────────────────────


def render_current_status(report: BatchReport) -> str:
    """Sorted list of what is installed (or was removed) after the batch."""
    lines = []
    if report.mode == "uninstall":
        done = [o for o in report.outcomes if o.ok and o.action == OperationAction.UNINSTALL]
        for o in sorted(done, key=lambda o: o.name.lower()):
            lines.append(f"🗑️ {o.name} (was {_v(o.old_version) or 'unknown'})")
        if not lines:
            lines.append(f"No {report.kind.plural} were removed")
        return "\n".join(lines)

    present = [o for o in report.outcomes if o.ok]
    for o in sorted(present, key=lambda o: o.name.lower()):
        lines.append(f"✅ {o.name} ({_v(o.new_version) or 'unknown version'})")
    if not lines:
        lines.append(f"No {report.kind.plural} installed")
    return "\n".join(lines)


def render_summary(report: BatchReport) -> str:
    """Count lines for one batch."""
    if report.mode == "uninstall":
        lines = [
            f"Uninstalled: {report.uninstalled}, "
            f"Not installed: {report.skipped}, "
            f"Failed: {report.failed}"
        ]
    else:
        lines = [
            f"Installed: {report.installed}, "
            f"Updated: {report.updated}, "
            f"Failed: {report.failed}",
            f"Up to date: {report.up_to_date}",
        ]
    lines.append(f"Total: {report.total}")
    return "\n".join(lines)


def render_failures(reports: Iterable[BatchReport]) -> str:
    """Itemised failure list across batches, empty when nothing failed."""
    lines = []
    for report in reports:
        for o in report.failures:
            detail = o.error or "unknown error"
            lines.append(f"  ❌ [{o.kind.value}] {o.resource_id}: {detail}")
    if not lines:
        return ""
    return "\n".join([f"Failures ({len(lines)}):", *lines])
