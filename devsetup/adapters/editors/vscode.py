"""
VS Code extension adapter — extensions through the editor's own CLI.

Inside a dev container the CLI is the VS Code server's ``code-server``
binary under ``~/.vscode-server/bin/<commit>/bin/``; on a desktop it is
``code``. The newest server installation wins. code-server refuses to
run without ``--accept-server-license-terms``.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Sequence
from pathlib import Path

from devsetup.adapters.base import ResourceAdapter
from devsetup.adapters.command import CommandResult, CommandRunner
from devsetup.core.models.outcome import FailureKind
from devsetup.core.models.resource import ResourceKind, ResourceState
from devsetup.core.models.run_config import RunConfig

logger = logging.getLogger(__name__)

DEFAULT_SERVER_DIRS: tuple[Path, ...] = (
    Path.home() / ".vscode-server" / "bin",
    Path("/vscode/vscode-server/bin"),
)

_CONFLICT_MARKERS = ("depends on",)
_NOT_FOUND_MARKERS = ("not found",)


def find_vscode_cli(
    runner: CommandRunner,
    server_dirs: Sequence[Path] = DEFAULT_SERVER_DIRS,
) -> str | None:
    """Locate the VS Code CLI.

    Searches each server directory for ``<commit>/bin/code-server``,
    newest commit directory first, then falls back to ``code-server``
    and ``code`` on PATH.
    """
    for base in server_dirs:
        if not base.is_dir():
            continue
        commits = sorted(
            (p for p in base.iterdir() if p.is_dir()),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        for commit in commits:
            candidate = commit / "bin" / "code-server"
            if candidate.is_file() and os.access(candidate, os.X_OK):
                logger.debug("Found VS Code server at %s", candidate)
                return str(candidate)

    for name in ("code-server", "code"):
        path = runner.which(name)
        if path:
            return path
    return None


def parse_extension_list(output: str) -> dict[str, str]:
    """Parse ``--list-extensions --show-versions`` into ``{id: version}``.

    Ids are lower-cased; the marketplace treats them case-insensitively.
    """
    versions: dict[str, str] = {}
    for line in output.splitlines():
        line = line.strip()
        if "@" not in line:
            continue
        ext_id, _, version = line.rpartition("@")
        if ext_id:
            versions[ext_id.lower()] = version
    return versions


class VSCodeExtensionAdapter(ResourceAdapter):
    """VS Code extensions via ``--install-extension`` / ``--uninstall-extension``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        cli_path: str | None = None,
        server_dirs: Sequence[Path] = DEFAULT_SERVER_DIRS,
    ):
        super().__init__(runner)
        self._cli_path = cli_path
        self._server_dirs = server_dirs

    @property
    def kind(self) -> ResourceKind:
        return ResourceKind.EXTENSION

    @property
    def tool(self) -> str:
        if self.cli_path:
            return Path(self.cli_path).name
        return "code"

    @property
    def cli_path(self) -> str | None:
        if self._cli_path is None:
            self._cli_path = find_vscode_cli(self.runner, self._server_dirs)
        return self._cli_path

    def is_available(self) -> bool:
        return self.cli_path is not None

    def probe(self, resource_id: str, config: RunConfig) -> ResourceState:
        return self.probe_many([resource_id], config)[resource_id]

    def probe_many(
        self, resource_ids: Iterable[str], config: RunConfig
    ) -> dict[str, ResourceState]:
        ids = list(resource_ids)
        if self.cli_path is None:
            logger.warning("VS Code CLI not found; treating extensions as not installed")
            return {rid: ResourceState.absent(tool_missing=True) for rid in ids}

        result = self._query(self._cli("--list-extensions", "--show-versions"), config)
        if not result.ok:
            return {rid: ResourceState.absent(tool_missing=result.missing) for rid in ids}

        installed = parse_extension_list(result.stdout)
        states: dict[str, ResourceState] = {}
        for rid in ids:
            version = installed.get(rid.lower())
            states[rid] = (
                ResourceState.installed(version) if version else ResourceState.absent()
            )
        return states

    def install(self, resource_id: str, config: RunConfig) -> CommandResult:
        return self._mutate(config, "--install-extension", resource_id)

    def update(self, resource_id: str, config: RunConfig) -> CommandResult:
        # --force on an installed extension updates it to the latest version
        return self._mutate(config, "--install-extension", resource_id, "--force")

    def uninstall(self, resource_id: str, config: RunConfig) -> CommandResult:
        args = ["--uninstall-extension", resource_id]
        if config.force:
            args.append("--force")
        return self._mutate(config, *args)

    def classify_failure(self, result: CommandResult) -> FailureKind:
        text = result.output.lower()
        if any(marker in text for marker in _CONFLICT_MARKERS):
            return FailureKind.DEPENDENCY_CONFLICT
        if any(marker in text for marker in _NOT_FOUND_MARKERS):
            return FailureKind.NOT_FOUND
        return super().classify_failure(result)

    # ── Helpers ─────────────────────────────────────────────────

    def _cli(self, *args: str) -> list[str]:
        cli = self.cli_path or "code"
        flags = ["--accept-server-license-terms"] if Path(cli).name == "code-server" else []
        return [cli, *flags, *args]

    def _mutate(self, config: RunConfig, *args: str) -> CommandResult:
        if self.cli_path is None:
            return CommandResult(command=["code", *args], missing=True)
        return self.runner.run(self._cli(*args), timeout=config.operation_timeout)
