"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from devsetup.adapters.command import CommandResult
from devsetup.core.models.run_config import RunConfig


class FakeRunner:
    """Scripted stand-in for CommandRunner.

    Rules match when every token appears in the command, either as a
    whole argument or inside a multi-word argument (a PowerShell script).
    Later rules win. Unmatched commands succeed with empty output.
    """

    def __init__(self, tools: set[str] | None = None):
        self.tools = set(tools or ())
        self.rules: list[tuple[tuple[str, ...], list[CommandResult]]] = []
        self.calls: list[list[str]] = []
        self.sudo_calls: list[list[str]] = []
        self.envs: list[dict[str, str] | None] = []
        self.shell_calls: list[str] = []

    def on(
        self,
        *tokens: str,
        returncode: int | None = 0,
        stdout: str = "",
        stderr: str = "",
        missing: bool = False,
        timed_out: bool = False,
    ) -> FakeRunner:
        """Queue a response for commands containing ``tokens``.

        Several responses for the same tokens are returned in order; the
        last one repeats.
        """
        result = CommandResult(
            returncode=None if (missing or timed_out) else returncode,
            stdout=stdout,
            stderr=stderr,
            missing=missing,
            timed_out=timed_out,
        )
        for rule_tokens, queue in self.rules:
            if rule_tokens == tokens:
                queue.append(result)
                return self
        self.rules.append((tokens, [result]))
        return self

    def which(self, tool: str) -> str | None:
        return f"/usr/bin/{tool}" if tool in self.tools else None

    def run(self, cmd, *, timeout, sudo=False, env=None) -> CommandResult:
        self.calls.append(list(cmd))
        self.envs.append(env)
        if sudo:
            self.sudo_calls.append(list(cmd))
        return self._respond(list(cmd))

    def run_shell(self, command: str, *, timeout) -> CommandResult:
        self.shell_calls.append(command)
        return self._respond([command])

    @property
    def command_lines(self) -> list[str]:
        return [" ".join(cmd) for cmd in self.calls]

    def _respond(self, cmd: list[str]) -> CommandResult:
        for tokens, queue in reversed(self.rules):
            if all(_token_in(token, cmd) for token in tokens):
                template = queue.pop(0) if len(queue) > 1 else queue[0]
                return CommandResult(
                    command=cmd,
                    returncode=template.returncode,
                    stdout=template.stdout,
                    stderr=template.stderr,
                    missing=template.missing,
                    timed_out=template.timed_out,
                )
        return CommandResult(command=cmd, returncode=0)


def _token_in(token: str, cmd: list[str]) -> bool:
    return any(token == part or (" " in part and token in part) for part in cmd)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def config() -> RunConfig:
    """Install-mode config with no retry delay."""
    return RunConfig(retry_delay=0)


@pytest.fixture
def profiles_dir(tmp_path: Path) -> Path:
    """Return an empty directory for user profiles."""
    path = tmp_path / "profiles"
    path.mkdir()
    return path
