"""
Command runner — the single place external tools are executed.

Every probe and mutation goes through ``CommandRunner.run``. Adapters
receive a runner instance, so tests can hand them a fake one and never
touch a real package manager. The runner never raises: a missing
executable, a timeout or an OS error is captured in the CommandResult.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Output kept per stream; package managers can be very chatty.
_MAX_OUTPUT = 4000


@dataclass
class CommandResult:
    """Outcome of one external command."""

    command: list[str] = field(default_factory=list)
    returncode: int | None = None
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False
    missing: bool = False      # executable not found
    error: str = ""            # OS-level failure to launch

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and not (self.timed_out or self.missing or self.error)

    @property
    def output(self) -> str:
        """Combined stdout and stderr, for pattern matching."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)

    def describe(self) -> str:
        """One-line failure description."""
        if self.missing:
            return f"Command not found: {self.command[0] if self.command else '?'}"
        if self.timed_out:
            return "Command timed out"
        if self.error:
            return self.error
        if self.returncode not in (0, None):
            detail = (self.stderr or self.stdout).strip().splitlines()
            last = detail[-1] if detail else ""
            suffix = f": {last}" if last else ""
            return f"Command exited with code {self.returncode}{suffix}"
        return ""


class CommandRunner:
    """Runs external commands with a timeout and captures their output."""

    def which(self, tool: str) -> str | None:
        """Resolve an executable on PATH."""
        return shutil.which(tool)

    def run(
        self,
        cmd: list[str],
        *,
        timeout: float,
        sudo: bool = False,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run ``cmd`` and return its result.

        Args:
            cmd: Command and arguments.
            timeout: Seconds before the command is killed.
            sudo: Prefix with non-interactive ``sudo`` when not root.
            env: Extra environment variables.
        """
        if sudo and _needs_sudo() and self.which("sudo"):
            cmd = ["sudo", "-n", "-E", *cmd]

        run_env = None
        if env:
            run_env = os.environ.copy()
            run_env.update(env)

        logger.debug("Executing: %s", " ".join(cmd))
        start = time.monotonic()
        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=run_env,
            )
        except FileNotFoundError:
            return CommandResult(command=list(cmd), missing=True)
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, " ".join(cmd))
            return CommandResult(
                command=list(cmd),
                timed_out=True,
                duration_ms=int((time.monotonic() - start) * 1000),
            )
        except OSError as e:
            return CommandResult(command=list(cmd), error=f"Command execution error: {e}")

        result = CommandResult(
            command=list(cmd),
            returncode=proc.returncode,
            stdout=(proc.stdout or "")[-_MAX_OUTPUT:],
            stderr=(proc.stderr or "")[-_MAX_OUTPUT:],
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.debug(
            "Exit %s in %dms: %s", result.returncode, result.duration_ms, " ".join(cmd)
        )
        return result

    def run_shell(self, command: str, *, timeout: float) -> CommandResult:
        """Run a shell command line (used for profile verification commands)."""
        logger.debug("Executing shell: %s", command)
        start = time.monotonic()
        try:
            proc = subprocess.run(
                command,
                shell=True,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return CommandResult(command=[command], timed_out=True)
        except OSError as e:
            return CommandResult(command=[command], error=f"Command execution error: {e}")

        return CommandResult(
            command=[command],
            returncode=proc.returncode,
            stdout=(proc.stdout or "")[-_MAX_OUTPUT:],
            stderr=(proc.stderr or "")[-_MAX_OUTPUT:],
            duration_ms=int((time.monotonic() - start) * 1000),
        )


def _needs_sudo() -> bool:
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() != 0
