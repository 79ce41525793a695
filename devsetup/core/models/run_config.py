"""
Run configuration — the explicit mode switches for one invocation.

Built once at the CLI edge (from flags and the DEBUG_MODE /
UNINSTALL_MODE / FORCE_MODE environment variables) and passed down to
the batch runner, installer and adapters. Nothing below the CLI reads
the environment for these.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class RunConfig(BaseModel):
    """Mode flags and limits for one batch run."""

    debug: bool = False
    uninstall: bool = False
    force: bool = False

    max_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0)
    probe_timeout: float = Field(default=10.0, gt=0)
    operation_timeout: float = Field(default=600.0, gt=0)

    @property
    def mode(self) -> str:
        return "uninstall" if self.uninstall else "install"
