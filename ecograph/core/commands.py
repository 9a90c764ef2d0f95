"""Subprocess boundary shared by the listing and dependency-query tools."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass

Runner = Callable[..., subprocess.CompletedProcess]


@dataclass
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


def build_command(template: str, **fields: str) -> list[str]:
    """Split *template* like a shell would, then fill ``{placeholders}`` per argument.

    Substitution happens after splitting so a value containing spaces or
    ``<>`` stays one argument and never reaches a shell.
    """
    return [arg.format(**fields) for arg in shlex.split(template)]


def run_command(cmd: Sequence[str], runner: Runner = subprocess.run) -> CommandOutput:
    """Run *cmd* to completion; a missing executable becomes exit status 127."""
    try:
        proc = runner(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
        )
    except OSError as e:
        return CommandOutput(returncode=127, stdout="", stderr=str(e))
    return CommandOutput(
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
