"""Subprocess execution returning Results.

Only git is run through here. A command that cannot start, times out or
exits non-zero becomes a ProcessError; nothing is raised to the caller.
"""

from __future__ import annotations

import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from semrel.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that did not exit cleanly.

    `returncode` is -1 when the process never ran to completion.
    """

    command: tuple[str, ...]
    returncode: int
    stderr: str


def run(
    cmd: list[str],
    cwd: Path,
    env: Mapping[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run `cmd` in `cwd` and return its stdout.

    `env` replaces the whole child environment; None inherits ours.
    """
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=dict(env) if env is not None else None,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired:
        return Err(ProcessError(command, -1, f"timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(command, -1, str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(command, proc.returncode, proc.stderr or proc.stdout))
    return Ok(proc.stdout)
