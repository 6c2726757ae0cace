"""Subprocess execution for external build, fetch and patch tools."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from corecross.errors import BuildProcessError, BuildTimeoutError

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 20


class CommandRunner(Protocol):
    def __call__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> str:
        """Run ``argv`` to completion and return its stdout."""


def run_command(
    argv: Sequence[str],
    *,
    cwd: Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> str:
    """Run a tool with ``env`` layered over the current environment.

    The child gets its own process group so a timeout can kill everything
    it spawned (``make`` forks compilers that outlive a plain ``kill``).
    """
    command = [str(part) for part in argv]
    merged_env = dict(os.environ)
    if env:
        merged_env.update(env)

    logger.debug("exec (cwd=%s): %s", cwd, " ".join(command))
    try:
        proc = subprocess.Popen(
            command,
            cwd=str(cwd) if cwd is not None else None,
            env=merged_env,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        raise BuildProcessError(
            f"Executable `{command[0]}` not found.",
            hint="Install the tool and make sure it is on PATH.",
            context={"command": " ".join(command)},
        ) from exc

    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired as exc:
        _kill_group(proc)
        _, stderr = proc.communicate()
        raise BuildTimeoutError(
            f"Command timed out after {timeout}s.",
            hint="Raise the timeout or investigate a hung build.",
            context={
                "command": " ".join(command),
                "cwd": str(cwd or ""),
                "stderr": stderr_tail(stderr),
            },
        ) from exc

    if proc.returncode != 0:
        raise BuildProcessError(
            f"Command failed: {' '.join(command)}",
            context={
                "cwd": str(cwd or ""),
                "returncode": str(proc.returncode),
                "stderr": stderr_tail(stderr),
            },
        )
    return stdout


def stderr_tail(stderr: str | None, lines: int = STDERR_TAIL_LINES) -> str:
    if not stderr:
        return ""
    return "\n".join(stderr.splitlines()[-lines:])


def _kill_group(proc: subprocess.Popen[str]) -> None:
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
