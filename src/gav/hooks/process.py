"""Deadline-bounded external command execution.

Every external process the core starts (hook commands and static checks) goes
through :func:`run_command`. A call either completes with the captured output
and exit status, or hits its deadline and is killed. When the awaiting task is
cancelled the child is killed and reaped before the cancellation propagates,
so an aborted session does not leave orphaned processes behind.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from ..errors import HookProcessError

LOGGER = logging.getLogger(__name__)

_REAP_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class ProcessOutcome:
    """Captured result of a finished or timed-out command."""

    exit_code: int | None
    stdout: str
    stderr: str
    duration_ms: int
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return not self.timed_out and self.exit_code == 0


def _merge_env(extra: Mapping[str, str] | None) -> Dict[str, str]:
    """Merge provided environment overrides with the current process state."""
    env: Dict[str, str] = os.environ.copy()
    if extra:
        env.update({str(key): str(value) for key, value in extra.items()})
    return env


def _decode(payload: bytes | None) -> str:
    if not payload:
        return ""
    return payload.decode("utf-8", errors="replace")


async def _spawn(
    command: str | Sequence[str],
    *,
    cwd: Path | str | None,
    env: Dict[str, str],
) -> asyncio.subprocess.Process:
    options = {
        "stdin": asyncio.subprocess.DEVNULL,
        "stdout": asyncio.subprocess.PIPE,
        "stderr": asyncio.subprocess.PIPE,
        "cwd": str(cwd) if cwd is not None else None,
        "env": env,
    }
    if os.name == "posix":
        # Own process group so the whole tree can be killed on timeout.
        options["start_new_session"] = True
    if isinstance(command, str):
        return await asyncio.create_subprocess_shell(command, **options)  # noqa: S604 - hook commands are user-configured
    return await asyncio.create_subprocess_exec(*command, **options)


async def _terminate(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` (and its process group on POSIX) and wait for it to exit."""
    if process.returncode is None:
        try:
            if os.name == "posix":
                os.killpg(process.pid, signal.SIGKILL)
            else:
                process.kill()
        except ProcessLookupError:
            pass
    try:
        await asyncio.wait_for(process.wait(), timeout=_REAP_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        LOGGER.warning("Process %s did not exit after being killed", process.pid)


async def run_command(
    command: str | Sequence[str],
    *,
    timeout_ms: int,
    cwd: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> ProcessOutcome:
    """Run ``command`` and capture its output, killing it after ``timeout_ms``.

    A string is executed by the host shell; a sequence is executed directly.
    Raises :class:`HookProcessError` when the process cannot be started.
    """
    if timeout_ms <= 0:
        raise ValueError("timeout_ms must be positive")

    started = time.monotonic()
    try:
        process = await _spawn(command, cwd=cwd, env=_merge_env(env))
    except OSError as error:
        raise HookProcessError(f"Failed to start command {command!r}: {error}") from error

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        await _terminate(process)
        elapsed = int((time.monotonic() - started) * 1000)
        LOGGER.debug("Command timed out after %dms: %s", elapsed, command)
        return ProcessOutcome(
            exit_code=None,
            stdout="",
            stderr="",
            duration_ms=max(elapsed, timeout_ms),
            timed_out=True,
        )
    except asyncio.CancelledError:
        await _terminate(process)
        raise

    return ProcessOutcome(
        exit_code=process.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
        duration_ms=int((time.monotonic() - started) * 1000),
    )


__all__ = ["ProcessOutcome", "run_command"]
