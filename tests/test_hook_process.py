from __future__ import annotations

import asyncio
import os
import sys
import time
from pathlib import Path

import pytest

from gav.errors import HookProcessError
from gav.hooks.process import run_command

pytestmark = pytest.mark.skipif(os.name != "posix", reason="uses POSIX shell commands")


@pytest.mark.asyncio
async def test_run_command_captures_output_and_exit_code() -> None:
    outcome = await run_command("echo out; echo err >&2; exit 3", timeout_ms=5000)

    assert outcome.exit_code == 3
    assert outcome.stdout.strip() == "out"
    assert outcome.stderr.strip() == "err"
    assert not outcome.timed_out
    assert not outcome.ok


@pytest.mark.asyncio
async def test_run_command_kills_command_past_deadline() -> None:
    started = time.monotonic()
    outcome = await run_command("sleep 1", timeout_ms=100)
    elapsed = time.monotonic() - started

    assert outcome.timed_out
    assert outcome.exit_code is None
    assert outcome.duration_ms >= 100
    assert elapsed < 1.0


@pytest.mark.asyncio
async def test_run_command_exports_environment_and_cwd(tmp_path: Path) -> None:
    outcome = await run_command(
        'printf "%s|%s" "$GAV_TEST_VALUE" "$(pwd)"',
        timeout_ms=5000,
        cwd=tmp_path,
        env={"GAV_TEST_VALUE": "hello"},
    )

    value, cwd = outcome.stdout.split("|")
    assert value == "hello"
    assert Path(cwd).resolve() == tmp_path.resolve()


@pytest.mark.asyncio
async def test_sequence_commands_bypass_the_shell() -> None:
    outcome = await run_command([sys.executable, "-c", "print('$HOME')"], timeout_ms=5000)

    assert outcome.ok
    assert outcome.stdout.strip() == "$HOME"


@pytest.mark.asyncio
async def test_missing_executable_raises_process_error() -> None:
    with pytest.raises(HookProcessError):
        await run_command(["definitely-not-installed-gav-binary"], timeout_ms=1000)


@pytest.mark.asyncio
async def test_cancellation_kills_the_child(tmp_path: Path) -> None:
    marker = tmp_path / "finished"
    task = asyncio.create_task(run_command(f"sleep 1; touch {marker}", timeout_ms=10_000))
    await asyncio.sleep(0.2)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    await asyncio.sleep(1.2)
    assert not marker.exists()


@pytest.mark.asyncio
async def test_non_positive_timeout_is_rejected() -> None:
    with pytest.raises(ValueError):
        await run_command("true", timeout_ms=0)
