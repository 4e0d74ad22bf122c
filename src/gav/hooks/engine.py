"""Concurrent execution of the hooks bound to a lifecycle event."""

from __future__ import annotations

import asyncio
import logging
import re
import shlex
from collections.abc import Sequence
from pathlib import Path
from typing import Awaitable, Callable

from ..errors import HookProcessError
from .process import ProcessOutcome, run_command
from .store import HookRegistry
from .types import HookConfig, HookContext, HookResult, HookType

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 4
TIMEOUT_ERROR = "timeout"
# Linux caps each exec argument and environment entry at 128 KiB.
MAX_ENV_VALUE_BYTES = 32 * 1024

CommandRunner = Callable[..., Awaitable[ProcessOutcome]]

_VARIABLE_RE = re.compile(r"\$(FILE|CONTENT|NEW_CONTENT|MESSAGE|COMMIT_MSG|STAGED_FILES)\b")


def substitute_variables(command: str, context: HookContext) -> str:
    """Replace ``$FILE``-style tokens with shell-quoted context values.

    Tokens without a value in ``context`` are left untouched.
    """
    values = {key: shlex.quote(value) for key, value in context.variables().items()}
    if context.staged_files:
        values["STAGED_FILES"] = " ".join(shlex.quote(path) for path in context.staged_files)

    def _replace(match: re.Match[str]) -> str:
        return values.get(match.group(1), match.group(0))

    return _VARIABLE_RE.sub(_replace, command)


def hook_environment(hook: HookConfig, event: HookType, context: HookContext) -> dict[str, str]:
    """Environment variables exported to a hook process."""
    env = {"GAV_HOOK_NAME": hook.name, "GAV_HOOK_EVENT": event.value}
    for key, value in context.variables().items():
        if len(value.encode("utf-8", "surrogateescape")) > MAX_ENV_VALUE_BYTES:
            LOGGER.debug("Not exporting GAV_HOOK_%s to %s: value too large", key, hook.name)
            continue
        env[f"GAV_HOOK_{key}"] = value
    return env


class HookEngine:
    """Run every enabled hook of an event type as an isolated external command.

    Hooks in one batch run concurrently (bounded by ``max_concurrency``) and are
    all awaited before :meth:`run` returns. A failing hook never cancels its
    siblings; ``blocked`` on the result only tells the caller to stop later
    stages. Results are returned in declaration order.
    """

    def __init__(
        self,
        registry: HookRegistry,
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        cwd: Path | str | None = None,
        runner: CommandRunner = run_command,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self._registry = registry
        self._max_concurrency = max_concurrency
        self._cwd = cwd
        self._runner = runner

    @property
    def registry(self) -> HookRegistry:
        return self._registry

    async def run(self, event: HookType, context: HookContext | None = None) -> list[HookResult]:
        """Execute the enabled hooks for ``event`` and return their results."""
        hooks = self._registry.enabled(event)
        if not hooks:
            return []
        payload = context or HookContext()
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _bounded(hook: HookConfig) -> HookResult:
            async with semaphore:
                return await self._execute(hook, event, payload)

        outcomes = await asyncio.gather(
            *(_bounded(hook) for hook in hooks),
            return_exceptions=True,
        )
        results: list[HookResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        LOGGER.debug("Ran %d %s hook(s)", len(results), event.value)
        return results

    async def _execute(self, hook: HookConfig, event: HookType, context: HookContext) -> HookResult:
        command = substitute_variables(hook.command, context)
        try:
            outcome = await self._runner(
                command,
                timeout_ms=hook.timeout_ms,
                cwd=self._cwd,
                env=hook_environment(hook, event, context),
            )
        except HookProcessError as error:
            LOGGER.warning("Hook %s could not be started: %s", hook.name, error)
            return HookResult(
                name=hook.name,
                success=False,
                duration_ms=0,
                error=str(error),
                blocked=hook.blocking,
            )

        if outcome.timed_out:
            LOGGER.warning("Hook %s timed out after %dms", hook.name, hook.timeout_ms)
            return HookResult(
                name=hook.name,
                success=False,
                duration_ms=outcome.duration_ms,
                error=TIMEOUT_ERROR,
                blocked=hook.blocking,
            )

        stdout = outcome.stdout.strip()
        if outcome.exit_code != 0:
            return HookResult(
                name=hook.name,
                success=False,
                duration_ms=outcome.duration_ms,
                output=stdout or None,
                error=outcome.stderr.strip() or f"Exit code: {outcome.exit_code}",
                blocked=hook.blocking,
            )
        return HookResult(
            name=hook.name,
            success=True,
            duration_ms=outcome.duration_ms,
            output=stdout,
        )


def has_blocking_failure(results: Sequence[HookResult]) -> bool:
    return any(result.blocked for result in results)


def format_results(results: Sequence[HookResult]) -> str:
    """Render hook results as one status line per hook."""
    if not results:
        return "No hooks executed"
    lines: list[str] = []
    for result in results:
        status = "✓" if result.success else "✗"
        blocked = " [BLOCKED]" if result.blocked else ""
        lines.append(f"{status} {result.name} ({result.duration_ms}ms){blocked}")
        if result.error:
            lines.append(f"  Error: {result.error}")
    return "\n".join(lines)


__all__ = [
    "DEFAULT_MAX_CONCURRENCY",
    "HookEngine",
    "TIMEOUT_ERROR",
    "format_results",
    "has_blocking_failure",
    "hook_environment",
    "substitute_variables",
]
