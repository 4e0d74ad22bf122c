"""Hook and static-check pipeline that judges a completed tool action."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence

from .. import diagnostics
from ..config import VerificationMode
from ..errors import VerificationInfraError
from ..hooks.engine import HookEngine, has_blocking_failure
from ..hooks.types import HookContext, HookResult, HookType
from .checks import StaticCheck
from .feedback import format_verification_feedback
from .types import CHECK_ORDER, CheckKind, CheckResult, Operation, VerificationInput, VerificationResult

LOGGER = logging.getLogger(__name__)

EVENT_FOR_OPERATION: dict[Operation, HookType | None] = {
    Operation.VIEW: None,
    Operation.SEARCH: None,
    Operation.CREATE: HookType.POST_EDIT,
    Operation.STR_REPLACE: HookType.POST_EDIT,
    Operation.REPLACE_LINES: HookType.POST_EDIT,
    Operation.UNSCOPED: None,
}
"""Hook event fired by ``verify`` for each operation. PreCommit and PreSubmit
batches are not tied to a tool action; run them through :meth:`VerificationPipeline.run_hooks`.
"""

_FAST_KINDS = frozenset({CheckKind.LINT})


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


def hook_check(result: HookResult) -> CheckResult:
    """Express a hook result as a pipeline check."""
    return CheckResult(
        name=result.name,
        kind=CheckKind.HOOK,
        passed=result.success,
        blocking=result.blocked,
        issues=(result.error,) if result.error else (),
        output=result.output or "",
        duration_ms=result.duration_ms,
    )


def _blocked_feedback(checks: Sequence[CheckResult]) -> str:
    names = ", ".join(check.name for check in checks if check.failed_blocking)
    header = f"Blocked by hook(s): {names}. Static checks were skipped."
    return f"{header}\n\n{format_verification_feedback(checks)}"


class VerificationPipeline:
    """Run lifecycle hooks then static checks for one tool action.

    Hooks always run first. A hook configured to block short-circuits the
    static checks. Static checks run concurrently and are reported in
    hook, lint, types, tests order.
    """

    def __init__(
        self,
        hook_engine: HookEngine,
        checks: Sequence[StaticCheck] = (),
        *,
        mode: VerificationMode = "fast",
        debug: bool = False,
    ) -> None:
        self._hook_engine = hook_engine
        self._checks = list(checks)
        self._mode: VerificationMode = mode
        self._debug = debug

    @property
    def mode(self) -> VerificationMode:
        return self._mode

    @property
    def checks(self) -> list[StaticCheck]:
        return list(self._checks)

    async def verify(self, data: VerificationInput) -> VerificationResult:
        """Judge ``data`` and return an aggregated verdict.

        Raises :class:`VerificationInfraError` when the pipeline itself fails.
        """
        try:
            return await self._verify(data)
        except VerificationInfraError:
            raise
        except Exception as error:
            LOGGER.warning("Verification pipeline failed for %s", data.file_path, exc_info=True)
            raise VerificationInfraError(f"Verification pipeline failed: {error}") from error

    async def run_hooks(self, event: HookType, context: HookContext | None = None) -> VerificationResult:
        """Run the ``event`` hook batch on its own, e.g. before a commit."""
        started = time.perf_counter()
        try:
            results = await self._hook_engine.run(event, context)
        except Exception as error:
            raise VerificationInfraError(f"{event.value} hooks failed: {error}") from error
        checks = tuple(hook_check(result) for result in results)
        return self._verdict(checks, started, blocked=has_blocking_failure(results))

    async def _verify(self, data: VerificationInput) -> VerificationResult:
        started = time.perf_counter()
        if data.operation.read_only:
            return VerificationResult(passed=True, duration_ms=_elapsed_ms(started))

        event = EVENT_FOR_OPERATION[data.operation]
        hook_results: list[HookResult] = []
        if event is not None:
            context = HookContext(file_path=data.file_path)
            hook_results = await self._hook_engine.run(event, context)
        hook_checks = tuple(hook_check(result) for result in hook_results)

        if has_blocking_failure(hook_results):
            return self._verdict(hook_checks, started, blocked=True)

        static_checks: tuple[CheckResult, ...] = ()
        if data.file_path:
            static_checks = await self._run_static_checks(data.file_path)
        return self._verdict(hook_checks + static_checks, started)

    def _selected_checks(self) -> list[StaticCheck]:
        if self._mode == "thorough":
            return list(self._checks)
        return [check for check in self._checks if check.kind in _FAST_KINDS]

    async def _run_static_checks(self, file_path: str) -> tuple[CheckResult, ...]:
        selected = self._selected_checks()
        if not selected:
            return ()
        outcomes = await asyncio.gather(
            *(check.run(file_path) for check in selected),
            return_exceptions=True,
        )
        results: list[CheckResult] = []
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
            results.append(outcome)
        results.sort(key=lambda check: CHECK_ORDER.index(check.kind))
        return tuple(results)

    def _verdict(
        self,
        checks: tuple[CheckResult, ...],
        started: float,
        *,
        blocked: bool = False,
    ) -> VerificationResult:
        passed = not any(check.failed_blocking for check in checks)
        feedback: str | None = None
        if blocked:
            feedback = _blocked_feedback(checks)
        elif not passed:
            feedback = format_verification_feedback(checks)
        result = VerificationResult(
            passed=passed,
            checks=checks,
            feedback=feedback,
            duration_ms=_elapsed_ms(started),
        )
        if self._debug:
            diagnostics.emit(
                "VerificationPipeline",
                "verified",
                passed=passed,
                blocked=blocked,
                checks=[f"{check.kind.value}:{check.name}" for check in checks],
                duration_ms=result.duration_ms,
            )
        return result


__all__ = ["EVENT_FOR_OPERATION", "VerificationMode", "VerificationPipeline", "hook_check"]
