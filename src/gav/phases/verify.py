"""Verify phase: judge a completed tool action without ever aborting the loop."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from .. import diagnostics
from ..errors import VerificationInfraError
from ..verification.pipeline import VerificationPipeline
from ..verification.types import VerificationInput
from .outcome import PhaseOutcome
from .tool_calls import (
    ToolCall,
    ToolResult,
    extract_file_path,
    extract_operation,
    format_verification_feedback,
)

LOGGER = logging.getLogger(__name__)

_COMPONENT = "VerifyPhase"

WriteListener = Callable[[str], object]


@dataclass(frozen=True, slots=True)
class VerifyOutcome:
    """Verdict handed back to the agent."""

    passed: bool
    feedback: str | None = None


class VerifyPhase:
    """Guarded boundary around :class:`VerificationPipeline`.

    ``on_write`` is called with the file path once a write-like operation has
    been verified, whatever the verdict, typically to invalidate cached context.
    """

    def __init__(self, pipeline: VerificationPipeline, *, on_write: WriteListener | None = None) -> None:
        self._pipeline = pipeline
        self._on_write = on_write

    @property
    def pipeline(self) -> VerificationPipeline:
        return self._pipeline

    async def attempt(
        self,
        tool_call: ToolCall,
        result: ToolResult,
        debug: bool = False,
    ) -> PhaseOutcome[VerifyOutcome]:
        """Verify ``result``; a failed tool result yields an empty successful outcome."""
        if not result.success:
            return PhaseOutcome()

        data = VerificationInput(
            success=True,
            output=result.output or "",
            file_path=extract_file_path(tool_call),
            operation=extract_operation(tool_call.name),
        )
        try:
            verdict = await self._pipeline.verify(data)
        except asyncio.CancelledError:
            raise
        except Exception as error:  # noqa: BLE001 - verification is advisory
            failure = error if isinstance(error, VerificationInfraError) else VerificationInfraError(str(error))
            if failure is not error:
                failure.__cause__ = error
            if debug:
                diagnostics.emit(_COMPONENT, "verification_error", tool=tool_call.name, error=failure)
            LOGGER.debug("Verification skipped for %s: %s", tool_call.name, failure)
            return PhaseOutcome.failed(failure)

        if data.operation.writes and data.file_path:
            self._notify_write(data.file_path)

        if not verdict.passed:
            feedback = format_verification_feedback(verdict)
            if debug:
                diagnostics.emit(_COMPONENT, "verification_failed", tool=tool_call.name, feedback=feedback)
            return PhaseOutcome.succeeded(VerifyOutcome(passed=False, feedback=feedback))

        if debug:
            diagnostics.emit(_COMPONENT, "verification_passed", tool=tool_call.name)
        return PhaseOutcome.succeeded(VerifyOutcome(passed=True))

    def _notify_write(self, file_path: str) -> None:
        if self._on_write is None:
            return
        try:
            self._on_write(file_path)
        except Exception:  # noqa: BLE001 - the verdict stands without the listener
            LOGGER.warning("Write listener failed for %s", file_path, exc_info=True)

    async def verify(
        self,
        tool_call: ToolCall,
        result: ToolResult,
        debug: bool = False,
    ) -> VerifyOutcome | None:
        """Return the verdict, or ``None`` when the action was not verified."""
        outcome = await self.attempt(tool_call, result, debug)
        return outcome.to_optional()


__all__ = ["VerifyOutcome", "VerifyPhase"]
