"""Inputs and verdicts of the verification pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Operation(str, Enum):
    """Canonical kind of tool action being verified."""

    VIEW = "view"
    CREATE = "create"
    STR_REPLACE = "str_replace"
    REPLACE_LINES = "replace_lines"
    SEARCH = "search"
    UNSCOPED = "unscoped"

    @property
    def read_only(self) -> bool:
        return self in (Operation.VIEW, Operation.SEARCH)

    @property
    def writes(self) -> bool:
        return self in (Operation.CREATE, Operation.STR_REPLACE, Operation.REPLACE_LINES)


class CheckKind(str, Enum):
    """Check families, declared in the order they are reported."""

    HOOK = "hook"
    LINT = "lint"
    TYPES = "types"
    TESTS = "tests"


CHECK_ORDER: tuple[CheckKind, ...] = (CheckKind.HOOK, CheckKind.LINT, CheckKind.TYPES, CheckKind.TESTS)


@dataclass(frozen=True, slots=True)
class VerificationInput:
    """What the pipeline needs to know about a completed tool action."""

    success: bool
    output: str = ""
    file_path: str | None = None
    operation: Operation = Operation.UNSCOPED


@dataclass(frozen=True, slots=True)
class CheckResult:
    """Result of a single hook or static check."""

    name: str
    kind: CheckKind
    passed: bool
    blocking: bool = True
    issues: tuple[str, ...] = ()
    output: str = ""
    duration_ms: int = 0
    skipped: bool = False

    @property
    def failed_blocking(self) -> bool:
        return self.blocking and not self.passed


@dataclass(frozen=True, slots=True)
class VerificationResult:
    """Aggregated pass/fail verdict with ordered sub-results."""

    passed: bool
    checks: tuple[CheckResult, ...] = ()
    feedback: str | None = None
    duration_ms: int = 0

    @property
    def failures(self) -> tuple[CheckResult, ...]:
        return tuple(check for check in self.checks if not check.passed)


__all__ = [
    "CHECK_ORDER",
    "CheckKind",
    "CheckResult",
    "Operation",
    "VerificationInput",
    "VerificationResult",
]
