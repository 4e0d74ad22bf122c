"""Static checks (lint, types, tests) run against an edited file."""

from __future__ import annotations

import re
import shutil
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Protocol

from ..config import VerificationSettings
from ..hooks.process import run_command
from .types import CheckKind, CheckResult

IssueParser = Callable[[str], list[str]]
TargetResolver = Callable[[Path], "Path | None"]

PYTHON_SUFFIXES = frozenset({".py", ".pyi"})
_MAX_FALLBACK_LINES = 20

_LINT_RE = re.compile(r"^(?P<path>[^:\s][^:]*):(?P<line>\d+):(?P<col>\d+):\s+(?P<message>.+)$")
_TYPE_RE = re.compile(r"^(?P<path>[^:\s][^:]*):(?P<line>\d+)(?::\d+)?:\s+error:\s+(?P<message>.+)$")
_FAILED_LINE_RE = re.compile(r"^(?P<status>FAILED|ERROR)\s+(?P<node>\S+)(?:\s+-\s+(?P<reason>.+))?$")


class StaticCheck(Protocol):
    """A check the pipeline can run against a single file."""

    name: str
    kind: CheckKind

    async def run(self, file_path: str) -> CheckResult: ...


def _fallback_issues(text: str) -> list[str]:
    lines = [line.rstrip() for line in text.strip().splitlines() if line.strip()]
    if not lines:
        return []
    return ["\n".join(lines[:_MAX_FALLBACK_LINES])]


def parse_lint_output(text: str) -> list[str]:
    """Extract ``Line L:C - message`` issues from ruff/flake8 style output."""
    issues = []
    for raw_line in text.splitlines():
        match = _LINT_RE.match(raw_line.strip())
        if match:
            issues.append(f"Line {match['line']}:{match['col']} - {match['message'].strip()}")
    return issues or _fallback_issues(text)


def parse_type_output(text: str) -> list[str]:
    """Extract ``Line L - message`` issues from mypy style output."""
    issues = []
    for raw_line in text.splitlines():
        match = _TYPE_RE.match(raw_line.strip())
        if match:
            issues.append(f"Line {match['line']} - {match['message'].strip()}")
    return issues or _fallback_issues(text)


def parse_test_output(text: str) -> list[str]:
    """Extract failing test node ids from pytest's short summary."""
    issues = []
    for raw_line in text.splitlines():
        match = _FAILED_LINE_RE.match(raw_line.strip())
        if match:
            reason = match["reason"]
            node = match["node"]
            issues.append(f"{match['status']} {node}" + (f" - {reason.strip()}" if reason else ""))
    return issues or _fallback_issues(text)


def find_related_test(file_path: Path, repo_root: Path | None = None) -> Path | None:
    """Locate the test module that most likely covers ``file_path``."""
    if file_path.name.startswith("test_") or file_path.stem.endswith("_test"):
        return file_path if file_path.exists() else None

    stem = file_path.stem
    names = (f"test_{stem}.py", f"{stem}_test.py")
    directory = file_path.parent
    search_dirs = [directory, directory / "tests", directory.parent / "tests"]
    if repo_root is not None:
        search_dirs.append(repo_root / "tests")

    for search_dir in search_dirs:
        for name in names:
            candidate = search_dir / name
            if candidate.is_file():
                return candidate
    return None


@dataclass(slots=True)
class CommandCheck:
    """Static check backed by an external command that takes the file path last."""

    name: str
    kind: CheckKind
    command: Sequence[str]
    timeout_ms: int
    parser: IssueParser
    suffixes: frozenset[str] = PYTHON_SUFFIXES
    optional: bool = True
    cwd: Path | None = None
    target: TargetResolver | None = field(default=None, repr=False)

    async def run(self, file_path: str) -> CheckResult:
        path = Path(file_path)
        if self.suffixes and path.suffix not in self.suffixes:
            return self._skipped(f"not applicable to {path.suffix or 'extensionless'} files")

        if not path.is_absolute() and self.cwd is not None:
            path = self.cwd / path
        target = self.target(path) if self.target is not None else path
        if target is None:
            return self._skipped(f"no related target for {file_path}")

        executable = self.command[0]
        if shutil.which(executable) is None:
            message = f"Executable not available: {executable}"
            if self.optional:
                return self._skipped(message)
            return CheckResult(name=self.name, kind=self.kind, passed=False, issues=(message,))

        outcome = await run_command(
            [*self.command, str(target)],
            timeout_ms=self.timeout_ms,
            cwd=self.cwd,
        )
        if outcome.timed_out:
            return CheckResult(
                name=self.name,
                kind=self.kind,
                passed=False,
                issues=(f"{self.name} timed out after {self.timeout_ms}ms",),
                duration_ms=outcome.duration_ms,
            )

        combined = "\n".join(part for part in (outcome.stdout, outcome.stderr) if part)
        if outcome.exit_code == 0:
            return CheckResult(
                name=self.name,
                kind=self.kind,
                passed=True,
                output=combined,
                duration_ms=outcome.duration_ms,
            )
        issues = self.parser(combined) or [f"exit code {outcome.exit_code}"]
        return CheckResult(
            name=self.name,
            kind=self.kind,
            passed=False,
            issues=tuple(issues),
            output=combined,
            duration_ms=outcome.duration_ms,
        )

    def _skipped(self, reason: str) -> CheckResult:
        return CheckResult(
            name=self.name,
            kind=self.kind,
            passed=True,
            output=reason,
            skipped=True,
        )


def build_default_checks(settings: VerificationSettings, repo_root: Path) -> list[StaticCheck]:
    """Instantiate the enabled lint/type/test checks in reporting order."""
    checks: list[StaticCheck] = []
    if settings.lint_enabled:
        checks.append(
            CommandCheck(
                name="lint",
                kind=CheckKind.LINT,
                command=tuple(settings.lint_command),
                timeout_ms=settings.lint_timeout_ms,
                parser=parse_lint_output,
                cwd=repo_root,
            )
        )
    if settings.types_enabled:
        checks.append(
            CommandCheck(
                name="types",
                kind=CheckKind.TYPES,
                command=tuple(settings.types_command),
                timeout_ms=settings.types_timeout_ms,
                parser=parse_type_output,
                cwd=repo_root,
            )
        )
    if settings.tests_enabled:
        checks.append(
            CommandCheck(
                name="tests",
                kind=CheckKind.TESTS,
                command=tuple(settings.tests_command),
                timeout_ms=settings.tests_timeout_ms,
                parser=parse_test_output,
                cwd=repo_root,
                target=lambda path: find_related_test(path, repo_root),
            )
        )
    return checks


__all__ = [
    "CommandCheck",
    "PYTHON_SUFFIXES",
    "StaticCheck",
    "build_default_checks",
    "find_related_test",
    "parse_lint_output",
    "parse_test_output",
    "parse_type_output",
]
