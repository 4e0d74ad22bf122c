"""Human-readable summaries of failed verification checks."""

from __future__ import annotations

from collections.abc import Sequence

from .types import CheckKind, CheckResult

_HEADINGS = {
    CheckKind.HOOK: "Hook failures",
    CheckKind.LINT: "Lint issues",
    CheckKind.TYPES: "Type errors",
    CheckKind.TESTS: "Test failures",
}


def format_verification_feedback(checks: Sequence[CheckResult]) -> str:
    """Group failing checks by kind, in check order, with their captured errors."""
    lines: list[str] = []
    current: CheckKind | None = None
    for check in checks:
        if check.passed:
            continue
        if check.kind is not current:
            current = check.kind
            if lines:
                lines.append("")
            lines.append(f"**{_HEADINGS[check.kind]}:**")
        label = check.name
        if check.kind is CheckKind.HOOK and not check.blocking:
            label = f"{check.name} (non-blocking)"
        lines.append(f"  - {label}:")
        issues = check.issues or ("failed without diagnostic output",)
        for issue in issues:
            lines.extend(f"    {line}" for line in issue.splitlines() or [""])
    return "\n".join(lines)


__all__ = ["format_verification_feedback"]
