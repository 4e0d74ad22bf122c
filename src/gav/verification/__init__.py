"""Hook and static-check verification of completed tool actions."""

from .checks import (
    CommandCheck,
    StaticCheck,
    build_default_checks,
    find_related_test,
    parse_lint_output,
    parse_test_output,
    parse_type_output,
)
from .feedback import format_verification_feedback
from .pipeline import EVENT_FOR_OPERATION, VerificationPipeline
from .types import CHECK_ORDER, CheckKind, CheckResult, Operation, VerificationInput, VerificationResult

__all__ = [
    "CHECK_ORDER",
    "CheckKind",
    "CheckResult",
    "CommandCheck",
    "EVENT_FOR_OPERATION",
    "Operation",
    "StaticCheck",
    "VerificationInput",
    "VerificationPipeline",
    "VerificationResult",
    "build_default_checks",
    "find_related_test",
    "format_verification_feedback",
    "parse_lint_output",
    "parse_test_output",
    "parse_type_output",
]
