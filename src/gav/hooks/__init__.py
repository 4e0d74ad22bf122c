"""User-configured hooks bound to agent lifecycle events."""

from .engine import HookEngine, format_results, has_blocking_failure
from .process import ProcessOutcome, run_command
from .store import HookRegistry, load_hooks
from .types import FailureMode, HookConfig, HookContext, HookResult, HookType

__all__ = [
    "FailureMode",
    "HookConfig",
    "HookContext",
    "HookEngine",
    "HookRegistry",
    "HookResult",
    "HookType",
    "ProcessOutcome",
    "format_results",
    "has_blocking_failure",
    "load_hooks",
    "run_command",
]
