"""Exception hierarchy shared by the gather and verify layers."""

from __future__ import annotations


class GavError(RuntimeError):
    """Base error raised by the gather-act-verify core."""


class GatherInfraError(GavError):
    """Raised when context retrieval or caching fails outside a normal empty result."""


class VerificationInfraError(GavError):
    """Raised when the verification pipeline fails for reasons other than a failing check."""


class HookProcessError(GavError):
    """Raised when a hook command cannot be spawned."""


class HookConfigError(GavError, ValueError):
    """Raised for invalid or conflicting hook definitions."""


class ConfigError(GavError, ValueError):
    """Raised when the configuration file cannot be parsed or validated."""


__all__ = [
    "ConfigError",
    "GatherInfraError",
    "GavError",
    "HookConfigError",
    "HookProcessError",
    "VerificationInfraError",
]
