"""Typed phase results that keep the failure reason until the agent boundary."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class PhaseOutcome(Generic[T]):
    """Either a phase value or the exception that prevented one."""

    value: T | None = None
    error: BaseException | None = None

    @classmethod
    def succeeded(cls, value: T) -> "PhaseOutcome[T]":
        return cls(value=value)

    @classmethod
    def failed(cls, error: BaseException) -> "PhaseOutcome[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def reason(self) -> str | None:
        if self.error is None:
            return None
        return f"{type(self.error).__name__}: {self.error}"

    def to_optional(self) -> T | None:
        """Collapse to the value, or ``None`` when the phase failed."""
        return self.value if self.error is None else None


__all__ = ["PhaseOutcome"]
