"""Hook configuration, invocation context and result records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

DEFAULT_HOOK_TIMEOUT_MS = 30_000


class HookType(str, Enum):
    """Lifecycle events a hook can be bound to."""

    PRE_EDIT = "PreEdit"
    POST_EDIT = "PostEdit"
    PRE_COMMIT = "PreCommit"
    PRE_SUBMIT = "PreSubmit"


class FailureMode(str, Enum):
    """What a failing hook means for the rest of the pipeline."""

    CONTINUE = "continue"
    BLOCK = "block"


HOOK_TYPE_DESCRIPTIONS: dict[HookType, str] = {
    HookType.PRE_EDIT: "Executed before a file is modified",
    HookType.POST_EDIT: "Executed after a file is modified",
    HookType.PRE_COMMIT: "Executed before a git commit",
    HookType.PRE_SUBMIT: "Executed before sending a message to the model",
}


class HookConfig(BaseModel):
    """A user-configured external command bound to a lifecycle event."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    name: str = Field(min_length=1)
    type: HookType
    command: str = Field(min_length=1)
    enabled: bool = True
    timeout_ms: int = Field(
        default=DEFAULT_HOOK_TIMEOUT_MS,
        gt=0,
        validation_alias=AliasChoices("timeout_ms", "timeoutMs", "timeout"),
        serialization_alias="timeout",
    )
    failure_mode: FailureMode = Field(
        default=FailureMode.CONTINUE,
        validation_alias=AliasChoices("failure_mode", "failureMode"),
        serialization_alias="failureMode",
    )
    description: str = ""

    @field_validator("name", "command")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped

    @property
    def blocking(self) -> bool:
        return self.failure_mode is FailureMode.BLOCK


@dataclass(frozen=True, slots=True)
class HookContext:
    """Event payload made available to hook commands."""

    file_path: str | None = None
    content: str | None = None
    new_content: str | None = None
    message: str | None = None
    commit_message: str | None = None
    staged_files: tuple[str, ...] = field(default_factory=tuple)

    def variables(self) -> dict[str, str]:
        """Return the substitution variables defined for this context."""
        values: dict[str, str] = {}
        if self.file_path:
            values["FILE"] = self.file_path
        if self.content:
            values["CONTENT"] = self.content
        if self.new_content:
            values["NEW_CONTENT"] = self.new_content
        if self.message:
            values["MESSAGE"] = self.message
        if self.commit_message:
            values["COMMIT_MSG"] = self.commit_message
        if self.staged_files:
            values["STAGED_FILES"] = " ".join(self.staged_files)
        return values


@dataclass(frozen=True, slots=True)
class HookResult:
    """Outcome of running one hook."""

    name: str
    success: bool
    duration_ms: int
    output: str | None = None
    error: str | None = None
    blocked: bool = False


__all__ = [
    "DEFAULT_HOOK_TIMEOUT_MS",
    "FailureMode",
    "HOOK_TYPE_DESCRIPTIONS",
    "HookConfig",
    "HookContext",
    "HookResult",
    "HookType",
]
