"""Tool-call records and the helpers that derive verification inputs from them."""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from ..verification.feedback import format_verification_feedback as _format_checks
from ..verification.types import Operation, VerificationResult

LOGGER = logging.getLogger(__name__)

TOOL_OPERATIONS: dict[str, Operation] = {
    "view_file": Operation.VIEW,
    "create_file": Operation.CREATE,
    "str_replace_editor": Operation.STR_REPLACE,
    "replace_lines": Operation.REPLACE_LINES,
    "search_files": Operation.SEARCH,
    "search": Operation.SEARCH,
}

_PATH_KEYS = ("path", "file_path", "filePath", "target_file")


def _validate_tool_operations(mapping: Mapping[str, Operation]) -> None:
    for name, operation in mapping.items():
        if not isinstance(operation, Operation):
            raise TypeError(f"Tool {name!r} maps to {operation!r}, not an Operation")
        if operation is Operation.UNSCOPED:
            raise ValueError(f"Tool {name!r} must not be mapped to the unscoped operation explicitly")


_validate_tool_operations(TOOL_OPERATIONS)


@dataclass(frozen=True, slots=True)
class ToolCall:
    """One tool invocation requested by the model.

    ``arguments`` is kept as the model sent it, usually a JSON string.
    """

    name: str
    arguments: str | Mapping[str, Any] = "{}"
    id: str = field(default_factory=lambda: f"call_{uuid.uuid4().hex[:12]}")

    def parsed_arguments(self) -> dict[str, Any]:
        """Return the arguments as a mapping; unparseable payloads yield ``{}``."""
        if isinstance(self.arguments, Mapping):
            return dict(self.arguments)
        try:
            data = json.loads(self.arguments or "{}")
        except json.JSONDecodeError:
            LOGGER.debug("Tool call %s has non-JSON arguments", self.id)
            return {}
        return data if isinstance(data, dict) else {}


@dataclass(frozen=True, slots=True)
class ToolResult:
    """Outcome of executing a :class:`ToolCall`."""

    success: bool
    output: str | None = None
    error: str | None = None


def extract_file_path(tool_call: ToolCall) -> str | None:
    arguments = tool_call.parsed_arguments()
    for key in _PATH_KEYS:
        value = arguments.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def extract_operation(tool_name: str) -> Operation:
    """Map a tool name to its operation; unknown tools are ``unscoped``."""
    return TOOL_OPERATIONS.get(tool_name, Operation.UNSCOPED)


def format_verification_feedback(result: VerificationResult) -> str:
    """Render the failing checks of ``result`` as feedback for the model."""
    if result.passed:
        return ""
    if result.feedback:
        return result.feedback
    return _format_checks(result.checks) or "Verification failed"


def parse_raw_tool_calls(content: str | None) -> list[ToolCall] | None:
    """Recover tool calls a model emitted as a raw JSON array in its text.

    Returns ``None`` unless every element has a string ``name`` and an
    ``arguments`` entry.
    """
    if not content or not isinstance(content, str):
        return None
    stripped = content.strip()
    if not (stripped.startswith("[") and stripped.endswith("]")):
        return None
    try:
        parsed = json.loads(stripped)
    except json.JSONDecodeError:
        return None
    if not isinstance(parsed, list) or not parsed:
        return None
    if not all(
        isinstance(item, dict) and isinstance(item.get("name"), str) and "arguments" in item
        for item in parsed
    ):
        return None

    batch = uuid.uuid4().hex[:8]
    calls: list[ToolCall] = []
    for index, item in enumerate(parsed):
        arguments = item["arguments"]
        if not isinstance(arguments, str):
            arguments = json.dumps(arguments)
        calls.append(ToolCall(name=item["name"], arguments=arguments, id=f"call_{batch}_{index}"))
    return calls


__all__ = [
    "TOOL_OPERATIONS",
    "ToolCall",
    "ToolResult",
    "extract_file_path",
    "extract_operation",
    "format_verification_feedback",
    "parse_raw_tool_calls",
]
