from __future__ import annotations

import json

from gav.phases.tool_calls import (
    TOOL_OPERATIONS,
    ToolCall,
    extract_file_path,
    extract_operation,
    format_verification_feedback,
    parse_raw_tool_calls,
)
from gav.verification.types import CheckKind, CheckResult, Operation, VerificationResult


def test_extract_file_path_checks_known_argument_keys() -> None:
    assert extract_file_path(ToolCall("view_file", json.dumps({"path": "a.py"}))) == "a.py"
    assert extract_file_path(ToolCall("create_file", json.dumps({"file_path": "b.py"}))) == "b.py"
    assert extract_file_path(ToolCall("x", json.dumps({"filePath": "c.py"}))) == "c.py"
    assert extract_file_path(ToolCall("x", {"target_file": "d.py"})) == "d.py"
    assert extract_file_path(ToolCall("x", json.dumps({"query": "todo"}))) is None


def test_extract_file_path_tolerates_malformed_arguments() -> None:
    assert extract_file_path(ToolCall("str_replace_editor", "{not json")) is None
    assert extract_file_path(ToolCall("str_replace_editor", "[1, 2]")) is None


def test_extract_operation_maps_known_tools_and_defaults_to_unscoped() -> None:
    assert extract_operation("view_file") is Operation.VIEW
    assert extract_operation("create_file") is Operation.CREATE
    assert extract_operation("str_replace_editor") is Operation.STR_REPLACE
    assert extract_operation("replace_lines") is Operation.REPLACE_LINES
    assert extract_operation("search_files") is Operation.SEARCH
    assert extract_operation("search") is Operation.SEARCH
    assert extract_operation("bash") is Operation.UNSCOPED


def test_tool_operations_never_map_to_unscoped() -> None:
    assert Operation.UNSCOPED not in TOOL_OPERATIONS.values()


def test_parse_raw_tool_calls_recovers_json_arrays() -> None:
    content = json.dumps(
        [
            {"name": "view_file", "arguments": {"path": "a.py"}},
            {"name": "search", "arguments": '{"query": "parser"}'},
        ]
    )

    calls = parse_raw_tool_calls(content)

    assert calls is not None
    assert [call.name for call in calls] == ["view_file", "search"]
    assert json.loads(calls[0].arguments) == {"path": "a.py"}
    assert calls[1].arguments == '{"query": "parser"}'
    assert calls[0].id != calls[1].id


def test_parse_raw_tool_calls_rejects_other_content() -> None:
    assert parse_raw_tool_calls("") is None
    assert parse_raw_tool_calls("I will look at the file now.") is None
    assert parse_raw_tool_calls("[]") is None
    assert parse_raw_tool_calls('[{"name": "view_file"}]') is None
    assert parse_raw_tool_calls('[{"name": 3, "arguments": {}}]') is None
    assert parse_raw_tool_calls("[not json]") is None


def test_format_verification_feedback_names_failing_checks_in_order() -> None:
    result = VerificationResult(
        passed=False,
        checks=(
            CheckResult(name="docs", kind=CheckKind.HOOK, passed=False, blocking=False, issues=("missing docstring",)),
            CheckResult(name="lint", kind=CheckKind.LINT, passed=False, issues=("Line 1:1 - F401 unused",)),
            CheckResult(name="types", kind=CheckKind.TYPES, passed=True),
            CheckResult(name="tests", kind=CheckKind.TESTS, passed=False, issues=("FAILED t.py::test_x",)),
        ),
    )

    feedback = format_verification_feedback(result)

    assert feedback.splitlines() == [
        "**Hook failures:**",
        "  - docs (non-blocking):",
        "    missing docstring",
        "",
        "**Lint issues:**",
        "  - lint:",
        "    Line 1:1 - F401 unused",
        "",
        "**Test failures:**",
        "  - tests:",
        "    FAILED t.py::test_x",
    ]


def test_format_verification_feedback_is_empty_for_passing_results() -> None:
    assert format_verification_feedback(VerificationResult(passed=True)) == ""
