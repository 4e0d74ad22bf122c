from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from gav.cli import app

runner = CliRunner()

posix_only = pytest.mark.skipif(os.name != "posix", reason="uses POSIX shell commands")


def _write_project(root: Path, hooks: list[dict[str, object]] | None = None, **config: object) -> Path:
    settings: dict[str, object] = {
        "hooks": {"files": [".gav/hooks.yaml"]},
        "verification": {"lint_enabled": False},
    }
    settings.update(config)
    config_path = root / "gav.yaml"
    config_path.write_text(yaml.safe_dump(settings), encoding="utf-8")
    if hooks is not None:
        hooks_path = root / ".gav" / "hooks.yaml"
        hooks_path.parent.mkdir(parents=True, exist_ok=True)
        hooks_path.write_text(yaml.safe_dump({"version": 1, "hooks": hooks}), encoding="utf-8")
    return config_path


def test_hooks_lists_configured_hooks(tmp_path: Path) -> None:
    config_path = _write_project(
        tmp_path,
        hooks=[
            {"name": "lint", "type": "PostEdit", "command": "ruff check $FILE", "failureMode": "block"},
            {"name": "wip", "type": "PreCommit", "command": "true", "enabled": False},
        ],
    )

    result = runner.invoke(app, ["hooks", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "PostEdit: Executed after a file is modified" in result.output
    assert "- lint [enabled, block, 30000ms] ruff check $FILE" in result.output
    assert "- wip [disabled, continue, 30000ms] true" in result.output


def test_hooks_reports_empty_configuration(tmp_path: Path) -> None:
    config_path = _write_project(tmp_path)

    result = runner.invoke(app, ["hooks", "-c", str(config_path)])

    assert result.exit_code == 0
    assert "No hooks configured." in result.output


@posix_only
def test_run_hooks_exits_non_zero_on_blocking_failure(tmp_path: Path) -> None:
    config_path = _write_project(
        tmp_path,
        hooks=[{"name": "guard", "type": "PreCommit", "command": "echo denied >&2; exit 1", "failureMode": "block"}],
    )

    result = runner.invoke(app, ["run-hooks", "PreCommit", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "hook:guard" in result.output
    assert "[BLOCKED]" in result.output
    assert "denied" in result.output


def test_run_hooks_rejects_unknown_events(tmp_path: Path) -> None:
    config_path = _write_project(tmp_path)

    result = runner.invoke(app, ["run-hooks", "OnSave", "--config", str(config_path)])

    assert result.exit_code == 2


@posix_only
def test_verify_reports_feedback_from_post_edit_hooks(tmp_path: Path) -> None:
    target = tmp_path / "module.py"
    target.write_text("x = 1\n", encoding="utf-8")
    config_path = _write_project(
        tmp_path,
        hooks=[{"name": "style", "type": "PostEdit", "command": "echo bad style >&2; exit 1", "failureMode": "block"}],
    )

    result = runner.invoke(app, ["verify", str(target), "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Verification failed." in result.output
    assert "style" in result.output
    assert "bad style" in result.output


def test_verify_passes_when_nothing_fails(tmp_path: Path) -> None:
    target = tmp_path / "module.py"
    target.write_text("x = 1\n", encoding="utf-8")
    config_path = _write_project(tmp_path)

    result = runner.invoke(app, ["verify", str(target), "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "Verification passed." in result.output


def test_gather_prints_selected_sources(tmp_path: Path) -> None:
    (tmp_path / "tokenizer.py").write_text("def tokenize(text):\n    return text.split()\n", encoding="utf-8")
    (tmp_path / "unrelated.py").write_text("VALUE = 1\n", encoding="utf-8")
    config_path = _write_project(tmp_path)

    result = runner.invoke(app, ["gather", "fix tokenizer bug", "--budget", "500", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "Intent: debug" in result.output
    assert "- tokenizer.py" in result.output
    assert "unrelated.py" not in result.output


def test_status_summarises_configuration(tmp_path: Path) -> None:
    config_path = _write_project(tmp_path, verification={"mode": "thorough", "types_enabled": True})

    result = runner.invoke(app, ["status", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert f"Repository root: {tmp_path.resolve()}" in result.output
    assert "Verification mode: thorough" in result.output
    assert "Static checks: lint, types" in result.output
    assert "(missing)" in result.output


def test_invalid_configuration_exits_with_message(tmp_path: Path) -> None:
    config_path = tmp_path / "gav.yaml"
    config_path.write_text("verification:\n  mode: sloppy\n", encoding="utf-8")

    result = runner.invoke(app, ["status", "--config", str(config_path)])

    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


def test_missing_explicit_config_is_rejected(tmp_path: Path) -> None:
    result = runner.invoke(app, ["status", "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 2
