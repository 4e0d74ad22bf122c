from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from gav.errors import HookConfigError
from gav.hooks.store import HookRegistry, load_hooks, load_hooks_file
from gav.hooks.types import FailureMode, HookType

from conftest import make_hook


def _write_hooks(path: Path, hooks: list[dict[str, object]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump({"version": 1, "hooks": hooks}, handle)
    return path


def test_load_hooks_file_accepts_camel_case_fields(tmp_path: Path) -> None:
    path = _write_hooks(
        tmp_path / "hooks.yaml",
        [
            {
                "name": "typecheck",
                "type": "PostEdit",
                "command": "mypy $FILE",
                "timeoutMs": 2500,
                "failureMode": "block",
            }
        ],
    )

    (hook,) = load_hooks_file(path)

    assert hook.type is HookType.POST_EDIT
    assert hook.timeout_ms == 2500
    assert hook.failure_mode is FailureMode.BLOCK
    assert hook.enabled


def test_load_hooks_file_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "hooks.json"
    path.write_text(
        json.dumps({"hooks": [{"name": "fmt", "type": "PreCommit", "command": "black --check ."}]}),
        encoding="utf-8",
    )

    (hook,) = load_hooks_file(path)

    assert hook.name == "fmt"
    assert hook.timeout_ms == 30_000
    assert hook.failure_mode is FailureMode.CONTINUE


def test_load_hooks_file_rejects_duplicates_and_invalid_entries(tmp_path: Path) -> None:
    duplicate = _write_hooks(
        tmp_path / "dup.yaml",
        [
            {"name": "a", "type": "PostEdit", "command": "true"},
            {"name": "a", "type": "PreEdit", "command": "true"},
        ],
    )
    invalid = _write_hooks(tmp_path / "bad.yaml", [{"name": "a", "type": "OnSave", "command": "true"}])

    with pytest.raises(HookConfigError, match="Duplicate"):
        load_hooks_file(duplicate)
    with pytest.raises(HookConfigError, match="Invalid hook #0"):
        load_hooks_file(invalid)


def test_project_hooks_override_user_hooks_by_name(tmp_path: Path) -> None:
    user = _write_hooks(
        tmp_path / "home" / "hooks.yaml",
        [
            {"name": "lint", "type": "PostEdit", "command": "flake8 $FILE"},
            {"name": "secrets", "type": "PreCommit", "command": "detect-secrets"},
        ],
    )
    project = _write_hooks(
        tmp_path / "repo" / ".gav" / "hooks.yaml",
        [{"name": "lint", "type": "PostEdit", "command": "ruff check $FILE", "failureMode": "block"}],
    )

    hooks = load_hooks([user, project, tmp_path / "missing.yaml"])

    by_name = {hook.name: hook for hook in hooks}
    assert set(by_name) == {"lint", "secrets"}
    assert by_name["lint"].command == "ruff check $FILE"
    assert by_name["lint"].blocking


def test_broken_file_is_skipped(tmp_path: Path) -> None:
    broken = tmp_path / "broken.yaml"
    broken.write_text("hooks: [unterminated", encoding="utf-8")
    good = _write_hooks(tmp_path / "good.yaml", [{"name": "ok", "type": "PreSubmit", "command": "true"}])

    hooks = load_hooks([broken, good])

    assert [hook.name for hook in hooks] == ["ok"]


def test_registry_mutators_enforce_unique_names() -> None:
    registry = HookRegistry([make_hook("lint", "ruff check $FILE")])

    with pytest.raises(HookConfigError):
        registry.add(make_hook("lint", "flake8"))

    registry.add(make_hook("tests", "pytest", HookType.PRE_COMMIT))
    assert registry.toggle("lint") is True
    assert registry.enabled(HookType.POST_EDIT) == []
    assert registry.update("tests", timeout_ms=1000) is True
    assert registry.get("tests").timeout_ms == 1000
    with pytest.raises(HookConfigError):
        registry.update("tests", name="lint")
    assert registry.remove("tests") is True
    assert registry.remove("tests") is False
    assert len(registry) == 1


def test_save_and_reload_round_trip_aliases(tmp_path: Path) -> None:
    path = tmp_path / ".gav" / "hooks.yaml"
    registry = HookRegistry([make_hook("guard", "exit 1", failure_mode="block", timeout=500)])
    registry.save(path)

    saved = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert saved["version"] == 1
    assert saved["hooks"][0]["failureMode"] == "block"
    assert saved["hooks"][0]["timeout"] == 500

    reloaded = HookRegistry.from_files([path])
    registry_copy = HookRegistry.from_files([path])
    _write_hooks(path, [{"name": "other", "type": "PreEdit", "command": "true"}])
    registry_copy.reload()

    assert reloaded.get("guard") is not None
    assert [hook.name for hook in registry_copy.hooks()] == ["other"]


def test_blank_command_is_rejected() -> None:
    with pytest.raises(ValueError):
        make_hook("empty", "   ")


def test_update_can_rename_a_hook() -> None:
    registry = HookRegistry([make_hook("tests", "pytest", HookType.PRE_COMMIT)])

    assert registry.update("tests", name="unit-tests") is True

    assert registry.get("tests") is None
    assert registry.get("unit-tests").command == "pytest"
