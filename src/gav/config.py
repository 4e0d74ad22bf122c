"""Configuration models and YAML loading for agent sessions."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Literal, Mapping

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .diagnostics import debug_from_env
from .errors import ConfigError

DEFAULT_CONFIG_NAME = "gav.yaml"
DEFAULT_HOOK_FILES: tuple[str, ...] = ("~/.gav/hooks.yaml", ".gav/hooks.yaml")

VerificationMode = Literal["fast", "thorough"]


class SettingsModel(BaseModel):
    """Base model for configuration sections with strict field handling."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class ContextSettings(SettingsModel):
    """Tuning for the context orchestrator and its cache."""

    cache_ttl_seconds: float = Field(default=300.0, gt=0)
    cache_max_entries: int = Field(default=100, gt=0)
    max_sources: int = Field(default=10, gt=0)
    snippet_lines: int = Field(default=30, gt=0)


class VerificationSettings(SettingsModel):
    """Which static checks run after an edit, and how long each may take."""

    mode: VerificationMode = "fast"
    lint_enabled: bool = True
    types_enabled: bool = False
    tests_enabled: bool = False
    lint_timeout_ms: int = Field(default=2_000, gt=0)
    types_timeout_ms: int = Field(default=5_000, gt=0)
    tests_timeout_ms: int = Field(default=10_000, gt=0)
    lint_command: List[str] = Field(default_factory=lambda: ["ruff", "check", "--quiet"])
    types_command: List[str] = Field(default_factory=lambda: ["mypy", "--no-error-summary"])
    tests_command: List[str] = Field(default_factory=lambda: ["pytest", "-q"])


class HookSettings(SettingsModel):
    """Where hook definitions are loaded from and how many run at once."""

    max_concurrency: int = Field(default=4, gt=0)
    files: List[str] = Field(default_factory=lambda: list(DEFAULT_HOOK_FILES))


class GavConfig(SettingsModel):
    """Top-level session configuration."""

    repo_root: str = "."
    debug: bool = False
    context: ContextSettings = Field(default_factory=ContextSettings)
    verification: VerificationSettings = Field(default_factory=VerificationSettings)
    hooks: HookSettings = Field(default_factory=HookSettings)

    def resolve_repo_root(self, base: Path | None = None) -> Path:
        """Return the repository root, resolved relative to ``base``."""
        candidate = Path(self.repo_root).expanduser()
        if not candidate.is_absolute():
            candidate = (base or Path.cwd()) / candidate
        return candidate.resolve()

    def hook_files(self, base: Path | None = None) -> list[Path]:
        """Return hook files in load order (user-level first, project last)."""
        root = self.resolve_repo_root(base)
        paths: list[Path] = []
        for entry in self.hooks.files:
            path = Path(entry).expanduser()
            if not path.is_absolute():
                path = root / path
            paths.append(path)
        return paths


def _read_yaml(config_path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk."""
    try:
        with config_path.open("r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except yaml.YAMLError as error:
        raise ConfigError(f"Failed to parse config {config_path}: {error}") from error
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a mapping at the top level: {config_path}")
    return data


def config_from_mapping(data: Mapping[str, Any]) -> GavConfig:
    """Validate a raw mapping into :class:`GavConfig`."""
    try:
        config = GavConfig.model_validate(dict(data))
    except ValidationError as error:
        raise ConfigError(f"Invalid configuration: {error}") from error
    if debug_from_env() and not config.debug:
        config = config.model_copy(update={"debug": True})
    return config


def load_config(config_path: Path | str | None = None, *, required: bool = False) -> GavConfig:
    """Load configuration from ``config_path``, falling back to defaults when absent."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_NAME
    path = Path(config_path)
    if not path.exists():
        if required:
            raise ConfigError(f"Config file not found: {path}")
        return config_from_mapping({})

    data = _read_yaml(path)
    repo_root = data.get("repo_root")
    if repo_root is None:
        data["repo_root"] = path.parent.resolve().as_posix()
    elif isinstance(repo_root, str) and not Path(repo_root).expanduser().is_absolute():
        data["repo_root"] = (path.parent / repo_root).resolve().as_posix()
    return config_from_mapping(data)


__all__ = [
    "ContextSettings",
    "DEFAULT_CONFIG_NAME",
    "GavConfig",
    "HookSettings",
    "VerificationMode",
    "VerificationSettings",
    "config_from_mapping",
    "load_config",
]
