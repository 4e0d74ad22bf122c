"""Loading, merging and persisting hook definitions."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..errors import HookConfigError
from .types import HookConfig, HookType

LOGGER = logging.getLogger(__name__)

HOOKS_FILE_VERSION = 1


def _parse_entries(raw: Any, source: Path) -> list[HookConfig]:
    """Validate the ``hooks`` list of a hooks file into :class:`HookConfig` objects."""
    if raw is None:
        return []
    if not isinstance(raw, Mapping):
        raise HookConfigError(f"Hooks file must contain a mapping: {source}")
    entries = raw.get("hooks") or []
    if not isinstance(entries, list):
        raise HookConfigError(f"'hooks' must be a list in {source}")

    hooks: list[HookConfig] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        try:
            hook = HookConfig.model_validate(entry)
        except ValidationError as error:
            raise HookConfigError(f"Invalid hook #{index} in {source}: {error}") from error
        if hook.name in seen:
            raise HookConfigError(f"Duplicate hook name '{hook.name}' in {source}")
        seen.add(hook.name)
        hooks.append(hook)
    return hooks


def load_hooks_file(path: Path) -> list[HookConfig]:
    """Read one YAML (or JSON) hooks file; a missing file yields no hooks."""
    if not path.exists():
        return []
    with path.open("r", encoding="utf-8") as handle:
        try:
            raw = yaml.safe_load(handle)
        except yaml.YAMLError as error:
            raise HookConfigError(f"Failed to parse hooks file {path}: {error}") from error
    return _parse_entries(raw, path)


def load_hooks(paths: Iterable[Path]) -> list[HookConfig]:
    """Load hook files in order; later files override earlier hooks with the same name.

    Files that fail to parse are logged and skipped so one broken file does not
    disable every other hook.
    """
    merged: dict[str, HookConfig] = {}
    for path in paths:
        try:
            hooks = load_hooks_file(path)
        except (HookConfigError, OSError) as error:
            LOGGER.warning("Ignoring hooks from %s: %s", path, error)
            continue
        for hook in hooks:
            merged[hook.name] = hook
    return list(merged.values())


class HookRegistry:
    """Session-scoped set of hook definitions.

    The registry is fixed for the duration of a session; changes only become
    visible through the explicit mutators or :meth:`reload`.
    """

    def __init__(self, hooks: Sequence[HookConfig] = (), *, sources: Sequence[Path] = ()) -> None:
        self._sources = tuple(sources)
        self._hooks: list[HookConfig] = []
        for hook in hooks:
            self._insert(hook)

    @classmethod
    def from_files(cls, paths: Sequence[Path]) -> HookRegistry:
        return cls(load_hooks(paths), sources=paths)

    @property
    def sources(self) -> tuple[Path, ...]:
        return self._sources

    def __len__(self) -> int:
        return len(self._hooks)

    def hooks(self, hook_type: HookType | None = None) -> list[HookConfig]:
        if hook_type is None:
            return list(self._hooks)
        return [hook for hook in self._hooks if hook.type is hook_type]

    def enabled(self, hook_type: HookType) -> list[HookConfig]:
        """Return enabled hooks of ``hook_type`` in declaration order."""
        return [hook for hook in self._hooks if hook.type is hook_type and hook.enabled]

    def get(self, name: str) -> HookConfig | None:
        return next((hook for hook in self._hooks if hook.name == name), None)

    def add(self, hook: HookConfig) -> None:
        self._insert(hook)

    def remove(self, name: str) -> bool:
        index = self._index(name)
        if index is None:
            return False
        del self._hooks[index]
        return True

    def toggle(self, name: str, enabled: bool | None = None) -> bool:
        index = self._index(name)
        if index is None:
            return False
        hook = self._hooks[index]
        value = (not hook.enabled) if enabled is None else enabled
        self._hooks[index] = hook.model_copy(update={"enabled": value})
        return True

    def update(self, name: str, /, **changes: Any) -> bool:
        index = self._index(name)
        if index is None:
            return False
        payload = {**self._hooks[index].model_dump(), **changes}
        if payload.get("name") != name and self.get(str(payload.get("name"))) is not None:
            raise HookConfigError(f"Hook with name '{payload.get('name')}' already exists")
        try:
            self._hooks[index] = HookConfig.model_validate(payload)
        except ValidationError as error:
            raise HookConfigError(f"Invalid update for hook '{name}': {error}") from error
        return True

    def reload(self) -> None:
        """Re-read the hooks files this registry was loaded from."""
        self._hooks = []
        for hook in load_hooks(self._sources):
            self._insert(hook)

    def save(self, path: Path) -> None:
        """Write every hook to ``path`` as a versioned YAML document."""
        payload = {
            "version": HOOKS_FILE_VERSION,
            "hooks": [
                hook.model_dump(mode="json", by_alias=True) for hook in self._hooks
            ],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            yaml.safe_dump(payload, handle, sort_keys=False)

    def _insert(self, hook: HookConfig) -> None:
        if self._index(hook.name) is not None:
            raise HookConfigError(f"Hook with name '{hook.name}' already exists")
        self._hooks.append(hook)

    def _index(self, name: str) -> int | None:
        for index, hook in enumerate(self._hooks):
            if hook.name == name:
                return index
        return None


__all__ = ["HOOKS_FILE_VERSION", "HookRegistry", "load_hooks", "load_hooks_file"]
