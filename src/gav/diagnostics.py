"""Structured diagnostic events for the gather and verify phases.

Diagnostics are JSON lines written to the ``gav.diagnostics`` logger at ERROR
level so that they land on stderr alongside other operator-facing output. They
are purely observational: callers gate emission on their ``debug`` flag and no
return value depends on them.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from collections.abc import Mapping
from dataclasses import asdict, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

DIAGNOSTICS_LOGGER = logging.getLogger("gav.diagnostics")

_TRUTHY = {"1", "true", "yes", "on"}


def debug_from_env(default: bool = False) -> bool:
    """Return ``True`` when ``GAV_DEBUG`` requests diagnostics."""
    raw = os.environ.get("GAV_DEBUG")
    if raw is None:
        return default
    return raw.strip().lower() in _TRUTHY


def _serialise_event_value(value: Any) -> Any:
    """Convert diagnostic payload values into JSON-friendly representations."""
    if isinstance(value, Enum):
        return _serialise_event_value(value.value)
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, Path):
        return value.as_posix()
    if is_dataclass(value) and not isinstance(value, type):
        return _serialise_event_value(asdict(value))
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    if isinstance(value, (list, tuple, set)):
        return [_serialise_event_value(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): _serialise_event_value(child) for key, child in value.items()}
    return str(value)


def emit(component: str, event: str, **fields: Any) -> None:
    """Log a structured diagnostic event for ``component``."""
    payload: dict[str, Any] = {
        "component": component,
        "event": event,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    for key, value in fields.items():
        payload[key] = _serialise_event_value(value)
    try:
        message = json.dumps(payload, separators=(",", ":"), ensure_ascii=True)
    except (TypeError, ValueError):
        fallback = {key: str(value) for key, value in payload.items()}
        message = json.dumps(fallback, separators=(",", ":"), ensure_ascii=True)
    DIAGNOSTICS_LOGGER.error(message)


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stderr
        super().emit(record)


def configure_logging(debug: bool = False) -> None:
    """Install a stderr handler for the ``gav`` logger hierarchy."""
    root = logging.getLogger("gav")
    if any(getattr(handler, "_gav_handler", False) for handler in root.handlers):
        root.setLevel(logging.DEBUG if debug else logging.WARNING)
        return
    handler = _StderrHandler()
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    handler._gav_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if debug else logging.WARNING)


__all__ = ["DIAGNOSTICS_LOGGER", "configure_logging", "debug_from_env", "emit"]
