from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from gav.context.types import ContextRequest, ContextSource  # noqa: E402
from gav.hooks.types import HookConfig, HookType  # noqa: E402
from gav.verification.types import CheckKind, CheckResult  # noqa: E402


def make_source(path: str, score: float, cost: int, content: str = "x") -> ContextSource:
    return ContextSource(path=path, content=content, score=score, reasons=(f"score {score}",), estimated_cost=cost)


def make_hook(name: str, command: str, hook_type: HookType = HookType.POST_EDIT, **fields: object) -> HookConfig:
    return HookConfig.model_validate({"name": name, "type": hook_type.value, "command": command, **fields})


@dataclass(slots=True)
class StubProvider:
    """Source provider returning canned candidates and counting calls."""

    sources: list[ContextSource] = field(default_factory=list)
    delay: float = 0.0
    error: Exception | None = None
    calls: int = 0

    async def candidates(self, request: ContextRequest) -> list[ContextSource]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.sources)


@dataclass(slots=True)
class StubCheck:
    """Static check with a scripted verdict and an optional delay."""

    name: str
    kind: CheckKind
    passed: bool = True
    issues: tuple[str, ...] = ()
    delay: float = 0.0
    error: Exception | None = None
    seen: list[str] = field(default_factory=list)

    async def run(self, file_path: str) -> CheckResult:
        self.seen.append(file_path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return CheckResult(name=self.name, kind=self.kind, passed=self.passed, issues=self.issues)


@pytest.fixture()
def scenario_sources() -> list[ContextSource]:
    """Five candidates whose costs add up past a 2000 token budget."""
    return [
        make_source("a.py", 9, 800),
        make_source("b.py", 7, 600),
        make_source("c.py", 7, 500),
        make_source("d.py", 3, 400),
        make_source("e.py", 1, 300),
    ]
