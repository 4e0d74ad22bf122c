from __future__ import annotations

import asyncio
import json
import logging

import pytest

from gav.context.orchestrator import ContextOrchestrator
from gav.context.types import ContextBundle, ContextRequest, Intent
from gav.errors import GatherInfraError
from gav.phases.gather import GatherPhase

from conftest import StubProvider, make_source


class _ExplodingOrchestrator:
    async def gather(self, request: ContextRequest) -> ContextBundle:
        raise RuntimeError("cache corrupted")


def _request() -> ContextRequest:
    return ContextRequest(intent=Intent.EXPLAIN, query="explain cache", budget=500)


def _diagnostic_events(caplog: pytest.LogCaptureFixture) -> list[dict[str, object]]:
    return [json.loads(record.getMessage()) for record in caplog.records if record.name == "gav.diagnostics"]


@pytest.mark.asyncio
async def test_gather_returns_bundle_from_orchestrator() -> None:
    phase = GatherPhase(ContextOrchestrator(StubProvider(sources=[make_source("a.py", 2, 50)])))

    bundle = await phase.gather(_request())

    assert bundle is not None
    assert bundle.paths == ("a.py",)


@pytest.mark.asyncio
async def test_orchestrator_exception_collapses_to_none() -> None:
    phase = GatherPhase(_ExplodingOrchestrator())  # type: ignore[arg-type]

    assert await phase.gather(_request()) is None

    outcome = await phase.attempt(_request())
    assert not outcome.ok
    assert isinstance(outcome.error, GatherInfraError)
    assert "cache corrupted" in (outcome.reason or "")
    assert isinstance(outcome.error.__cause__, RuntimeError)


@pytest.mark.asyncio
async def test_closed_orchestrator_yields_none() -> None:
    orchestrator = ContextOrchestrator(StubProvider())
    orchestrator.close()

    assert await GatherPhase(orchestrator).gather(_request()) is None


@pytest.mark.asyncio
async def test_debug_emits_pre_and_post_call_diagnostics(caplog: pytest.LogCaptureFixture) -> None:
    phase = GatherPhase(ContextOrchestrator(StubProvider(sources=[make_source("a.py", 2, 50)])))

    with caplog.at_level(logging.ERROR, logger="gav.diagnostics"):
        await phase.gather(_request(), debug=True)

    events = [event for event in _diagnostic_events(caplog) if event["component"] == "GatherPhase"]
    assert [event["event"] for event in events] == ["gather_started", "gather_completed"]
    assert events[0]["intent"] == "explain"
    assert events[0]["budget"] == 500
    assert events[1]["sources"] == 1
    assert events[1]["tokens_used"] == 50
    assert events[1]["cache_hits"] == 0
    assert events[1]["strategy"] == "agentic-search"


@pytest.mark.asyncio
async def test_debug_skips_post_call_diagnostics_for_empty_bundle(caplog: pytest.LogCaptureFixture) -> None:
    phase = GatherPhase(ContextOrchestrator(StubProvider()))

    with caplog.at_level(logging.ERROR, logger="gav.diagnostics"):
        bundle = await phase.gather(_request(), debug=True)

    assert bundle is not None and bundle.sources == ()
    events = [event["event"] for event in _diagnostic_events(caplog) if event["component"] == "GatherPhase"]
    assert events == ["gather_started"]


@pytest.mark.asyncio
async def test_no_diagnostics_without_debug(caplog: pytest.LogCaptureFixture) -> None:
    phase = GatherPhase(ContextOrchestrator(StubProvider(sources=[make_source("a.py", 2, 50)])))

    with caplog.at_level(logging.DEBUG):
        await phase.gather(_request())

    assert _diagnostic_events(caplog) == []


@pytest.mark.asyncio
async def test_cache_pass_throughs() -> None:
    provider = StubProvider(sources=[make_source("a.py", 2, 50)])
    phase = GatherPhase(ContextOrchestrator(provider))

    await phase.gather(_request())
    await phase.gather(_request())
    assert phase.get_cache_stats().total_hits == 1

    phase.clear_cache()
    assert phase.get_cache_stats().size == 0


@pytest.mark.asyncio
async def test_cancelling_one_gather_leaves_identical_gathers_running() -> None:
    provider = StubProvider(sources=[make_source("a.py", 2, 50)], delay=0.05)
    phase = GatherPhase(ContextOrchestrator(provider))

    first = asyncio.create_task(phase.gather(_request()))
    await asyncio.sleep(0.01)
    second = asyncio.create_task(phase.gather(_request()))
    await asyncio.sleep(0.01)
    first.cancel()

    bundle = await second

    assert first.cancelled()
    assert bundle is not None and bundle.paths == ("a.py",)
    assert provider.calls == 2
