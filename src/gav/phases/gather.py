"""Gather phase: advisory context retrieval that never aborts the agent loop."""

from __future__ import annotations

import asyncio
import logging

from .. import diagnostics
from ..context.orchestrator import ContextOrchestrator
from ..context.types import CacheStats, ContextBundle, ContextRequest
from ..errors import GatherInfraError
from .outcome import PhaseOutcome

LOGGER = logging.getLogger(__name__)

_COMPONENT = "GatherPhase"


class GatherPhase:
    """Guarded boundary around :class:`ContextOrchestrator`."""

    def __init__(self, orchestrator: ContextOrchestrator) -> None:
        self._orchestrator = orchestrator

    @property
    def orchestrator(self) -> ContextOrchestrator:
        return self._orchestrator

    async def attempt(self, request: ContextRequest, debug: bool = False) -> PhaseOutcome[ContextBundle]:
        """Run the orchestrator and keep the failure reason, if any."""
        if debug:
            diagnostics.emit(
                _COMPONENT,
                "gather_started",
                intent=request.intent,
                budget=request.budget,
            )
        try:
            bundle = await self._orchestrator.gather(request)
        except asyncio.CancelledError:
            raise
        except Exception as error:  # noqa: BLE001 - gathering is advisory
            failure = error if isinstance(error, GatherInfraError) else GatherInfraError(str(error))
            if failure is not error:
                failure.__cause__ = error
            LOGGER.warning("Context gathering failed: %s", error, exc_info=debug)
            if debug:
                diagnostics.emit(_COMPONENT, "gather_failed", error=failure)
            return PhaseOutcome.failed(failure)

        if debug and bundle.sources:
            diagnostics.emit(
                _COMPONENT,
                "gather_completed",
                sources=len(bundle.sources),
                tokens_used=bundle.metadata.tokens_used,
                cache_hits=bundle.metadata.cache_hits,
                strategy=bundle.metadata.strategy,
            )
        return PhaseOutcome.succeeded(bundle)

    async def gather(self, request: ContextRequest, debug: bool = False) -> ContextBundle | None:
        """Return a context bundle, or ``None`` when gathering failed."""
        outcome = await self.attempt(request, debug)
        return outcome.to_optional()

    def get_cache_stats(self) -> CacheStats:
        return self._orchestrator.get_cache_stats()

    def clear_cache(self) -> None:
        self._orchestrator.clear_cache()


__all__ = ["GatherPhase"]
