"""Budgeted, cached context retrieval for the gather phase."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import replace
from typing import Any

from .. import diagnostics
from ..errors import GatherInfraError
from .budget import estimate_tokens, select_within_budget
from .cache import ContextCache, cache_key
from .retrieval import CostEstimator, SourceProvider
from .types import BundleMetadata, CacheStats, ContextBundle, ContextRequest, ContextSource, Strategy

LOGGER = logging.getLogger(__name__)

MAX_HISTORY_ENTRIES = 20


class ContextOrchestrator:
    """Turn a :class:`ContextRequest` into a budget-trimmed :class:`ContextBundle`.

    Retrieval and scoring are delegated to ``provider``; the orchestrator owns
    cache lookups, cost estimation and greedy selection. Retrieval faults are
    absorbed into a ``degraded`` bundle so the caller always gets a value.
    """

    def __init__(
        self,
        provider: SourceProvider,
        *,
        cache: ContextCache | None = None,
        cost_estimator: CostEstimator = estimate_tokens,
        debug: bool = False,
    ) -> None:
        self._provider = provider
        self._cache = cache if cache is not None else ContextCache()
        self._estimate = cost_estimator
        self._debug = debug
        self._closed = False

    @property
    def cache(self) -> ContextCache:
        return self._cache

    async def gather(self, request: ContextRequest) -> ContextBundle:
        """Return cached context for ``request`` or retrieve, score and trim it."""
        if self._closed:
            raise GatherInfraError("Context orchestrator has been closed")

        started = time.monotonic()
        key = cache_key(request)
        try:
            bundle, hits = await self._cache.get_or_compute(
                key,
                lambda: self._compute(request, started),
                cacheable=lambda item: item.metadata.strategy is not Strategy.DEGRADED,
            )
        except asyncio.CancelledError:
            raise
        except Exception as error:  # noqa: BLE001 - retrieval faults degrade to an empty bundle
            LOGGER.warning("Context retrieval failed for intent %s: %s", request.intent.value, error)
            if self._debug:
                diagnostics.emit("ContextOrchestrator", "retrieval_failed", error=error)
            return ContextBundle(
                sources=(),
                metadata=BundleMetadata(
                    strategy=Strategy.DEGRADED,
                    duration_ms=_elapsed_ms(started),
                    warnings=(f"Context retrieval failed: {error}",),
                ),
            )

        if hits:
            bundle = bundle.with_metadata(cache_hits=hits)
            if self._debug:
                diagnostics.emit("ContextOrchestrator", "cache_hit", key=key[:12], hits=hits)
        return bundle

    async def _compute(self, request: ContextRequest, started: float) -> ContextBundle:
        candidates = await self._provider.candidates(request)
        costed = [self._with_cost(source) for source in candidates]
        selected, tokens_used = select_within_budget(costed, request.budget)

        warnings: tuple[str, ...] = ()
        if tokens_used > request.budget:
            warnings = (
                f"Top source {selected[0].path} alone exceeds the token budget "
                f"({tokens_used} > {request.budget})",
            )
        if self._debug:
            diagnostics.emit(
                "ContextOrchestrator",
                "selected",
                candidates=len(costed),
                selected=len(selected),
                tokens_used=tokens_used,
                budget=request.budget,
            )
        return ContextBundle(
            sources=tuple(selected),
            metadata=BundleMetadata(
                tokens_used=tokens_used,
                cache_hits=0,
                strategy=Strategy.AGENTIC_SEARCH,
                duration_ms=_elapsed_ms(started),
                warnings=warnings,
            ),
        )

    def _with_cost(self, source: ContextSource) -> ContextSource:
        if source.estimated_cost > 0 or not source.content:
            return source
        return replace(source, estimated_cost=self._estimate(source.content))

    def get_cache_stats(self) -> CacheStats:
        return self._cache.stats()

    def clear_cache(self) -> None:
        self._cache.clear()

    def invalidate_path(self, path: str) -> int:
        """Drop cached bundles that include ``path`` (for example after an edit)."""
        return self._cache.invalidate_path(path)

    def close(self) -> None:
        if self._closed:
            return
        self._cache.close()
        self._closed = True


def compact_history(
    entries: Sequence[Mapping[str, Any]],
    max_entries: int = MAX_HISTORY_ENTRIES,
) -> list[Mapping[str, Any]]:
    """Keep system entries plus the most recent ``max_entries`` other entries."""
    if len(entries) <= max_entries:
        return list(entries)
    system = [entry for entry in entries if entry.get("role") == "system"]
    others = [entry for entry in entries if entry.get("role") != "system"]
    return [*system, *others[-max_entries:]]


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


__all__ = ["ContextOrchestrator", "MAX_HISTORY_ENTRIES", "compact_history"]
