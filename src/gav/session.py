"""Per-session wiring of the cache, orchestrator, hooks and verification."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, TypeVar

from .config import GavConfig
from .context.cache import ContextCache
from .context.orchestrator import ContextOrchestrator
from .context.retrieval import RepositorySourceProvider, SourceProvider
from .context.types import CacheStats, ContextBundle, ContextRequest
from .hooks.engine import HookEngine
from .hooks.store import HookRegistry
from .hooks.types import HookContext, HookType
from .phases.gather import GatherPhase
from .phases.tool_calls import ToolCall, ToolResult
from .phases.verify import VerifyOutcome, VerifyPhase
from .verification.checks import StaticCheck, build_default_checks
from .verification.pipeline import VerificationPipeline
from .verification.types import VerificationResult

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class AgentSession:
    """Own the components one agent session needs and their lifecycle.

    Nothing here is shared between sessions: each session builds its own
    cache, orchestrator, hook engine and pipeline. :meth:`abort` cancels any
    gather or verify call still running, which in turn kills hook and check
    processes started on its behalf.
    """

    def __init__(
        self,
        config: GavConfig,
        *,
        repo_root: Path,
        orchestrator: ContextOrchestrator,
        hook_engine: HookEngine,
        pipeline: VerificationPipeline,
    ) -> None:
        self._config = config
        self._repo_root = repo_root
        self._orchestrator = orchestrator
        self._hook_engine = hook_engine
        self._pipeline = pipeline
        self._gather_phase = GatherPhase(orchestrator)
        self._verify_phase = VerifyPhase(pipeline, on_write=self._invalidate_written)
        self._tasks: set[asyncio.Future[Any]] = set()
        self._closed = False

    @classmethod
    def from_config(
        cls,
        config: GavConfig,
        *,
        base: Path | None = None,
        provider: SourceProvider | None = None,
        registry: HookRegistry | None = None,
        checks: list[StaticCheck] | None = None,
    ) -> AgentSession:
        """Build a session from configuration, allowing components to be swapped in."""
        repo_root = config.resolve_repo_root(base)
        context = config.context
        cache = ContextCache(
            max_entries=context.cache_max_entries,
            ttl_seconds=context.cache_ttl_seconds,
        )
        if provider is None:
            provider = RepositorySourceProvider(
                repo_root,
                max_sources=context.max_sources,
                snippet_lines=context.snippet_lines,
            )
        orchestrator = ContextOrchestrator(provider, cache=cache, debug=config.debug)

        if registry is None:
            registry = HookRegistry.from_files(config.hook_files(base))
        hook_engine = HookEngine(
            registry,
            max_concurrency=config.hooks.max_concurrency,
            cwd=repo_root,
        )
        if checks is None:
            checks = build_default_checks(config.verification, repo_root)
        pipeline = VerificationPipeline(
            hook_engine,
            checks,
            mode=config.verification.mode,
            debug=config.debug,
        )
        LOGGER.debug(
            "Session ready for %s with %d hook(s) and %d check(s)",
            repo_root,
            len(registry),
            len(checks),
        )
        return cls(
            config,
            repo_root=repo_root,
            orchestrator=orchestrator,
            hook_engine=hook_engine,
            pipeline=pipeline,
        )

    @property
    def config(self) -> GavConfig:
        return self._config

    @property
    def repo_root(self) -> Path:
        return self._repo_root

    @property
    def registry(self) -> HookRegistry:
        return self._hook_engine.registry

    @property
    def gather_phase(self) -> GatherPhase:
        return self._gather_phase

    @property
    def verify_phase(self) -> VerifyPhase:
        return self._verify_phase

    @property
    def pipeline(self) -> VerificationPipeline:
        return self._pipeline

    @property
    def closed(self) -> bool:
        return self._closed

    async def gather(self, request: ContextRequest) -> ContextBundle | None:
        return await self._track(self._gather_phase.gather(request, self._config.debug))

    async def verify(self, tool_call: ToolCall, result: ToolResult) -> VerifyOutcome | None:
        return await self._track(self._verify_phase.verify(tool_call, result, self._config.debug))

    async def run_hooks(self, event: HookType, context: HookContext | None = None) -> VerificationResult:
        """Run a hook batch directly, for events outside the edit cycle."""
        return await self._track(self._pipeline.run_hooks(event, context))

    def get_cache_stats(self) -> CacheStats:
        return self._gather_phase.get_cache_stats()

    def clear_cache(self) -> None:
        self._gather_phase.clear_cache()

    def abort(self) -> int:
        """Cancel every in-flight call; returns how many were cancelled."""
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            LOGGER.info("Aborted %d in-flight call(s)", len(pending))
        return len(pending)

    async def aclose(self) -> None:
        """Abort outstanding work, wait for it to unwind, then release the cache."""
        if self._closed:
            return
        pending = [task for task in self._tasks if not task.done()]
        self.abort()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self.abort()
        self._orchestrator.close()
        self._closed = True

    async def __aenter__(self) -> AgentSession:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _track(self, awaitable: Awaitable[T]) -> T:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        try:
            return await task
        finally:
            self._tasks.discard(task)

    def _invalidate_written(self, file_path: str) -> None:
        path = Path(file_path)
        if path.is_absolute():
            try:
                path = path.resolve().relative_to(self._repo_root)
            except ValueError:
                return
        self._orchestrator.invalidate_path(path.as_posix())


__all__ = ["AgentSession"]
