"""Session-wide cache of context bundles with TTL, LRU bounds and request coalescing."""

from __future__ import annotations

import asyncio
import hashlib
import json
import logging
import os
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Awaitable, Callable

from .types import CacheStats, ContextBundle, ContextRequest

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 300.0

Clock = Callable[[], float]


@dataclass(slots=True)
class CacheEntry:
    """Stored bundle plus bookkeeping for expiry and hit counting."""

    bundle: ContextBundle
    created_at: float
    hits: int = 0


def cache_key(request: ContextRequest) -> str:
    """Return a deterministic hash of the request's relevance-defining fields."""
    payload = json.dumps(request.cache_fields(), sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class ContextCache:
    """Keyed bundle storage shared by every gather call within a session.

    At most one computation per key is in flight at a time: concurrent callers
    for the same key await the first caller's result instead of recomputing it.
    """

    def __init__(
        self,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._max_entries = max_entries
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._inflight: dict[str, asyncio.Future[ContextBundle]] = {}
        self._generation = 0
        self._hits = 0
        self._misses = 0
        self._closed = False

    def __len__(self) -> int:
        self._purge_expired()
        return len(self._entries)

    @property
    def closed(self) -> bool:
        return self._closed

    def lookup(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` and record a hit, or record a miss."""
        entry = self._entries.get(key)
        if entry is not None and self._is_expired(entry):
            del self._entries[key]
            LOGGER.debug("Cache entry expired: %s", key[:12])
            entry = None
        if entry is None:
            self._misses += 1
            return None
        entry.hits += 1
        self._hits += 1
        self._entries.move_to_end(key)
        return entry

    def store(self, key: str, bundle: ContextBundle) -> None:
        """Insert ``bundle`` under ``key``, evicting the least recently used entry if full."""
        self._entries[key] = CacheEntry(bundle=bundle, created_at=self._clock())
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            evicted, _ = self._entries.popitem(last=False)
            LOGGER.debug("Evicted cache entry: %s", evicted[:12])

    async def get_or_compute(
        self,
        key: str,
        compute: Callable[[], Awaitable[ContextBundle]],
        *,
        cacheable: Callable[[ContextBundle], bool] | None = None,
    ) -> tuple[ContextBundle, int]:
        """Return ``(bundle, hits)`` for ``key``, computing it at most once concurrently.

        ``hits`` is the entry's hit count when served from the cache and ``0``
        when this call (or a coalesced sibling) computed the bundle. Errors
        raised by ``compute`` reach every coalesced caller and nothing is stored.
        If the caller that owns the computation is cancelled, a waiting caller
        takes over and computes the bundle itself.
        """
        entry = self.lookup(key)
        if entry is not None:
            return entry.bundle, entry.hits

        pending = self._inflight.get(key)
        while pending is not None:
            await asyncio.wait((pending,))
            if not pending.cancelled():
                return pending.result(), 0
            LOGGER.debug("Owner of %s was cancelled; retrying", key[:12])
            pending = self._inflight.get(key)

        loop = asyncio.get_running_loop()
        future: asyncio.Future[ContextBundle] = loop.create_future()
        self._inflight[key] = future
        generation = self._generation
        try:
            bundle = await compute()
        except asyncio.CancelledError:
            self._release(key, future)
            future.cancel()
            raise
        except Exception as error:
            self._release(key, future)
            future.set_exception(error)
            # Mark the exception as retrieved when no sibling is waiting on it.
            future.exception()
            raise

        self._release(key, future)
        if generation == self._generation and (cacheable is None or cacheable(bundle)):
            self.store(key, bundle)
        future.set_result(bundle)
        return bundle, 0

    def invalidate(self, key: str) -> bool:
        """Drop a single entry; returns whether one was present."""
        return self._entries.pop(key, None) is not None

    def invalidate_path(self, path: str) -> int:
        """Drop every entry whose bundle includes ``path``."""
        target = os.path.normpath(path)
        stale = [
            key
            for key, entry in self._entries.items()
            if any(os.path.normpath(source.path) == target for source in entry.bundle.sources)
        ]
        for key in stale:
            del self._entries[key]
        if stale:
            LOGGER.debug("Invalidated %d cache entries for %s", len(stale), path)
        return len(stale)

    def clear(self) -> None:
        """Empty the cache; in-flight computations started earlier will not be stored."""
        size = len(self._entries)
        self._entries.clear()
        self._inflight.clear()
        self._generation += 1
        LOGGER.debug("Cleared %d cache entries", size)

    def stats(self) -> CacheStats:
        self._purge_expired()
        lookups = self._hits + self._misses
        return CacheStats(
            size=len(self._entries),
            hit_rate=(self._hits / lookups) if lookups else 0.0,
            total_hits=self._hits,
            total_misses=self._misses,
            max_size=self._max_entries,
        )

    def reset_stats(self) -> None:
        self._hits = 0
        self._misses = 0

    def close(self) -> None:
        """Release all entries; the cache must not be used afterwards."""
        self.clear()
        self._closed = True

    def _release(self, key: str, future: asyncio.Future[ContextBundle]) -> None:
        if self._inflight.get(key) is future:
            del self._inflight[key]

    def _is_expired(self, entry: CacheEntry) -> bool:
        return (self._clock() - entry.created_at) >= self._ttl

    def _purge_expired(self) -> None:
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry)]
        for key in expired:
            del self._entries[key]


__all__ = ["CacheEntry", "ContextCache", "cache_key"]
