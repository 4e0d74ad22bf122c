"""Value types exchanged between the orchestrator, its cache and the agent."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any


class Intent(str, Enum):
    """Coarse classification of what the user is asking the agent to do."""

    EXPLAIN = "explain"
    REFACTOR = "refactor"
    DEBUG = "debug"
    IMPLEMENT = "implement"
    SEARCH = "search"
    GENERAL = "general"


class Strategy(str, Enum):
    """How a context bundle was produced."""

    AGENTIC_SEARCH = "agentic-search"
    DEGRADED = "degraded"


_INTENT_PHRASES: tuple[tuple[Intent, tuple[str, ...]], ...] = (
    (Intent.EXPLAIN, ("explain", "what is", "what does", "how does", "describe", "document")),
    (Intent.REFACTOR, ("refactor", "restructure", "reorganize", "clean up", "improve")),
    (Intent.DEBUG, ("debug", "fix", "error", "bug", "issue", "problem", "failing")),
    (Intent.IMPLEMENT, ("implement", "add", "create", "build", "make", "write")),
    (Intent.SEARCH, ("find", "search", "look for", "where is", "locate")),
)


def detect_intent(query: str) -> Intent:
    """Classify ``query`` with simple phrase heuristics; first match wins."""
    lowered = query.lower()
    for intent, phrases in _INTENT_PHRASES:
        if any(phrase in lowered for phrase in phrases):
            return intent
    return Intent.GENERAL


@dataclass(frozen=True, slots=True)
class ContextRequest:
    """Immutable description of what context the planner needs."""

    intent: Intent
    query: str
    budget: int
    priority_files: tuple[str, ...] = ()
    exclude_patterns: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.budget < 0:
            raise ValueError(f"budget must be non-negative, got {self.budget}")

    @classmethod
    def for_query(cls, query: str, budget: int, **hints: Any) -> ContextRequest:
        """Build a request, detecting the intent from ``query``."""
        return cls(
            intent=detect_intent(query),
            query=query,
            budget=budget,
            priority_files=tuple(hints.get("priority_files") or ()),
            exclude_patterns=tuple(hints.get("exclude_patterns") or ()),
        )

    def cache_fields(self) -> dict[str, Any]:
        """Return the fields that determine which context is relevant."""
        return {
            "intent": self.intent.value,
            "query": " ".join(self.query.split()).lower(),
            "budget": self.budget,
            "priority_files": sorted(self.priority_files),
            "exclude_patterns": sorted(self.exclude_patterns),
        }


@dataclass(frozen=True, slots=True)
class ContextSource:
    """A scored snippet of repository content considered for the bundle."""

    path: str
    content: str
    score: float
    reasons: tuple[str, ...] = ()
    estimated_cost: int = 0


@dataclass(frozen=True, slots=True)
class BundleMetadata:
    """Accounting attached to every bundle."""

    tokens_used: int = 0
    cache_hits: int = 0
    strategy: Strategy = Strategy.AGENTIC_SEARCH
    duration_ms: int = 0
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class ContextBundle:
    """Budget-constrained set of sources handed to the planner."""

    sources: tuple[ContextSource, ...] = ()
    metadata: BundleMetadata = field(default_factory=BundleMetadata)

    @property
    def paths(self) -> tuple[str, ...]:
        return tuple(source.path for source in self.sources)

    def with_metadata(self, **changes: Any) -> ContextBundle:
        """Return a copy of the bundle with updated metadata fields."""
        return replace(self, metadata=replace(self.metadata, **changes))


@dataclass(frozen=True, slots=True)
class CacheStats:
    """Read-only snapshot of cache accounting."""

    size: int
    hit_rate: float
    total_hits: int
    total_misses: int
    max_size: int


__all__ = [
    "BundleMetadata",
    "CacheStats",
    "ContextBundle",
    "ContextRequest",
    "ContextSource",
    "Intent",
    "Strategy",
    "detect_intent",
]
