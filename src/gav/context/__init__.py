"""Context gathering: estimation, caching, retrieval and orchestration."""

from .budget import estimate_tokens, select_within_budget
from .cache import ContextCache, cache_key
from .orchestrator import ContextOrchestrator, compact_history
from .retrieval import RepositorySourceProvider, SourceProvider, extract_keywords
from .types import (
    BundleMetadata,
    CacheStats,
    ContextBundle,
    ContextRequest,
    ContextSource,
    Intent,
    Strategy,
    detect_intent,
)

__all__ = [
    "BundleMetadata",
    "CacheStats",
    "ContextBundle",
    "ContextCache",
    "ContextOrchestrator",
    "ContextRequest",
    "ContextSource",
    "Intent",
    "RepositorySourceProvider",
    "SourceProvider",
    "Strategy",
    "cache_key",
    "compact_history",
    "detect_intent",
    "estimate_tokens",
    "extract_keywords",
    "select_within_budget",
]
