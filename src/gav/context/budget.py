"""Token estimation and greedy budget selection for context sources."""

from __future__ import annotations

import math
from collections.abc import Sequence

from .types import ContextSource

CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Approximate the token cost of ``text`` at four characters per token."""
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


def rank_sources(candidates: Sequence[ContextSource]) -> list[ContextSource]:
    """Order candidates by descending score, keeping discovery order for ties."""
    return sorted(candidates, key=lambda source: -source.score)


def select_within_budget(
    candidates: Sequence[ContextSource],
    budget: int,
) -> tuple[list[ContextSource], int]:
    """Greedily take the best-scored sources until the next one would overflow.

    Selection stops at the first candidate that does not fit; later, smaller
    candidates are not considered. When even the top candidate exceeds the
    budget on its own it is returned alone so the planner still sees the most
    relevant source.
    """
    ranked = rank_sources(candidates)
    if not ranked:
        return [], 0

    selected: list[ContextSource] = []
    tokens_used = 0
    for source in ranked:
        if tokens_used + source.estimated_cost > budget:
            break
        selected.append(source)
        tokens_used += source.estimated_cost

    if not selected:
        top = ranked[0]
        return [top], top.estimated_cost
    return selected, tokens_used


__all__ = [
    "CHARS_PER_TOKEN",
    "estimate_tokens",
    "rank_sources",
    "select_within_budget",
]
