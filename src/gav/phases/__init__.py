"""Gather-act-verify iteration states and the phase wrappers around them."""

from __future__ import annotations

from enum import Enum


class PhaseName(str, Enum):
    """States of one agent iteration."""

    GATHER = "gather"
    ACT = "act"
    VERIFY = "verify"


PHASE_SEQUENCE = [
    PhaseName.GATHER,
    PhaseName.ACT,
    PhaseName.VERIFY,
]


__all__ = ["PHASE_SEQUENCE", "PhaseName"]
