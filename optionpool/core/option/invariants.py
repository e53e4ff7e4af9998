"""Invariant checkers for the option ledger.

Each function returns True when the invariant holds; `check_all()` returns the
violated invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable

from ..strike import combine
from .types import OptionState


def inv_short_backed(s: OptionState, strike: int) -> bool:
    """Outstanding short never exceeds the base value of the collateral."""
    return s.total_short <= combine(s.total_long0, s.total_long1, strike, True)


INVARIANT_REGISTRY: dict[str, Callable[[OptionState, int], bool]] = {
    "inv_short_backed": inv_short_backed,
}


def check_all(state: OptionState, strike: int) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state, strike)
    ]
