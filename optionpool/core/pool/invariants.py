"""Invariant checkers for the pool engine.

State invariants take the post-state and the market strike; transition
invariants compare pre- and post-state. `check_all()` returns the violated
invariant IDs (empty = all pass).
"""

from __future__ import annotations

from typing import Callable

from ..curve import rate_of
from ..fullmath import UINT160_MAX
from .types import PoolState
from .updates import reserves


def inv_liquidity_bounded(s: PoolState, strike: int) -> bool:
    return 0 <= s.liquidity <= UINT160_MAX


def inv_rate_in_range(s: PoolState, strike: int) -> bool:
    return 0 < s.sqrt_interest_rate <= UINT160_MAX


def inv_long_backed(s: PoolState, strike: int) -> bool:
    """Outstanding liquidity always owns some long."""
    return s.liquidity == 0 or reserves(s, strike)[0] > 0


def inv_rate_matches_reserves(s: PoolState, strike: int) -> bool:
    """While both reserves are held the rate is their ratio."""
    long, short = reserves(s, strike)
    if long == 0 or short == 0:
        return True
    return s.sqrt_interest_rate == rate_of(long, short)


def inv_growth_monotone(pre: PoolState, post: PoolState) -> bool:
    return (
        post.long0_fee_growth >= pre.long0_fee_growth
        and post.long1_fee_growth >= pre.long1_fee_growth
        and post.short_fee_growth >= pre.short_fee_growth
        and post.short_returned_growth >= pre.short_returned_growth
    )


def inv_fee_rates_frozen(pre: PoolState, post: PoolState) -> bool:
    return (
        post.transaction_fee_bps == pre.transaction_fee_bps
        and post.protocol_fee_bps == pre.protocol_fee_bps
    )


def inv_clock_monotone(pre: PoolState, post: PoolState) -> bool:
    return post.last_timestamp >= pre.last_timestamp


INVARIANT_REGISTRY: dict[str, Callable[[PoolState, int], bool]] = {
    "inv_liquidity_bounded": inv_liquidity_bounded,
    "inv_rate_in_range": inv_rate_in_range,
    "inv_long_backed": inv_long_backed,
    "inv_rate_matches_reserves": inv_rate_matches_reserves,
}

TRANSITION_REGISTRY: dict[str, Callable[[PoolState, PoolState], bool]] = {
    "inv_growth_monotone": inv_growth_monotone,
    "inv_fee_rates_frozen": inv_fee_rates_frozen,
    "inv_clock_monotone": inv_clock_monotone,
}


def check_all(pre: PoolState, post: PoolState, strike: int) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    violated = [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(post, strike)
    ]
    violated.extend(
        inv_id
        for inv_id, check_fn in TRANSITION_REGISTRY.items()
        if not check_fn(pre, post)
    )
    return violated
