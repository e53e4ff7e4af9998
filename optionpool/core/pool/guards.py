"""Guard functions for the pool engine.

mint, leverage, deleverage and rebalance need `now < maturity`; burn is valid
on both sides of maturity (GIVEN_LIQUIDITY only afterwards); fee calls are not
time-gated.
"""

from __future__ import annotations

from ...state.keys import MarketKey
from ..errors import AlreadyMatured, InsufficientLiquidity, InvalidMode
from ..fullmath import UINT160_MAX
from .types import PoolBurnMode, PoolBurnParam, PoolState


def guard_active(key: MarketKey, now: int) -> bool:
    return now < key.maturity


def guard_sqrt_rate(sqrt_interest_rate: int) -> bool:
    return (
        isinstance(sqrt_interest_rate, int)
        and not isinstance(sqrt_interest_rate, bool)
        and 0 < sqrt_interest_rate <= UINT160_MAX
    )


def guard_burn_mode(param: PoolBurnParam, now: int) -> bool:
    """After maturity only GIVEN_LIQUIDITY burns are meaningful."""
    return guard_active(param.key, now) or param.mode is PoolBurnMode.GIVEN_LIQUIDITY


def require_active(key: MarketKey, now: int) -> None:
    if not guard_active(key, now):
        raise AlreadyMatured(key.maturity, now)


def require_liquidity(key: MarketKey, state: PoolState) -> None:
    if state.liquidity == 0:
        raise InsufficientLiquidity(key, 0, 1)


def require_burn_mode(param: PoolBurnParam, now: int) -> None:
    if not guard_burn_mode(param, now):
        raise InvalidMode(param.mode, "pool burn after maturity")
