"""
Strike conversion between token0, token1 and the base denomination.

Strike is a Q128 fixed-point ratio: token1 per token0, scaled by 2^128.

The base token is whichever side the strike favours:
- strike > 2^128 - 1  -> token0 is base (one token0 is worth at least one token1)
- otherwise           -> token1 is base

Short claims are denominated in the base token. Every function takes an
explicit `round_up`; callers pick the direction that favours the protocol.
"""

from __future__ import annotations

from .errors import ZeroInput
from .fullmath import UINT128_MAX, checked_add, checked_sub, mul_div

STRIKE_ONE = 1 << 128


def is_token0_base(strike: int) -> bool:
    """True when the strike makes token0 the base denomination."""
    return strike > UINT128_MAX


def convert(amount: int, strike: int, zero_to_one: bool, round_up: bool) -> int:
    """
    Convert `amount` between token0 and token1 at the strike.

    zero_to_one: token0 amount -> token1 amount (amount * strike / 2^128)
    otherwise:   token1 amount -> token0 amount (amount * 2^128 / strike)
    """
    if strike == 0:
        raise ZeroInput("strike")
    if zero_to_one:
        return mul_div(amount, strike, STRIKE_ONE, round_up)
    return mul_div(amount, STRIKE_ONE, strike, round_up)


def turn(amount: int, strike: int, to_one: bool, round_up: bool) -> int:
    """
    Convert a base-denominated `amount` into token1 (to_one) or token0.

    Converting base into itself is the identity.
    """
    if is_token0_base(strike):
        return convert(amount, strike, True, round_up) if to_one else amount
    return amount if to_one else convert(amount, strike, False, round_up)


def combine(amount0: int, amount1: int, strike: int, round_up: bool) -> int:
    """Fold a token0 and a token1 amount into one base-denominated total."""
    if is_token0_base(strike):
        return checked_add(amount0, convert(amount1, strike, False, round_up))
    return checked_add(amount1, convert(amount0, strike, True, round_up))


def dif(base: int, amount: int, strike: int, zero_to_one: bool, round_up: bool) -> int:
    """
    Given a combined base total and one side's amount, recover the other side.

    zero_to_one: `amount` is the token0 side, returns the token1 side.
    otherwise:   `amount` is the token1 side, returns the token0 side.

    The inner conversion of `amount` uses the opposite rounding so that the
    returned side rounds in the requested direction.
    """
    if is_token0_base(strike):
        if zero_to_one:
            return convert(checked_sub(base, amount), strike, True, round_up)
        return checked_sub(base, convert(amount, strike, False, not round_up))
    if zero_to_one:
        return checked_sub(base, convert(amount, strike, True, not round_up))
    return convert(checked_sub(base, amount), strike, False, round_up)
