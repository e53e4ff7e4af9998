"""
Square-root-interest-rate bonding curve.

A pool holds a long reserve (Long0 and Long1 combined into base units at the
strike) and a short reserve. Its rate is the ratio of the two, in Q96:

    sqrt_interest_rate = short * 2^96 / long

Liquidity is proportional ownership of both reserves. The first deposit into
an empty pool sets it to the geometric mean of the two amounts, so at rate
`r` one unit of liquidity is `2^96 / root(r)` long and `root(r) / 2^96`
short, with `root(r) = sqrt(r * 2^96)`. Later deposits and withdrawals move
both reserves pro rata and keep the rate.

Trades keep liquidity fixed and shift the split between the reserves. Short
in / long out is priced at the rate before the trade; long in / short out is
its exact inverse, priced at the rate the trade restores. A trade followed by
its reverse therefore lands back on the starting reserves (up to rounding in
the pool's favour).

All helpers are pure. Deposits round up, withdrawals and minted liquidity
round down.
"""

from __future__ import annotations

from .fullmath import mul_div, sqrt

Q96 = 1 << 96


def rate_of(long: int, short: int) -> int:
    """Q96 rate of a pair of reserves (floor)."""
    return mul_div(short, Q96, long, False)


def _root(sqrt_interest_rate: int, round_up: bool) -> int:
    return sqrt(sqrt_interest_rate * Q96, round_up)


# -- Empty pool: amounts at a given rate ---------------------------------------

def long_at_rate(liquidity: int, sqrt_interest_rate: int, round_up: bool) -> int:
    return mul_div(liquidity, Q96, _root(sqrt_interest_rate, not round_up), round_up)


def short_at_rate(liquidity: int, sqrt_interest_rate: int, round_up: bool) -> int:
    return mul_div(liquidity, _root(sqrt_interest_rate, round_up), Q96, round_up)


def liquidity_at_rate_given_long(long: int, sqrt_interest_rate: int) -> int:
    return mul_div(long, _root(sqrt_interest_rate, False), Q96, False)


def liquidity_at_rate_given_short(short: int, sqrt_interest_rate: int) -> int:
    return mul_div(short, Q96, _root(sqrt_interest_rate, True), False)


# -- Pro rata -----------------------------------------------------------------

def reserve_share(reserve: int, liquidity: int, total_liquidity: int, round_up: bool) -> int:
    """The part of `reserve` that `liquidity` out of `total_liquidity` owns."""
    return mul_div(reserve, liquidity, total_liquidity, round_up)


def liquidity_share(amount: int, reserve: int, total_liquidity: int, round_up: bool) -> int:
    """Liquidity that owns `amount` of `reserve`."""
    return mul_div(amount, total_liquidity, reserve, round_up)


# -- Trades at fixed liquidity ------------------------------------------------

def long_out_given_short_in(short_in: int, long: int, short: int) -> int:
    """Long released for `short_in` at the pre-trade rate (floor)."""
    return mul_div(short_in, long, short, False)


def short_in_given_long_out(long_out: int, long: int, short: int) -> int:
    """Short required to release `long_out` at the pre-trade rate (ceil)."""
    return mul_div(long_out, short, long, True)


def short_out_given_long_in(long_in: int, long: int, short: int) -> int:
    """
    Short released for `long_in` (floor).

    Solves `short_out / long_in = (short - short_out) / (long + long_in)`,
    the inverse of `long_out_given_short_in`.
    """
    return mul_div(long_in, short, long + 2 * long_in, False)


def long_in_given_short_out(short_out: int, long: int, short: int) -> int:
    """
    Long required to release `short_out` (ceil).

    Needs `2 * short_out < short`: less than half of the short reserve can
    leave in one trade.
    """
    return mul_div(short_out, long, short - 2 * short_out, True)
