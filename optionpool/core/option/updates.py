"""Amount calculation and state transitions for the option ledger.

Amount functions are pure: they turn a validated parameter (plus the current
`OptionState` where needed) into the exact token/position amounts of the call.
State functions return a new `OptionState` via `dataclasses.replace()`.

Rounding always favours the ledger: whatever the caller deposits rounds up,
whatever the caller receives rounds down.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ..errors import DivideByZero, InvalidMode, Underflow
from ..fullmath import checked_add, checked_sub, mul_div
from ..strike import combine, convert, turn
from .types import (
    OptionBurnMode,
    OptionBurnParam,
    OptionCollectMode,
    OptionCollectParam,
    OptionMintMode,
    OptionMintParam,
    OptionState,
    OptionSwapMode,
    OptionSwapParam,
)


@dataclass(frozen=True)
class IssueAmounts:
    """Long0/Long1/Short created or destroyed by one call (long == token)."""

    long0: int
    long1: int
    short: int


@dataclass(frozen=True)
class SwapAmounts:
    token0: int
    token1: int


# -- Amounts ------------------------------------------------------------------

def mint_amounts(param: OptionMintParam) -> IssueAmounts:
    strike = param.key.strike
    if param.mode is OptionMintMode.GIVEN_TOKENS_AND_LONGS:
        return IssueAmounts(
            long0=param.amount0,
            long1=param.amount1,
            short=combine(param.amount0, param.amount1, strike, False),
        )
    if param.mode is OptionMintMode.GIVEN_SHORTS:
        return IssueAmounts(
            long0=turn(param.amount0, strike, False, True),
            long1=turn(param.amount1, strike, True, True),
            short=checked_add(param.amount0, param.amount1),
        )
    raise InvalidMode(param.mode, "option mint")


def burn_amounts(param: OptionBurnParam) -> IssueAmounts:
    strike = param.key.strike
    if param.mode is OptionBurnMode.GIVEN_TOKENS_AND_LONGS:
        return IssueAmounts(
            long0=param.amount0,
            long1=param.amount1,
            short=combine(param.amount0, param.amount1, strike, True),
        )
    if param.mode is OptionBurnMode.GIVEN_SHORTS:
        return IssueAmounts(
            long0=turn(param.amount0, strike, False, False),
            long1=turn(param.amount1, strike, True, False),
            short=checked_add(param.amount0, param.amount1),
        )
    raise InvalidMode(param.mode, "option burn")


def swap_amounts(param: OptionSwapParam) -> SwapAmounts:
    """
    Token amounts of a swap. The side entering the ledger rounds up, the side
    leaving rounds down.

    long0 -> long1: token0 leaves, token1 enters.
    long1 -> long0: token1 leaves, token0 enters.
    """
    strike = param.key.strike
    token0_leaves = param.is_long0_to_long1
    if param.mode is OptionSwapMode.GIVEN_TOKEN0_AND_LONG0:
        token0 = param.amount
        token1 = convert(token0, strike, True, token0_leaves)
        return SwapAmounts(token0=token0, token1=token1)
    if param.mode is OptionSwapMode.GIVEN_TOKEN1_AND_LONG1:
        token1 = param.amount
        token0 = convert(token1, strike, False, not token0_leaves)
        return SwapAmounts(token0=token0, token1=token1)
    raise InvalidMode(param.mode, "option swap")


def collect_amounts(state: OptionState, param: OptionCollectParam) -> IssueAmounts:
    """
    Post-maturity payout, pro rata to the remaining collateral.

    `long0`/`long1` are the token0/token1 released, `short` the Short burnt.
    """
    if state.total_short == 0:
        raise DivideByZero()
    if param.mode is OptionCollectMode.GIVEN_SHORT:
        short = param.amount
    elif param.mode is OptionCollectMode.GIVEN_TOKEN0:
        if state.total_long0 == 0:
            raise DivideByZero()
        short = mul_div(param.amount, state.total_short, state.total_long0, True)
    elif param.mode is OptionCollectMode.GIVEN_TOKEN1:
        if state.total_long1 == 0:
            raise DivideByZero()
        short = mul_div(param.amount, state.total_short, state.total_long1, True)
    else:
        raise InvalidMode(param.mode, "option collect")
    if short > state.total_short:
        raise Underflow(state.total_short, short)
    token0 = mul_div(short, state.total_long0, state.total_short, False)
    token1 = mul_div(short, state.total_long1, state.total_short, False)
    if param.mode is OptionCollectMode.GIVEN_TOKEN0:
        token0 = param.amount
    elif param.mode is OptionCollectMode.GIVEN_TOKEN1:
        token1 = param.amount
    return IssueAmounts(long0=token0, long1=token1, short=short)


# -- State transitions --------------------------------------------------------

def apply_issue(state: OptionState, amounts: IssueAmounts) -> OptionState:
    return replace(
        state,
        total_long0=checked_add(state.total_long0, amounts.long0),
        total_long1=checked_add(state.total_long1, amounts.long1),
        total_short=checked_add(state.total_short, amounts.short),
    )


def apply_redeem(state: OptionState, amounts: IssueAmounts) -> OptionState:
    return replace(
        state,
        total_long0=checked_sub(state.total_long0, amounts.long0),
        total_long1=checked_sub(state.total_long1, amounts.long1),
        total_short=checked_sub(state.total_short, amounts.short),
    )


def apply_swap(state: OptionState, amounts: SwapAmounts, is_long0_to_long1: bool) -> OptionState:
    if is_long0_to_long1:
        return replace(
            state,
            total_long0=checked_sub(state.total_long0, amounts.token0),
            total_long1=checked_add(state.total_long1, amounts.token1),
        )
    return replace(
        state,
        total_long0=checked_add(state.total_long0, amounts.token0),
        total_long1=checked_sub(state.total_long1, amounts.token1),
    )
