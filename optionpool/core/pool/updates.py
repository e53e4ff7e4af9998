"""Pure amount calculation and state transitions for the pool engine.

Functions here never touch the environment: they take a `PoolState` (and the
validated parameter) and return amounts or a new `PoolState` built with
`dataclasses.replace()`. The engine composes them and performs the position
transfers.

Rounding: deposits round up, withdrawals and minted liquidity round down,
liquidity removed for a requested withdrawal rounds up.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from ...state.keys import MarketKey
from ..curve import (
    liquidity_at_rate_given_long,
    liquidity_at_rate_given_short,
    liquidity_share,
    long_at_rate,
    long_in_given_short_out,
    long_out_given_short_in,
    rate_of,
    reserve_share,
    short_at_rate,
    short_in_given_long_out,
    short_out_given_long_in,
)
from ..errors import InsufficientLiquidity, InvalidMode, ZeroInput
from ..fees import fee_growth_delta, fees_additional, fees_owed, fees_removal, split_fee
from ..fullmath import checked_add, checked_sub
from ..strike import combine, convert
from .types import (
    LiquidityPosition,
    PoolBurnMode,
    PoolBurnParam,
    PoolDeleverageMode,
    PoolDeleverageParam,
    PoolLeverageMode,
    PoolLeverageParam,
    PoolMintMode,
    PoolMintParam,
    PoolRebalanceMode,
    PoolRebalanceParam,
    PoolState,
)


@dataclass(frozen=True)
class CurveDelta:
    """Liquidity and the base-denominated long / short that go with it."""

    liquidity: int
    long: int
    short: int


@dataclass(frozen=True)
class TradeQuote:
    """
    One leverage/deleverage trade.

    `short_gross` is what the short side moves in total; `short_fees` is the
    part of it kept as fees. Leverage: the caller pays `short_gross` and
    `short_net` joins the reserve. Deleverage: `short_gross` leaves the
    reserve and the caller gets `short_net`.
    """

    long: int
    short_gross: int
    short_fees: int

    @property
    def short_net(self) -> int:
        return self.short_gross - self.short_fees


@dataclass(frozen=True)
class RebalanceQuote:
    long0: int
    long1: int
    out_gross: int
    fees: int


# -- Reserves -----------------------------------------------------------------

def reserves(state: PoolState, strike: int) -> tuple[int, int]:
    """(long, short) reserves, the long combined into base units."""
    return combine(state.long0_balance, state.long1_balance, strike, False), state.short_balance


def reprice(state: PoolState, strike: int) -> PoolState:
    """Set the rate from the reserves; an empty side keeps the last rate."""
    long, short = reserves(state, strike)
    if long == 0 or short == 0:
        return state
    return replace(state, sqrt_interest_rate=rate_of(long, short))


def _trading_reserves(state: PoolState, key: MarketKey) -> tuple[int, int]:
    long, short = reserves(state, key.strike)
    if long == 0 or short == 0:
        raise InsufficientLiquidity(key, 0, 1)
    return long, short


# -- Maturity and accrual -----------------------------------------------------

def sync(state: PoolState, now: int, maturity: int) -> PoolState:
    """
    Advance to `min(now, maturity)`. Reaching maturity releases the short
    reserve to the liquidity providers through `short_returned_growth`.
    """
    until = min(now, maturity)
    if until <= state.last_timestamp:
        return state
    if until == maturity and state.liquidity > 0 and state.short_balance > 0:
        return replace(
            state,
            short_returned_growth=checked_add(
                state.short_returned_growth, fee_growth_delta(state.short_balance, state.liquidity)
            ),
            short_balance=0,
            last_timestamp=until,
        )
    return replace(state, last_timestamp=until)


def accrue(position: LiquidityPosition, state: PoolState) -> LiquidityPosition:
    """Move everything owed since the snapshots into the accrued fields."""
    liq = position.liquidity
    return replace(
        position,
        long0_fees=position.long0_fees + fees_owed(liq, state.long0_fee_growth, position.long0_fee_growth),
        long1_fees=position.long1_fees + fees_owed(liq, state.long1_fee_growth, position.long1_fee_growth),
        short_fees=position.short_fees + fees_owed(liq, state.short_fee_growth, position.short_fee_growth),
        short_returned=position.short_returned
        + fees_owed(liq, state.short_returned_growth, position.short_returned_growth),
        long0_fee_growth=state.long0_fee_growth,
        long1_fee_growth=state.long1_fee_growth,
        short_fee_growth=state.short_fee_growth,
        short_returned_growth=state.short_returned_growth,
    )


# -- Fees ---------------------------------------------------------------------

def charge_fee(state: PoolState, side: str, fee: int) -> PoolState:
    """
    Split `fee` (charged on `side`: "long0", "long1" or "short") between the
    protocol and the liquidity providers.
    """
    if fee == 0:
        return state
    split = split_fee(fee, state.protocol_fee_bps)
    growth_field = f"{side}_fee_growth"
    protocol_field = f"{side}_protocol_fees"
    return replace(
        state,
        **{
            growth_field: checked_add(
                getattr(state, growth_field), fee_growth_delta(split.lp_fees, state.liquidity)
            ),
            protocol_field: getattr(state, protocol_field) + split.protocol_fees,
        },
    )


def add_fee_growth(state: PoolState, long0_fees: int, long1_fees: int, short_fees: int) -> PoolState:
    """Donations: all of it goes to liquidity providers."""
    return replace(
        state,
        long0_fee_growth=checked_add(state.long0_fee_growth, fee_growth_delta(long0_fees, state.liquidity)),
        long1_fee_growth=checked_add(state.long1_fee_growth, fee_growth_delta(long1_fees, state.liquidity)),
        short_fee_growth=checked_add(state.short_fee_growth, fee_growth_delta(short_fees, state.liquidity)),
    )


# -- Mint / burn --------------------------------------------------------------

def mint_delta(state: PoolState, param: PoolMintParam, strike: int) -> CurveDelta:
    """
    An empty pool is priced at its rate; otherwise the deposit is pro rata to
    the reserves.
    """
    mode = param.mode
    rate = state.sqrt_interest_rate
    long_reserve, short_reserve = reserves(state, strike)

    def by_long() -> int:
        if state.liquidity == 0:
            return liquidity_at_rate_given_long(param.delta, rate)
        return liquidity_share(param.delta, long_reserve, state.liquidity, False)

    def by_short() -> int:
        if state.liquidity == 0:
            return liquidity_at_rate_given_short(param.delta, rate)
        return liquidity_share(param.delta, short_reserve, state.liquidity, False)

    if mode is PoolMintMode.GIVEN_LIQUIDITY:
        liquidity = param.delta
    elif mode is PoolMintMode.GIVEN_LONG:
        liquidity = by_long()
    elif mode is PoolMintMode.GIVEN_SHORT:
        liquidity = by_short()
    elif mode is PoolMintMode.GIVEN_LARGER:
        liquidity = min(by_long(), by_short())
    else:
        raise InvalidMode(mode, "pool mint")
    if liquidity == 0:
        raise ZeroInput("liquidity")

    if state.liquidity == 0:
        long = long_at_rate(liquidity, rate, True)
        short = short_at_rate(liquidity, rate, True)
    else:
        long = reserve_share(long_reserve, liquidity, state.liquidity, True)
        short = reserve_share(short_reserve, liquidity, state.liquidity, True)
    return CurveDelta(liquidity=liquidity, long=long, short=short)


def burn_delta(state: PoolState, param: PoolBurnParam, strike: int) -> CurveDelta:
    if state.liquidity == 0:
        raise InsufficientLiquidity(param.key, 0, param.delta)
    long_reserve, short_reserve = reserves(state, strike)
    if param.mode is PoolBurnMode.GIVEN_LIQUIDITY:
        liquidity = param.delta
    elif param.mode is PoolBurnMode.GIVEN_LONG:
        liquidity = liquidity_share(param.delta, long_reserve, state.liquidity, True)
    elif param.mode is PoolBurnMode.GIVEN_SHORT:
        liquidity = liquidity_share(param.delta, short_reserve, state.liquidity, True)
    else:
        raise InvalidMode(param.mode, "pool burn")
    if liquidity > state.liquidity:
        raise InsufficientLiquidity(param.key, state.liquidity, liquidity)
    return CurveDelta(
        liquidity=liquidity,
        long=reserve_share(long_reserve, liquidity, state.liquidity, False),
        short=reserve_share(short_reserve, liquidity, state.liquidity, False),
    )


def apply_mint(state: PoolState, delta: CurveDelta, long0: int, long1: int, strike: int) -> PoolState:
    state = replace(
        state,
        liquidity=checked_add(state.liquidity, delta.liquidity, bits=160),
        long0_balance=checked_add(state.long0_balance, long0),
        long1_balance=checked_add(state.long1_balance, long1),
        short_balance=checked_add(state.short_balance, delta.short),
    )
    return reprice(state, strike)


def apply_burn(state: PoolState, delta: CurveDelta, long0: int, long1: int, strike: int) -> PoolState:
    state = replace(
        state,
        liquidity=checked_sub(state.liquidity, delta.liquidity),
        long0_balance=checked_sub(state.long0_balance, long0),
        long1_balance=checked_sub(state.long1_balance, long1),
        short_balance=checked_sub(state.short_balance, delta.short),
    )
    return reprice(state, strike)


# -- Leverage / deleverage ----------------------------------------------------

def leverage_quote(state: PoolState, param: PoolLeverageParam) -> TradeQuote:
    """Short joins the reserve at the current rate, long leaves; the fee is taken from the short."""
    long_reserve, short_reserve = _trading_reserves(state, param.key)
    bps = state.transaction_fee_bps
    if param.mode is PoolLeverageMode.GIVEN_SHORT:
        short_fees = fees_removal(param.delta, bps)
        long_out = long_out_given_short_in(param.delta - short_fees, long_reserve, short_reserve)
        if long_out == 0:
            raise ZeroInput("long out")
        if long_out >= long_reserve:
            raise InsufficientLiquidity(param.key, long_reserve, long_out)
        return TradeQuote(long_out, param.delta, short_fees)
    if param.mode is PoolLeverageMode.GIVEN_LONG:
        if param.delta >= long_reserve:
            raise InsufficientLiquidity(param.key, long_reserve, param.delta)
        short_net = short_in_given_long_out(param.delta, long_reserve, short_reserve)
        short_fees = fees_additional(short_net, bps)
        return TradeQuote(param.delta, short_net + short_fees, short_fees)
    raise InvalidMode(param.mode, "pool leverage")


def deleverage_quote(state: PoolState, param: PoolDeleverageParam) -> TradeQuote:
    """Long joins the reserve, short leaves; the exact inverse of a leverage."""
    long_reserve, short_reserve = _trading_reserves(state, param.key)
    bps = state.transaction_fee_bps
    if param.mode is PoolDeleverageMode.GIVEN_LONG:
        short_gross = short_out_given_long_in(param.delta, long_reserve, short_reserve)
        if short_gross == 0:
            raise ZeroInput("short out")
        return TradeQuote(param.delta, short_gross, fees_removal(short_gross, bps))
    if param.mode is PoolDeleverageMode.GIVEN_SHORT:
        short_gross = param.delta + fees_additional(param.delta, bps)
        if 2 * short_gross >= short_reserve:
            raise InsufficientLiquidity(param.key, short_reserve, short_gross)
        long_in = long_in_given_short_out(short_gross, long_reserve, short_reserve)
        return TradeQuote(long_in, short_gross, short_gross - param.delta)
    raise InvalidMode(param.mode, "pool deleverage")


def apply_leverage(state: PoolState, quote: TradeQuote, long0: int, long1: int, strike: int) -> PoolState:
    state = replace(
        state,
        long0_balance=checked_sub(state.long0_balance, long0),
        long1_balance=checked_sub(state.long1_balance, long1),
        short_balance=checked_add(state.short_balance, quote.short_net),
    )
    return charge_fee(reprice(state, strike), "short", quote.short_fees)


def apply_deleverage(state: PoolState, quote: TradeQuote, long0: int, long1: int, strike: int) -> PoolState:
    state = replace(
        state,
        long0_balance=checked_add(state.long0_balance, long0),
        long1_balance=checked_add(state.long1_balance, long1),
        short_balance=checked_sub(state.short_balance, quote.short_gross),
    )
    return charge_fee(reprice(state, strike), "short", quote.short_fees)


# -- Rebalance ----------------------------------------------------------------

def rebalance_quote(state: PoolState, param: PoolRebalanceParam, strike: int) -> RebalanceQuote:
    """
    Exchange at the strike with the fee charged on the outgoing long.

    long0 -> long1: `long0` enters, `long1` (net) leaves.
    long1 -> long0: `long1` enters, `long0` (net) leaves.
    """
    bps = state.transaction_fee_bps
    if param.is_long0_to_long1:
        if param.mode is PoolRebalanceMode.GIVEN_LONG0:
            long0 = param.delta
            gross = convert(long0, strike, True, False)
            fees = fees_removal(gross, bps)
            long1 = gross - fees
        elif param.mode is PoolRebalanceMode.GIVEN_LONG1:
            long1 = param.delta
            fees = fees_additional(long1, bps)
            gross = long1 + fees
            long0 = convert(gross, strike, False, True)
        else:
            raise InvalidMode(param.mode, "pool rebalance")
        if gross > state.long1_balance:
            raise InsufficientLiquidity(param.key, state.long1_balance, gross)
    else:
        if param.mode is PoolRebalanceMode.GIVEN_LONG1:
            long1 = param.delta
            gross = convert(long1, strike, False, False)
            fees = fees_removal(gross, bps)
            long0 = gross - fees
        elif param.mode is PoolRebalanceMode.GIVEN_LONG0:
            long0 = param.delta
            fees = fees_additional(long0, bps)
            gross = long0 + fees
            long1 = convert(gross, strike, True, True)
        else:
            raise InvalidMode(param.mode, "pool rebalance")
        if gross > state.long0_balance:
            raise InsufficientLiquidity(param.key, state.long0_balance, gross)
    if gross == 0:
        raise ZeroInput("rebalance amount")
    return RebalanceQuote(long0=long0, long1=long1, out_gross=gross, fees=fees)


def apply_rebalance(state: PoolState, quote: RebalanceQuote, is_long0_to_long1: bool, strike: int) -> PoolState:
    if is_long0_to_long1:
        state = replace(
            state,
            long0_balance=checked_add(state.long0_balance, quote.long0),
            long1_balance=checked_sub(state.long1_balance, quote.out_gross),
        )
        return charge_fee(reprice(state, strike), "long1", quote.fees)
    state = replace(
        state,
        long0_balance=checked_sub(state.long0_balance, quote.out_gross),
        long1_balance=checked_add(state.long1_balance, quote.long1),
    )
    return charge_fee(reprice(state, strike), "long0", quote.fees)
