"""Pool engine: square-root-interest-rate liquidity markets over option positions.

The pool trades Long0/Long1/Short positions of the option ledger. It holds
them under its own `address`; withdrawals are position transfers out of that
address and deposits are obligations the caller's hook must meet by moving
positions in.

Each mutating call:

1. parameter domain checks (in the param dataclass),
2. temporal / mode guards against `env.now`,
3. `updates.sync` up to `now` (releases the short reserve at maturity),
4. pure amount computation (`updates.py`) and the choice callback,
5. effects: pool state (invariant-checked), provider positions, transfers out,
6. settlement: the caller's hook runs and the pool's positions are re-measured.

The call body runs inside `Environment.atomic()`.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from ...state.journal import Environment, transactional
from ...state.keys import Address, MarketKey, PositionType
from ..errors import (
    InsufficientLiquidity,
    InvariantViolation,
    NotOwner,
    PoolAlreadyInitialized,
    PoolNotInitialized,
    ZeroAddress,
    ZeroInput,
)
from ..fees import FeeParams
from ..option.ledger import OptionLedger
from ..settlement import ChoiceContext, ChoiceFn, Obligation, SettlementHook, SettlementRequest
from .guards import guard_active, guard_sqrt_rate, require_active, require_burn_mode, require_liquidity
from .invariants import check_all
from .types import (
    FeesEarned,
    LiquidityPosition,
    PoolAddFeesParam,
    PoolBurnParam,
    PoolBurnResult,
    PoolCallbackContext,
    PoolCollectParam,
    PoolCollectResult,
    PoolDeleverageParam,
    PoolDeleverageResult,
    PoolLeverageParam,
    PoolLeverageResult,
    PoolMintParam,
    PoolMintResult,
    PoolRebalanceParam,
    PoolRebalanceResult,
    PoolState,
)
from .updates import (
    accrue,
    add_fee_growth,
    apply_burn,
    apply_deleverage,
    apply_leverage,
    apply_mint,
    apply_rebalance,
    burn_delta,
    deleverage_quote,
    leverage_quote,
    mint_delta,
    rebalance_quote,
    sync,
)

logger = logging.getLogger(__name__)

DEFAULT_POOL_ADDRESS: Address = "optionpool:pool"
DEFAULT_PROTOCOL_OWNER: Address = "optionpool:owner"


class PoolEngine:
    """One engine serves every market; state lives in `env.pool_states`."""

    def __init__(
        self,
        env: Environment,
        ledger: OptionLedger,
        address: Address = DEFAULT_POOL_ADDRESS,
        protocol_owner: Address = DEFAULT_PROTOCOL_OWNER,
        default_fees: FeeParams = FeeParams(),
    ) -> None:
        if not isinstance(address, str) or not address:
            raise ZeroAddress("address")
        if not isinstance(protocol_owner, str) or not protocol_owner:
            raise ZeroAddress("protocol_owner")
        if ledger.env is not env:
            raise ValueError("ledger must be bound to the same environment")
        self.env = env
        self.ledger = ledger
        self.address = address
        self.protocol_owner = protocol_owner
        self.default_fees = default_fees

    # -- State access ---------------------------------------------------------

    def is_initialized(self, key: MarketKey) -> bool:
        return key in self.env.pool_states

    def pool_state(self, key: MarketKey) -> PoolState:
        """Stored state, as of the last mutating call on the market."""
        try:
            return self.env.pool_states[key]
        except KeyError:
            raise PoolNotInitialized(key) from None

    def _synced(self, key: MarketKey) -> PoolState:
        return sync(self.pool_state(key), self.env.now, key.maturity)

    def _position(self, key: MarketKey, owner: Address) -> LiquidityPosition:
        return self.env.liquidity_positions.get((key, owner), LiquidityPosition())

    def _store_position(self, key: MarketKey, owner: Address, position: LiquidityPosition) -> None:
        if position.is_empty:
            self.env.liquidity_positions.pop((key, owner), None)
        else:
            self.env.liquidity_positions[(key, owner)] = position

    def _commit(self, key: MarketKey, pre: PoolState, post: PoolState) -> None:
        violated = check_all(pre, post, key.strike)
        if violated:
            raise InvariantViolation(key, violated)
        self.env.pool_states[key] = post

    def _send(self, key: MarketKey, position: PositionType, to: Address, amount: int) -> None:
        if amount:
            self.ledger.transfer_position(key, self.address, to, position, amount)

    def _obligation(self, key: MarketKey, position: PositionType, amount: int) -> Obligation:
        return Obligation(
            asset=position,
            amount=amount,
            measure=lambda: self.env.positions.get(key, position, self.address),
        )

    def _context(self, key: MarketKey, operation: str, **amounts: int) -> PoolCallbackContext:
        fields = dict(
            long0_owed=0, long1_owed=0, short_owed=0,
            long0_out=0, long1_out=0, short_out=0,
        )
        fields.update(amounts)
        return PoolCallbackContext(market=key, operation=operation, recipient=self.address, **fields)

    # -- Views ----------------------------------------------------------------

    def sqrt_interest_rate(self, key: MarketKey) -> int:
        return self.pool_state(key).sqrt_interest_rate

    def total_liquidity(self, key: MarketKey) -> int:
        return self.pool_state(key).liquidity

    def liquidity_of(self, key: MarketKey, owner: Address) -> int:
        self.pool_state(key)
        return self._position(key, owner).liquidity

    def fee_growth(self, key: MarketKey) -> tuple[int, int, int]:
        s = self.pool_state(key)
        return (s.long0_fee_growth, s.long1_fee_growth, s.short_fee_growth)

    def short_returned_growth(self, key: MarketKey) -> int:
        """Accumulator value as of `env.now`."""
        return self._synced(key).short_returned_growth

    def fees_earned_of(self, key: MarketKey, owner: Address) -> FeesEarned:
        """Fees and short returned owed to `owner` as of `env.now`."""
        p = accrue(self._position(key, owner), self._synced(key))
        return FeesEarned(p.long0_fees, p.long1_fees, p.short_fees, p.short_returned)

    def protocol_fees_earned(self, key: MarketKey) -> tuple[int, int, int]:
        s = self.pool_state(key)
        return (s.long0_protocol_fees, s.long1_protocol_fees, s.short_protocol_fees)

    def total_long_balance(self, key: MarketKey) -> tuple[int, int]:
        s = self.pool_state(key)
        return (s.long0_balance, s.long1_balance)

    def total_positions(self, key: MarketKey) -> tuple[int, int, int]:
        """Long0/Long1/Short positions the pool holds in the ledger (reserves and fees)."""
        self.pool_state(key)
        get = self.env.positions.get
        return (
            get(key, PositionType.LONG0, self.address),
            get(key, PositionType.LONG1, self.address),
            get(key, PositionType.SHORT, self.address),
        )

    # -- Lifecycle ------------------------------------------------------------

    @transactional
    def initialize(
        self,
        key: MarketKey,
        sqrt_interest_rate: int,
        fees: Optional[FeeParams] = None,
    ) -> PoolState:
        if not guard_sqrt_rate(sqrt_interest_rate):
            if sqrt_interest_rate == 0:
                raise ZeroInput("sqrt_interest_rate")
            raise ValueError(f"sqrt_interest_rate must be in (0, 2^160): {sqrt_interest_rate!r}")
        require_active(key, self.env.now)
        if self.is_initialized(key):
            raise PoolAlreadyInitialized(key)
        fees = fees if fees is not None else self.default_fees
        state = PoolState(
            sqrt_interest_rate=sqrt_interest_rate,
            last_timestamp=self.env.now,
            transaction_fee_bps=fees.transaction_fee_bps,
            protocol_fee_bps=fees.protocol_fee_bps,
        )
        self._commit(key, state, state)
        logger.debug("pool initialized %s: sqrt_rate=%d fees=%s", key, sqrt_interest_rate, fees)
        return state

    # -- Liquidity ------------------------------------------------------------

    @transactional
    def mint(
        self,
        param: PoolMintParam,
        caller: Address,
        choice: Optional[ChoiceFn],
        callback: Optional[SettlementHook],
    ) -> PoolMintResult:
        """Add liquidity; the hook must deliver the long split and the short."""
        key = param.key
        require_active(key, self.env.now)
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        delta = mint_delta(state, param, key.strike)

        request = SettlementRequest("pool mint", param.data)
        long0, long1 = request.resolve_choice(
            choice,
            ChoiceContext(key, "mint", key.strike, delta.long, delta.short, deposit=True),
        )

        position = accrue(self._position(key, param.to), state)
        position = replace(position, liquidity=position.liquidity + delta.liquidity)
        self._commit(key, pre, apply_mint(state, delta, long0, long1, key.strike))
        self._store_position(key, param.to, position)

        request.settle(
            callback,
            self._context(key, "mint", long0_owed=long0, long1_owed=long1, short_owed=delta.short),
            [
                self._obligation(key, PositionType.LONG0, long0),
                self._obligation(key, PositionType.LONG1, long1),
                self._obligation(key, PositionType.SHORT, delta.short),
            ],
        )
        logger.debug(
            "pool mint %s by %s: liquidity=%d long0=%d long1=%d short=%d",
            key, caller, delta.liquidity, long0, long1, delta.short,
        )
        return PoolMintResult(delta.liquidity, long0, long1, delta.short)

    @transactional
    def burn(
        self,
        param: PoolBurnParam,
        caller: Address,
        choice: Optional[ChoiceFn] = None,
    ) -> PoolBurnResult:
        """
        Remove the caller's liquidity.

        Before maturity the proportional long (split by `choice`) and short are
        withdrawn. After maturity the short reserve has been released: the
        caller receives the fees and short returned accrued to its position
        instead.
        """
        key = param.key
        now = self.env.now
        require_burn_mode(param, now)
        pre = self.pool_state(key)
        state = sync(pre, now, key.maturity)
        position = accrue(self._position(key, caller), state)

        if not guard_active(key, now):
            return self._burn_matured(param, caller, pre, state, position)

        delta = burn_delta(state, param, key.strike)
        if delta.liquidity > position.liquidity:
            raise InsufficientLiquidity(key, position.liquidity, delta.liquidity)
        request = SettlementRequest("pool burn", param.data)
        long0, long1 = request.resolve_choice(
            choice,
            ChoiceContext(
                key, "burn", key.strike, delta.long, delta.short, deposit=False,
                long0_balance=state.long0_balance, long1_balance=state.long1_balance,
            ),
        )

        self._commit(key, pre, apply_burn(state, delta, long0, long1, key.strike))
        self._store_position(key, caller, replace(position, liquidity=position.liquidity - delta.liquidity))
        self._send(key, PositionType.LONG0, param.long0_to, long0)
        self._send(key, PositionType.LONG1, param.long1_to, long1)
        self._send(key, PositionType.SHORT, param.short_to, delta.short)
        logger.debug(
            "pool burn %s by %s: liquidity=%d long0=%d long1=%d short=%d",
            key, caller, delta.liquidity, long0, long1, delta.short,
        )
        return PoolBurnResult(delta.liquidity, long0, long1, delta.short)

    def _burn_matured(
        self,
        param: PoolBurnParam,
        caller: Address,
        pre: PoolState,
        state: PoolState,
        position: LiquidityPosition,
    ) -> PoolBurnResult:
        key = param.key
        if param.delta > position.liquidity:
            raise InsufficientLiquidity(key, position.liquidity, param.delta)
        self._commit(key, pre, replace(state, liquidity=state.liquidity - param.delta))
        self._store_position(
            key,
            caller,
            replace(
                position,
                liquidity=position.liquidity - param.delta,
                long0_fees=0, long1_fees=0, short_fees=0, short_returned=0,
            ),
        )
        self._send(key, PositionType.LONG0, param.long0_to, position.long0_fees)
        self._send(key, PositionType.LONG1, param.long1_to, position.long1_fees)
        self._send(key, PositionType.SHORT, param.short_to, position.short_fees + position.short_returned)
        logger.debug(
            "pool burn %s by %s after maturity: liquidity=%d short_returned=%d",
            key, caller, param.delta, position.short_returned,
        )
        return PoolBurnResult(
            param.delta, 0, 0, 0,
            long0_fees=position.long0_fees,
            long1_fees=position.long1_fees,
            short_fees=position.short_fees,
            short_returned=position.short_returned,
        )

    @transactional
    def transfer_liquidity(self, key: MarketKey, caller: Address, to: Address, amount: int) -> None:
        """Move liquidity between providers; accrued fees stay with their owner."""
        if not isinstance(to, str) or not to:
            raise ZeroAddress("to")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"amount must be a non-negative int: {amount!r}")
        if amount == 0:
            raise ZeroInput("amount")
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        self._commit(key, pre, state)
        sender = accrue(self._position(key, caller), state)
        if sender.liquidity < amount:
            raise InsufficientLiquidity(key, sender.liquidity, amount)
        self._store_position(key, caller, replace(sender, liquidity=sender.liquidity - amount))
        receiver = accrue(self._position(key, to), state)
        self._store_position(key, to, replace(receiver, liquidity=receiver.liquidity + amount))

    # -- Trades ---------------------------------------------------------------

    @transactional
    def leverage(
        self,
        param: PoolLeverageParam,
        caller: Address,
        choice: Optional[ChoiceFn],
        callback: Optional[SettlementHook],
    ) -> PoolLeverageResult:
        """Short in, long out at the current rate; liquidity is unchanged and the rate rises."""
        key = param.key
        require_active(key, self.env.now)
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        require_liquidity(key, state)
        quote = leverage_quote(state, param)

        request = SettlementRequest("pool leverage", param.data)
        long0, long1 = request.resolve_choice(
            choice,
            ChoiceContext(
                key, "leverage", key.strike, quote.long, quote.short_gross, deposit=False,
                long0_balance=state.long0_balance, long1_balance=state.long1_balance,
            ),
        )

        self._commit(key, pre, apply_leverage(state, quote, long0, long1, key.strike))
        self._send(key, PositionType.LONG0, param.long0_to, long0)
        self._send(key, PositionType.LONG1, param.long1_to, long1)

        request.settle(
            callback,
            self._context(
                key, "leverage", short_owed=quote.short_gross, long0_out=long0, long1_out=long1,
            ),
            [self._obligation(key, PositionType.SHORT, quote.short_gross)],
        )
        logger.debug(
            "pool leverage %s by %s: short_in=%d long0=%d long1=%d fee=%d",
            key, caller, quote.short_gross, long0, long1, quote.short_fees,
        )
        return PoolLeverageResult(long0, long1, quote.short_gross, quote.short_fees)

    @transactional
    def deleverage(
        self,
        param: PoolDeleverageParam,
        caller: Address,
        choice: Optional[ChoiceFn],
        callback: Optional[SettlementHook],
    ) -> PoolDeleverageResult:
        """Long in, short out, undoing a leverage; liquidity is unchanged and the rate falls."""
        key = param.key
        require_active(key, self.env.now)
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        require_liquidity(key, state)
        quote = deleverage_quote(state, param)

        request = SettlementRequest("pool deleverage", param.data)
        long0, long1 = request.resolve_choice(
            choice,
            ChoiceContext(key, "deleverage", key.strike, quote.long, quote.short_net, deposit=True),
        )

        self._commit(key, pre, apply_deleverage(state, quote, long0, long1, key.strike))
        self._send(key, PositionType.SHORT, param.to, quote.short_net)

        request.settle(
            callback,
            self._context(
                key, "deleverage", long0_owed=long0, long1_owed=long1, short_out=quote.short_net,
            ),
            [
                self._obligation(key, PositionType.LONG0, long0),
                self._obligation(key, PositionType.LONG1, long1),
            ],
        )
        logger.debug(
            "pool deleverage %s by %s: long0=%d long1=%d short_out=%d fee=%d",
            key, caller, long0, long1, quote.short_net, quote.short_fees,
        )
        return PoolDeleverageResult(long0, long1, quote.short_net, quote.short_fees)

    @transactional
    def rebalance(
        self,
        param: PoolRebalanceParam,
        caller: Address,
        callback: Optional[SettlementHook],
    ) -> PoolRebalanceResult:
        """Swap Long0 and Long1 at the strike; Short and liquidity are untouched."""
        key = param.key
        require_active(key, self.env.now)
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        require_liquidity(key, state)
        quote = rebalance_quote(state, param, key.strike)

        self._commit(key, pre, apply_rebalance(state, quote, param.is_long0_to_long1, key.strike))
        request = SettlementRequest("pool rebalance", param.data)
        if param.is_long0_to_long1:
            self._send(key, PositionType.LONG1, param.to, quote.long1)
            context = self._context(key, "rebalance", long0_owed=quote.long0, long1_out=quote.long1)
            obligation = self._obligation(key, PositionType.LONG0, quote.long0)
        else:
            self._send(key, PositionType.LONG0, param.to, quote.long0)
            context = self._context(key, "rebalance", long1_owed=quote.long1, long0_out=quote.long0)
            obligation = self._obligation(key, PositionType.LONG1, quote.long1)
        request.settle(callback, context, [obligation])
        logger.debug(
            "pool rebalance %s by %s: long0_to_long1=%s long0=%d long1=%d fee=%d",
            key, caller, param.is_long0_to_long1, quote.long0, quote.long1, quote.fees,
        )
        return PoolRebalanceResult(quote.long0, quote.long1, quote.fees)

    # -- Fees -----------------------------------------------------------------

    @transactional
    def add_fees(
        self,
        param: PoolAddFeesParam,
        caller: Address,
        callback: Optional[SettlementHook],
    ) -> None:
        """Donate positions to the current liquidity providers."""
        key = param.key
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        require_liquidity(key, state)
        self._commit(key, pre, add_fee_growth(state, param.long0_fees, param.long1_fees, param.short_fees))
        SettlementRequest("pool add fees", param.data).settle(
            callback,
            self._context(
                key, "add_fees",
                long0_owed=param.long0_fees, long1_owed=param.long1_fees, short_owed=param.short_fees,
            ),
            [
                self._obligation(key, PositionType.LONG0, param.long0_fees),
                self._obligation(key, PositionType.LONG1, param.long1_fees),
                self._obligation(key, PositionType.SHORT, param.short_fees),
            ],
        )
        logger.debug(
            "pool add fees %s by %s: long0=%d long1=%d short=%d",
            key, caller, param.long0_fees, param.long1_fees, param.short_fees,
        )

    @transactional
    def collect_transaction_fees(self, param: PoolCollectParam, caller: Address) -> PoolCollectResult:
        """Pay out up to the requested amounts of the caller's accrued fees."""
        key = param.key
        pre = self.pool_state(key)
        state = sync(pre, self.env.now, key.maturity)
        self._commit(key, pre, state)
        position = accrue(self._position(key, caller), state)
        long0 = min(param.long0_requested, position.long0_fees)
        long1 = min(param.long1_requested, position.long1_fees)
        short = min(param.short_requested, position.short_fees)
        returned = min(param.short_returned_requested, position.short_returned)
        self._store_position(
            key,
            caller,
            replace(
                position,
                long0_fees=position.long0_fees - long0,
                long1_fees=position.long1_fees - long1,
                short_fees=position.short_fees - short,
                short_returned=position.short_returned - returned,
            ),
        )
        self._send(key, PositionType.LONG0, param.long0_to, long0)
        self._send(key, PositionType.LONG1, param.long1_to, long1)
        self._send(key, PositionType.SHORT, param.short_to, short + returned)
        logger.debug(
            "pool collect fees %s by %s: long0=%d long1=%d short=%d returned=%d",
            key, caller, long0, long1, short, returned,
        )
        return PoolCollectResult(long0, long1, short, returned)

    @transactional
    def collect_protocol_fees(self, param: PoolCollectParam, caller: Address) -> PoolCollectResult:
        if caller != self.protocol_owner:
            raise NotOwner(caller)
        key = param.key
        pre = self.pool_state(key)
        long0 = min(param.long0_requested, pre.long0_protocol_fees)
        long1 = min(param.long1_requested, pre.long1_protocol_fees)
        short = min(param.short_requested, pre.short_protocol_fees)
        post = replace(
            pre,
            long0_protocol_fees=pre.long0_protocol_fees - long0,
            long1_protocol_fees=pre.long1_protocol_fees - long1,
            short_protocol_fees=pre.short_protocol_fees - short,
        )
        self._commit(key, pre, post)
        self._send(key, PositionType.LONG0, param.long0_to, long0)
        self._send(key, PositionType.LONG1, param.long1_to, long1)
        self._send(key, PositionType.SHORT, param.short_to, short)
        logger.debug("pool collect protocol fees %s: long0=%d long1=%d short=%d", key, long0, long1, short)
        return PoolCollectResult(long0, long1, short)
