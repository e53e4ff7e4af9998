"""
Read-only previews of ledger and pool calls.

A quote forks the environment (every table copied), moves the fork's clock
forward by `duration_forward` seconds, binds fresh engines to the fork and runs
the real operation there. Settlement obligations are met on the fork by
issuing whatever tokens or positions the hook is asked for. The fork is
dropped afterwards, so live state never changes and a quote goes through
exactly the code path of the call it previews, failures included.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.option.ledger import OptionLedger
from ..core.option.types import (
    OptionBurnParam,
    OptionBurnResult,
    OptionCallbackContext,
    OptionCollectParam,
    OptionCollectResult,
    OptionMintParam,
    OptionMintResult,
    OptionSwapParam,
    OptionSwapResult,
)
from ..core.pool.engine import PoolEngine
from ..core.pool.types import (
    FeesEarned,
    PoolBurnParam,
    PoolBurnResult,
    PoolCallbackContext,
    PoolDeleverageParam,
    PoolDeleverageResult,
    PoolLeverageParam,
    PoolLeverageResult,
    PoolMintParam,
    PoolMintResult,
    PoolRebalanceParam,
    PoolRebalanceResult,
)
from ..core.settlement import ChoiceFn, long0_first
from ..state.journal import Environment
from ..state.keys import Address, MarketKey, PositionType

logger = logging.getLogger(__name__)

QUOTER_ADDRESS: Address = "optionpool:quoter"


def _fund_tokens(env: Environment):
    def hook(ctx: OptionCallbackContext, data: bytes) -> None:
        env.tokens.mint(ctx.recipient, ctx.market.token0, ctx.token0_owed)
        env.tokens.mint(ctx.recipient, ctx.market.token1, ctx.token1_owed)

    return hook


def _fund_positions(env: Environment):
    def hook(ctx: PoolCallbackContext, data: bytes) -> None:
        env.positions.credit(ctx.market, PositionType.LONG0, ctx.recipient, ctx.long0_owed)
        env.positions.credit(ctx.market, PositionType.LONG1, ctx.recipient, ctx.long1_owed)
        env.positions.credit(ctx.market, PositionType.SHORT, ctx.recipient, ctx.short_owed)

    return hook


class Quoter:
    """Same signatures as the mutating calls plus `duration_forward`."""

    def __init__(self, ledger: OptionLedger, pool: Optional[PoolEngine] = None) -> None:
        if pool is not None and pool.env is not ledger.env:
            raise ValueError("ledger and pool must share an environment")
        self.ledger = ledger
        self.pool = pool

    @property
    def env(self) -> Environment:
        return self.ledger.env

    def _fork(self, duration_forward: int) -> OptionLedger:
        env = self.env.fork()
        env.advance(duration_forward)
        logger.debug("quote fork at now=%d (+%d)", env.now, duration_forward)
        return OptionLedger(env, self.ledger.address)

    def _fork_pool(self, duration_forward: int) -> PoolEngine:
        if self.pool is None:
            raise RuntimeError("quoter has no pool engine")
        ledger = self._fork(duration_forward)
        return PoolEngine(
            ledger.env,
            ledger,
            address=self.pool.address,
            protocol_owner=self.pool.protocol_owner,
            default_fees=self.pool.default_fees,
        )

    # -- Option ledger --------------------------------------------------------

    def option_mint(self, param: OptionMintParam, duration_forward: int = 0) -> OptionMintResult:
        ledger = self._fork(duration_forward)
        return ledger.mint(param, QUOTER_ADDRESS, _fund_tokens(ledger.env))

    def option_burn(
        self, param: OptionBurnParam, caller: Address, duration_forward: int = 0,
    ) -> OptionBurnResult:
        ledger = self._fork(duration_forward)
        return ledger.burn(param, caller)

    def option_swap(
        self, param: OptionSwapParam, caller: Address, duration_forward: int = 0,
    ) -> OptionSwapResult:
        ledger = self._fork(duration_forward)
        return ledger.swap(param, caller, _fund_tokens(ledger.env))

    def option_collect(
        self, param: OptionCollectParam, caller: Address, duration_forward: int = 0,
    ) -> OptionCollectResult:
        ledger = self._fork(duration_forward)
        return ledger.collect(param, caller)

    # -- Pool -----------------------------------------------------------------

    def pool_mint(
        self,
        param: PoolMintParam,
        choice: ChoiceFn = long0_first,
        duration_forward: int = 0,
    ) -> PoolMintResult:
        pool = self._fork_pool(duration_forward)
        return pool.mint(param, QUOTER_ADDRESS, choice, _fund_positions(pool.env))

    def pool_burn(
        self,
        param: PoolBurnParam,
        caller: Address,
        choice: ChoiceFn = long0_first,
        duration_forward: int = 0,
    ) -> PoolBurnResult:
        pool = self._fork_pool(duration_forward)
        return pool.burn(param, caller, choice)

    def pool_leverage(
        self,
        param: PoolLeverageParam,
        choice: ChoiceFn = long0_first,
        duration_forward: int = 0,
    ) -> PoolLeverageResult:
        pool = self._fork_pool(duration_forward)
        return pool.leverage(param, QUOTER_ADDRESS, choice, _fund_positions(pool.env))

    def pool_deleverage(
        self,
        param: PoolDeleverageParam,
        choice: ChoiceFn = long0_first,
        duration_forward: int = 0,
    ) -> PoolDeleverageResult:
        pool = self._fork_pool(duration_forward)
        return pool.deleverage(param, QUOTER_ADDRESS, choice, _fund_positions(pool.env))

    def pool_rebalance(self, param: PoolRebalanceParam, duration_forward: int = 0) -> PoolRebalanceResult:
        pool = self._fork_pool(duration_forward)
        return pool.rebalance(param, QUOTER_ADDRESS, _fund_positions(pool.env))

    def fees_earned_of(self, key: MarketKey, owner: Address, duration_forward: int = 0) -> FeesEarned:
        """What `owner` could collect at `now + duration_forward` if nothing else happens."""
        pool = self._fork_pool(duration_forward)
        return pool.fees_earned_of(key, owner)
