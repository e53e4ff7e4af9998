"""Option ledger: Long0/Long1/Short accounting per (strike, maturity) market.

Every mutating call follows the same order:

1. parameter domain checks (in the param dataclass),
2. temporal guard against `env.now`,
3. amount computation (pure, `updates.py`),
4. effects: totals, position balances, outgoing token transfers,
5. invariant check on the post-state,
6. settlement: the caller's hook runs and the ledger's token balances are
   re-measured (`settlement.py`).

The call body runs inside `Environment.atomic()`, so any failure, including
one detected after the hook returns, leaves no trace.
"""

from __future__ import annotations

import logging
from typing import Optional

from ...state.journal import Environment, transactional
from ...state.keys import Address, MarketKey, PositionType
from ..errors import InvariantViolation, ZeroAddress, ZeroInput
from ..settlement import Obligation, SettlementHook, SettlementRequest
from .guards import require_active, require_matured
from .invariants import check_all
from .types import (
    OptionBurnParam,
    OptionBurnResult,
    OptionCallbackContext,
    OptionCollectParam,
    OptionCollectResult,
    OptionMintParam,
    OptionMintResult,
    OptionState,
    OptionSwapParam,
    OptionSwapResult,
)
from .updates import (
    IssueAmounts,
    apply_issue,
    apply_redeem,
    apply_swap,
    burn_amounts,
    collect_amounts,
    mint_amounts,
    swap_amounts,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTION_ADDRESS: Address = "optionpool:option"


class OptionLedger:
    """Issues and redeems option positions against token collateral held at `address`."""

    def __init__(self, env: Environment, address: Address = DEFAULT_OPTION_ADDRESS) -> None:
        if not isinstance(address, str) or not address:
            raise ZeroAddress("address")
        self.env = env
        self.address = address

    # -- Views ----------------------------------------------------------------

    def option_state(self, key: MarketKey) -> OptionState:
        return self.env.option_states.get(key, OptionState())

    def total_position(self, key: MarketKey, position: PositionType) -> int:
        return self.option_state(key).total(position)

    def position_of(self, key: MarketKey, owner: Address, position: PositionType) -> int:
        return self.env.positions.get(key, position, owner)

    def number_of_options(self) -> int:
        return len(self.env.option_markets)

    def get_by_index(self, index: int) -> MarketKey:
        """Market registered at `index` (registration order, first mint first)."""
        return self.env.option_markets[index]

    # -- Internals ------------------------------------------------------------

    def _commit(self, key: MarketKey, state: OptionState) -> None:
        violated = check_all(state, key.strike)
        if violated:
            raise InvariantViolation(key, violated)
        if key not in self.env.option_states:
            self.env.option_markets.append(key)
        self.env.option_states[key] = state

    def _pay(self, token: str, recipient: Address, amount: int) -> None:
        self.env.tokens.transfer(token, self.address, recipient, amount)

    def _token_obligation(self, token: str, amount: int) -> Obligation:
        return Obligation(
            asset=token,
            amount=amount,
            measure=lambda: self.env.tokens.balance_of(self.address, token),
        )

    def _context(
        self,
        key: MarketKey,
        operation: str,
        amounts: IssueAmounts,
        token0_owed: int = 0,
        token1_owed: int = 0,
    ) -> OptionCallbackContext:
        return OptionCallbackContext(
            market=key,
            operation=operation,
            long0_amount=amounts.long0,
            long1_amount=amounts.long1,
            short_amount=amounts.short,
            token0_owed=token0_owed,
            token1_owed=token1_owed,
            recipient=self.address,
        )

    # -- Mutations ------------------------------------------------------------

    @transactional
    def mint(
        self,
        param: OptionMintParam,
        caller: Address,
        callback: Optional[SettlementHook],
    ) -> OptionMintResult:
        """Issue Long0/Long1/Short; the hook must deliver the matching tokens."""
        key = param.key
        require_active(key, self.env.now)
        amounts = mint_amounts(param)

        self._commit(key, apply_issue(self.option_state(key), amounts))
        positions = self.env.positions
        positions.credit(key, PositionType.LONG0, param.long0_to, amounts.long0)
        positions.credit(key, PositionType.LONG1, param.long1_to, amounts.long1)
        positions.credit(key, PositionType.SHORT, param.short_to, amounts.short)

        request = SettlementRequest("option mint", param.data)
        request.settle(
            callback,
            self._context(key, "mint", amounts, amounts.long0, amounts.long1),
            [
                self._token_obligation(key.token0, amounts.long0),
                self._token_obligation(key.token1, amounts.long1),
            ],
        )
        logger.debug(
            "option mint %s by %s: long0=%d long1=%d short=%d",
            key, caller, amounts.long0, amounts.long1, amounts.short,
        )
        return OptionMintResult(amounts.long0, amounts.long1, amounts.short)

    @transactional
    def burn(
        self,
        param: OptionBurnParam,
        caller: Address,
        callback: Optional[SettlementHook] = None,
    ) -> OptionBurnResult:
        """Destroy the caller's Long0/Long1/Short and release the tokens."""
        key = param.key
        require_active(key, self.env.now)
        amounts = burn_amounts(param)

        positions = self.env.positions
        positions.debit(key, PositionType.LONG0, caller, amounts.long0)
        positions.debit(key, PositionType.LONG1, caller, amounts.long1)
        positions.debit(key, PositionType.SHORT, caller, amounts.short)
        self._commit(key, apply_redeem(self.option_state(key), amounts))
        self._pay(key.token0, param.token0_to, amounts.long0)
        self._pay(key.token1, param.token1_to, amounts.long1)

        if callback is not None:
            SettlementRequest("option burn", param.data).settle(
                callback, self._context(key, "burn", amounts), [],
            )
        logger.debug(
            "option burn %s by %s: token0=%d token1=%d short=%d",
            key, caller, amounts.long0, amounts.long1, amounts.short,
        )
        return OptionBurnResult(amounts.long0, amounts.long1, amounts.short)

    @transactional
    def swap(
        self,
        param: OptionSwapParam,
        caller: Address,
        callback: Optional[SettlementHook],
    ) -> OptionSwapResult:
        """Exchange Long0 for Long1 (or back) at the strike; Short is untouched."""
        key = param.key
        require_active(key, self.env.now)
        amounts = swap_amounts(param)

        positions = self.env.positions
        if param.is_long0_to_long1:
            positions.debit(key, PositionType.LONG0, caller, amounts.token0)
            positions.credit(key, PositionType.LONG1, param.long_to, amounts.token1)
            owed0, owed1 = 0, amounts.token1
        else:
            positions.debit(key, PositionType.LONG1, caller, amounts.token1)
            positions.credit(key, PositionType.LONG0, param.long_to, amounts.token0)
            owed0, owed1 = amounts.token0, 0
        self._commit(key, apply_swap(self.option_state(key), amounts, param.is_long0_to_long1))
        if param.is_long0_to_long1:
            self._pay(key.token0, param.token_to, amounts.token0)
        else:
            self._pay(key.token1, param.token_to, amounts.token1)

        request = SettlementRequest("option swap", param.data)
        request.settle(
            callback,
            self._context(key, "swap", IssueAmounts(amounts.token0, amounts.token1, 0), owed0, owed1),
            [self._token_obligation(key.token0, owed0), self._token_obligation(key.token1, owed1)],
        )
        logger.debug(
            "option swap %s by %s: long0_to_long1=%s token0=%d token1=%d",
            key, caller, param.is_long0_to_long1, amounts.token0, amounts.token1,
        )
        return OptionSwapResult(amounts.token0, amounts.token1)

    @transactional
    def collect(
        self,
        param: OptionCollectParam,
        caller: Address,
        callback: Optional[SettlementHook] = None,
    ) -> OptionCollectResult:
        """Redeem Short after maturity for a pro-rata share of the collateral."""
        key = param.key
        require_matured(key, self.env.now)
        state = self.option_state(key)
        amounts = collect_amounts(state, param)

        self.env.positions.debit(key, PositionType.SHORT, caller, amounts.short)
        self._commit(key, apply_redeem(state, amounts))
        self._pay(key.token0, param.token0_to, amounts.long0)
        self._pay(key.token1, param.token1_to, amounts.long1)

        if callback is not None:
            SettlementRequest("option collect", param.data).settle(
                callback, self._context(key, "collect", amounts), [],
            )
        logger.debug(
            "option collect %s by %s: token0=%d token1=%d short=%d",
            key, caller, amounts.long0, amounts.long1, amounts.short,
        )
        return OptionCollectResult(amounts.long0, amounts.long1, amounts.short)

    @transactional
    def transfer_position(
        self,
        key: MarketKey,
        caller: Address,
        to: Address,
        position: PositionType,
        amount: int,
    ) -> None:
        if not isinstance(to, str) or not to:
            raise ZeroAddress("to")
        if not isinstance(position, PositionType):
            raise TypeError(f"position must be a PositionType, got {position!r}")
        if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0:
            raise ValueError(f"amount must be a non-negative int: {amount!r}")
        if amount == 0:
            raise ZeroInput("amount")
        self.env.positions.transfer(key, position, caller, to, amount)
