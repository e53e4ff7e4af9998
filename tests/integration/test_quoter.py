from __future__ import annotations

import pytest

from optionpool.core.curve import Q96
from optionpool.core.errors import NotYetMatured
from optionpool.core.option import (
    OptionCollectMode,
    OptionCollectParam,
    OptionLedger,
    OptionMintMode,
    OptionMintParam,
    OptionState,
)
from optionpool.core.pool import (
    PoolLeverageMode,
    PoolLeverageParam,
    PoolMintMode,
    PoolMintParam,
)
from optionpool.core.settlement import long0_first
from optionpool.core.strike import STRIKE_ONE
from optionpool.integration import Quoter, System, build_system
from optionpool.state import Environment, MarketKey, PositionType

KEY = MarketKey("tokA", "tokB", STRIKE_ONE, 100)


def _pay_tokens(system: System):
    def hook(ctx, data: bytes) -> None:
        system.env.tokens.transfer("tokA", "alice", ctx.recipient, ctx.token0_owed)
        system.env.tokens.transfer("tokB", "alice", ctx.recipient, ctx.token1_owed)

    return hook


def _deliver_positions(system: System):
    def hook(ctx, data: bytes) -> None:
        for position, owed in (
            (PositionType.LONG0, ctx.long0_owed),
            (PositionType.LONG1, ctx.long1_owed),
            (PositionType.SHORT, ctx.short_owed),
        ):
            system.env.positions.transfer(ctx.market, position, "alice", ctx.recipient, owed)

    return hook


def _mint_param(amount: int) -> OptionMintParam:
    return OptionMintParam(
        KEY, "alice", "alice", "alice", OptionMintMode.GIVEN_TOKENS_AND_LONGS, amount, amount,
    )


@pytest.fixture
def system() -> System:
    system = build_system()
    system.env.tokens.mint("alice", "tokA", 10**9)
    system.env.tokens.mint("alice", "tokB", 10**9)
    return system


def _with_pool(system: System) -> System:
    system.ledger.mint(_mint_param(10**6), "alice", _pay_tokens(system))
    system.pool.initialize(KEY, Q96)
    system.pool.mint(
        PoolMintParam(KEY, "alice", PoolMintMode.GIVEN_LIQUIDITY, 1000),
        "alice", long0_first, _deliver_positions(system),
    )
    return system


class TestOptionQuotes:
    def test_mint_quote_matches_live_call(self, system: System) -> None:
        quoted = system.quoter.option_mint(_mint_param(500))
        assert (quoted.token0_amount, quoted.token1_amount, quoted.short_amount) == (500, 500, 1000)
        # nothing happened live
        assert system.ledger.option_state(KEY) == OptionState()
        assert system.ledger.number_of_options() == 0
        assert system.env.tokens.balance_of(system.ledger.address, "tokA") == 0

        live = system.ledger.mint(_mint_param(500), "alice", _pay_tokens(system))
        assert live == quoted

    def test_collect_quote_with_duration_forward(self, system: System) -> None:
        system.ledger.mint(_mint_param(500), "alice", _pay_tokens(system))
        param = OptionCollectParam(KEY, "alice", "alice", OptionCollectMode.GIVEN_SHORT, 100)
        with pytest.raises(NotYetMatured):
            system.quoter.option_collect(param, "alice")
        quoted = system.quoter.option_collect(param, "alice", duration_forward=100)
        assert (quoted.token0_amount, quoted.token1_amount, quoted.short_amount) == (50, 50, 100)
        assert system.env.now == 0
        assert system.ledger.position_of(KEY, "alice", PositionType.SHORT) == 1000


class TestPoolQuotes:
    def test_leverage_quote_matches_live_call(self, system: System) -> None:
        _with_pool(system)
        before = system.pool.pool_state(KEY)
        param = PoolLeverageParam(KEY, "alice", "alice", PoolLeverageMode.GIVEN_SHORT, 100)
        quoted = system.quoter.pool_leverage(param)
        assert system.pool.pool_state(KEY) == before
        assert system.quoter.pool_leverage(param) == quoted
        live = system.pool.leverage(param, "alice", long0_first, _deliver_positions(system))
        assert live == quoted

    def test_mint_quote_without_holdings(self, system: System) -> None:
        _with_pool(system)
        param = PoolMintParam(KEY, "bob", PoolMintMode.GIVEN_LIQUIDITY, 500)
        quoted = system.quoter.pool_mint(param)
        assert (quoted.liquidity, quoted.long0_amount, quoted.short_amount) == (500, 500, 500)
        assert system.pool.liquidity_of(KEY, "bob") == 0

    def test_fees_earned_forward(self, system: System) -> None:
        _with_pool(system)
        assert system.pool.fees_earned_of(KEY, "alice").short_returned == 0
        assert system.quoter.fees_earned_of(KEY, "alice", duration_forward=10).short_returned == 0
        ahead = system.quoter.fees_earned_of(KEY, "alice", duration_forward=100)
        assert ahead.short_returned == 1000
        assert system.env.now == 0
        assert system.pool.pool_state(KEY).short_balance == 1000


class TestQuoterWiring:
    def test_pool_quotes_need_a_pool(self) -> None:
        env = Environment()
        quoter = Quoter(OptionLedger(env))
        with pytest.raises(RuntimeError):
            quoter.pool_mint(PoolMintParam(KEY, "bob", PoolMintMode.GIVEN_LIQUIDITY, 1))

    def test_engines_must_share_environment(self, system: System) -> None:
        with pytest.raises(ValueError):
            Quoter(OptionLedger(Environment()), system.pool)

    def test_option_quotes_without_a_pool(self) -> None:
        env = Environment()
        quoter = Quoter(OptionLedger(env))
        quoted = quoter.option_mint(_mint_param(500))
        assert (quoted.token0_amount, quoted.token1_amount, quoted.short_amount) == (500, 500, 1000)
        assert env.positions.get(KEY, PositionType.SHORT, "alice") == 0
