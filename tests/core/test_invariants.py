"""Invariant registries of the option ledger and the pool, and their enforcement."""

from __future__ import annotations

from dataclasses import replace

import pytest
import hypothesis.strategies as st
from hypothesis import given, settings

import optionpool.core.option.ledger as option_ledger
import optionpool.core.pool.engine as pool_engine
from optionpool.core.curve import Q96
from optionpool.core.errors import InvariantViolation, OptionPoolError
from optionpool.core.fees import FeeParams
from optionpool.core.fullmath import UINT160_MAX
from optionpool.core.option import OptionLedger, OptionMintMode, OptionMintParam, OptionState
from optionpool.core.option.invariants import INVARIANT_REGISTRY as OPTION_REGISTRY
from optionpool.core.option.invariants import check_all as check_option
from optionpool.core.pool import (
    PoolAddFeesParam,
    PoolBurnMode,
    PoolBurnParam,
    PoolCollectParam,
    PoolDeleverageMode,
    PoolDeleverageParam,
    PoolEngine,
    PoolLeverageMode,
    PoolLeverageParam,
    PoolMintMode,
    PoolMintParam,
    PoolRebalanceMode,
    PoolRebalanceParam,
    PoolState,
)
from optionpool.core.pool.invariants import INVARIANT_REGISTRY, TRANSITION_REGISTRY, check_all
from optionpool.core.settlement import long0_first
from optionpool.core.strike import STRIKE_ONE
from optionpool.state import Environment, MarketKey, PositionType

LIVE = PoolState(liquidity=1000, sqrt_interest_rate=Q96, long0_balance=1000, short_balance=1000)


def _forced(state: PoolState, **fields: int) -> PoolState:
    """Bypass `__post_init__` to build a state the dataclass itself would refuse."""
    forced = replace(state)
    for name, value in fields.items():
        object.__setattr__(forced, name, value)
    return forced


# ---------------------------------------------------------------------------
# Option ledger
# ---------------------------------------------------------------------------

class TestOptionInvariants:
    def test_registry(self) -> None:
        assert list(OPTION_REGISTRY) == ["inv_short_backed"]

    def test_empty_state_passes(self) -> None:
        assert check_option(OptionState(), STRIKE_ONE) == []

    def test_short_backed_pass(self) -> None:
        assert check_option(OptionState(500, 500, 1000), STRIKE_ONE) == []
        # at strike 2 one token1 backs half a base unit
        assert check_option(OptionState(300, 400, 500), 2 * STRIKE_ONE) == []

    def test_short_backed_fail(self) -> None:
        assert check_option(OptionState(500, 500, 1001), STRIKE_ONE) == ["inv_short_backed"]


# ---------------------------------------------------------------------------
# Pool state invariants
# ---------------------------------------------------------------------------

class TestPoolRegistry:
    def test_live_state_passes_all(self) -> None:
        assert check_all(LIVE, LIVE, STRIKE_ONE) == []

    def test_initialized_state_passes_all(self) -> None:
        empty = PoolState(sqrt_interest_rate=Q96)
        assert check_all(empty, empty, STRIKE_ONE) == []

    def test_registry_sizes(self) -> None:
        assert len(INVARIANT_REGISTRY) == 4
        assert len(TRANSITION_REGISTRY) == 3


class TestLiquidityBounded:
    def test_pass(self) -> None:
        s = replace(LIVE, liquidity=UINT160_MAX)
        assert "inv_liquidity_bounded" not in check_all(s, s, STRIKE_ONE)

    def test_fail(self) -> None:
        s = _forced(LIVE, liquidity=UINT160_MAX + 1)
        assert "inv_liquidity_bounded" in check_all(LIVE, s, STRIKE_ONE)


class TestRateInRange:
    def test_fail_zero(self) -> None:
        s = replace(LIVE, sqrt_interest_rate=0, short_balance=0)
        assert "inv_rate_in_range" in check_all(s, s, STRIKE_ONE)

    def test_fail_above_uint160(self) -> None:
        s = replace(LIVE, sqrt_interest_rate=UINT160_MAX + 1, short_balance=0)
        assert "inv_rate_in_range" in check_all(s, s, STRIKE_ONE)


class TestLongBacked:
    def test_pass_without_liquidity(self) -> None:
        s = PoolState(sqrt_interest_rate=Q96, short_balance=5)
        assert "inv_long_backed" not in check_all(s, s, STRIKE_ONE)

    def test_fail(self) -> None:
        s = replace(LIVE, long0_balance=0)
        assert "inv_long_backed" in check_all(s, s, STRIKE_ONE)

    def test_long1_counts_at_strike(self) -> None:
        s = replace(LIVE, long0_balance=0, long1_balance=2000, sqrt_interest_rate=Q96)
        assert "inv_long_backed" not in check_all(s, s, 2 * STRIKE_ONE)


class TestRateMatchesReserves:
    def test_pass_after_maturity_release(self) -> None:
        s = replace(LIVE, short_balance=0, sqrt_interest_rate=3 * Q96)
        assert "inv_rate_matches_reserves" not in check_all(s, s, STRIKE_ONE)

    def test_fail(self) -> None:
        s = replace(LIVE, short_balance=2000)
        assert check_all(s, s, STRIKE_ONE) == ["inv_rate_matches_reserves"]
        assert check_all(replace(s, sqrt_interest_rate=2 * Q96), s, STRIKE_ONE) == ["inv_rate_matches_reserves"]
        fixed = replace(s, sqrt_interest_rate=2 * Q96)
        assert check_all(fixed, fixed, STRIKE_ONE) == []


# ---------------------------------------------------------------------------
# Pool transition invariants
# ---------------------------------------------------------------------------

class TestGrowthMonotone:
    @pytest.mark.parametrize(
        "field",
        ["long0_fee_growth", "long1_fee_growth", "short_fee_growth", "short_returned_growth"],
    )
    def test_fail_on_decrease(self, field: str) -> None:
        pre = replace(LIVE, **{field: 10})
        post = replace(LIVE, **{field: 9})
        assert check_all(pre, post, STRIKE_ONE) == ["inv_growth_monotone"]
        assert check_all(post, pre, STRIKE_ONE) == []


class TestFeeRatesFrozen:
    def test_fail(self) -> None:
        post = replace(LIVE, transaction_fee_bps=30)
        assert check_all(LIVE, post, STRIKE_ONE) == ["inv_fee_rates_frozen"]
        post = replace(LIVE, protocol_fee_bps=1)
        assert check_all(LIVE, post, STRIKE_ONE) == ["inv_fee_rates_frozen"]


class TestClockMonotone:
    def test_fail(self) -> None:
        pre = replace(LIVE, last_timestamp=10)
        assert check_all(pre, LIVE, STRIKE_ONE) == ["inv_clock_monotone"]
        assert check_all(LIVE, pre, STRIKE_ONE) == []


# ---------------------------------------------------------------------------
# Enforcement in the engines
# ---------------------------------------------------------------------------

KEY = MarketKey("tokA", "tokB", STRIKE_ONE, 1000)
OPTIONS = 10**8


def _delivers(env: Environment):
    def hook(ctx, data: bytes) -> None:
        for position, owed in (
            (PositionType.LONG0, ctx.long0_owed),
            (PositionType.LONG1, ctx.long1_owed),
            (PositionType.SHORT, ctx.short_owed),
        ):
            env.positions.transfer(ctx.market, position, "alice", ctx.recipient, owed)

    return hook


def _funded(fees: FeeParams = FeeParams()) -> tuple[Environment, OptionLedger, PoolEngine]:
    env = Environment(now=0)
    ledger = OptionLedger(env)
    pool = PoolEngine(env, ledger)
    env.tokens.mint("alice", "tokA", OPTIONS)
    env.tokens.mint("alice", "tokB", OPTIONS)

    def pay(ctx, data: bytes) -> None:
        env.tokens.transfer("tokA", "alice", ctx.recipient, ctx.token0_owed)
        env.tokens.transfer("tokB", "alice", ctx.recipient, ctx.token1_owed)

    ledger.mint(
        OptionMintParam(KEY, "alice", "alice", "alice", OptionMintMode.GIVEN_TOKENS_AND_LONGS, OPTIONS, OPTIONS),
        "alice",
        pay,
    )
    pool.initialize(KEY, Q96, fees)
    pool.mint(PoolMintParam(KEY, "alice", PoolMintMode.GIVEN_LIQUIDITY, 10_000), "alice", long0_first, _delivers(env))
    return env, ledger, pool


class TestEnforcement:
    def test_option_violation_rolls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        env, ledger, _ = _funded()
        state = ledger.option_state(KEY)
        tokens = env.tokens.balance_of("alice", "tokA")
        real_issue = option_ledger.apply_issue

        def overissue(state, amounts):
            issued = real_issue(state, amounts)
            return replace(issued, total_short=issued.total_short + 1)

        monkeypatch.setattr(option_ledger, "apply_issue", overissue)
        param = OptionMintParam(KEY, "alice", "alice", "alice", OptionMintMode.GIVEN_TOKENS_AND_LONGS, 10, 10)
        with pytest.raises(InvariantViolation) as excinfo:
            ledger.mint(param, "alice", None)
        assert excinfo.value.violated == ["inv_short_backed"]
        assert ledger.option_state(KEY) == state
        assert env.tokens.balance_of("alice", "tokA") == tokens

    def test_pool_violation_rolls_back(self, monkeypatch: pytest.MonkeyPatch) -> None:
        env, _, pool = _funded()
        state = pool.pool_state(KEY)
        held = env.positions.get(KEY, PositionType.SHORT, "alice")

        def repricing_fees(state, long0_fees, long1_fees, short_fees):
            return replace(state, transaction_fee_bps=state.transaction_fee_bps + 1)

        monkeypatch.setattr(pool_engine, "add_fee_growth", repricing_fees)
        with pytest.raises(InvariantViolation) as excinfo:
            pool.add_fees(PoolAddFeesParam(KEY, 0, 0, 100), "alice", _delivers(env))
        assert excinfo.value.violated == ["inv_fee_rates_frozen"]
        assert pool.pool_state(KEY) == state
        assert env.positions.get(KEY, PositionType.SHORT, "alice") == held


OPERATIONS = ["mint", "burn", "leverage", "deleverage", "rebalance", "add_fees", "collect", "advance"]


def _run(env: Environment, pool: PoolEngine, op: str, amount: int) -> None:
    deliver = _delivers(env)
    if op == "mint":
        pool.mint(PoolMintParam(KEY, "alice", PoolMintMode.GIVEN_LIQUIDITY, amount), "alice", long0_first, deliver)
    elif op == "burn":
        param = PoolBurnParam(KEY, "alice", "alice", "alice", PoolBurnMode.GIVEN_LIQUIDITY, amount)
        pool.burn(param, "alice", long0_first)
    elif op == "leverage":
        param = PoolLeverageParam(KEY, "alice", "alice", PoolLeverageMode.GIVEN_SHORT, amount)
        pool.leverage(param, "alice", long0_first, deliver)
    elif op == "deleverage":
        param = PoolDeleverageParam(KEY, "alice", PoolDeleverageMode.GIVEN_LONG, amount)
        pool.deleverage(param, "alice", long0_first, deliver)
    elif op == "rebalance":
        param = PoolRebalanceParam(KEY, "alice", False, PoolRebalanceMode.GIVEN_LONG1, amount)
        pool.rebalance(param, "alice", deliver)
    elif op == "add_fees":
        pool.add_fees(PoolAddFeesParam(KEY, 0, 0, amount), "alice", deliver)
    elif op == "collect":
        param = PoolCollectParam(KEY, "alice", "alice", "alice", amount, amount, amount, amount)
        pool.collect_transaction_fees(param, "alice")
    else:
        env.advance(amount % 400)


def _growth(pool: PoolEngine) -> tuple[int, ...]:
    return (*pool.fee_growth(KEY), pool.short_returned_growth(KEY))


@settings(max_examples=60, deadline=5000)
@given(st.lists(st.tuples(st.sampled_from(OPERATIONS), st.integers(min_value=1, max_value=5_000)), max_size=30))
def test_growth_never_decreases(steps: list[tuple[str, int]]) -> None:
    env, _, pool = _funded(FeeParams(transaction_fee_bps=30, protocol_fee_bps=1000))
    growth = _growth(pool)
    state = pool.pool_state(KEY)
    for op, amount in steps:
        try:
            _run(env, pool, op, amount)
        except InvariantViolation:
            raise
        except OptionPoolError:
            pass
        now_growth = _growth(pool)
        assert all(after >= before for before, after in zip(growth, now_growth)), (op, amount)
        now_state = pool.pool_state(KEY)
        assert check_all(state, now_state, KEY.strike) == [], (op, amount)
        growth, state = now_growth, now_state
