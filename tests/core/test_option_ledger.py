from __future__ import annotations

import pytest

from optionpool.core.errors import (
    AlreadyMatured,
    DivideByZero,
    InsufficientPosition,
    InvalidMode,
    NotEnoughReceived,
    NotYetMatured,
    Underflow,
    ZeroAddress,
    ZeroInput,
)
from optionpool.core.option import (
    OptionBurnMode,
    OptionBurnParam,
    OptionCollectMode,
    OptionCollectParam,
    OptionLedger,
    OptionMintMode,
    OptionMintParam,
    OptionState,
    OptionSwapMode,
    OptionSwapParam,
)
from optionpool.core.strike import STRIKE_ONE
from optionpool.state import Environment, MarketKey, PositionType

MATURITY = 1_000
KEY = MarketKey("tokA", "tokB", STRIKE_ONE, MATURITY)


def _setup(now: int = 0) -> tuple[Environment, OptionLedger]:
    env = Environment(now=now)
    env.tokens.mint("alice", "tokA", 1_000_000)
    env.tokens.mint("alice", "tokB", 1_000_000)
    return env, OptionLedger(env)


def _pays_from(env: Environment, payer: str, short0: int = 0, short1: int = 0):
    """Hook delivering what the ledger asks for, minus an optional shortfall."""

    def hook(ctx, data: bytes) -> None:
        env.tokens.transfer(ctx.market.token0, payer, ctx.recipient, ctx.token0_owed - short0)
        env.tokens.transfer(ctx.market.token1, payer, ctx.recipient, ctx.token1_owed - short1)

    return hook


def _mint(env: Environment, ledger: OptionLedger, amount0: int, amount1: int, key: MarketKey = KEY):
    param = OptionMintParam(
        key=key, long0_to="alice", long1_to="alice", short_to="alice",
        mode=OptionMintMode.GIVEN_TOKENS_AND_LONGS, amount0=amount0, amount1=amount1,
    )
    return ledger.mint(param, "alice", _pays_from(env, "alice"))


class TestMint:
    def test_one_to_one_strike(self) -> None:
        env, ledger = _setup()
        res = _mint(env, ledger, 500, 500)
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (500, 500, 1000)
        assert ledger.option_state(KEY) == OptionState(500, 500, 1000)
        assert ledger.position_of(KEY, "alice", PositionType.SHORT) == 1000
        assert ledger.position_of(KEY, "alice", PositionType.LONG0) == 500
        assert env.tokens.balance_of(ledger.address, "tokA") == 500
        assert env.tokens.balance_of(ledger.address, "tokB") == 500

    def test_given_shorts_at_two_to_one(self) -> None:
        env, ledger = _setup()
        key = MarketKey("tokA", "tokB", 2 * STRIKE_ONE, MATURITY)
        param = OptionMintParam(
            key=key, long0_to="alice", long1_to="bob", short_to="carol",
            mode=OptionMintMode.GIVEN_SHORTS, amount0=300, amount1=200,
        )
        res = ledger.mint(param, "alice", _pays_from(env, "alice"))
        # token0 is base: 200 short backed by token1 needs 400 token1
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (300, 400, 500)
        assert ledger.position_of(key, "bob", PositionType.LONG1) == 400
        assert ledger.position_of(key, "carol", PositionType.SHORT) == 500

    def test_under_delivery_rolls_back(self) -> None:
        env, ledger = _setup()
        param = OptionMintParam(
            key=KEY, long0_to="alice", long1_to="alice", short_to="alice",
            mode=OptionMintMode.GIVEN_TOKENS_AND_LONGS, amount0=500, amount1=500,
        )
        with pytest.raises(NotEnoughReceived) as exc:
            ledger.mint(param, "alice", _pays_from(env, "alice", short0=1))
        assert exc.value.asset == "tokA"
        assert ledger.option_state(KEY) == OptionState()
        assert ledger.position_of(KEY, "alice", PositionType.SHORT) == 0
        assert ledger.number_of_options() == 0
        assert env.tokens.balance_of("alice", "tokA") == 1_000_000

    def test_missing_hook_rolls_back(self) -> None:
        env, ledger = _setup()
        param = OptionMintParam(
            key=KEY, long0_to="alice", long1_to="alice", short_to="alice",
            mode=OptionMintMode.GIVEN_TOKENS_AND_LONGS, amount0=1, amount1=0,
        )
        with pytest.raises(NotEnoughReceived):
            ledger.mint(param, "alice", None)
        assert ledger.option_state(KEY) == OptionState()

    def test_hook_sees_committed_state(self) -> None:
        env, ledger = _setup()
        seen = {}
        pay = _pays_from(env, "alice")

        def hook(ctx, data: bytes) -> None:
            seen["short"] = ledger.option_state(KEY).total_short
            seen["position"] = ledger.position_of(KEY, "alice", PositionType.SHORT)
            seen["data"] = data
            pay(ctx, data)

        param = OptionMintParam(
            key=KEY, long0_to="alice", long1_to="alice", short_to="alice",
            mode=OptionMintMode.GIVEN_TOKENS_AND_LONGS, amount0=500, amount1=500, data=b"ref",
        )
        ledger.mint(param, "alice", hook)
        assert seen == {"short": 1000, "position": 1000, "data": b"ref"}

    def test_rejected_after_maturity(self) -> None:
        env, ledger = _setup(now=MATURITY)
        with pytest.raises(AlreadyMatured):
            _mint(env, ledger, 1, 1)

    def test_param_validation(self) -> None:
        with pytest.raises(ZeroInput):
            OptionMintParam(KEY, "a", "a", "a", OptionMintMode.GIVEN_SHORTS, 0, 0)
        with pytest.raises(ZeroAddress):
            OptionMintParam(KEY, "", "a", "a", OptionMintMode.GIVEN_SHORTS, 1, 0)
        with pytest.raises(InvalidMode):
            OptionMintParam(KEY, "a", "a", "a", OptionBurnMode.GIVEN_SHORTS, 1, 0)  # type: ignore[arg-type]


class TestBurn:
    def test_round_trip_returns_collateral(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        param = OptionBurnParam(
            key=KEY, token0_to="bob", token1_to="bob",
            mode=OptionBurnMode.GIVEN_TOKENS_AND_LONGS, amount0=500, amount1=500,
        )
        res = ledger.burn(param, "alice")
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (500, 500, 1000)
        assert ledger.option_state(KEY) == OptionState()
        assert env.tokens.balance_of("bob", "tokA") == 500
        assert env.tokens.balance_of("bob", "tokB") == 500
        assert env.tokens.balance_of(ledger.address, "tokA") == 0

    def test_needs_all_three_positions(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        ledger.transfer_position(KEY, "alice", "bob", PositionType.SHORT, 1)
        param = OptionBurnParam(
            key=KEY, token0_to="alice", token1_to="alice",
            mode=OptionBurnMode.GIVEN_TOKENS_AND_LONGS, amount0=500, amount1=500,
        )
        with pytest.raises(InsufficientPosition):
            ledger.burn(param, "alice")
        assert ledger.position_of(KEY, "alice", PositionType.LONG0) == 500

    def test_given_shorts_converts_at_strike(self) -> None:
        env, ledger = _setup()
        key = MarketKey("tokA", "tokB", 3 * STRIKE_ONE, MATURITY)
        _mint(env, ledger, 10, 30, key=key)
        param = OptionBurnParam(
            key=key, token0_to="alice", token1_to="alice",
            mode=OptionBurnMode.GIVEN_SHORTS, amount0=0, amount1=5,
        )
        res = ledger.burn(param, "alice")
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (0, 15, 5)

    def test_notify_hook_runs(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 5, 5)
        calls = []
        param = OptionBurnParam(KEY, "alice", "alice", OptionBurnMode.GIVEN_TOKENS_AND_LONGS, 5, 5)
        ledger.burn(param, "alice", lambda ctx, data: calls.append(ctx.operation))
        assert calls == ["burn"]


class TestSwap:
    def test_long0_to_long1(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        param = OptionSwapParam(
            key=KEY, long_to="bob", token_to="bob", is_long0_to_long1=True,
            mode=OptionSwapMode.GIVEN_TOKEN0_AND_LONG0, amount=200,
        )
        res = ledger.swap(param, "alice", _pays_from(env, "alice"))
        assert (res.token0_amount, res.token1_amount) == (200, 200)
        assert ledger.option_state(KEY) == OptionState(300, 700, 1000)
        assert ledger.position_of(KEY, "alice", PositionType.LONG0) == 300
        assert ledger.position_of(KEY, "bob", PositionType.LONG1) == 200
        assert env.tokens.balance_of("bob", "tokA") == 200
        assert env.tokens.balance_of(ledger.address, "tokB") == 700

    def test_long1_to_long0_rounds_entering_side_up(self) -> None:
        env, ledger = _setup()
        key = MarketKey("tokA", "tokB", 2 * STRIKE_ONE, MATURITY)
        _mint(env, ledger, 100, 100, key=key)
        param = OptionSwapParam(
            key=key, long_to="alice", token_to="alice", is_long0_to_long1=False,
            mode=OptionSwapMode.GIVEN_TOKEN1_AND_LONG1, amount=3,
        )
        res = ledger.swap(param, "alice", _pays_from(env, "alice"))
        assert (res.token0_amount, res.token1_amount) == (2, 3)
        assert ledger.option_state(key) == OptionState(102, 97, 150)

    def test_swap_without_delivery_rolls_back(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        param = OptionSwapParam(KEY, "bob", "bob", True, OptionSwapMode.GIVEN_TOKEN0_AND_LONG0, 200)
        with pytest.raises(NotEnoughReceived):
            ledger.swap(param, "alice", None)
        assert ledger.option_state(KEY) == OptionState(500, 500, 1000)
        assert env.tokens.balance_of("bob", "tokA") == 0


class TestCollect:
    def _matured(self) -> tuple[Environment, OptionLedger]:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        swap = OptionSwapParam(KEY, "alice", "alice", True, OptionSwapMode.GIVEN_TOKEN0_AND_LONG0, 200)
        ledger.swap(swap, "alice", _pays_from(env, "alice"))
        env.set_time(MATURITY)
        return env, ledger

    def test_before_maturity(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        with pytest.raises(NotYetMatured):
            ledger.collect(OptionCollectParam(KEY, "alice", "alice", OptionCollectMode.GIVEN_SHORT, 1), "alice")

    def test_pro_rata_given_short(self) -> None:
        env, ledger = self._matured()
        param = OptionCollectParam(KEY, "carol", "carol", OptionCollectMode.GIVEN_SHORT, 400)
        res = ledger.collect(param, "alice")
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (120, 280, 400)
        assert ledger.option_state(KEY) == OptionState(180, 420, 600)
        assert env.tokens.balance_of("carol", "tokB") == 280

    def test_given_token0_burns_short_rounded_up(self) -> None:
        env, ledger = self._matured()
        param = OptionCollectParam(KEY, "alice", "alice", OptionCollectMode.GIVEN_TOKEN0, 150)
        res = ledger.collect(param, "alice")
        assert (res.token0_amount, res.token1_amount, res.short_amount) == (150, 350, 500)

    def test_more_than_outstanding(self) -> None:
        env, ledger = self._matured()
        param = OptionCollectParam(KEY, "alice", "alice", OptionCollectMode.GIVEN_SHORT, 1001)
        with pytest.raises(Underflow):
            ledger.collect(param, "alice")

    def test_empty_market(self) -> None:
        env, ledger = _setup(now=MATURITY)
        param = OptionCollectParam(KEY, "alice", "alice", OptionCollectMode.GIVEN_SHORT, 1)
        with pytest.raises(DivideByZero):
            ledger.collect(param, "alice")

    def test_long_holders_are_locked_out(self) -> None:
        env, ledger = self._matured()
        param = OptionBurnParam(KEY, "alice", "alice", OptionBurnMode.GIVEN_TOKENS_AND_LONGS, 1, 1)
        with pytest.raises(AlreadyMatured):
            ledger.burn(param, "alice")


class TestPositionsAndMarkets:
    def test_transfer_position(self) -> None:
        env, ledger = _setup()
        _mint(env, ledger, 500, 500)
        ledger.transfer_position(KEY, "alice", "bob", PositionType.LONG1, 100)
        assert ledger.position_of(KEY, "bob", PositionType.LONG1) == 100
        assert ledger.total_position(KEY, PositionType.LONG1) == 500
        with pytest.raises(ZeroAddress):
            ledger.transfer_position(KEY, "alice", "", PositionType.LONG1, 1)
        with pytest.raises(ZeroInput):
            ledger.transfer_position(KEY, "alice", "bob", PositionType.LONG1, 0)
        with pytest.raises(InsufficientPosition):
            ledger.transfer_position(KEY, "bob", "alice", PositionType.LONG1, 101)

    def test_markets_registered_in_first_mint_order(self) -> None:
        env, ledger = _setup()
        later = MarketKey("tokA", "tokB", STRIKE_ONE, MATURITY + 1)
        _mint(env, ledger, 1, 1, key=later)
        _mint(env, ledger, 1, 1)
        _mint(env, ledger, 1, 1, key=later)
        assert ledger.number_of_options() == 2
        assert ledger.get_by_index(0) == later
        assert ledger.get_by_index(1) == KEY
