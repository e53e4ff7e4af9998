from __future__ import annotations

from fractions import Fraction
from math import ceil, floor

import pytest
import hypothesis.strategies as st
from hypothesis import assume, given

from optionpool.core.errors import Underflow, ZeroInput
from optionpool.core.strike import STRIKE_ONE, combine, convert, dif, is_token0_base, turn

amounts = st.integers(min_value=0, max_value=1 << 120)
# Strikes from 2^-64 to 2^64 token1 per token0.
strikes = st.integers(min_value=1 << 64, max_value=1 << 192)


def _value0_in_1(amount0: int, strike: int) -> Fraction:
    return Fraction(amount0 * strike, STRIKE_ONE)


class TestBase:
    def test_one_to_one_strike_makes_token0_base(self) -> None:
        assert is_token0_base(STRIKE_ONE)
        assert not is_token0_base(STRIKE_ONE - 1)

    def test_zero_strike_rejected(self) -> None:
        with pytest.raises(ZeroInput):
            convert(1, 0, True, False)


class TestConvert:
    @given(amounts, strikes, st.booleans())
    def test_zero_to_one_reference(self, amount: int, strike: int, round_up: bool) -> None:
        exact = _value0_in_1(amount, strike)
        expected = ceil(exact) if round_up else floor(exact)
        assert convert(amount, strike, True, round_up) == expected

    @given(amounts, strikes, st.booleans())
    def test_one_to_zero_reference(self, amount: int, strike: int, round_up: bool) -> None:
        exact = Fraction(amount * STRIKE_ONE, strike)
        expected = ceil(exact) if round_up else floor(exact)
        assert convert(amount, strike, False, round_up) == expected

    @given(amounts, strikes)
    def test_round_trip_never_gains(self, amount: int, strike: int) -> None:
        there = convert(amount, strike, True, False)
        back = convert(there, strike, False, False)
        assert back <= amount

    def test_one_to_one_is_identity(self) -> None:
        assert convert(500, STRIKE_ONE, True, False) == 500
        assert convert(500, STRIKE_ONE, False, True) == 500

    def test_rounding_direction_at_two_to_one(self) -> None:
        strike = 2 * STRIKE_ONE  # 1 token0 = 2 token1
        assert convert(3, strike, False, False) == 1
        assert convert(3, strike, False, True) == 2


class TestTurnCombine:
    def test_turn_base_is_identity_on_base_side(self) -> None:
        strike = 4 * STRIKE_ONE  # token0 is base
        assert turn(10, strike, False, False) == 10
        assert turn(10, strike, True, False) == 40
        strike = STRIKE_ONE // 4  # token1 is base
        assert turn(10, strike, True, True) == 10
        assert turn(10, strike, False, True) == 40

    def test_combine_at_one_to_one(self) -> None:
        assert combine(500, 500, STRIKE_ONE, False) == 1000

    @given(amounts, amounts, strikes)
    def test_combine_brackets_exact_value(self, a0: int, a1: int, strike: int) -> None:
        if is_token0_base(strike):
            exact = a0 + Fraction(a1 * STRIKE_ONE, strike)
        else:
            exact = a1 + _value0_in_1(a0, strike)
        assert combine(a0, a1, strike, False) == floor(exact)
        assert combine(a0, a1, strike, True) == ceil(exact)


class TestDif:
    @given(amounts, amounts, strikes)
    def test_recovers_other_side_without_gaining(self, a0: int, a1: int, strike: int) -> None:
        base = combine(a0, a1, strike, True)
        other1 = dif(base, a0, strike, True, False)
        # The recovered side never exceeds what the base total can pay for.
        assert combine(a0, other1, strike, False) <= base

    def test_one_to_one(self) -> None:
        assert dif(1000, 300, STRIKE_ONE, True, False) == 700
        assert dif(1000, 300, STRIKE_ONE, False, False) == 700

    @given(amounts, strikes)
    def test_amount_larger_than_base_underflows(self, amount: int, strike: int) -> None:
        assume(amount > 0)
        if is_token0_base(strike):
            with pytest.raises(Underflow):
                dif(amount - 1, amount, strike, True, False)
        else:
            with pytest.raises(Underflow):
                dif(amount - 1, amount, strike, False, False)
