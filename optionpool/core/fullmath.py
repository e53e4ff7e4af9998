"""
Extended-precision fixed-point arithmetic (256-bit words, 512-bit intermediates).

Python ints are arbitrary precision, so the work here is not carrying bits but
enforcing the declared widths: every word argument must be a uint256, every
(lo, hi) pair a uint512, and every result is checked against the width the
caller expects. Rounding direction is always an explicit `round_up` argument;
nothing here picks a direction on the caller's behalf.

Algorithm Design:
- Type: Exact integer arithmetic with explicit floor/ceil selection
- mul_div: full 512-bit product, single division, optional ceil
- sqrt/sqrt512: Newton-Raphson from a bit-length estimate (monotone from above)
"""

from __future__ import annotations

from typing import Tuple

from .errors import DivideByZero, DivideOverflow, Overflow, Underflow

UINT96_MAX = (1 << 96) - 1
UINT128_MAX = (1 << 128) - 1
UINT160_MAX = (1 << 160) - 1
UINT256_MAX = (1 << 256) - 1
UINT512_MAX = (1 << 512) - 1

# Enough for a 512-bit radicand starting within a factor of 2 of the root.
SQRT_MAX_ITERATIONS = 32

Uint512 = Tuple[int, int]


def _require_uint(name: str, value: int, bits: int = 256) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value >> bits:
        raise ValueError(f"{name} must be a uint{bits}: {value}")


def _join(lo: int, hi: int) -> int:
    _require_uint("lo", lo)
    _require_uint("hi", hi)
    return (hi << 256) | lo


def _split(value: int) -> Uint512:
    return value & UINT256_MAX, value >> 256


# -- 512-bit primitives -------------------------------------------------------

def mul512(a: int, b: int) -> Uint512:
    """Exact product of two uint256 words as (lo, hi). Never fails."""
    _require_uint("a", a)
    _require_uint("b", b)
    return _split(a * b)


def add512(a_lo: int, a_hi: int, b_lo: int, b_hi: int) -> Uint512:
    """(a + b) as (lo, hi); raises Overflow if the sum needs more than 512 bits."""
    total = _join(a_lo, a_hi) + _join(b_lo, b_hi)
    if total > UINT512_MAX:
        raise Overflow(total, bits=512)
    return _split(total)


def sub512(a_lo: int, a_hi: int, b_lo: int, b_hi: int) -> Uint512:
    """(a - b) as (lo, hi); raises Underflow if b > a."""
    a = _join(a_lo, a_hi)
    b = _join(b_lo, b_hi)
    if b > a:
        raise Underflow(a, b)
    return _split(a - b)


def div512_to_256(dividend_lo: int, dividend_hi: int, divisor: int, round_up: bool) -> int:
    """
    Divide a uint512 by a uint256, returning a uint256 quotient.

    Raises:
        DivideByZero: divisor is 0
        DivideOverflow: the (rounded) quotient does not fit in 256 bits
    """
    _require_uint("divisor", divisor)
    if divisor == 0:
        raise DivideByZero()
    dividend = _join(dividend_lo, dividend_hi)
    quotient, remainder = divmod(dividend, divisor)
    if round_up and remainder:
        quotient += 1
    if quotient > UINT256_MAX:
        raise DivideOverflow(divisor)
    return quotient


def div512(dividend_lo: int, dividend_hi: int, divisor: int, round_up: bool) -> Uint512:
    """Divide a uint512 by a uint256 keeping the full 512-bit quotient."""
    _require_uint("divisor", divisor)
    if divisor == 0:
        raise DivideByZero()
    quotient, remainder = divmod(_join(dividend_lo, dividend_hi), divisor)
    if round_up and remainder:
        quotient += 1
    if quotient > UINT512_MAX:
        raise Overflow(quotient, bits=512)
    return _split(quotient)


# -- 256-bit helpers ----------------------------------------------------------

def div(dividend: int, divisor: int, round_up: bool) -> int:
    """uint256 division with explicit rounding."""
    _require_uint("dividend", dividend)
    _require_uint("divisor", divisor)
    if divisor == 0:
        raise DivideByZero()
    quotient, remainder = divmod(dividend, divisor)
    if round_up and remainder:
        quotient += 1
    return quotient


def mul_div(a: int, b: int, denominator: int, round_up: bool) -> int:
    """
    floor(a * b / denominator) or ceil(...) with a full 512-bit intermediate.

    Raises:
        DivideByZero: denominator is 0
        Overflow: the result does not fit in 256 bits
    """
    _require_uint("a", a)
    _require_uint("b", b)
    _require_uint("denominator", denominator)
    if denominator == 0:
        raise DivideByZero()
    lo, hi = mul512(a, b)
    try:
        return div512_to_256(lo, hi, denominator, round_up)
    except DivideOverflow as exc:
        raise Overflow(bits=256) from exc


def checked_add(a: int, b: int, bits: int = 256) -> int:
    """a + b, raising Overflow when the sum does not fit in `bits`."""
    total = a + b
    if total >> bits:
        raise Overflow(total, bits=bits)
    return total


def checked_sub(a: int, b: int) -> int:
    """a - b, raising Underflow when b > a."""
    if b > a:
        raise Underflow(a, b)
    return a - b


# -- Square roots -------------------------------------------------------------

def _newton_isqrt(value: int) -> int:
    if value == 0:
        return 0
    # 2^ceil(bits/2) >= sqrt(value), so iterates decrease monotonically to the floor root.
    x = 1 << ((value.bit_length() + 1) >> 1)
    for _ in range(SQRT_MAX_ITERATIONS):
        y = (x + value // x) >> 1
        if y >= x:
            return x
        x = y
    raise ArithmeticError(f"sqrt did not converge in {SQRT_MAX_ITERATIONS} iterations")


def _round_root(root: int, value: int, round_up: bool) -> int:
    if round_up and root * root < value:
        return root + 1
    return root


def sqrt(value: int, round_up: bool) -> int:
    """Square root of a uint256, floor or ceil."""
    _require_uint("value", value)
    return _round_root(_newton_isqrt(value), value, round_up)


def sqrt512(value_lo: int, value_hi: int, round_up: bool) -> int:
    """Square root of a uint512 given as (lo, hi); the result always fits in 256 bits."""
    value = _join(value_lo, value_hi)
    root = _round_root(_newton_isqrt(value), value, round_up)
    if root > UINT256_MAX:
        raise Overflow(root, bits=256)
    return root
