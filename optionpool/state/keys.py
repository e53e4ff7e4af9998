"""
Market identity and position types.

A market is the value tuple (token0, token1, strike, maturity). Tables key on
this value type directly (plus position type and owner where needed) rather
than nesting maps, so equality and hashing come from the frozen dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique
from typing import Tuple

from ..core.errors import InputError, InvalidMaturity, ZeroAddress, ZeroInput

# Type aliases
Address = str
TokenId = str

UINT96_MAX = (1 << 96) - 1
UINT256_MAX = (1 << 256) - 1


@unique
class PositionType(Enum):
    """Claim types tracked per market."""
    LONG0 = 0
    LONG1 = 1
    SHORT = 2


def sort_tokens(token_a: TokenId, token_b: TokenId) -> Tuple[TokenId, TokenId]:
    """Canonical (token0, token1) ordering of a pair."""
    if token_a == token_b:
        raise InputError(f"pair must contain two distinct tokens: {token_a!r}")
    return (token_a, token_b) if token_a < token_b else (token_b, token_a)


@dataclass(frozen=True)
class MarketKey:
    """(token0, token1, strike, maturity) with token0 < token1."""

    token0: TokenId
    token1: TokenId
    strike: int
    maturity: int

    def __post_init__(self) -> None:
        for name, token in (("token0", self.token0), ("token1", self.token1)):
            if not isinstance(token, str) or not token:
                raise ZeroAddress(name)
        if self.token0 >= self.token1:
            raise InputError(f"tokens must be in canonical order: {self.token0!r} < {self.token1!r}")
        if not isinstance(self.strike, int) or isinstance(self.strike, bool):
            raise TypeError("strike must be an int")
        if self.strike == 0:
            raise ZeroInput("strike")
        if not (0 < self.strike <= UINT256_MAX):
            raise ValueError(f"strike must be a uint256: {self.strike}")
        if not isinstance(self.maturity, int) or isinstance(self.maturity, bool):
            raise InvalidMaturity(self.maturity)
        if not (0 <= self.maturity <= UINT96_MAX):
            raise InvalidMaturity(self.maturity)

    def __str__(self) -> str:
        return f"{self.token0}/{self.token1}@{self.strike:#x}:{self.maturity}"
