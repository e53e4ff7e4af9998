"""Data types for the option ledger.

All types are frozen dataclasses. Parameter objects validate their own input
domain in `__post_init__`, so a malformed request is rejected before any state
is read.

Units/conventions:
- `long0`/`token0` amounts are in token0 units, `long1`/`token1` in token1 units.
- `short` amounts are in the base token chosen by the strike.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from ...state.keys import Address, MarketKey, PositionType
from ..errors import InvalidMode, ZeroAddress, ZeroInput

__all__ = [
    "OptionState",
    "OptionMintMode",
    "OptionBurnMode",
    "OptionSwapMode",
    "OptionCollectMode",
    "OptionMintParam",
    "OptionBurnParam",
    "OptionSwapParam",
    "OptionCollectParam",
    "OptionMintResult",
    "OptionBurnResult",
    "OptionSwapResult",
    "OptionCollectResult",
    "OptionCallbackContext",
    "PositionType",
]


@unique
class OptionMintMode(Enum):
    """Which side of the issuance the caller pins."""
    GIVEN_TOKENS_AND_LONGS = "given_tokens_and_longs"
    GIVEN_SHORTS = "given_shorts"


@unique
class OptionBurnMode(Enum):
    GIVEN_TOKENS_AND_LONGS = "given_tokens_and_longs"
    GIVEN_SHORTS = "given_shorts"


@unique
class OptionSwapMode(Enum):
    GIVEN_TOKEN0_AND_LONG0 = "given_token0_and_long0"
    GIVEN_TOKEN1_AND_LONG1 = "given_token1_and_long1"


@unique
class OptionCollectMode(Enum):
    GIVEN_SHORT = "given_short"
    GIVEN_TOKEN0 = "given_token0"
    GIVEN_TOKEN1 = "given_token1"


@dataclass(frozen=True)
class OptionState:
    """Totals outstanding for one market."""

    total_long0: int = 0
    total_long1: int = 0
    total_short: int = 0

    def __post_init__(self) -> None:
        for name, v in (
            ("total_long0", self.total_long0),
            ("total_long1", self.total_long1),
            ("total_short", self.total_short),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    def total(self, position: PositionType) -> int:
        if position is PositionType.LONG0:
            return self.total_long0
        if position is PositionType.LONG1:
            return self.total_long1
        return self.total_short


def _require_address(name: str, value: Address) -> None:
    if not isinstance(value, str) or not value:
        raise ZeroAddress(name)


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


def _require_mode(mode: object, kind: type, operation: str) -> None:
    if not isinstance(mode, kind):
        raise InvalidMode(mode, operation)


def _require_bytes(data: bytes) -> None:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")


# -- Parameters ---------------------------------------------------------------

@dataclass(frozen=True)
class OptionMintParam:
    """
    GIVEN_TOKENS_AND_LONGS: `amount0`/`amount1` are the token0/token1 deposits
    (equal to the Long0/Long1 issued).
    GIVEN_SHORTS: `amount0`/`amount1` are the Short amounts backed by the
    token0 side and the token1 side.
    """

    key: MarketKey
    long0_to: Address
    long1_to: Address
    short_to: Address
    mode: OptionMintMode
    amount0: int
    amount1: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("long0_to", self.long0_to)
        _require_address("long1_to", self.long1_to)
        _require_address("short_to", self.short_to)
        _require_mode(self.mode, OptionMintMode, "option mint")
        _require_amount("amount0", self.amount0)
        _require_amount("amount1", self.amount1)
        if self.amount0 == 0 and self.amount1 == 0:
            raise ZeroInput("amount0 + amount1")
        _require_bytes(self.data)


@dataclass(frozen=True)
class OptionBurnParam:
    """Same pivots as `OptionMintParam`; tokens go to `token0_to`/`token1_to`."""

    key: MarketKey
    token0_to: Address
    token1_to: Address
    mode: OptionBurnMode
    amount0: int
    amount1: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("token0_to", self.token0_to)
        _require_address("token1_to", self.token1_to)
        _require_mode(self.mode, OptionBurnMode, "option burn")
        _require_amount("amount0", self.amount0)
        _require_amount("amount1", self.amount1)
        if self.amount0 == 0 and self.amount1 == 0:
            raise ZeroInput("amount0 + amount1")
        _require_bytes(self.data)


@dataclass(frozen=True)
class OptionSwapParam:
    """
    `is_long0_to_long1`: burn the caller's Long0, release token0 to `token_to`,
    issue Long1 to `long_to` against a token1 deposit (and the reverse when
    False). `amount` is the token amount named by `mode`.
    """

    key: MarketKey
    long_to: Address
    token_to: Address
    is_long0_to_long1: bool
    mode: OptionSwapMode
    amount: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("long_to", self.long_to)
        _require_address("token_to", self.token_to)
        if not isinstance(self.is_long0_to_long1, bool):
            raise TypeError("is_long0_to_long1 must be a bool")
        _require_mode(self.mode, OptionSwapMode, "option swap")
        _require_amount("amount", self.amount)
        if self.amount == 0:
            raise ZeroInput("amount")
        _require_bytes(self.data)


@dataclass(frozen=True)
class OptionCollectParam:
    key: MarketKey
    token0_to: Address
    token1_to: Address
    mode: OptionCollectMode
    amount: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("token0_to", self.token0_to)
        _require_address("token1_to", self.token1_to)
        _require_mode(self.mode, OptionCollectMode, "option collect")
        _require_amount("amount", self.amount)
        if self.amount == 0:
            raise ZeroInput("amount")
        _require_bytes(self.data)


# -- Results ------------------------------------------------------------------

@dataclass(frozen=True)
class OptionMintResult:
    token0_amount: int
    token1_amount: int
    short_amount: int


@dataclass(frozen=True)
class OptionBurnResult:
    token0_amount: int
    token1_amount: int
    short_amount: int


@dataclass(frozen=True)
class OptionSwapResult:
    token0_amount: int
    token1_amount: int


@dataclass(frozen=True)
class OptionCollectResult:
    token0_amount: int
    token1_amount: int
    short_amount: int


@dataclass(frozen=True)
class OptionCallbackContext:
    """
    What a settlement hook sees.

    `token0_owed`/`token1_owed` must reach `recipient` (the ledger) before the
    hook returns; both are zero for notification-only hooks (burn, collect).
    """

    market: MarketKey
    operation: str
    long0_amount: int
    long1_amount: int
    short_amount: int
    token0_owed: int
    token1_owed: int
    recipient: Address
