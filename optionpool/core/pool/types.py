"""Data types for the pool engine.

All types are frozen dataclasses (immutable).

Units/conventions:
- `sqrt_interest_rate` is Q96: `short_balance * 2^96 / long`, where `long` is
  `long0_balance` and `long1_balance` combined into base units at the strike.
  It is the initial rate until the pool first holds both reserves.
- `*_fee_growth` and `short_returned_growth` are Q128 amounts per unit of
  liquidity and never decrease.
- `long0_balance`/`long1_balance`/`short_balance` are the reserves owned by
  liquidity; fees are accounted separately even though the pool holds them too.
  At maturity the short reserve moves into `short_returned_growth`.
- `*_bps` rates are basis points (1/10_000).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, unique

from ...state.keys import Address, MarketKey
from ..errors import InvalidMode, ZeroAddress, ZeroInput
from ..fullmath import UINT160_MAX

__all__ = [
    "PoolState",
    "LiquidityPosition",
    "PoolMintMode",
    "PoolBurnMode",
    "PoolLeverageMode",
    "PoolDeleverageMode",
    "PoolRebalanceMode",
    "PoolMintParam",
    "PoolBurnParam",
    "PoolLeverageParam",
    "PoolDeleverageParam",
    "PoolRebalanceParam",
    "PoolAddFeesParam",
    "PoolCollectParam",
    "PoolMintResult",
    "PoolBurnResult",
    "PoolLeverageResult",
    "PoolDeleverageResult",
    "PoolRebalanceResult",
    "PoolCollectResult",
    "FeesEarned",
    "PoolCallbackContext",
]


@unique
class PoolMintMode(Enum):
    GIVEN_LIQUIDITY = "given_liquidity"
    GIVEN_LONG = "given_long"
    GIVEN_SHORT = "given_short"
    GIVEN_LARGER = "given_larger"


@unique
class PoolBurnMode(Enum):
    GIVEN_LIQUIDITY = "given_liquidity"
    GIVEN_LONG = "given_long"
    GIVEN_SHORT = "given_short"


@unique
class PoolLeverageMode(Enum):
    GIVEN_SHORT = "given_short"
    GIVEN_LONG = "given_long"


@unique
class PoolDeleverageMode(Enum):
    GIVEN_LONG = "given_long"
    GIVEN_SHORT = "given_short"


@unique
class PoolRebalanceMode(Enum):
    GIVEN_LONG0 = "given_long0"
    GIVEN_LONG1 = "given_long1"


@dataclass(frozen=True)
class PoolState:
    """Complete state of one market's pool."""

    # Curve
    liquidity: int = 0
    sqrt_interest_rate: int = 0
    last_timestamp: int = 0
    long0_balance: int = 0
    long1_balance: int = 0
    short_balance: int = 0

    # Liquidity provider accumulators (Q128 per unit of liquidity)
    long0_fee_growth: int = 0
    long1_fee_growth: int = 0
    short_fee_growth: int = 0
    short_returned_growth: int = 0

    # Protocol fees awaiting collection
    long0_protocol_fees: int = 0
    long1_protocol_fees: int = 0
    short_protocol_fees: int = 0

    # Frozen at initialization
    transaction_fee_bps: int = 0
    protocol_fee_bps: int = 0

    def __post_init__(self) -> None:
        for name, v in self.__dict__.items():
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")
        if self.liquidity > UINT160_MAX:
            raise ValueError(f"liquidity exceeds uint160: {self.liquidity}")


@dataclass(frozen=True)
class LiquidityPosition:
    """One provider's liquidity, growth snapshots and fees accrued so far."""

    liquidity: int = 0
    long0_fee_growth: int = 0
    long1_fee_growth: int = 0
    short_fee_growth: int = 0
    short_returned_growth: int = 0
    long0_fees: int = 0
    long1_fees: int = 0
    short_fees: int = 0
    short_returned: int = 0

    @property
    def is_empty(self) -> bool:
        return not (
            self.liquidity or self.long0_fees or self.long1_fees
            or self.short_fees or self.short_returned
        )


@dataclass(frozen=True)
class FeesEarned:
    long0_fees: int
    long1_fees: int
    short_fees: int
    short_returned: int


# -- Validation helpers -------------------------------------------------------

def _require_address(name: str, value: Address) -> None:
    if not isinstance(value, str) or not value:
        raise ZeroAddress(name)


def _require_amount(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


def _require_delta(value: int) -> None:
    _require_amount("delta", value)
    if value == 0:
        raise ZeroInput("delta")


def _require_mode(mode: object, kind: type, operation: str) -> None:
    if not isinstance(mode, kind):
        raise InvalidMode(mode, operation)


def _require_bytes(data: bytes) -> None:
    if not isinstance(data, (bytes, bytearray)):
        raise TypeError("data must be bytes")


# -- Parameters ---------------------------------------------------------------

@dataclass(frozen=True)
class PoolMintParam:
    """
    `delta` is the liquidity (GIVEN_LIQUIDITY), the long deposit (GIVEN_LONG),
    the short deposit (GIVEN_SHORT) or the cap on the larger of the two
    deposits (GIVEN_LARGER).
    """

    key: MarketKey
    to: Address
    mode: PoolMintMode
    delta: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("to", self.to)
        _require_mode(self.mode, PoolMintMode, "pool mint")
        _require_delta(self.delta)
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolBurnParam:
    key: MarketKey
    long0_to: Address
    long1_to: Address
    short_to: Address
    mode: PoolBurnMode
    delta: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("long0_to", self.long0_to)
        _require_address("long1_to", self.long1_to)
        _require_address("short_to", self.short_to)
        _require_mode(self.mode, PoolBurnMode, "pool burn")
        _require_delta(self.delta)
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolLeverageParam:
    """Short in, long out. `delta` is the gross short (GIVEN_SHORT) or the long out."""

    key: MarketKey
    long0_to: Address
    long1_to: Address
    mode: PoolLeverageMode
    delta: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("long0_to", self.long0_to)
        _require_address("long1_to", self.long1_to)
        _require_mode(self.mode, PoolLeverageMode, "pool leverage")
        _require_delta(self.delta)
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolDeleverageParam:
    """Long in, short out. `delta` is the long in (GIVEN_LONG) or the net short out."""

    key: MarketKey
    to: Address
    mode: PoolDeleverageMode
    delta: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("to", self.to)
        _require_mode(self.mode, PoolDeleverageMode, "pool deleverage")
        _require_delta(self.delta)
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolRebalanceParam:
    """
    `is_long0_to_long1`: Long0 in, Long1 out (and the reverse when False).
    `delta` is the Long0 amount (GIVEN_LONG0) or the Long1 amount (GIVEN_LONG1);
    an outgoing amount is net of the fee.
    """

    key: MarketKey
    to: Address
    is_long0_to_long1: bool
    mode: PoolRebalanceMode
    delta: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_address("to", self.to)
        if not isinstance(self.is_long0_to_long1, bool):
            raise TypeError("is_long0_to_long1 must be a bool")
        _require_mode(self.mode, PoolRebalanceMode, "pool rebalance")
        _require_delta(self.delta)
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolAddFeesParam:
    key: MarketKey
    long0_fees: int
    long1_fees: int
    short_fees: int
    data: bytes = b""

    def __post_init__(self) -> None:
        _require_amount("long0_fees", self.long0_fees)
        _require_amount("long1_fees", self.long1_fees)
        _require_amount("short_fees", self.short_fees)
        if not (self.long0_fees or self.long1_fees or self.short_fees):
            raise ZeroInput("fees")
        _require_bytes(self.data)


@dataclass(frozen=True)
class PoolCollectParam:
    """
    Amounts are caps: the call pays `min(requested, owed)` per side.
    `short_returned_requested` is ignored by protocol fee collection.
    """

    key: MarketKey
    long0_to: Address
    long1_to: Address
    short_to: Address
    long0_requested: int
    long1_requested: int
    short_requested: int
    short_returned_requested: int = 0

    def __post_init__(self) -> None:
        _require_address("long0_to", self.long0_to)
        _require_address("long1_to", self.long1_to)
        _require_address("short_to", self.short_to)
        _require_amount("long0_requested", self.long0_requested)
        _require_amount("long1_requested", self.long1_requested)
        _require_amount("short_requested", self.short_requested)
        _require_amount("short_returned_requested", self.short_returned_requested)
        if not (
            self.long0_requested or self.long1_requested
            or self.short_requested or self.short_returned_requested
        ):
            raise ZeroInput("requested")


# -- Results ------------------------------------------------------------------

@dataclass(frozen=True)
class PoolMintResult:
    liquidity: int
    long0_amount: int
    long1_amount: int
    short_amount: int


@dataclass(frozen=True)
class PoolBurnResult:
    liquidity: int
    long0_amount: int
    long1_amount: int
    short_amount: int
    long0_fees: int = 0
    long1_fees: int = 0
    short_fees: int = 0
    short_returned: int = 0


@dataclass(frozen=True)
class PoolLeverageResult:
    long0_amount: int
    long1_amount: int
    short_amount: int
    short_fees: int


@dataclass(frozen=True)
class PoolDeleverageResult:
    long0_amount: int
    long1_amount: int
    short_amount: int
    short_fees: int


@dataclass(frozen=True)
class PoolRebalanceResult:
    long0_amount: int
    long1_amount: int
    fees: int


@dataclass(frozen=True)
class PoolCollectResult:
    long0_amount: int
    long1_amount: int
    short_amount: int
    short_returned: int = 0


@dataclass(frozen=True)
class PoolCallbackContext:
    """
    What a settlement hook sees. The `*_owed` positions must reach `recipient`
    (the pool) in the option ledger before the hook returns.
    """

    market: MarketKey
    operation: str
    long0_owed: int
    long1_owed: int
    short_owed: int
    long0_out: int
    long1_out: int
    short_out: int
    recipient: Address
