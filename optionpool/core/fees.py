"""
Transaction/protocol fee kernels (deterministic, integer-only).

Every economic fee event charges `transaction_fee_bps` of the gross amount;
`protocol_fee_bps` of that fee goes to the protocol and the rest accrues to
liquidity providers through a Q128 fee-growth accumulator.

Rounding: charged fees round up, the protocol share and the per-liquidity
growth round down, so the pool never distributes more than it collected.
"""

from __future__ import annotations

from dataclasses import dataclass

from .errors import Underflow
from .fullmath import mul_div

BPS_DENOM = 10_000
Q128 = 1 << 128


@dataclass(frozen=True)
class FeeParams:
    transaction_fee_bps: int = 0
    protocol_fee_bps: int = 0

    def __post_init__(self) -> None:
        for name, v in (
            ("transaction_fee_bps", self.transaction_fee_bps),
            ("protocol_fee_bps", self.protocol_fee_bps),
        ):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
        if not (0 <= self.transaction_fee_bps < BPS_DENOM):
            raise ValueError(f"transaction_fee_bps must be in [0, {BPS_DENOM}): {self.transaction_fee_bps}")
        if not (0 <= self.protocol_fee_bps <= BPS_DENOM):
            raise ValueError(f"protocol_fee_bps must be in [0, {BPS_DENOM}]: {self.protocol_fee_bps}")


@dataclass(frozen=True)
class FeeSplitResult:
    lp_fees: int
    protocol_fees: int

    def __post_init__(self) -> None:
        for name, v in (("lp_fees", self.lp_fees), ("protocol_fees", self.protocol_fees)):
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            if v < 0:
                raise ValueError(f"{name} must be non-negative: {v}")

    @property
    def total(self) -> int:
        return self.lp_fees + self.protocol_fees


def fees_removal(gross_amount: int, fee_bps: int) -> int:
    """Fee taken out of a gross amount: ceil(gross * fee / 10_000)."""
    return mul_div(gross_amount, fee_bps, BPS_DENOM, True)


def fees_additional(net_amount: int, fee_bps: int) -> int:
    """
    Fee to add on top of a net amount so that the fee is `fee_bps` of the gross.

        fee = ceil(net * fee / (10_000 - fee))
    """
    return mul_div(net_amount, fee_bps, BPS_DENOM - fee_bps, True)


def split_fee(fee_amount: int, protocol_fee_bps: int) -> FeeSplitResult:
    """Split a charged fee between liquidity providers and the protocol."""
    if not isinstance(fee_amount, int) or isinstance(fee_amount, bool) or fee_amount < 0:
        raise ValueError(f"fee_amount must be a non-negative int, got {fee_amount}")
    protocol = mul_div(fee_amount, protocol_fee_bps, BPS_DENOM, False)
    return FeeSplitResult(lp_fees=fee_amount - protocol, protocol_fees=protocol)


def fee_growth_delta(fee_amount: int, liquidity: int) -> int:
    """Q128 growth per unit of liquidity for `fee_amount` spread over `liquidity`."""
    if fee_amount == 0:
        return 0
    return mul_div(fee_amount, Q128, liquidity, False)


def fees_owed(liquidity: int, growth: int, growth_snapshot: int) -> int:
    """Fees accrued by `liquidity` since `growth_snapshot` (floor)."""
    if growth < growth_snapshot:
        raise Underflow(growth, growth_snapshot)
    if liquidity == 0 or growth == growth_snapshot:
        return 0
    return mul_div(liquidity, growth - growth_snapshot, Q128, False)
