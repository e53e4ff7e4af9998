"""
Callback settlement: request -> choice -> settle.

A multi-party call first computes what it owes and what it is owed. When the
call has a choice dimension (how to split a long amount between Long0 and
Long1) it asks the caller's choice resolver and validates the answer. It then
writes its own state, measures the balances it expects to grow, runs the
caller's settlement hook and re-measures. A shortfall on any obligation raises
`NotEnoughReceived`; the enclosing atomic scope discards everything.

Hooks run synchronously, in-process, and may re-enter the same engines; every
engine commits its invariant-restoring writes before calling `settle`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, unique
from typing import Any, Callable, Optional, Sequence, Tuple

from .errors import InvalidChoice, NotEnoughReceived
from .strike import combine, dif, turn

logger = logging.getLogger(__name__)

LongSplit = Tuple[int, int]
ChoiceFn = Callable[[Any, bytes], LongSplit]
SettlementHook = Callable[[Any, bytes], None]


@unique
class Phase(Enum):
    REQUESTED = "requested"
    CHOICE_RESOLVED = "choice_resolved"
    SETTLED = "settled"


@dataclass(frozen=True)
class ChoiceContext:
    """
    Passed to a choice resolver.

    `long_amount` is the base-denominated long the split must cover (deposit)
    or may not exceed (withdrawal). `long0_balance`/`long1_balance` are the
    pool's holdings when withdrawing and None when depositing.
    """

    market: Any
    operation: str
    strike: int
    long_amount: int
    short_amount: int
    deposit: bool
    long0_balance: Optional[int] = None
    long1_balance: Optional[int] = None


@dataclass(frozen=True)
class Obligation:
    """`amount` of `asset` must appear in the balance read by `measure`."""

    asset: Any
    amount: int
    measure: Callable[[], int]


class SettlementRequest:
    """Drives one call through REQUESTED -> CHOICE_RESOLVED -> SETTLED."""

    def __init__(self, operation: str, data: bytes = b"") -> None:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("data must be bytes")
        self.operation = operation
        self.data = bytes(data)
        self.phase = Phase.REQUESTED
        self.split: Optional[LongSplit] = None

    def resolve_choice(self, choice: Optional[ChoiceFn], context: ChoiceContext) -> LongSplit:
        if self.phase is not Phase.REQUESTED:
            raise RuntimeError(f"choice already resolved for {self.operation}")
        if choice is None:
            raise InvalidChoice(0, 0, context.long_amount, "no choice resolver supplied")
        long0, long1 = choice(context, self.data)
        validate_split(long0, long1, context)
        self.split = (long0, long1)
        self.phase = Phase.CHOICE_RESOLVED
        return self.split

    def settle(
        self,
        hook: Optional[SettlementHook],
        context: Any,
        obligations: Sequence[Obligation],
    ) -> None:
        if self.phase is Phase.SETTLED:
            raise RuntimeError(f"{self.operation} already settled")
        pending = [o for o in obligations if o.amount > 0]
        before = [o.measure() for o in pending]
        if hook is not None:
            hook(context, self.data)
        for obligation, start in zip(pending, before):
            received = obligation.measure() - start
            if received < obligation.amount:
                logger.debug(
                    "%s under-delivered %s: %d < %d",
                    self.operation, obligation.asset, received, obligation.amount,
                )
                raise NotEnoughReceived(obligation.asset, obligation.amount, received)
        self.phase = Phase.SETTLED


def validate_split(long0: int, long1: int, context: ChoiceContext) -> None:
    """Raise InvalidChoice unless (long0, long1) satisfies `context`."""
    for v in (long0, long1):
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise InvalidChoice(long0, long1, context.long_amount, "amounts must be non-negative ints")
    if context.deposit:
        if combine(long0, long1, context.strike, False) < context.long_amount:
            raise InvalidChoice(long0, long1, context.long_amount, "split does not cover the requirement")
        return
    if combine(long0, long1, context.strike, True) > context.long_amount:
        raise InvalidChoice(long0, long1, context.long_amount, "split exceeds the amount offered")
    if context.long0_balance is not None and long0 > context.long0_balance:
        raise InvalidChoice(long0, long1, context.long_amount, "long0 exceeds the pool balance")
    if context.long1_balance is not None and long1 > context.long1_balance:
        raise InvalidChoice(long0, long1, context.long_amount, "long1 exceeds the pool balance")


# -- Ready-made choice resolvers ----------------------------------------------

def long0_first(context: ChoiceContext, data: bytes) -> LongSplit:
    """Take as much Long0 as possible, the remainder in Long1."""
    if context.deposit:
        return (turn_base_to(context, to_one=False), 0)
    cap0 = context.long0_balance if context.long0_balance is not None else turn_base_to(context, to_one=False)
    long0 = min(cap0, turn_base_to(context, to_one=False))
    long1 = dif(context.long_amount, long0, context.strike, True, False)
    if context.long1_balance is not None:
        long1 = min(long1, context.long1_balance)
    return (long0, long1)


def long1_first(context: ChoiceContext, data: bytes) -> LongSplit:
    """Take as much Long1 as possible, the remainder in Long0."""
    if context.deposit:
        return (0, turn_base_to(context, to_one=True))
    cap1 = context.long1_balance if context.long1_balance is not None else turn_base_to(context, to_one=True)
    long1 = min(cap1, turn_base_to(context, to_one=True))
    long0 = dif(context.long_amount, long1, context.strike, False, False)
    if context.long0_balance is not None:
        long0 = min(long0, context.long0_balance)
    return (long0, long1)


def turn_base_to(context: ChoiceContext, to_one: bool) -> int:
    """The whole `long_amount` on one side, rounded against the caller."""
    return turn(context.long_amount, context.strike, to_one, context.deposit)
