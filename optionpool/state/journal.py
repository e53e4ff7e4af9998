"""
Shared mutable environment and all-or-nothing call scopes.

Every ledger and pool engine bound to the same `Environment` reads and writes
the tables held here. A public mutating call runs inside `Environment.atomic()`:
if anything raises (guard failure, arithmetic error, a settlement hook that
under-delivers) every table is restored to its contents at scope entry and the
exception propagates unchanged.

Snapshots are shallow dict copies. Every stored value is either an int or a
frozen dataclass, so sharing values between a snapshot and live tables is safe.

The clock (`now`) is supplied from outside and is not part of a snapshot.
"""

from __future__ import annotations

import functools
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Tuple, TypeVar

from .balances import TokenTable
from .keys import Address, MarketKey, UINT96_MAX
from .positions import PositionTable

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


@dataclass(frozen=True)
class EnvironmentSnapshot:
    tokens: Dict[Any, int]
    positions: Dict[Any, int]
    option_states: Dict[MarketKey, Any]
    option_markets: Tuple[MarketKey, ...]
    pool_states: Dict[MarketKey, Any]
    liquidity_positions: Dict[Tuple[MarketKey, Address], Any]


class Environment:
    """Tables shared by the option ledger and the pool engine, plus the clock."""

    def __init__(self, now: int = 0) -> None:
        if not isinstance(now, int) or isinstance(now, bool) or not (0 <= now <= UINT96_MAX):
            raise ValueError(f"now must be a uint96 timestamp: {now!r}")
        self.now = now
        self.tokens = TokenTable()
        self.positions = PositionTable()
        self.option_states: Dict[MarketKey, Any] = {}
        self.option_markets: List[MarketKey] = []
        self.pool_states: Dict[MarketKey, Any] = {}
        self.liquidity_positions: Dict[Tuple[MarketKey, Address], Any] = {}
        self._depth = 0

    # -- Clock ----------------------------------------------------------------

    def advance(self, seconds: int) -> int:
        """Move the clock forward by `seconds` and return the new time."""
        if not isinstance(seconds, int) or isinstance(seconds, bool) or seconds < 0:
            raise ValueError(f"seconds must be a non-negative int: {seconds!r}")
        return self.set_time(self.now + seconds)

    def set_time(self, now: int) -> int:
        if now < self.now:
            raise ValueError(f"clock cannot move backwards: {now} < {self.now}")
        if now > UINT96_MAX:
            raise ValueError(f"now exceeds uint96: {now}")
        self.now = now
        return now

    # -- Snapshots ------------------------------------------------------------

    def snapshot(self) -> EnvironmentSnapshot:
        return EnvironmentSnapshot(
            tokens=self.tokens.get_all_balances(),
            positions=self.positions.get_all_balances(),
            option_states=dict(self.option_states),
            option_markets=tuple(self.option_markets),
            pool_states=dict(self.pool_states),
            liquidity_positions=dict(self.liquidity_positions),
        )

    def restore(self, snap: EnvironmentSnapshot) -> None:
        self.tokens.load(snap.tokens)
        self.positions.load(snap.positions)
        self.option_states = dict(snap.option_states)
        self.option_markets = list(snap.option_markets)
        self.pool_states = dict(snap.pool_states)
        self.liquidity_positions = dict(snap.liquidity_positions)

    def fork(self) -> "Environment":
        """Independent copy of every table at the current time."""
        other = Environment(self.now)
        other.restore(self.snapshot())
        return other

    @property
    def in_call(self) -> bool:
        """True while at least one atomic scope is open (i.e. inside a hook)."""
        return self._depth > 0

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """Run the body all-or-nothing. Nested scopes roll back independently."""
        snap = self.snapshot()
        self._depth += 1
        try:
            yield
        except BaseException as exc:
            self.restore(snap)
            logger.debug("rolled back call at depth %d: %s", self._depth, exc.__class__.__name__)
            raise
        finally:
            self._depth -= 1


def transactional(method: F) -> F:
    """Run an engine method inside `self.env.atomic()`."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.env.atomic():
            return method(self, *args, **kwargs)

    return wrapper  # type: ignore[return-value]
