"""Guard functions for the option ledger.

Temporal gating is evaluated once per call against the environment clock:
mint, burn and swap need `now < maturity`; collect needs `now >= maturity`.
"""

from __future__ import annotations

from ...state.keys import MarketKey
from ..errors import AlreadyMatured, NotYetMatured


def guard_active(key: MarketKey, now: int) -> bool:
    return now < key.maturity


def guard_matured(key: MarketKey, now: int) -> bool:
    return now >= key.maturity


def require_active(key: MarketKey, now: int) -> None:
    if not guard_active(key, now):
        raise AlreadyMatured(key.maturity, now)


def require_matured(key: MarketKey, now: int) -> None:
    if not guard_matured(key, now):
        raise NotYetMatured(key.maturity, now)
