"""
Option position balances.

Positions are scoped per market and position type and tracked separately
from underlying token balances.
"""

from __future__ import annotations

from typing import Dict, Tuple

from ..core.errors import InsufficientPosition
from .keys import Address, MarketKey, PositionType

PositionKey = Tuple[MarketKey, PositionType, Address]


class PositionTable:
    """
    Balance table mapping (market, position_type, owner) -> amount.

    Notes:
    - Balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[PositionKey, int] = {}

    def get(self, market: MarketKey, position: PositionType, owner: Address) -> int:
        """Get balance for (market, position, owner). Returns 0 if not found."""
        return self._balances.get((market, position, owner), 0)

    def _set(self, market: MarketKey, position: PositionType, owner: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Position balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((market, position, owner), None)
        else:
            self._balances[(market, position, owner)] = amount

    def credit(self, market: MarketKey, position: PositionType, owner: Address, amount: int) -> None:
        if amount < 0:
            raise ValueError(f"Credit must be non-negative: {amount}")
        if amount:
            self._set(market, position, owner, self.get(market, position, owner) + amount)

    def debit(self, market: MarketKey, position: PositionType, owner: Address, amount: int) -> None:
        """Subtract a non-negative amount, raising InsufficientPosition on shortfall."""
        if amount < 0:
            raise ValueError(f"Debit must be non-negative: {amount}")
        current = self.get(market, position, owner)
        if current < amount:
            raise InsufficientPosition(market, owner, position, current, amount)
        self._set(market, position, owner, current - amount)

    def transfer(
        self,
        market: MarketKey,
        position: PositionType,
        sender: Address,
        recipient: Address,
        amount: int,
    ) -> None:
        self.debit(market, position, sender, amount)
        self.credit(market, position, recipient, amount)

    def total(self, market: MarketKey, position: PositionType) -> int:
        """Sum over all owners (linear scan; for audits and tests)."""
        return sum(a for (m, p, _), a in self._balances.items() if m == market and p == position)

    def get_all_balances(self) -> Dict[PositionKey, int]:
        return dict(self._balances)

    def load(self, balances: Dict[PositionKey, int]) -> None:
        self._balances = dict(balances)

    def __repr__(self) -> str:
        return f"PositionTable({len(self._balances)} entries)"
