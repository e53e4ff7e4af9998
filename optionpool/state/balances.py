"""
Token balance tracking for the underlying assets.

Implements TokenTable[Address, TokenId] -> Amount. The ledger and the callers
that settle with it all hold their underlying tokens here; `mint` stands in
for token issuance outside the engine.
"""

from typing import Dict, Tuple

from ..core.errors import InsufficientBalance
from .keys import Address, TokenId

Amount = int  # Non-negative integer (arbitrary precision)


class TokenTable:
    """
    Balance table mapping (holder, token) -> amount.

    Zero balances are omitted to keep the table sparse.
    """

    def __init__(self) -> None:
        self._balances: Dict[Tuple[Address, TokenId], Amount] = {}

    def balance_of(self, holder: Address, token: TokenId) -> Amount:
        """Get balance for (holder, token). Returns 0 if not found."""
        return self._balances.get((holder, token), 0)

    def _set(self, holder: Address, token: TokenId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((holder, token), None)
        else:
            self._balances[(holder, token)] = amount

    def mint(self, holder: Address, token: TokenId, amount: Amount) -> None:
        """Issue `amount` of `token` to `holder`."""
        if amount < 0:
            raise ValueError(f"Mint amount must be non-negative: {amount}")
        self._set(holder, token, self.balance_of(holder, token) + amount)

    def transfer(self, token: TokenId, sender: Address, recipient: Address, amount: Amount) -> None:
        """
        Move `amount` of `token` from `sender` to `recipient`.

        Raises:
            ValueError: If amount is negative
            InsufficientBalance: If sender holds less than amount
        """
        if amount < 0:
            raise ValueError(f"Transfer amount must be non-negative: {amount}")
        if amount == 0:
            return
        current = self.balance_of(sender, token)
        if current < amount:
            raise InsufficientBalance(sender, token, current, amount)
        self._set(sender, token, current - amount)
        self._set(recipient, token, self.balance_of(recipient, token) + amount)

    def total_supply(self, token: TokenId) -> Amount:
        return sum(amount for (_, t), amount in self._balances.items() if t == token)

    def get_all_balances(self) -> Dict[Tuple[Address, TokenId], Amount]:
        """Return a copy of all balances."""
        return dict(self._balances)

    def load(self, balances: Dict[Tuple[Address, TokenId], Amount]) -> None:
        """Replace every balance with `balances` (used to restore snapshots)."""
        self._balances = dict(balances)

    def verify_non_negative(self) -> bool:
        return all(amount >= 0 for amount in self._balances.values())

    def __repr__(self) -> str:
        return f"TokenTable({len(self._balances)} entries)"
