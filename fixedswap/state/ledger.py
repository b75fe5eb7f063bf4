"""
Token balance ledger.

Implements Ledger[AccountId] -> Amount. The same class backs both external
tokens and a pool's own liquidity-share ledger.
"""

from __future__ import annotations

from typing import Dict, Protocol, runtime_checkable

from ..errors import InsufficientBalanceError
from .accounts import AccountId


# Non-negative integer (arbitrary precision)
Amount = int


def _require_amount(name: str, value: Amount) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative: {value}")


@runtime_checkable
class BalanceLedger(Protocol):
    """Capability contract the pool needs from a token ledger."""

    def mint(self, account: AccountId, amount: Amount) -> None: ...

    def burn(self, account: AccountId, amount: Amount) -> None: ...

    def balance_of(self, account: AccountId) -> Amount: ...

    def transfer_from(self, sender: AccountId, recipient: AccountId, amount: Amount) -> None: ...

    def total_supply(self) -> Amount: ...


class TokenLedger:
    """
    In-memory balance table mapping account -> amount.

    Notes:
    - Balances are always non-negative.
    - Zero balances are omitted to keep the table sparse.
    - Total supply is tracked alongside the table and always equals the sum
      of all balances.
    """

    def __init__(self, symbol: str = "") -> None:
        self.symbol = symbol
        self._balances: Dict[AccountId, Amount] = {}
        self._total_supply: Amount = 0

    def balance_of(self, account: AccountId) -> Amount:
        """Get balance for account. Returns 0 if not found."""
        return self._balances.get(account, 0)

    def total_supply(self) -> Amount:
        return self._total_supply

    def _set(self, account: AccountId, amount: Amount) -> None:
        if amount == 0:
            self._balances.pop(account, None)
        else:
            self._balances[account] = amount

    def mint(self, account: AccountId, amount: Amount) -> None:
        """Credit ``amount`` to ``account``."""
        _require_amount("amount", amount)
        self._set(account, self.balance_of(account) + amount)
        self._total_supply += amount

    def burn(self, account: AccountId, amount: Amount) -> None:
        """
        Debit ``amount`` from ``account`` and shrink the supply.

        Raises:
            InsufficientBalanceError: If the account holds less than ``amount``
        """
        _require_amount("amount", amount)
        current = self.balance_of(account)
        if current < amount:
            raise InsufficientBalanceError(
                f"Not enough {self.symbol or 'tokens'} to burn: {current} < {amount}"
            )
        self._set(account, current - amount)
        self._total_supply -= amount

    def transfer_from(self, sender: AccountId, recipient: AccountId, amount: Amount) -> None:
        """
        Move ``amount`` from ``sender`` to ``recipient``.

        Raises:
            InsufficientBalanceError: If the sender holds less than ``amount``
        """
        _require_amount("amount", amount)
        current = self.balance_of(sender)
        if current < amount:
            raise InsufficientBalanceError(
                f"{self.symbol or 'Token'} balance is not enough: {current} < {amount}"
            )
        self._set(sender, current - amount)
        self._set(recipient, self.balance_of(recipient) + amount)

    def get_all_balances(self) -> Dict[AccountId, Amount]:
        """Return a copy of all non-zero balances."""
        return dict(self._balances)

    def verify_supply(self) -> bool:
        """Verify the tracked total supply equals the sum of all balances."""
        return self._total_supply == sum(self._balances.values())

    def __repr__(self) -> str:
        return f"TokenLedger({self.symbol!r}, {len(self._balances)} entries)"
