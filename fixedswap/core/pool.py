"""
Fixed-rate swap pool: deposit, withdraw and swap accounting.

Each public operation is all-or-nothing:

1. Read pool balances and compute every amount (curve + solver).
2. Check every precondition, including the balance behind each transfer and
   burn the operation is about to perform.
3. Apply burns, transfers and mints. Nothing in this phase can fail.

Operations return a ``PoolResult``; a rejected operation leaves every ledger
untouched. Operations on one pool must not run concurrently.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Callable, Dict, List, NamedTuple, Optional, Tuple

from ..config import PoolConfig
from ..errors import (
    DegenerateStateError,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidRatioError,
    InvalidRecipientError,
    SwapError,
)
from ..state.accounts import AccountId
from ..state.ledger import Amount, BalanceLedger, TokenLedger
from .curve import ONE, get_return as curve_get_return
from .results import PoolResult, PoolSnapshot, WithdrawAmounts
from .solver import get_real_amounts_for_withdraw, get_virtual_amounts_for_deposit

logger = logging.getLogger(__name__)


class _Transfer(NamedTuple):
    ledger: BalanceLedger
    sender: AccountId
    recipient: AccountId
    amount: Amount


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


class Pool:
    """
    Two-token pool with its own liquidity-share ledger.

    Args:
        token0: Ledger of the first asset
        token1: Ledger of the second asset
        config: Solver configuration (defaults to ``PoolConfig()``)
        label: Debug label of the pool's account handle
    """

    def __init__(
        self,
        token0: BalanceLedger,
        token1: BalanceLedger,
        config: Optional[PoolConfig] = None,
        *,
        label: str = "pool",
    ) -> None:
        if token0 is token1:
            raise ValueError("token0 and token1 must be distinct ledgers")
        self.token0 = token0
        self.token1 = token1
        self.config = config if config is not None else PoolConfig()
        self.account = AccountId.new(label)
        self.shares = TokenLedger(f"{label}-LP")

    def __repr__(self) -> str:
        return f"Pool({self.account!r})"

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def balances(self) -> Tuple[Amount, Amount]:
        return self.token0.balance_of(self.account), self.token1.balance_of(self.account)

    def total_shares(self) -> Amount:
        return self.shares.total_supply()

    def share_of(self, account: AccountId) -> Amount:
        return self.shares.balance_of(account)

    def snapshot(self) -> PoolSnapshot:
        balance0, balance1 = self.balances()
        return PoolSnapshot(balance0=balance0, balance1=balance1, total_shares=self.total_shares())

    def get_return(self, token_from: BalanceLedger, token_to: BalanceLedger, input_amount: Amount) -> PoolResult:
        """Quote a swap of ``input_amount`` from ``token_from`` into ``token_to``."""
        self._require_pair(token_from, token_to)
        return self._run(
            "get_return",
            lambda: curve_get_return(
                token_from.balance_of(self.account),
                token_to.balance_of(self.account),
                input_amount,
            ),
        )

    def get_virtual_amounts_for_deposit(self, amount0: Amount, amount1: Amount) -> Tuple[Amount, Amount]:
        """Balanced-equivalent pair for a deposit against current balances."""
        balance0, balance1 = self.balances()
        return get_virtual_amounts_for_deposit(amount0, amount1, balance0, balance1, self.config.threshold)

    def get_real_amounts_for_withdraw(
        self,
        virtual0: Amount,
        virtual1: Amount,
        balance0: Amount,
        balance1: Amount,
        first_token_share: int,
    ) -> Tuple[Amount, Amount]:
        """
        Re-split pro-rata amounts ``(virtual0, virtual1)`` by ``first_token_share``
        using this pool's threshold. Balances are passed in, not read from the
        ledgers, so a withdrawal can be previewed against any state.
        """
        return get_real_amounts_for_withdraw(
            virtual0, virtual1, balance0, balance1, first_token_share, self.config.threshold
        )

    # ------------------------------------------------------------------
    # Deposit
    # ------------------------------------------------------------------

    def deposit(self, amount0: Amount, amount1: Amount, *, sender: AccountId) -> PoolResult:
        return self.deposit_for(amount0, amount1, sender, sender=sender)

    def deposit_for(
        self,
        amount0: Amount,
        amount1: Amount,
        to: Optional[AccountId],
        *,
        sender: AccountId,
    ) -> PoolResult:
        """Deposit both tokens from ``sender`` and mint shares to ``to``."""
        return self._run("deposit", lambda: self._deposit(amount0, amount1, to, sender))

    def _deposit(self, amount0: Amount, amount1: Amount, to: Optional[AccountId], sender: AccountId) -> Amount:
        self._require_non_negative("amount0", amount0)
        self._require_non_negative("amount1", amount1)

        balance0, balance1 = self.balances()
        virtual0, virtual1 = get_virtual_amounts_for_deposit(
            amount0, amount1, balance0, balance1, self.config.threshold
        )
        input_amount = virtual0 + virtual1
        if input_amount <= 0:
            raise InvalidAmountError("Empty deposit is not allowed")
        self._require_recipient(to, "Deposit")
        assert to is not None

        total_supply = self.shares.total_supply()
        if total_supply > 0:
            total_balance = balance0 + balance1 + amount0 + amount1 - input_amount
            if total_balance <= 0:
                raise DegenerateStateError("Pool holds no balance behind outstanding shares")
            share = input_amount * total_supply // total_balance
        else:
            share = input_amount

        transfers = [
            _Transfer(self.token0, sender, self.account, amount0),
            _Transfer(self.token1, sender, self.account, amount1),
        ]
        self._check_transfers(transfers)

        self._apply_transfers(transfers)
        self.shares.mint(to, share)
        logger.debug(
            "deposit %d/%d (virtual %d/%d) minted %d shares to %r",
            amount0, amount1, virtual0, virtual1, share, to,
        )
        return share

    # ------------------------------------------------------------------
    # Withdraw
    # ------------------------------------------------------------------

    def withdraw(self, share_amount: Amount, *, sender: AccountId) -> PoolResult:
        return self.withdraw_for(share_amount, sender, sender=sender)

    def withdraw_for(self, share_amount: Amount, to: Optional[AccountId], *, sender: AccountId) -> PoolResult:
        """Burn ``share_amount`` of ``sender``'s shares and pay both tokens pro rata to ``to``."""
        return self._run("withdraw", lambda: self._withdraw(share_amount, to, sender, None))

    def withdraw_with_ratio(
        self,
        share_amount: Amount,
        first_token_share: int,
        *,
        sender: AccountId,
    ) -> PoolResult:
        return self.withdraw_for_with_ratio(share_amount, sender, first_token_share, sender=sender)

    def withdraw_for_with_ratio(
        self,
        share_amount: Amount,
        to: Optional[AccountId],
        first_token_share: int,
        *,
        sender: AccountId,
    ) -> PoolResult:
        """
        Burn shares and pay out with ``first_token_share`` (scaled to ONE) of the
        value in token0 and the rest in token1.
        """
        return self._run(
            "withdraw_with_ratio",
            lambda: self._withdraw(share_amount, to, sender, first_token_share),
        )

    def _withdraw(
        self,
        share_amount: Amount,
        to: Optional[AccountId],
        sender: AccountId,
        first_token_share: Optional[int],
    ) -> WithdrawAmounts:
        _require_int("share_amount", share_amount)
        if share_amount <= 0:
            raise InvalidAmountError("Empty withdrawal is not allowed")
        self._require_recipient(to, "Withdrawal")
        assert to is not None
        if first_token_share is not None:
            _require_int("first_token_share", first_token_share)
            if not (0 <= first_token_share <= ONE):
                raise InvalidRatioError("Ratio should be in [0, 1]")

        held = self.shares.balance_of(sender)
        if held < share_amount:
            raise InsufficientBalanceError(f"Not enough shares to burn: {held} < {share_amount}")

        total_supply = self.shares.total_supply()
        balance0, balance1 = self.balances()
        amount0 = balance0 * share_amount // total_supply
        amount1 = balance1 * share_amount // total_supply
        if first_token_share is not None:
            amount0, amount1 = get_real_amounts_for_withdraw(
                amount0, amount1, balance0, balance1, first_token_share, self.config.threshold
            )

        transfers = [
            _Transfer(self.token0, self.account, to, amount0),
            _Transfer(self.token1, self.account, to, amount1),
        ]
        self._check_transfers(transfers)

        self.shares.burn(sender, share_amount)
        self._apply_transfers(transfers)
        logger.debug("withdraw %d shares paid %d/%d to %r", share_amount, amount0, amount1, to)
        return WithdrawAmounts(amount0, amount1)

    # ------------------------------------------------------------------
    # Swap
    # ------------------------------------------------------------------

    def swap_0_to_1(self, input_amount: Amount, *, sender: AccountId) -> PoolResult:
        return self._run("swap_0_to_1", lambda: self._swap(self.token0, self.token1, input_amount, sender, sender))

    def swap_1_to_0(self, input_amount: Amount, *, sender: AccountId) -> PoolResult:
        return self._run("swap_1_to_0", lambda: self._swap(self.token1, self.token0, input_amount, sender, sender))

    def swap_0_to_1_for(self, input_amount: Amount, to: Optional[AccountId], *, sender: AccountId) -> PoolResult:
        return self._run("swap_0_to_1", lambda: self._swap_for(self.token0, self.token1, input_amount, to, sender))

    def swap_1_to_0_for(self, input_amount: Amount, to: Optional[AccountId], *, sender: AccountId) -> PoolResult:
        return self._run("swap_1_to_0", lambda: self._swap_for(self.token1, self.token0, input_amount, to, sender))

    def _swap_for(
        self,
        token_from: BalanceLedger,
        token_to: BalanceLedger,
        input_amount: Amount,
        to: Optional[AccountId],
        sender: AccountId,
    ) -> Amount:
        self._require_recipient(to, "Swap")
        assert to is not None
        return self._swap(token_from, token_to, input_amount, to, sender)

    def _swap(
        self,
        token_from: BalanceLedger,
        token_to: BalanceLedger,
        input_amount: Amount,
        to: AccountId,
        sender: AccountId,
    ) -> Amount:
        _require_int("input_amount", input_amount)
        if sender == self.account:
            raise InvalidRecipientError("Swap from this is forbidden")
        if input_amount <= 0:
            raise InvalidAmountError("Input amount should be > 0")
        output_amount = curve_get_return(
            token_from.balance_of(self.account),
            token_to.balance_of(self.account),
            input_amount,
        )
        if output_amount <= 0:
            raise InvalidAmountError("Empty swap is not allowed")

        transfers = [
            _Transfer(token_from, sender, self.account, input_amount),
            _Transfer(token_to, self.account, to, output_amount),
        ]
        self._check_transfers(transfers)

        self._apply_transfers(transfers)
        logger.debug("swap %d in, %d out to %r", input_amount, output_amount, to)
        return output_amount

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run(self, name: str, operation: Callable[[], object]) -> PoolResult:
        try:
            value = operation()
        except SwapError as exc:
            logger.info("%s rejected (%s): %s", name, exc.kind.value, exc)
            return PoolResult.rejected(exc.kind, str(exc))
        return PoolResult.accepted(value)

    def _require_pair(self, token_from: BalanceLedger, token_to: BalanceLedger) -> None:
        pair = (token_from, token_to)
        if pair != (self.token0, self.token1) and pair != (self.token1, self.token0):
            raise ValueError("token_from/token_to must be this pool's two tokens")

    def _require_recipient(self, to: Optional[AccountId], action: str) -> None:
        if to is None:
            raise InvalidRecipientError(f"{action} to zero is forbidden")
        if to == self.account:
            raise InvalidRecipientError(f"{action} to this is forbidden")

    @staticmethod
    def _require_non_negative(name: str, value: Amount) -> None:
        _require_int(name, value)
        if value < 0:
            raise InvalidAmountError(f"{name} must be non-negative: {value}")

    @staticmethod
    def _check_transfers(transfers: List[_Transfer]) -> None:
        """Fail before any mutation if some sender cannot cover its total debit."""
        debits: Dict[Tuple[int, AccountId], Amount] = defaultdict(int)
        ledgers: Dict[int, BalanceLedger] = {}
        for t in transfers:
            if t.amount < 0:
                raise InvalidAmountError(f"Transfer amount must be non-negative: {t.amount}")
            if t.amount == 0:
                continue
            debits[(id(t.ledger), t.sender)] += t.amount
            ledgers[id(t.ledger)] = t.ledger
        for (ledger_id, sender), amount in debits.items():
            available = ledgers[ledger_id].balance_of(sender)
            if available < amount:
                raise InsufficientBalanceError(f"Balance is not enough: {available} < {amount}")

    @staticmethod
    def _apply_transfers(transfers: List[_Transfer]) -> None:
        for t in transfers:
            if t.amount > 0:
                t.ledger.transfer_from(t.sender, t.recipient, t.amount)
