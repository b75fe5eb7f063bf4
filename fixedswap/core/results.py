"""Result types for pool operations.

All types are frozen (immutable). A rejected operation carries the error kind
and a message; nothing is applied to any ledger in that case.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, NamedTuple, Optional

from ..errors import ErrorKind, error_for


class WithdrawAmounts(NamedTuple):
    token0_amount: int
    token1_amount: int


@dataclass(frozen=True)
class PoolSnapshot:
    """Pool balances and outstanding shares at one instant."""

    balance0: int
    balance1: int
    total_shares: int


@dataclass(frozen=True)
class PoolResult:
    """Result of a single pool operation."""

    ok: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    message: Optional[str] = None

    @classmethod
    def accepted(cls, value: Any) -> "PoolResult":
        return cls(ok=True, value=value)

    @classmethod
    def rejected(cls, error: ErrorKind, message: str) -> "PoolResult":
        return cls(ok=False, error=error, message=message)

    def unwrap(self) -> Any:
        """Return the value, or raise the ``SwapError`` subclass for the rejection."""
        if self.ok:
            return self.value
        assert self.error is not None
        raise error_for(self.error, self.message or self.error.value)
