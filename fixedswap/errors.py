"""Exception types for the fixed-rate swap pool.

The ledger, curve and solver layers raise these directly. ``Pool`` catches
them and reports the failure as a ``PoolResult``; ``PoolResult.unwrap()``
raises them again for callers that prefer exceptions.
"""

from __future__ import annotations

from enum import Enum, unique


@unique
class ErrorKind(Enum):
    """One member per precondition family."""
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INVALID_AMOUNT = "invalid_amount"
    INVALID_RECIPIENT = "invalid_recipient"
    INVALID_RATIO = "invalid_ratio"
    QUOTE_OVERFLOW = "quote_overflow"
    DEGENERATE_STATE = "degenerate_state"


class SwapError(Exception):
    """Base class: an operation's precondition is not satisfied."""

    kind: ErrorKind


class InsufficientBalanceError(SwapError):
    """Raised when a burn or transfer exceeds the available balance."""

    kind = ErrorKind.INSUFFICIENT_BALANCE


class InvalidAmountError(SwapError):
    """Raised for an empty deposit, withdrawal or swap."""

    kind = ErrorKind.INVALID_AMOUNT


class InvalidRecipientError(SwapError):
    """Raised when the recipient is unset or is the pool itself."""

    kind = ErrorKind.INVALID_RECIPIENT


class InvalidRatioError(SwapError):
    """Raised when ``first_token_share`` is outside ``[0, ONE]``."""

    kind = ErrorKind.INVALID_RATIO


class QuoteOverflowError(SwapError):
    """Raised when a quote asks for more than the destination balance."""

    kind = ErrorKind.QUOTE_OVERFLOW


class DegenerateStateError(SwapError):
    """Raised when both pool balances are zero during a ratio withdrawal."""

    kind = ErrorKind.DEGENERATE_STATE


_BY_KIND: dict[ErrorKind, type[SwapError]] = {
    cls.kind: cls
    for cls in (
        InsufficientBalanceError,
        InvalidAmountError,
        InvalidRecipientError,
        InvalidRatioError,
        QuoteOverflowError,
        DegenerateStateError,
    )
}


def error_for(kind: ErrorKind, message: str) -> SwapError:
    """Build the exception instance matching ``kind``."""
    return _BY_KIND[kind](message)
