"""
State tables for the fixed-rate swap pool
"""

from .accounts import AccountId
from .ledger import Amount, BalanceLedger, TokenLedger

__all__ = [
    "AccountId",
    "Amount",
    "BalanceLedger",
    "TokenLedger",
]
