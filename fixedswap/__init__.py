"""
fixedswap: a two-token pool priced by a fixed-rate bonding curve.

Public API:
- `Pool` (deposit / withdraw / swap, returning `PoolResult`)
- `TokenLedger`, `AccountId` (balance tables)
- `PoolConfig`, `load_pool_config`
- `get_return` and the virtual amount solver
"""

from .config import PoolConfig, config_from_dict, load_pool_config
from .errors import (
    DegenerateStateError,
    ErrorKind,
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidRatioError,
    InvalidRecipientError,
    QuoteOverflowError,
    SwapError,
)
from .state import AccountId, BalanceLedger, TokenLedger
from .core import (
    ONE,
    Pool,
    PoolResult,
    PoolSnapshot,
    WithdrawAmounts,
    get_real_amounts_for_withdraw,
    get_return,
    get_virtual_amounts_for_deposit,
)

__all__ = [
    "PoolConfig",
    "config_from_dict",
    "load_pool_config",
    "DegenerateStateError",
    "ErrorKind",
    "InsufficientBalanceError",
    "InvalidAmountError",
    "InvalidRatioError",
    "InvalidRecipientError",
    "QuoteOverflowError",
    "SwapError",
    "AccountId",
    "BalanceLedger",
    "TokenLedger",
    "ONE",
    "Pool",
    "PoolResult",
    "PoolSnapshot",
    "WithdrawAmounts",
    "get_real_amounts_for_withdraw",
    "get_return",
    "get_virtual_amounts_for_deposit",
]
