"""
Core pricing and accounting
"""

from .curve import ONE, C1, C2, C3, get_return, curve_return, power_helper
from .solver import (
    Bisection,
    bisect_split,
    check_virtual_amounts_formula,
    get_real_amounts_for_withdraw,
    get_virtual_amounts_for_deposit,
    solve_deposit,
    solve_withdraw,
)
from .results import PoolResult, PoolSnapshot, WithdrawAmounts
from .pool import Pool

__all__ = [
    "ONE",
    "C1",
    "C2",
    "C3",
    "get_return",
    "curve_return",
    "power_helper",
    "Bisection",
    "bisect_split",
    "check_virtual_amounts_formula",
    "get_real_amounts_for_withdraw",
    "get_virtual_amounts_for_deposit",
    "solve_deposit",
    "solve_withdraw",
    "PoolResult",
    "PoolSnapshot",
    "WithdrawAmounts",
    "Pool",
]
