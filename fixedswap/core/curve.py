"""
Fixed-rate bonding curve.

This module implements the pricing function of the pool: a fixed-point
polynomial approximation of a stableswap curve that trades close to 1:1 for
small amounts and penalizes trades that push the pool away from balance.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Floor Rounding
- Time Complexity: O(1) per quote
- Space Complexity: O(1) auxiliary
- Invariant: 0 <= output <= input (the rate never exceeds the 1:1 peg)

Every division rounds down, so quotes are always in the pool's favor.
"""

from __future__ import annotations

from ..errors import InvalidAmountError, QuoteOverflowError
from ..state.ledger import Amount

# Fixed-point scale: ONE represents 1.0
ONE = 10**18

# Calibration constants. The peg behavior depends on every digit.
C1 = 999_900_000_000_000_000  # 0.9999
C2 = 3_382_712_334_998_325_432  # ~3.3827
C3 = 456_807_350_974_663_119  # ~0.4568, center of the penalty polynomial


def power_helper(x: int) -> int:
    """
    Compute |x - C3|^18 in fixed point.

    Squares up to p^16 and multiplies by p^2, dividing by ONE after each
    multiplication to stay at scale.
    """
    p = x - C3 if x > C3 else C3 - x
    p = p * p // ONE  # p^2
    pp = p * p // ONE  # p^4
    pp = pp * pp // ONE  # p^8
    pp = pp * pp // ONE  # p^16
    return p * pp // ONE  # p^18


def curve_return(from_balance: Amount, to_balance: Amount, input_amount: Amount) -> Amount:
    """
    Unchecked curve formula.

        total = from_balance + to_balance
        x0 = ONE * from_balance / total
        x1 = ONE * (from_balance + input_amount) / total
        multiplier = (C1 * ONE * input / total + C2 * P(x0) - C2 * P(x1)) * total / (ONE * input)
        output = input * clamp(multiplier, 0, ONE) / ONE

    Callers are responsible for ``0 <= input_amount``; the bound against
    ``to_balance`` is checked by ``get_return``.
    """
    if input_amount == 0:
        return 0
    total_balance = from_balance + to_balance
    x0 = ONE * from_balance // total_balance
    x1 = ONE * (from_balance + input_amount) // total_balance
    scaled_input_amount = ONE * input_amount
    amount_multiplier = (
        C1 * scaled_input_amount // total_balance
        + C2 * power_helper(x0)
        - C2 * power_helper(x1)
    ) * total_balance // scaled_input_amount
    amount_multiplier = max(min(amount_multiplier, ONE), 0)
    return input_amount * amount_multiplier // ONE


def get_return(from_balance: Amount, to_balance: Amount, input_amount: Amount) -> Amount:
    """
    Quote the output of converting ``input_amount`` of the "from" asset.

    Args:
        from_balance: Pool balance of the asset being paid in
        to_balance: Pool balance of the asset being paid out
        input_amount: Amount paid in

    Returns:
        Output amount, never above ``input_amount``

    Raises:
        InvalidAmountError: If input_amount or a balance is negative
        QuoteOverflowError: If input_amount exceeds to_balance
    """
    if from_balance < 0 or to_balance < 0:
        raise InvalidAmountError(f"Balances must be non-negative: ({from_balance}, {to_balance})")
    if input_amount < 0:
        raise InvalidAmountError(f"input_amount must be non-negative: {input_amount}")
    if input_amount > to_balance:
        raise QuoteOverflowError(f"input amount is too big: {input_amount} > {to_balance}")
    return curve_return(from_balance, to_balance, input_amount)
