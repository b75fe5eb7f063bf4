"""
Virtual amount solver.

A two-asset deposit (or withdrawal) rarely matches the pool ratio. The solver
finds the implied internal conversion ``dx -> dy`` (priced by the curve) that
turns the caller's pair into one matching a target ratio:

- deposit: the pool balances after the conversion,
- withdraw: the caller-requested ``first_token_share : ONE - first_token_share``.

The split is found by bisection around a linearized initial guess, bounded to
``[0.998 * dx0, min(1.002 * dx0, y_balance)]``. The loop stops on an exact
match or once the bracket is within ``threshold``; neither outcome is an error.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Tuple

from ..config import DEFAULT_THRESHOLD
from ..errors import DegenerateStateError, InvalidAmountError
from ..state.ledger import Amount
from .curve import ONE, curve_return

logger = logging.getLogger(__name__)

# Bisection bracket around the initial guess, as (numerator, denominator).
LOWER_BOUND = (998, 1000)
UPPER_BOUND = (1002, 1000)


@dataclass(frozen=True)
class Bisection:
    """Final state of a bisection run."""

    dx: int
    dy: int
    shift: int
    left: int
    right: int
    iterations: int


def check_virtual_amounts_formula(x: int, y: int, x_balance: int, y_balance: int) -> int:
    """
    Cross-ratio test. Zero at equilibrium:

         x      x_balance
        --- == -----------
         y      y_balance
    """
    return x * y_balance - y * x_balance


def bisect_split(
    *,
    dx: int,
    right_cap: int,
    quote: Callable[[int], int],
    shift_of: Callable[[int, int], int],
    threshold: int = DEFAULT_THRESHOLD,
) -> Bisection:
    """
    Bisect on ``dx`` until ``shift_of(dx, quote(dx))`` is zero or the bracket closes.

    ``shift > 0`` means ``dx`` is too small, ``shift < 0`` means too large.
    """
    left = dx * LOWER_BOUND[0] // LOWER_BOUND[1]
    right = min(dx * UPPER_BOUND[0] // UPPER_BOUND[1], right_cap)
    dy = quote(dx)
    shift = shift_of(dx, dy)
    iterations = 0

    while left + threshold < right:
        if shift > 0:
            left = dx
            dx = (dx + right) // 2
        elif shift < 0:
            right = dx
            dx = (left + dx) // 2
        else:
            break
        dy = quote(dx)
        shift = shift_of(dx, dy)
        iterations += 1

    logger.debug("bisection finished after %d iterations (dx=%d, shift=%d)", iterations, dx, shift)
    return Bisection(dx=dx, dy=dy, shift=shift, left=left, right=right, iterations=iterations)


def solve_deposit(
    x: Amount,
    y: Amount,
    x_balance: Amount,
    y_balance: Amount,
    threshold: int = DEFAULT_THRESHOLD,
) -> Tuple[Amount, Amount]:
    """
    Reduce a deposit with X in excess to a pair matching the post-conversion pool.

    The initial guess comes from the equilibrium equation with dx ~ dy:

        x - dx     x_balance + dx
        ------  =  --------------   =>  dx = (x * y_balance - x_balance * y) / (x_balance + y_balance + x + y)
        y + dx     y_balance - dx
    """
    dx = check_virtual_amounts_formula(x, y, x_balance, y_balance) // (x_balance + y_balance + x + y)
    if dx == 0:
        return x, y

    result = bisect_split(
        dx=dx,
        right_cap=y_balance,
        quote=lambda d: curve_return(x_balance, y_balance, d),
        shift_of=lambda d, e: check_virtual_amounts_formula(x - d, y + e, x_balance + d, y_balance - e),
        threshold=threshold,
    )
    return x - result.dx, y + result.dy


def solve_withdraw(
    virtual_x: Amount,
    virtual_y: Amount,
    balance_x: Amount,
    balance_y: Amount,
    first_token_share: int,
    threshold: int = DEFAULT_THRESHOLD,
) -> Tuple[Amount, Amount]:
    """
    Re-split a pro-rata withdrawal so that X makes up ``first_token_share`` of it.

    The initial guess assumes dx ~ dy:

        x - dx        first_token_share
        ------  =  ----------------------   =>  dx = (x * (ONE - s) - y * s) / ONE
        y + dx     ONE - first_token_share

    Raises:
        DegenerateStateError: If both balances are zero
    """
    if balance_x == 0 and balance_y == 0:
        raise DegenerateStateError("Amount exceeds total balance")
    if first_token_share == 0:
        return 0, virtual_y + curve_return(balance_x, balance_y, virtual_x)

    second_token_share = ONE - first_token_share
    dx = (virtual_x * second_token_share - virtual_y * first_token_share) // ONE

    result = bisect_split(
        dx=dx,
        right_cap=balance_y,
        quote=lambda d: curve_return(balance_x, balance_y, d),
        shift_of=lambda d, e: check_virtual_amounts_formula(
            virtual_x - d, virtual_y + e, first_token_share, second_token_share
        ),
        threshold=threshold,
    )
    return virtual_x - result.dx, virtual_y + result.dy


def get_virtual_amounts_for_deposit(
    amount0: Amount,
    amount1: Amount,
    balance0: Amount,
    balance1: Amount,
    threshold: int = DEFAULT_THRESHOLD,
) -> Tuple[Amount, Amount]:
    """
    Balanced-equivalent pair for a deposit of ``(amount0, amount1)``.

    Picks the excess side from the sign of the cross-ratio and solves with that
    side as X; a deposit already matching the pool ratio is returned as-is.
    """
    shift = check_virtual_amounts_formula(amount0, amount1, balance0, balance1)
    if shift > 0:
        return solve_deposit(amount0, amount1, balance0, balance1, threshold)
    if shift < 0:
        virtual1, virtual0 = solve_deposit(amount1, amount0, balance1, balance0, threshold)
        return virtual0, virtual1
    return amount0, amount1


def get_real_amounts_for_withdraw(
    virtual0: Amount,
    virtual1: Amount,
    balance0: Amount,
    balance1: Amount,
    first_token_share: int,
    threshold: int = DEFAULT_THRESHOLD,
) -> Tuple[Amount, Amount]:
    """
    Real payout for pro-rata amounts ``(virtual0, virtual1)`` re-split by ratio.

    The conversion is priced against the balances left once the pro-rata
    amounts are taken out. The side currently over-represented relative to
    ``first_token_share`` is solved as X.

    Raises:
        InvalidAmountError: If the pro-rata amounts are both zero
        DegenerateStateError: If the remaining balances are both zero
    """
    if virtual0 + virtual1 == 0:
        raise InvalidAmountError("Empty withdrawal is not allowed")

    current_token0_share = virtual0 * ONE // (virtual0 + virtual1)
    if first_token_share < current_token0_share:
        return solve_withdraw(
            virtual0,
            virtual1,
            balance0 - virtual0,
            balance1 - virtual1,
            first_token_share,
            threshold,
        )
    if first_token_share > current_token0_share:
        real1, real0 = solve_withdraw(
            virtual1,
            virtual0,
            balance1 - virtual1,
            balance0 - virtual0,
            ONE - first_token_share,
            threshold,
        )
        return real0, real1
    return virtual0, virtual1
