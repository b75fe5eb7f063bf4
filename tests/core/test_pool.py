"""Tests for fixedswap/core/pool.py: deposit, withdraw and swap accounting.

Every seeded pool starts like the reference scenario: a user holding
2000 ether of each token deposits 1 ether of each.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import pytest

from fixedswap import (
    AccountId,
    ErrorKind,
    InsufficientBalanceError,
    Pool,
    PoolConfig,
    TokenLedger,
    WithdrawAmounts,
)
from fixedswap.core.curve import ONE, get_return
from fixedswap.core.solver import get_real_amounts_for_withdraw

ETHER = 10**18


@dataclass
class Setup:
    pool: Pool
    token0: TokenLedger
    token1: TokenLedger
    user: AccountId
    other: AccountId

    def ledgers_state(self):
        return (
            self.token0.get_all_balances(),
            self.token1.get_all_balances(),
            self.pool.shares.get_all_balances(),
            self.pool.snapshot(),
        )


@pytest.fixture
def seeded() -> Setup:
    token0, token1 = TokenLedger("USDT"), TokenLedger("USDC")
    pool = Pool(token0, token1)
    user, other = AccountId.new("user"), AccountId.new("other")
    token0.mint(user, 2000 * ETHER)
    token1.mint(user, 2000 * ETHER)
    assert pool.deposit(ETHER, ETHER, sender=user).unwrap() == 2 * ETHER
    return Setup(pool, token0, token1, user, other)


# ---------------------------------------------------------------------------
# regression scenarios
# ---------------------------------------------------------------------------


def test_deposit_then_withdraw_all_as_token1_regression(seeded: Setup) -> None:
    shares = seeded.pool.deposit(ETHER, 0, sender=seeded.user).unwrap()
    assert shares == 999_949_997_493_543_257

    amounts = seeded.pool.withdraw_with_ratio(shares, 0, sender=seeded.user).unwrap()
    assert amounts == WithdrawAmounts(token0_amount=0, token1_amount=999_785_387_405_998_926)


def test_swap_0_to_1_regression(seeded: Setup) -> None:
    assert seeded.pool.swap_0_to_1(ETHER, sender=seeded.user).unwrap() == 999_785_325_996_316_875


def test_swap_1_to_0_mirrors_swap_0_to_1(seeded: Setup) -> None:
    assert seeded.pool.swap_1_to_0(ETHER, sender=seeded.user).unwrap() == 999_785_325_996_316_875


def test_round_trip_is_close_to_curve_quote(seeded: Setup) -> None:
    # Depositing (D, 0) and withdrawing everything as token1 is close to, but
    # not exactly, a swap priced at the post-deposit balances: the withdrawal
    # is priced against the balances left after the pro-rata cut.
    deposit = ETHER
    shares = seeded.pool.deposit(deposit, 0, sender=seeded.user).unwrap()
    balance0, balance1 = seeded.pool.balances()
    quote = get_return(balance0, balance1, deposit)

    amounts = seeded.pool.withdraw_with_ratio(shares, 0, sender=seeded.user).unwrap()
    assert amounts.token0_amount == 0
    assert abs(amounts.token1_amount - quote) * 10**4 <= quote
    assert amounts.token1_amount <= deposit


# ---------------------------------------------------------------------------
# deposit
# ---------------------------------------------------------------------------


class TestDeposit:
    def test_first_deposit_sets_exchange_rate(self, seeded: Setup):
        assert seeded.pool.snapshot().total_shares == 2 * ETHER
        assert seeded.pool.share_of(seeded.user) == 2 * ETHER
        assert seeded.pool.balances() == (ETHER, ETHER)

    def test_balanced_deposit_is_pro_rata(self, seeded: Setup):
        assert seeded.pool.deposit(3 * ETHER, 3 * ETHER, sender=seeded.user).unwrap() == 6 * ETHER

    def test_deposit_for_mints_to_recipient(self, seeded: Setup):
        shares = seeded.pool.deposit_for(ETHER, ETHER, seeded.other, sender=seeded.user).unwrap()
        assert seeded.pool.share_of(seeded.other) == shares == 2 * ETHER
        assert seeded.token0.balance_of(seeded.other) == 0

    def test_share_conservation(self, seeded: Setup):
        before = seeded.pool.total_shares()
        shares = seeded.pool.deposit(ETHER // 3, 2 * ETHER, sender=seeded.user).unwrap()
        assert shares > 0
        assert seeded.pool.total_shares() == before + shares

    def test_single_sided_deposit_moves_only_one_token(self, seeded: Setup):
        user1_before = seeded.token1.balance_of(seeded.user)
        seeded.pool.deposit(ETHER, 0, sender=seeded.user).unwrap()
        assert seeded.token1.balance_of(seeded.user) == user1_before
        assert seeded.pool.balances() == (2 * ETHER, ETHER)

    def test_empty_deposit_rejected(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.deposit(0, 0, sender=seeded.user)
        assert not r.ok
        assert r.error is ErrorKind.INVALID_AMOUNT
        assert r.message == "Empty deposit is not allowed"
        assert seeded.ledgers_state() == before

    @pytest.mark.parametrize("to", [None, "pool"])
    def test_invalid_recipient_rejected(self, seeded: Setup, to):
        recipient = seeded.pool.account if to == "pool" else None
        before = seeded.ledgers_state()
        r = seeded.pool.deposit_for(ETHER, ETHER, recipient, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_RECIPIENT
        assert seeded.ledgers_state() == before

    def test_insufficient_second_token_leaves_first_untouched(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.deposit(ETHER, 3000 * ETHER, sender=seeded.user)
        assert r.error is ErrorKind.INSUFFICIENT_BALANCE
        assert seeded.ledgers_state() == before

    def test_negative_amount_rejected(self, seeded: Setup):
        r = seeded.pool.deposit(-1, ETHER, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_AMOUNT


# ---------------------------------------------------------------------------
# withdraw
# ---------------------------------------------------------------------------


class TestWithdraw:
    def test_full_withdrawal_empties_pool(self, seeded: Setup):
        amounts = seeded.pool.withdraw(2 * ETHER, sender=seeded.user).unwrap()
        assert amounts == (ETHER, ETHER)
        assert seeded.pool.snapshot().total_shares == 0
        assert seeded.pool.balances() == (0, 0)
        assert seeded.token0.balance_of(seeded.user) == 2000 * ETHER

    def test_pro_rata_rounds_down(self, seeded: Setup):
        seeded.pool.swap_0_to_1(ETHER // 7, sender=seeded.user).unwrap()
        balance0, balance1 = seeded.pool.balances()
        amounts = seeded.pool.withdraw(ETHER // 3, sender=seeded.user).unwrap()
        assert amounts.token0_amount == balance0 * (ETHER // 3) // (2 * ETHER)
        assert amounts.token1_amount == balance1 * (ETHER // 3) // (2 * ETHER)

    def test_withdraw_for_pays_recipient(self, seeded: Setup):
        amounts = seeded.pool.withdraw_for(ETHER, seeded.other, sender=seeded.user).unwrap()
        assert seeded.token0.balance_of(seeded.other) == amounts.token0_amount == ETHER // 2
        assert seeded.token1.balance_of(seeded.other) == amounts.token1_amount == ETHER // 2
        assert seeded.pool.share_of(seeded.user) == ETHER

    def test_share_conservation(self, seeded: Setup):
        before = seeded.pool.total_shares()
        seeded.pool.withdraw(ETHER // 5, sender=seeded.user).unwrap()
        assert seeded.pool.total_shares() == before - ETHER // 5

    def test_empty_withdrawal_rejected(self, seeded: Setup):
        r = seeded.pool.withdraw(0, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_AMOUNT
        assert r.message == "Empty withdrawal is not allowed"

    def test_more_than_held_rejected(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.withdraw(ETHER, sender=seeded.other)
        assert r.error is ErrorKind.INSUFFICIENT_BALANCE
        assert seeded.ledgers_state() == before

    @pytest.mark.parametrize("to", [None, "pool"])
    def test_invalid_recipient_rejected(self, seeded: Setup, to):
        recipient = seeded.pool.account if to == "pool" else None
        r = seeded.pool.withdraw_for(ETHER, recipient, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_RECIPIENT


class TestWithdrawWithRatio:
    def test_all_in_token0(self, seeded: Setup):
        amounts = seeded.pool.withdraw_with_ratio(ETHER, ONE, sender=seeded.user).unwrap()
        assert amounts.token1_amount == 0
        assert ETHER // 2 < amounts.token0_amount < ETHER

    def test_matching_ratio_equals_plain_withdraw(self, seeded: Setup):
        amounts = seeded.pool.withdraw_with_ratio(ETHER, ONE // 2, sender=seeded.user).unwrap()
        assert amounts == (ETHER // 2, ETHER // 2)

    def test_for_variant_pays_recipient(self, seeded: Setup):
        amounts = seeded.pool.withdraw_for_with_ratio(ETHER, seeded.other, 0, sender=seeded.user).unwrap()
        assert seeded.token1.balance_of(seeded.other) == amounts.token1_amount
        assert seeded.token0.balance_of(seeded.other) == 0

    @pytest.mark.parametrize("ratio", [ONE + 1, -1])
    def test_ratio_out_of_range_rejected(self, seeded: Setup, ratio):
        before = seeded.ledgers_state()
        r = seeded.pool.withdraw_with_ratio(ETHER, ratio, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_RATIO
        assert seeded.ledgers_state() == before

    def test_preview_matches_module_solver(self, seeded: Setup):
        v0, v1 = 666_644_442_960_049_991, 333_322_221_480_024_995
        before = seeded.ledgers_state()
        preview = seeded.pool.get_real_amounts_for_withdraw(v0, v1, 2 * ETHER, ETHER, 0)
        assert preview == (0, 999_785_387_405_998_926)
        assert preview == get_real_amounts_for_withdraw(v0, v1, 2 * ETHER, ETHER, 0)
        assert seeded.ledgers_state() == before

    def test_preview_uses_pool_threshold(self):
        token0, token1 = TokenLedger("USDT"), TokenLedger("USDC")
        coarse = Pool(token0, token1, PoolConfig(threshold=10**9))
        v0, v1 = 666_644_442_960_049_991, 333_322_221_480_024_995
        assert coarse.get_real_amounts_for_withdraw(v0, v1, 2 * ETHER, ETHER, ONE // 2) == (
            get_real_amounts_for_withdraw(v0, v1, 2 * ETHER, ETHER, ONE // 2, threshold=10**9)
        )

    def test_whole_pool_with_skewed_ratio_is_degenerate(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.withdraw_with_ratio(2 * ETHER, 0, sender=seeded.user)
        assert r.error is ErrorKind.DEGENERATE_STATE
        assert seeded.ledgers_state() == before


# ---------------------------------------------------------------------------
# swap
# ---------------------------------------------------------------------------


class TestSwap:
    def test_swap_moves_both_tokens(self, seeded: Setup):
        out = seeded.pool.swap_0_to_1(ETHER // 10, sender=seeded.user).unwrap()
        assert seeded.pool.balances() == (ETHER + ETHER // 10, ETHER - out)
        assert seeded.pool.total_shares() == 2 * ETHER

    def test_swap_for_pays_recipient(self, seeded: Setup):
        out = seeded.pool.swap_1_to_0_for(ETHER // 10, seeded.other, sender=seeded.user).unwrap()
        assert seeded.token0.balance_of(seeded.other) == out
        assert seeded.token1.balance_of(seeded.other) == 0

    def test_quote_matches_swap(self, seeded: Setup):
        quote = seeded.pool.get_return(seeded.token0, seeded.token1, ETHER // 2).unwrap()
        assert seeded.pool.swap_0_to_1(ETHER // 2, sender=seeded.user).unwrap() == quote

    def test_quote_rejects_foreign_token(self, seeded: Setup):
        with pytest.raises(ValueError):
            seeded.pool.get_return(seeded.token0, TokenLedger("DAI"), 1)

    def test_zero_input_rejected(self, seeded: Setup):
        r = seeded.pool.swap_0_to_1(0, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_AMOUNT

    def test_dust_input_is_an_empty_swap(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.swap_0_to_1(1, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_AMOUNT
        assert r.message == "Empty swap is not allowed"
        assert seeded.ledgers_state() == before

    def test_input_above_pool_balance_is_quote_overflow(self, seeded: Setup):
        r = seeded.pool.swap_0_to_1(ETHER + 1, sender=seeded.user)
        assert r.error is ErrorKind.QUOTE_OVERFLOW

    def test_sender_without_funds_rejected(self, seeded: Setup):
        before = seeded.ledgers_state()
        r = seeded.pool.swap_0_to_1(ETHER // 2, sender=seeded.other)
        assert r.error is ErrorKind.INSUFFICIENT_BALANCE
        assert seeded.ledgers_state() == before

    @pytest.mark.parametrize("to", [None, "pool"])
    def test_invalid_recipient_rejected(self, seeded: Setup, to):
        recipient = seeded.pool.account if to == "pool" else None
        r = seeded.pool.swap_0_to_1_for(ETHER // 2, recipient, sender=seeded.user)
        assert r.error is ErrorKind.INVALID_RECIPIENT

    @pytest.mark.parametrize("direction", ["swap_0_to_1", "swap_1_to_0"])
    def test_pool_cannot_swap_its_own_reserves(self, seeded: Setup, direction):
        before = seeded.ledgers_state()
        r = getattr(seeded.pool, direction)(ETHER // 2, sender=seeded.pool.account)
        assert r.error is ErrorKind.INVALID_RECIPIENT
        assert r.message == "Swap from this is forbidden"
        assert seeded.ledgers_state() == before


# ---------------------------------------------------------------------------
# misc
# ---------------------------------------------------------------------------


def test_unwrap_raises_typed_error(seeded: Setup) -> None:
    r = seeded.pool.withdraw(ETHER, sender=seeded.other)
    with pytest.raises(InsufficientBalanceError):
        r.unwrap()


def test_rejections_are_logged(seeded: Setup, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="fixedswap.core.pool"):
        seeded.pool.swap_0_to_1(0, sender=seeded.user)
    assert "swap_0_to_1 rejected (invalid_amount)" in caplog.text


def test_pool_requires_distinct_tokens() -> None:
    token = TokenLedger()
    with pytest.raises(ValueError):
        Pool(token, token)


def test_coarse_threshold_still_balances_deposit() -> None:
    token0, token1 = TokenLedger(), TokenLedger()
    pool = Pool(token0, token1, PoolConfig(threshold=10**9))
    user = AccountId.new()
    token0.mint(user, 10 * ETHER)
    token1.mint(user, 10 * ETHER)
    pool.deposit(ETHER, ETHER, sender=user).unwrap()

    coarse = pool.get_virtual_amounts_for_deposit(ETHER, 0)
    exact = (666_644_442_960_049_992, 333_322_221_480_024_996)
    assert abs(coarse[0] - exact[0]) <= 2 * 10**9
    assert abs(coarse[1] - exact[1]) <= 2 * 10**9


def test_ledgers_stay_consistent_after_mixed_operations(seeded: Setup) -> None:
    pool, user = seeded.pool, seeded.user
    pool.swap_0_to_1(ETHER // 4, sender=user).unwrap()
    shares = pool.deposit(ETHER // 2, ETHER // 8, sender=user).unwrap()
    pool.swap_1_to_0(ETHER // 3, sender=user).unwrap()
    pool.withdraw_with_ratio(shares, ONE // 4, sender=user).unwrap()
    pool.withdraw(pool.share_of(user), sender=user).unwrap()

    assert pool.total_shares() == 0
    assert seeded.token0.verify_supply() and seeded.token1.verify_supply()
    assert seeded.token0.total_supply() == seeded.token1.total_supply() == 2000 * ETHER
