"""
Tests for balance ledger mutation helpers.

The helpers operate on already-locked User objects, so these tests use
detached model instances and a mocked unit of work.
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from ybs.models import User
from ybs.services.balance import BalanceLedger
from ybs.utils.exceptions import (
    ConsistencyViolation,
    ErrorKind,
    InsufficientFundsError,
)


def make_user(**balances) -> User:
    values = {
        "pending_earnings": Decimal("0"),
        "available_balance": Decimal("0"),
        "total_earned": Decimal("0"),
        "total_withdrawn": Decimal("0"),
    }
    values.update(balances)
    return User(id=1, phone_number="254712345678", **values)


@pytest.fixture
def ledger():
    return BalanceLedger(MagicMock())


class TestReferralEarnings:
    """Pending accrual and release."""

    def test_accrue_pending(self, ledger):
        user = make_user()

        ledger.accrue_pending(user, Decimal("300"))

        assert user.pending_earnings == Decimal("300")
        assert user.available_balance == Decimal("0")
        assert user.total_earned == Decimal("0")

    def test_release_moves_pending_to_available(self, ledger):
        user = make_user(pending_earnings=Decimal("450"))

        ledger.release_pending(user, Decimal("300"))

        assert user.pending_earnings == Decimal("150")
        assert user.available_balance == Decimal("300")
        assert user.total_earned == Decimal("300")

    def test_release_more_than_pending_is_violation(self, ledger):
        """Releasing would drive pending_earnings negative."""
        user = make_user(pending_earnings=Decimal("100"))

        with pytest.raises(ConsistencyViolation):
            ledger.release_pending(user, Decimal("300"))

        assert user.pending_earnings == Decimal("100")
        assert user.available_balance == Decimal("0")


class TestWithdrawalReservation:
    """Reserve, refund and settle."""

    def test_reserve_full_balance(self, ledger):
        user = make_user(available_balance=Decimal("1000"))

        ledger.reserve(user, Decimal("1000"))

        assert user.available_balance == Decimal("0")

    def test_reserve_beyond_balance_rejected(self, ledger):
        user = make_user(available_balance=Decimal("999.99"))

        with pytest.raises(InsufficientFundsError) as exc_info:
            ledger.reserve(user, Decimal("1000"))

        assert exc_info.value.kind == ErrorKind.INSUFFICIENT_FUNDS
        assert user.available_balance == Decimal("999.99")

    def test_reserve_then_refund_round_trip(self, ledger):
        user = make_user(available_balance=Decimal("1500"))

        ledger.reserve(user, Decimal("1200"))
        ledger.refund(user, Decimal("1200"))

        assert user.available_balance == Decimal("1500")

    def test_settle_records_withdrawn_total(self, ledger):
        user = make_user(available_balance=Decimal("0"))

        ledger.settle_withdrawal(user, Decimal("1000"))

        assert user.total_withdrawn == Decimal("1000")
        assert user.available_balance == Decimal("0")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-1")])
    def test_non_positive_amounts_rejected(self, ledger, amount):
        user = make_user(available_balance=Decimal("1000"))

        for mutate in (
            ledger.accrue_pending,
            ledger.reserve,
            ledger.refund,
            ledger.settle_withdrawal,
        ):
            with pytest.raises(ConsistencyViolation):
                mutate(user, amount)
