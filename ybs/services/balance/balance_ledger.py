"""
Balance ledger.

Mutation helpers for the four per-user money fields. Callers pass users
already locked with SELECT FOR UPDATE inside the current unit of work;
every helper checks its precondition before touching the row and raises
instead of leaving a field negative.
"""

from dataclasses import dataclass, field
from decimal import Decimal

from loguru import logger

from ybs.database.unit_of_work import UnitOfWork
from ybs.models.user import User
from ybs.utils.exceptions import (
    ConsistencyViolation,
    InsufficientFundsError,
    NotFoundError,
)


@dataclass
class BalanceAudit:
    """Recomputed balance invariants for one user."""

    user_id: int
    pending_earnings: Decimal
    available_balance: Decimal
    total_earned: Decimal
    total_withdrawn: Decimal
    confirmed_earnings: Decimal
    pending_referral_earnings: Decimal
    reserved_amount: Decimal
    violations: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        """True when no invariant is broken."""
        return not self.violations

    def to_dict(self) -> dict:
        """JSON-friendly representation (amounts as strings)."""
        return {
            "user_id": self.user_id,
            "pending_earnings": str(self.pending_earnings),
            "available_balance": str(self.available_balance),
            "total_earned": str(self.total_earned),
            "total_withdrawn": str(self.total_withdrawn),
            "confirmed_earnings": str(self.confirmed_earnings),
            "pending_referral_earnings": str(self.pending_referral_earnings),
            "reserved_amount": str(self.reserved_amount),
            "is_consistent": self.is_consistent,
            "violations": list(self.violations),
        }


class BalanceLedger:
    """Balance mutations bound to one unit of work."""

    def __init__(self, uow: UnitOfWork) -> None:
        """Initialize balance ledger."""
        self.uow = uow

    def accrue_pending(self, user: User, amount: Decimal) -> None:
        """Add a not-yet-payable referral bonus to pending_earnings."""
        self._require_positive(amount, user)
        user.pending_earnings = user.pending_earnings + amount

    def release_pending(self, user: User, amount: Decimal) -> None:
        """
        Move a referral bonus from pending_earnings to available_balance.

        total_earned grows by the same amount.

        Raises:
            ConsistencyViolation: If pending_earnings would go negative
        """
        self._require_positive(amount, user)
        if user.pending_earnings < amount:
            raise ConsistencyViolation(
                "Pending earnings lower than the amount being released",
                user_id=user.id,
                pending_earnings=user.pending_earnings,
                amount=amount,
            )

        user.pending_earnings = user.pending_earnings - amount
        user.available_balance = user.available_balance + amount
        user.total_earned = user.total_earned + amount

        logger.info(
            "Referral earnings released",
            extra={
                "user_id": user.id,
                "amount": str(amount),
                "available_balance": str(user.available_balance),
            },
        )

    def reserve(self, user: User, amount: Decimal) -> None:
        """
        Remove a withdrawal amount from available_balance.

        Raises:
            InsufficientFundsError: If the balance does not cover it
        """
        self._require_positive(amount, user)
        if user.available_balance < amount:
            raise InsufficientFundsError(
                "Insufficient balance",
                user_id=user.id,
                available=user.available_balance,
                requested=amount,
            )

        balance_before = user.available_balance
        user.available_balance = user.available_balance - amount

        logger.info(
            "Balance reserved for withdrawal",
            extra={
                "user_id": user.id,
                "amount": str(amount),
                "balance_before": str(balance_before),
                "balance_after": str(user.available_balance),
            },
        )

    def refund(self, user: User, amount: Decimal) -> None:
        """Return a reserved withdrawal amount to available_balance."""
        self._require_positive(amount, user)
        balance_before = user.available_balance
        user.available_balance = user.available_balance + amount

        logger.info(
            "Balance restored for withdrawal",
            extra={
                "user_id": user.id,
                "amount": str(amount),
                "balance_before": str(balance_before),
                "balance_after": str(user.available_balance),
            },
        )

    def settle_withdrawal(self, user: User, amount: Decimal) -> None:
        """Consume a reservation permanently (payout completed)."""
        self._require_positive(amount, user)
        user.total_withdrawn = user.total_withdrawn + amount

    async def audit(self, user_id: int) -> BalanceAudit:
        """
        Recompute a user's balance invariants.

        Args:
            user_id: User ID

        Returns:
            BalanceAudit listing any violations

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.uow.users.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found", user_id=user_id)

        confirmed = await self.uow.transactions.sum_confirmed_earnings(user_id)
        pending_referrals = await self.uow.referrals.sum_pending_for_referrer(
            user_id
        )
        reserved = await self.uow.withdrawals.sum_reserved_for_user(user_id)

        audit = BalanceAudit(
            user_id=user_id,
            pending_earnings=user.pending_earnings,
            available_balance=user.available_balance,
            total_earned=user.total_earned,
            total_withdrawn=user.total_withdrawn,
            confirmed_earnings=confirmed,
            pending_referral_earnings=pending_referrals,
            reserved_amount=reserved,
        )

        for name in (
            "pending_earnings",
            "available_balance",
            "total_earned",
            "total_withdrawn",
        ):
            if getattr(user, name) < 0:
                audit.violations.append(f"{name} is negative")
        if user.total_earned != confirmed:
            audit.violations.append(
                "total_earned differs from confirmed earning entries"
            )
        if user.pending_earnings != pending_referrals:
            audit.violations.append(
                "pending_earnings differs from pending referral records"
            )

        if audit.violations:
            logger.warning(
                "Balance audit found violations",
                extra={"user_id": user_id, "violations": audit.violations},
            )
        return audit

    @staticmethod
    def _require_positive(amount: Decimal, user: User) -> None:
        if amount <= 0:
            raise ConsistencyViolation(
                "Balance mutation amount must be positive",
                user_id=user.id,
                amount=amount,
            )
