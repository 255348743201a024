"""
User model.

Represents a registered platform member and their balance ledger fields.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

import bcrypt
from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ybs.models.base import Base
from ybs.models.enums import AccountStatus
from ybs.models.types import MoneyType

if TYPE_CHECKING:
    from ybs.models.transaction import Transaction
    from ybs.models.withdrawal_request import WithdrawalRequest


class User(Base):
    """
    User entity.

    The four monetary fields form the balance ledger:
    - pending_earnings: referral bonuses waiting on the referred user's activation
    - available_balance: payable funds (withdrawal reservations are removed from it)
    - total_earned: sum of CONFIRMED earning journal entries
    - total_withdrawn: sum of completed withdrawals

    The referrer is referenced by referral code (referred_by), not by id.
    """

    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint(
            "available_balance >= 0",
            name="check_user_available_balance_non_negative",
        ),
        CheckConstraint(
            "pending_earnings >= 0",
            name="check_user_pending_earnings_non_negative",
        ),
        CheckConstraint(
            "total_earned >= 0", name="check_user_total_earned_non_negative"
        ),
        CheckConstraint(
            "total_withdrawn >= 0",
            name="check_user_total_withdrawn_non_negative",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # Identity / contact
    phone_number: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    email: Mapped[str | None] = mapped_column(
        String(255), unique=True, nullable=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Referral
    referral_code: Mapped[str] = mapped_column(
        String(20), unique=True, index=True, nullable=False
    )
    referred_by: Mapped[str | None] = mapped_column(
        String(20), nullable=True, index=True
    )
    total_referrals: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    # Status
    account_status: Mapped[str] = mapped_column(
        String(20),
        default=AccountStatus.UNVERIFIED.value,
        nullable=False,
        index=True,
    )

    # Balances
    pending_earnings: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    available_balance: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_earned: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )
    total_withdrawn: Mapped[Decimal] = mapped_column(
        MoneyType, default=Decimal("0"), nullable=False
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
    activated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    transactions: Mapped[list["Transaction"]] = relationship(
        "Transaction",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    withdrawal_requests: Mapped[list["WithdrawalRequest"]] = relationship(
        "WithdrawalRequest",
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="WithdrawalRequest.user_id",
    )

    @property
    def is_active(self) -> bool:
        """True once the activation fee has been paid."""
        return self.account_status == AccountStatus.ACTIVE.value

    @property
    def full_name(self) -> str:
        """First and last name joined, or 'Unknown'."""
        name = " ".join(p for p in (self.first_name, self.last_name) if p)
        return name or "Unknown"

    def set_password(self, password: str, rounds: int = 12) -> None:
        """
        Set login password with bcrypt hashing.

        Args:
            password: Plain text password to hash and store
            rounds: bcrypt cost factor
        """
        self.password_hash = bcrypt.hashpw(
            password.encode(), bcrypt.gensalt(rounds=rounds)
        ).decode()

    def verify_password(self, password: str) -> bool:
        """
        Verify password against stored hash.

        Args:
            password: Plain text password to verify

        Returns:
            True if password matches, False otherwise
        """
        if not self.password_hash:
            return False
        return bcrypt.checkpw(password.encode(), self.password_hash.encode())

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<User(id={self.id}, phone={self.phone_number}, "
            f"status={self.account_status})>"
        )
