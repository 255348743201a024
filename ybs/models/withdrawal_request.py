"""
WithdrawalRequest model.

Payout request whose amount is reserved out of available_balance while
the request is outstanding.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ybs.models.base import Base
from ybs.models.enums import OUTSTANDING_WITHDRAWAL_STATUSES, WithdrawalStatus
from ybs.models.types import MoneyType

if TYPE_CHECKING:
    from ybs.models.user import User


class WithdrawalRequest(Base):
    """
    Withdrawal request entity.

    Status flow: PENDING -> PROCESSING -> COMPLETED | REJECTED,
    REJECTED -> PENDING on retry. COMPLETED is terminal.

    Attributes:
        id: Primary key
        user_id: Owner
        amount: Requested (and reserved) amount
        mpesa_number: Payout account in 2547XXXXXXXX form
        status: WithdrawalStatus value
        admin_id: Operator who resolved the request
        mpesa_transaction_code: External payout confirmation code
        rejection_reason: Why the request was rejected or cancelled
        requested_at: Creation (or latest retry) time
        processed_at: Time an operator claimed the request
        resolved_at: Time the request reached COMPLETED/REJECTED
    """

    __tablename__ = "withdrawal_requests"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_withdrawal_amount_positive"),
        Index("idx_withdrawal_requests_user_status", "user_id", "status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    mpesa_number: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=WithdrawalStatus.PENDING.value,
        nullable=False,
        index=True,
    )
    admin_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    mpesa_transaction_code: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user: Mapped["User"] = relationship(
        "User", back_populates="withdrawal_requests", foreign_keys=[user_id]
    )

    @property
    def is_outstanding(self) -> bool:
        """True while the amount is reserved."""
        return self.status in OUTSTANDING_WITHDRAWAL_STATUSES

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<WithdrawalRequest(id={self.id}, user_id={self.user_id}, "
            f"amount={self.amount}, status={self.status})>"
        )
