"""
Transaction model.

Journal entry for every financial event. Immutable after creation except
for the one-way status progression out of PENDING.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import (
    JSON,
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
from ybs.models.enums import TransactionStatus
from ybs.models.types import MoneyType

if TYPE_CHECKING:
    from ybs.models.user import User


class Transaction(Base):
    """
    Transaction journal entry.

    Attributes:
        id: Primary key
        user_id: Owner of the entry
        type: TransactionType value
        amount: Entry amount (always positive)
        status: TransactionStatus value
        correlation_key: Payment correlation id, withdrawal request id,
            or referral record key; used for idempotent lookups
        external_reference: Provider receipt / payout confirmation code
        description: Human readable description
        meta: Free-form JSON metadata
        created_at: Creation time
        confirmed_at: Time the entry reached CONFIRMED
        resolved_at: Time the entry left PENDING
    """

    __tablename__ = "transactions"
    __table_args__ = (
        CheckConstraint("amount > 0", name="check_transaction_amount_positive"),
        Index("idx_transactions_correlation", "correlation_key", "type"),
        Index("idx_transactions_user_type_status", "user_id", "type", "status"),
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
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=TransactionStatus.PENDING.value, nullable=False
    )
    correlation_key: Mapped[str] = mapped_column(String(100), nullable=False)
    external_reference: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta: Mapped[dict[str, Any] | None] = mapped_column(
        "metadata", JSON, nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    resolved_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    user: Mapped["User"] = relationship("User", back_populates="transactions")

    @property
    def is_pending(self) -> bool:
        """True while the entry can still change status."""
        return self.status == TransactionStatus.PENDING.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Transaction(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, amount={self.amount}, status={self.status})>"
        )
