"""
Referral model.

One row per referrer/referred pair, carrying the fixed bonus for its level.
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
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ybs.models.base import Base
from ybs.models.enums import EarningsStatus
from ybs.models.types import MoneyType

if TYPE_CHECKING:
    from ybs.models.user import User


class Referral(Base):
    """
    Referral record (edge of the referral graph).

    Created PENDING at registration for each of the up to three ancestors
    of the new user. Moves to AVAILABLE exactly once, when the referred
    user activates.

    Attributes:
        id: Primary key
        referrer_id: Ancestor receiving the bonus
        referred_id: Newly registered user
        level: Distance from referred to referrer (1-3)
        earnings_amount: Fixed bonus for this level
        earnings_status: PENDING or AVAILABLE
        created_at: Registration time
        confirmed_at: Release time
    """

    __tablename__ = "referrals"
    __table_args__ = (
        UniqueConstraint(
            "referrer_id", "referred_id", name="uq_referrals_referrer_referred"
        ),
        CheckConstraint("level BETWEEN 1 AND 3", name="check_referral_level"),
        CheckConstraint(
            "earnings_amount > 0", name="check_referral_amount_positive"
        ),
        Index("idx_referrals_referred_status", "referred_id", "earnings_status"),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    referrer_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    referred_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    earnings_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    earnings_status: Mapped[str] = mapped_column(
        String(20), default=EarningsStatus.PENDING.value, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    referrer: Mapped["User"] = relationship("User", foreign_keys=[referrer_id])
    referred: Mapped["User"] = relationship("User", foreign_keys=[referred_id])

    @property
    def is_pending(self) -> bool:
        """True while the bonus has not been released."""
        return self.earnings_status == EarningsStatus.PENDING.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_id={self.referred_id}, level={self.level}, "
            f"status={self.earnings_status})>"
        )
