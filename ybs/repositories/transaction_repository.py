"""
Transaction repository.

Data access layer for Transaction journal entries.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ybs.models.enums import (
    EARNING_TRANSACTION_TYPES,
    TransactionStatus,
    TransactionType,
)
from ybs.models.transaction import Transaction
from ybs.repositories.base import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Transaction repository with journal queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize transaction repository."""
        super().__init__(Transaction, session)

    async def find_by_correlation(
        self,
        correlation_key: str,
        tx_type: TransactionType | None = None,
        user_id: int | None = None,
        status: TransactionStatus | None = None,
        for_update: bool = False,
    ) -> list[Transaction]:
        """
        Find journal entries by correlation key.

        Args:
            correlation_key: Payment correlation id, request id, etc.
            tx_type: Optional type filter
            user_id: Optional owner filter
            status: Optional status filter
            for_update: Lock the rows with SELECT FOR UPDATE

        Returns:
            Matching entries, oldest first
        """
        stmt = select(Transaction).where(
            Transaction.correlation_key == correlation_key
        )
        if tx_type is not None:
            stmt = stmt.where(Transaction.type == tx_type.value)
        if user_id is not None:
            stmt = stmt.where(Transaction.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Transaction.status == status.value)
        stmt = stmt.order_by(Transaction.id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_confirmed_earnings(self, user_id: int) -> Decimal:
        """
        Sum of CONFIRMED earning-type entries for a user.

        Args:
            user_id: User ID

        Returns:
            Total confirmed referral bonus amount
        """
        stmt = select(
            func.coalesce(func.sum(Transaction.amount), Decimal("0"))
        ).where(
            Transaction.user_id == user_id,
            Transaction.status == TransactionStatus.CONFIRMED.value,
            Transaction.type.in_([t.value for t in EARNING_TRANSACTION_TYPES]),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_user_transactions(
        self,
        user_id: int,
        tx_type: TransactionType | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Transaction]:
        """Get a user's journal entries, newest first."""
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if tx_type is not None:
            stmt = stmt.where(Transaction.type == tx_type.value)
        stmt = stmt.order_by(Transaction.created_at.desc(), Transaction.id.desc())
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())
