"""
Withdrawal request repository.

Data access layer for WithdrawalRequest model.
"""

from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ybs.models.enums import OUTSTANDING_WITHDRAWAL_STATUSES, WithdrawalStatus
from ybs.models.withdrawal_request import WithdrawalRequest
from ybs.repositories.base import BaseRepository


class WithdrawalRepository(BaseRepository[WithdrawalRequest]):
    """Withdrawal request repository with lifecycle queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize withdrawal request repository."""
        super().__init__(WithdrawalRequest, session)

    async def update_status_if(
        self,
        request_id: int,
        expected: WithdrawalStatus,
        new: WithdrawalStatus,
        **values: Any,
    ) -> bool:
        """
        Compare-and-swap the request status.

        Issues UPDATE ... WHERE id = :id AND status = :expected. Only one
        of several concurrent callers can win.

        Args:
            request_id: Withdrawal request ID
            expected: Status the row must currently have
            new: Status to set
            **values: Extra columns to set in the same statement

        Returns:
            True if exactly one row was updated
        """
        stmt = (
            update(WithdrawalRequest)
            .where(
                WithdrawalRequest.id == request_id,
                WithdrawalRequest.status == expected.value,
            )
            .values(status=new.value, **values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        if result.rowcount != 1:
            return False

        # Reload so the identity map reflects the swapped row
        request = await self.session.get(WithdrawalRequest, request_id)
        if request is not None:
            await self.session.refresh(request)
        return True

    async def get_outstanding_for_user(
        self, user_id: int, exclude_id: int | None = None
    ) -> list[WithdrawalRequest]:
        """
        Get PENDING/PROCESSING requests for a user.

        Args:
            user_id: User ID
            exclude_id: Request ID to leave out (used by retry)

        Returns:
            Outstanding requests
        """
        stmt = select(WithdrawalRequest).where(
            WithdrawalRequest.user_id == user_id,
            WithdrawalRequest.status.in_(
                [s.value for s in OUTSTANDING_WITHDRAWAL_STATUSES]
            ),
        )
        if exclude_id is not None:
            stmt = stmt.where(WithdrawalRequest.id != exclude_id)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def sum_reserved_for_user(self, user_id: int) -> Decimal:
        """Sum of amounts reserved by a user's outstanding requests."""
        stmt = select(
            func.coalesce(func.sum(WithdrawalRequest.amount), Decimal("0"))
        ).where(
            WithdrawalRequest.user_id == user_id,
            WithdrawalRequest.status.in_(
                [s.value for s in OUTSTANDING_WITHDRAWAL_STATUSES]
            ),
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def list_requests(
        self,
        user_id: int | None = None,
        status: WithdrawalStatus | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> tuple[list[WithdrawalRequest], int]:
        """
        List requests, newest first, with total count.

        Args:
            user_id: Optional owner filter
            status: Optional status filter
            limit: Page size
            offset: Number of results to skip

        Returns:
            Tuple of (requests, total_count)
        """
        conditions = []
        if user_id is not None:
            conditions.append(WithdrawalRequest.user_id == user_id)
        if status is not None:
            conditions.append(WithdrawalRequest.status == status.value)

        count_stmt = select(func.count(WithdrawalRequest.id)).where(*conditions)
        total = (await self.session.execute(count_stmt)).scalar() or 0

        stmt = (
            select(WithdrawalRequest)
            .where(*conditions)
            .order_by(
                WithdrawalRequest.requested_at.desc(),
                WithdrawalRequest.id.desc(),
            )
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total
