"""
Referral repository.

Data access layer for Referral model.
"""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ybs.models.enums import EarningsStatus
from ybs.models.referral import Referral
from ybs.repositories.base import BaseRepository


class ReferralRepository(BaseRepository[Referral]):
    """Referral repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize referral repository."""
        super().__init__(Referral, session)

    async def get_by_referrer(
        self, referrer_id: int, level: int | None = None
    ) -> list[Referral]:
        """
        Get referrals by referrer.

        Args:
            referrer_id: Referrer user ID
            level: Optional level filter (1-3)

        Returns:
            List of referrals
        """
        filters = {"referrer_id": referrer_id}
        if level:
            filters["level"] = level

        return await self.find_by(**filters)

    async def get_by_referred(self, referred_id: int) -> list[Referral]:
        """Get all edges where the user is the referred party, by level."""
        stmt = (
            select(Referral)
            .where(Referral.referred_id == referred_id)
            .order_by(Referral.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_pending_for_referred(
        self, referred_id: int, for_update: bool = False
    ) -> list[Referral]:
        """
        Get PENDING referral records for a referred user.

        Args:
            referred_id: Referred user ID
            for_update: Lock the rows with SELECT FOR UPDATE

        Returns:
            Pending records ordered by level
        """
        stmt = (
            select(Referral)
            .where(
                Referral.referred_id == referred_id,
                Referral.earnings_status == EarningsStatus.PENDING.value,
            )
            .order_by(Referral.level)
        )
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_level_counts(
        self, referrer_id: int
    ) -> dict[int, int]:
        """
        Get referral counts for all levels in a single query.

        Args:
            referrer_id: Referrer user ID

        Returns:
            Dict mapping level to count {1: count1, 2: count2, 3: count3}
        """
        stmt = (
            select(
                Referral.level,
                func.count(Referral.id).label("count")
            )
            .where(Referral.referrer_id == referrer_id)
            .group_by(Referral.level)
        )

        result = await self.session.execute(stmt)

        level_counts = {1: 0, 2: 0, 3: 0}
        for row in result.all():
            level_counts[row.level] = row.count

        return level_counts

    async def get_earnings_by_level(
        self, referrer_id: int, status: EarningsStatus
    ) -> dict[int, dict[str, int | Decimal]]:
        """
        Sum referral earnings for one status, grouped by level.

        Args:
            referrer_id: Referrer user ID
            status: Earnings status to aggregate

        Returns:
            Dict mapping level to {"count": n, "amount": Decimal}
        """
        stmt = (
            select(
                Referral.level,
                func.count(Referral.id).label("count"),
                func.coalesce(
                    func.sum(Referral.earnings_amount),
                    Decimal("0")
                ).label("amount")
            )
            .where(
                Referral.referrer_id == referrer_id,
                Referral.earnings_status == status.value,
            )
            .group_by(Referral.level)
        )

        result = await self.session.execute(stmt)

        stats: dict[int, dict[str, int | Decimal]] = {
            1: {"count": 0, "amount": Decimal("0")},
            2: {"count": 0, "amount": Decimal("0")},
            3: {"count": 0, "amount": Decimal("0")},
        }
        for row in result.all():
            stats[row.level] = {
                "count": row.count,
                "amount": Decimal(str(row.amount)),
            }

        return stats

    async def sum_pending_for_referrer(self, referrer_id: int) -> Decimal:
        """Total of PENDING earnings owed to a referrer."""
        stmt = select(
            func.coalesce(func.sum(Referral.earnings_amount), Decimal("0"))
        ).where(
            Referral.referrer_id == referrer_id,
            Referral.earnings_status == EarningsStatus.PENDING.value,
        )
        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar() or 0))

    async def get_pending_by_referrer_with_users(
        self, referrer_id: int
    ) -> list[Referral]:
        """PENDING records owed to a referrer, referred users loaded, newest first."""
        stmt = (
            select(Referral)
            .options(selectinload(Referral.referred))
            .where(
                Referral.referrer_id == referrer_id,
                Referral.earnings_status == EarningsStatus.PENDING.value,
            )
            .order_by(Referral.created_at.desc(), Referral.id.desc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_pending_for_referred_with_referrers(
        self, referred_id: int
    ) -> list[Referral]:
        """PENDING records of a referred user with their referrers loaded."""
        stmt = (
            select(Referral)
            .options(selectinload(Referral.referrer))
            .where(
                Referral.referred_id == referred_id,
                Referral.earnings_status == EarningsStatus.PENDING.value,
            )
            .order_by(Referral.level)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
