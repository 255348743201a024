"""
User repository.

Data access layer for User model.
"""

from collections.abc import Iterable

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ybs.models.user import User
from ybs.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """User repository with specific queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize user repository."""
        super().__init__(User, session)

    async def get_by_phone(self, phone_number: str) -> User | None:
        """Get user by normalized phone number."""
        return await self.get_by(phone_number=phone_number)

    async def get_by_email(self, email: str) -> User | None:
        """Get user by lowercased email."""
        return await self.get_by(email=email)

    async def get_by_referral_code(
        self, referral_code: str, for_update: bool = False
    ) -> User | None:
        """
        Get user by referral code.

        Args:
            referral_code: Unique referral code
            for_update: Lock the row with SELECT FOR UPDATE

        Returns:
            User or None if not found
        """
        stmt = select(User).where(User.referral_code == referral_code)
        if for_update:
            stmt = stmt.with_for_update().execution_options(
                populate_existing=True
            )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def referral_code_exists(self, referral_code: str) -> bool:
        """Check whether a referral code is taken."""
        return await self.exists(referral_code=referral_code)

    async def lock_many(self, user_ids: Iterable[int]) -> dict[int, User]:
        """
        Lock several users with SELECT FOR UPDATE.

        Rows are locked in ascending id order so that two transactions
        touching overlapping sets of users cannot deadlock.

        Args:
            user_ids: IDs to lock

        Returns:
            Dict mapping user ID to locked user (missing IDs omitted)
        """
        ids = sorted(set(user_ids))
        if not ids:
            return {}

        stmt = (
            select(User)
            .where(User.id.in_(ids))
            .order_by(User.id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return {user.id: user for user in result.scalars().all()}

    async def get_direct_referrals(
        self,
        referral_code: str,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[User]:
        """
        Get users registered directly with the given referral code.

        Args:
            referral_code: Referrer's code
            limit: Max number of results
            offset: Number of results to skip

        Returns:
            Users ordered by registration time
        """
        stmt = (
            select(User)
            .where(User.referred_by == referral_code)
            .order_by(User.created_at, User.id)
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_direct_referrals(self, referral_code: str) -> int:
        """Count users registered directly with the given referral code."""
        return await self.count(referred_by=referral_code)
