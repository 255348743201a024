"""
Unit of work.

One AsyncSession per atomic ledger operation. Everything done inside the
``async with`` block commits together, or rolls back together when the
block raises.
"""

from collections.abc import Callable
from types import TracebackType

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ybs.repositories import (
    ReferralRepository,
    TransactionRepository,
    UserRepository,
    WithdrawalRepository,
)


class UnitOfWork:
    """
    Transaction boundary exposing the ledger repositories.

    Example:
        async with UnitOfWork(session_maker) as uow:
            user = await uow.users.get_by_id(1, for_update=True)
            ...
            await uow.commit()

    Leaving the block without commit() rolls back.
    """

    users: UserRepository
    referrals: ReferralRepository
    transactions: TransactionRepository
    withdrawals: WithdrawalRepository

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """
        Initialize unit of work.

        Args:
            session_maker: Session factory
        """
        self._session_maker = session_maker
        self.session: AsyncSession | None = None

    async def __aenter__(self) -> "UnitOfWork":
        self.session = self._session_maker()
        self.users = UserRepository(self.session)
        self.referrals = ReferralRepository(self.session)
        self.transactions = TransactionRepository(self.session)
        self.withdrawals = WithdrawalRepository(self.session)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        try:
            if exc_type is not None:
                await self.rollback()
                logger.debug(
                    "Unit of work rolled back",
                    extra={"error_type": exc_type.__name__},
                )
        finally:
            await self.session.close()
            self.session = None

    async def commit(self) -> None:
        """Commit the transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Roll back the transaction."""
        await self.session.rollback()

    async def flush(self) -> None:
        """Flush pending changes without committing."""
        await self.session.flush()


UnitOfWorkFactory = Callable[[], UnitOfWork]


def unit_of_work_factory(
    session_maker: async_sessionmaker[AsyncSession],
) -> UnitOfWorkFactory:
    """Build a zero-argument factory producing fresh units of work."""

    def factory() -> UnitOfWork:
        return UnitOfWork(session_maker)

    return factory
