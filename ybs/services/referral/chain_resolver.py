"""
Referral chain resolver.

Walks the referrer chain of a new user (by referral code, up to
REFERRAL_DEPTH ancestors) and creates the referral records and pending
bonuses for each level reached.
"""

from decimal import Decimal

from loguru import logger

from ybs.database.unit_of_work import UnitOfWork
from ybs.models.enums import EarningsStatus, TransactionType
from ybs.models.referral import Referral
from ybs.models.user import User
from ybs.services.balance.balance_ledger import BalanceLedger
from ybs.services.journal.transaction_journal import TransactionJournal
from ybs.services.referral.config import REFERRAL_DEPTH, bonus_for_level
from ybs.utils.exceptions import ConflictError, NotFoundError


def referral_correlation_key(referral_id: int) -> str:
    """Journal correlation key for a referral record's bonus."""
    return f"referral:{referral_id}"


class ReferralChainResolver:
    """Resolves referrer chains and attaches new users to them."""

    def __init__(self, uow: UnitOfWork) -> None:
        """Initialize chain resolver."""
        self.uow = uow
        self.ledger = BalanceLedger(uow)
        self.journal = TransactionJournal(uow)

    async def resolve_referrer(
        self,
        referral_code: str,
        phone_number: str,
        email: str | None = None,
    ) -> User:
        """
        Resolve the direct referrer of an applicant.

        Args:
            referral_code: Code the applicant registered with
            phone_number: Applicant's normalized phone
            email: Applicant's lowercased email

        Returns:
            Direct referrer

        Raises:
            NotFoundError: If no user owns the code
            ConflictError: If the referrer shares the applicant's phone or email
        """
        referrer = await self.uow.users.get_by_referral_code(referral_code)
        if referrer is None:
            raise NotFoundError(
                "Invalid referral code", referral_code=referral_code
            )

        if referrer.phone_number == phone_number or (
            email is not None and referrer.email == email
        ):
            raise ConflictError(
                "You cannot refer yourself", referral_code=referral_code
            )

        return referrer

    async def get_ancestors(self, direct_referrer: User) -> list[User]:
        """
        Collect up to REFERRAL_DEPTH ancestors starting at the direct referrer.

        The walk is a bounded loop: it stops at REFERRAL_DEPTH levels no
        matter how long the real chain is, at a user with no referrer, at
        a dangling code, or on a cycle.

        Args:
            direct_referrer: Level 1 ancestor

        Returns:
            Ancestors ordered by level (index 0 is level 1)
        """
        chain = [direct_referrer]
        seen = {direct_referrer.id}
        current = direct_referrer

        for level in range(2, REFERRAL_DEPTH + 1):
            if not current.referred_by:
                break

            ancestor = await self.uow.users.get_by_referral_code(
                current.referred_by
            )
            if ancestor is None:
                logger.warning(
                    "Referral chain points at unknown code",
                    extra={
                        "user_id": current.id,
                        "referred_by": current.referred_by,
                        "level": level,
                    },
                )
                break
            if ancestor.id in seen:
                logger.warning(
                    "Referral loop detected",
                    extra={
                        "user_id": current.id,
                        "chain_ids": sorted(seen),
                    },
                )
                break

            chain.append(ancestor)
            seen.add(ancestor.id)
            current = ancestor

        return chain

    async def attach(self, new_user: User, direct_referrer: User) -> list[Referral]:
        """
        Create referral records for a new user and accrue pending bonuses.

        Ancestors are locked in ascending id order before any of them is
        updated. For each level reached: one PENDING record, the
        ancestor's total_referrals and pending_earnings incremented, and
        one PENDING bonus journal entry.

        Args:
            new_user: Freshly created (flushed) user
            direct_referrer: Level 1 ancestor

        Returns:
            Created referral records ordered by level
        """
        chain = await self.get_ancestors(direct_referrer)
        locked = await self.uow.users.lock_many(a.id for a in chain)

        records: list[Referral] = []
        for level, ancestor in enumerate(chain, start=1):
            referrer = locked[ancestor.id]
            amount: Decimal = bonus_for_level(level)

            record = await self.uow.referrals.create(
                referrer_id=referrer.id,
                referred_id=new_user.id,
                level=level,
                earnings_amount=amount,
                earnings_status=EarningsStatus.PENDING.value,
            )

            referrer.total_referrals = referrer.total_referrals + 1
            self.ledger.accrue_pending(referrer, amount)

            await self.journal.record(
                user_id=referrer.id,
                tx_type=TransactionType.referral_bonus(level),
                amount=amount,
                correlation_key=referral_correlation_key(record.id),
                description=f"Level {level} referral bonus (pending activation)",
                meta={"referral_id": record.id, "referred_id": new_user.id},
            )

            logger.debug(
                "Referral relationship created",
                extra={
                    "referrer_id": referrer.id,
                    "referred_id": new_user.id,
                    "level": level,
                    "amount": str(amount),
                },
            )
            records.append(record)

        logger.info(
            "Referral chain created",
            extra={
                "new_user_id": new_user.id,
                "direct_referrer_id": direct_referrer.id,
                "levels_created": len(records),
            },
        )
        return records
