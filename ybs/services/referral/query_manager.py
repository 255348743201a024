"""
Referral query service.

Read-only views over the referral graph: pending earnings, activation
impact, upline and downline.
"""

from decimal import Decimal
from typing import Any

from ybs.config.business_constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ybs.models.enums import EarningsStatus
from ybs.models.user import User
from ybs.services.base_service import BaseService, ledger_operation
from ybs.services.referral.chain_resolver import ReferralChainResolver
from ybs.utils.exceptions import NotFoundError


def _user_summary(user: User) -> dict[str, Any]:
    return {
        "id": user.id,
        "full_name": user.full_name,
        "phone_number": user.phone_number,
        "referral_code": user.referral_code,
    }


class ReferralQueryService(BaseService):
    """Read-only referral queries."""

    @ledger_operation
    async def get_pending_earnings(self, user_id: int) -> dict[str, Any]:
        """
        Pending referral earnings owed to a user, grouped by level.

        Returns:
            ServiceResult with {"total_pending_amount", "total_pending_count",
            "summary": {1: {...}, 2: {...}, 3: {...}}}
        """
        async with self.uow_factory() as uow:
            records = await uow.referrals.get_pending_by_referrer_with_users(
                user_id
            )

        summary: dict[int, dict[str, Any]] = {
            level: {"count": 0, "amount": Decimal("0"), "referrals": []}
            for level in (1, 2, 3)
        }
        total = Decimal("0")
        for record in records:
            bucket = summary[record.level]
            bucket["count"] += 1
            bucket["amount"] += record.earnings_amount
            bucket["referrals"].append(
                {
                    "id": record.id,
                    "amount": record.earnings_amount,
                    "referred_user": {
                        "full_name": record.referred.full_name,
                        "phone_number": record.referred.phone_number,
                        "account_status": record.referred.account_status,
                        "joined_at": record.referred.created_at,
                    },
                    "created_at": record.created_at,
                }
            )
            total += record.earnings_amount

        return {
            "total_pending_amount": total,
            "total_pending_count": len(records),
            "summary": summary,
        }

    @ledger_operation
    async def get_activation_impact(self, user_id: int) -> dict[str, Any]:
        """
        Bonuses that would be released if the user activated now.

        Returns:
            ServiceResult with {"affected_referrers", "total_bonuses",
            "referrer_impacts": [...]}
        """
        async with self.uow_factory() as uow:
            records = await uow.referrals.get_pending_for_referred_with_referrers(
                user_id
            )

        impacts = [
            {
                "referrer_id": record.referrer_id,
                "referrer_name": record.referrer.full_name,
                "referrer_phone": record.referrer.phone_number,
                "level": record.level,
                "bonus_amount": record.earnings_amount,
                "current_pending_earnings": record.referrer.pending_earnings,
                "current_available_balance": record.referrer.available_balance,
            }
            for record in records
        ]
        return {
            "affected_referrers": len(impacts),
            "total_bonuses": sum(
                (i["bonus_amount"] for i in impacts), Decimal("0")
            ),
            "referrer_impacts": impacts,
        }

    @ledger_operation
    async def get_referral_chain(
        self,
        user_id: int,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        Upline (up to three ancestors) and direct downline of a user.

        Args:
            user_id: User ID
            page: Downline page number (1-based)
            page_size: Downline page size (capped at MAX_PAGE_SIZE)

        Returns:
            ServiceResult with {"user_id", "upline", "downline",
            "total_downline_count"}
        """
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        async with self.uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found", user_id=user_id)

            upline: list[dict[str, Any]] = []
            if user.referred_by:
                direct = await uow.users.get_by_referral_code(user.referred_by)
                if direct is not None:
                    ancestors = await ReferralChainResolver(uow).get_ancestors(
                        direct
                    )
                    upline = [
                        {"level": level, "user": _user_summary(ancestor)}
                        for level, ancestor in enumerate(ancestors, start=1)
                    ]

            downline_users = await uow.users.get_direct_referrals(
                user.referral_code,
                limit=page_size,
                offset=(page - 1) * page_size,
            )
            total_downline = await uow.users.count_direct_referrals(
                user.referral_code
            )

        downline = [
            {
                "user": {
                    **_user_summary(referral),
                    "account_status": referral.account_status,
                    "joined_at": referral.created_at,
                }
            }
            for referral in downline_users
        ]
        return {
            "user_id": user_id,
            "upline": upline,
            "downline": downline,
            "total_downline_count": total_downline,
        }

    @ledger_operation
    async def get_referral_stats(self, user_id: int) -> dict[str, Any]:
        """Referral counts and earnings per level for a referrer."""
        async with self.uow_factory() as uow:
            counts = await uow.referrals.get_level_counts(user_id)
            pending = await uow.referrals.get_earnings_by_level(
                user_id, EarningsStatus.PENDING
            )
            released = await uow.referrals.get_earnings_by_level(
                user_id, EarningsStatus.AVAILABLE
            )

        return {
            level: {
                "count": counts[level],
                "pending_amount": pending[level]["amount"],
                "released_amount": released[level]["amount"],
            }
            for level in (1, 2, 3)
        }
