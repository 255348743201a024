"""
Withdrawal query service module.

Read-only withdrawal listings for users and operators.
"""

from typing import Any

from ybs.config.business_constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ybs.models.enums import WithdrawalStatus
from ybs.models.withdrawal_request import WithdrawalRequest
from ybs.services.base_service import BaseService, ledger_operation
from ybs.utils.exceptions import NotFoundError, ValidationError


def _page_bounds(page: int, page_size: int) -> tuple[int, int]:
    page = max(page, 1)
    page_size = min(max(page_size, 1), MAX_PAGE_SIZE)
    return page, page_size


def _status_filter(status: WithdrawalStatus | str | None) -> WithdrawalStatus | None:
    if status is None:
        return None
    try:
        return WithdrawalStatus(status)
    except ValueError as exc:
        raise ValidationError("Unknown withdrawal status", status=status) from exc


class WithdrawalQueryService(BaseService):
    """Service for querying withdrawal requests."""

    @ledger_operation
    async def get_user_withdrawals(
        self,
        user_id: int,
        status: WithdrawalStatus | str | None = None,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """
        Get a user's withdrawal requests with pagination.

        Returns:
            ServiceResult with {"items", "total", "page", "page_size", "pages"}
        """
        return await self._list(
            user_id=user_id, status=status, page=page, page_size=page_size
        )

    @ledger_operation
    async def list_withdrawals(
        self,
        status: WithdrawalStatus | str | None = WithdrawalStatus.PENDING,
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> dict[str, Any]:
        """Operator listing of requests by status (PENDING by default)."""
        return await self._list(
            user_id=None, status=status, page=page, page_size=page_size
        )

    @ledger_operation
    async def get_withdrawal(
        self, request_id: int, user_id: int | None = None
    ) -> WithdrawalRequest:
        """
        Get one request.

        Args:
            request_id: Withdrawal request ID
            user_id: When given, the request must belong to this user

        Returns:
            ServiceResult with the request; NOT_FOUND otherwise
        """
        async with self.uow_factory() as uow:
            request = await uow.withdrawals.get_by_id(request_id)
        if request is None or (user_id is not None and request.user_id != user_id):
            raise NotFoundError(
                "Withdrawal request not found", request_id=request_id
            )
        return request

    async def _list(
        self,
        user_id: int | None,
        status: WithdrawalStatus | str | None,
        page: int,
        page_size: int,
    ) -> dict[str, Any]:
        status_filter = _status_filter(status)
        page, page_size = _page_bounds(page, page_size)

        async with self.uow_factory() as uow:
            items, total = await uow.withdrawals.list_requests(
                user_id=user_id,
                status=status_filter,
                limit=page_size,
                offset=(page - 1) * page_size,
            )

        return {
            "items": items,
            "total": total,
            "page": page,
            "page_size": page_size,
            "pages": (total + page_size - 1) // page_size,
        }
