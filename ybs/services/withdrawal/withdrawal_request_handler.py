"""
Withdrawal request handling module.

Creates withdrawal requests: reserves the amount out of the user's
available balance and writes the correlated PENDING journal entry.
"""

from decimal import Decimal

from ybs.config.settings import Settings, settings as default_settings
from ybs.database.unit_of_work import UnitOfWorkFactory
from ybs.models.enums import TransactionType, WithdrawalStatus
from ybs.models.withdrawal_request import WithdrawalRequest
from ybs.services.balance.balance_ledger import BalanceLedger
from ybs.services.base_service import BaseService, ledger_operation
from ybs.services.journal.transaction_journal import TransactionJournal
from ybs.utils.exceptions import ConflictError, NotFoundError, ValidationError
from ybs.utils.validation import normalize_phone_number, parse_amount


def withdrawal_correlation_key(request_id: int) -> str:
    """Journal correlation key for a withdrawal request."""
    return str(request_id)


class WithdrawalRequestHandler(BaseService):
    """Handles withdrawal request creation."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize withdrawal request handler.

        Args:
            uow_factory: Unit of work factory
            settings: Settings (defaults to the global settings)
        """
        super().__init__(uow_factory)
        self.settings = settings or default_settings

    def get_min_withdrawal_amount(self) -> Decimal:
        """Minimum amount a request may ask for."""
        return self.settings.min_withdrawal_amount

    @ledger_operation
    async def request_withdrawal(
        self,
        user_id: int,
        amount: Decimal | int | str,
        mpesa_number: str | None = None,
    ) -> WithdrawalRequest:
        """
        Create a withdrawal request.

        Args:
            user_id: Requesting user
            amount: Requested amount
            mpesa_number: Payout number (defaults to the user's phone)

        Returns:
            ServiceResult with the PENDING WithdrawalRequest. Failure
            kinds: VALIDATION (bad or below-minimum amount), NOT_FOUND,
            CONFLICT (inactive account or outstanding request),
            INSUFFICIENT_FUNDS.
        """
        amount = parse_amount(amount)
        min_amount = self.get_min_withdrawal_amount()
        if amount < min_amount:
            raise ValidationError(
                f"Minimum withdrawal amount is KSH {min_amount}",
                amount=amount,
            )
        payout_number = (
            normalize_phone_number(mpesa_number) if mpesa_number else None
        )

        async with self.uow_factory() as uow:
            user = await uow.users.get_by_id(user_id, for_update=True)
            if user is None:
                raise NotFoundError("User not found", user_id=user_id)
            if not user.is_active:
                raise ConflictError(
                    "Account must be activated before withdrawing",
                    user_id=user_id,
                )

            outstanding = await uow.withdrawals.get_outstanding_for_user(user_id)
            if outstanding:
                raise ConflictError(
                    "You already have a pending withdrawal request",
                    user_id=user_id,
                    request_id=outstanding[0].id,
                )

            BalanceLedger(uow).reserve(user, amount)

            request = await uow.withdrawals.create(
                user_id=user_id,
                amount=amount,
                mpesa_number=payout_number or user.phone_number,
                status=WithdrawalStatus.PENDING.value,
            )
            await TransactionJournal(uow).record(
                user_id=user_id,
                tx_type=TransactionType.WITHDRAW_TO_MPESA,
                amount=amount,
                correlation_key=withdrawal_correlation_key(request.id),
                description="Withdrawal to M-Pesa",
                meta={
                    "withdrawal_request_id": request.id,
                    "mpesa_number": request.mpesa_number,
                },
            )
            await uow.commit()

        self.logger.info(
            "Withdrawal request created",
            extra={
                "user_id": user_id,
                "request_id": request.id,
                "amount": str(amount),
            },
        )
        return request
