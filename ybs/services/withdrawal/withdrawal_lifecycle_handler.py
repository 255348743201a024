"""
Withdrawal lifecycle handling module.

Resolution by an operator (COMPLETED / REJECTED), self-service cancel and
retry. Every status change is a compare-and-swap on the request row, so
two concurrent resolutions, or a resolve racing a cancel, cannot both
apply.
"""

from datetime import UTC, datetime

from ybs.config.business_constants import USER_CANCELLATION_REASON
from ybs.database.unit_of_work import UnitOfWork
from ybs.models.enums import (
    TransactionStatus,
    TransactionType,
    WithdrawalStatus,
)
from ybs.models.transaction import Transaction
from ybs.models.withdrawal_request import WithdrawalRequest
from ybs.services.balance.balance_ledger import BalanceLedger
from ybs.services.base_service import BaseService, ledger_operation
from ybs.services.journal.transaction_journal import TransactionJournal
from ybs.services.withdrawal.withdrawal_request_handler import (
    withdrawal_correlation_key,
)
from ybs.utils.exceptions import (
    ConflictError,
    ConsistencyViolation,
    NotFoundError,
    ValidationError,
)

RESOLUTION_OUTCOMES = (WithdrawalStatus.COMPLETED, WithdrawalStatus.REJECTED)


class WithdrawalLifecycleHandler(BaseService):
    """Handles withdrawal lifecycle operations."""

    @ledger_operation
    async def resolve_withdrawal(
        self,
        request_id: int,
        outcome: WithdrawalStatus | str,
        admin_id: str,
        mpesa_transaction_code: str | None = None,
        rejection_reason: str | None = None,
    ) -> WithdrawalRequest:
        """
        Resolve a PENDING request.

        The request is claimed PENDING -> PROCESSING and then settled, in
        the same transaction.

        Args:
            request_id: Withdrawal request ID
            outcome: COMPLETED or REJECTED
            admin_id: Operator identity
            mpesa_transaction_code: Payout confirmation code (COMPLETED)
            rejection_reason: Reason (REJECTED)

        Returns:
            ServiceResult with the resolved request. Failure kinds:
            VALIDATION (bad outcome or missing details), NOT_FOUND,
            CONFLICT (no longer PENDING).
        """
        try:
            outcome = WithdrawalStatus(outcome)
        except ValueError as exc:
            raise ValidationError(
                "Outcome must be COMPLETED or REJECTED", outcome=outcome
            ) from exc
        if outcome not in RESOLUTION_OUTCOMES:
            raise ValidationError(
                "Outcome must be COMPLETED or REJECTED", outcome=outcome.value
            )
        if outcome == WithdrawalStatus.COMPLETED and not mpesa_transaction_code:
            raise ValidationError(
                "M-Pesa transaction code is required for completed withdrawals"
            )
        if outcome == WithdrawalStatus.REJECTED and not rejection_reason:
            raise ValidationError("Rejection reason is required")
        if not admin_id:
            raise ValidationError("Admin identity is required")

        async with self.uow_factory() as uow:
            request = await uow.withdrawals.get_by_id(request_id)
            if request is None:
                raise NotFoundError(
                    "Withdrawal request not found", request_id=request_id
                )
            user = await uow.users.get_by_id(request.user_id, for_update=True)

            now = datetime.now(UTC)
            claimed = await uow.withdrawals.update_status_if(
                request_id,
                WithdrawalStatus.PENDING,
                WithdrawalStatus.PROCESSING,
                admin_id=admin_id,
                processed_at=now,
            )
            if not claimed:
                raise ConflictError(
                    "Withdrawal request has already been processed",
                    request_id=request_id,
                )

            entry = await self._pending_entry(uow, request)
            ledger = BalanceLedger(uow)
            journal = TransactionJournal(uow)

            if outcome == WithdrawalStatus.COMPLETED:
                ledger.settle_withdrawal(user, request.amount)
                await self._settle(
                    uow,
                    request_id,
                    WithdrawalStatus.COMPLETED,
                    mpesa_transaction_code=mpesa_transaction_code,
                    resolved_at=now,
                )
                journal.transition(
                    entry,
                    TransactionStatus.CONFIRMED,
                    external_reference=mpesa_transaction_code,
                )
            else:
                ledger.refund(user, request.amount)
                await self._settle(
                    uow,
                    request_id,
                    WithdrawalStatus.REJECTED,
                    rejection_reason=rejection_reason,
                    resolved_at=now,
                )
                journal.transition(entry, TransactionStatus.FAILED)

            await uow.commit()

        self.logger.info(
            f"Withdrawal {outcome.value.lower()}",
            extra={
                "request_id": request_id,
                "user_id": request.user_id,
                "amount": str(request.amount),
                "admin_id": admin_id,
            },
        )
        return request

    @ledger_operation
    async def cancel_withdrawal(
        self, request_id: int, user_id: int
    ) -> WithdrawalRequest:
        """
        Cancel a PENDING request and return the reserved amount.

        Args:
            request_id: Withdrawal request ID
            user_id: Owner (for authorization)

        Returns:
            ServiceResult with the REJECTED request. Failure kinds:
            NOT_FOUND (missing or not owned), CONFLICT (not PENDING).
        """
        async with self.uow_factory() as uow:
            request = await self._owned_request(uow, request_id, user_id)
            user = await uow.users.get_by_id(user_id, for_update=True)

            now = datetime.now(UTC)
            swapped = await uow.withdrawals.update_status_if(
                request_id,
                WithdrawalStatus.PENDING,
                WithdrawalStatus.REJECTED,
                rejection_reason=USER_CANCELLATION_REASON,
                resolved_at=now,
            )
            if not swapped:
                raise ConflictError(
                    "Only pending withdrawal requests can be cancelled",
                    request_id=request_id,
                )

            entry = await self._pending_entry(uow, request)
            BalanceLedger(uow).refund(user, request.amount)
            TransactionJournal(uow).transition(entry, TransactionStatus.CANCELLED)
            await uow.commit()

        self.logger.info(
            "Withdrawal cancelled by user",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "amount": str(request.amount),
            },
        )
        return request

    @ledger_operation
    async def retry_withdrawal(
        self, request_id: int, user_id: int
    ) -> WithdrawalRequest:
        """
        Put a REJECTED request back to PENDING.

        Re-checks the balance, reserves the amount again, clears the
        rejection details and opens a fresh PENDING journal entry for the
        request. The earlier FAILED/CANCELLED entry is left as it was.

        Args:
            request_id: Withdrawal request ID
            user_id: Owner (for authorization)

        Returns:
            ServiceResult with the PENDING request. Failure kinds:
            NOT_FOUND, CONFLICT (not REJECTED, or another request is
            outstanding), INSUFFICIENT_FUNDS.
        """
        async with self.uow_factory() as uow:
            request = await self._owned_request(uow, request_id, user_id)
            user = await uow.users.get_by_id(user_id, for_update=True)

            if request.status != WithdrawalStatus.REJECTED.value:
                raise ConflictError(
                    "Only rejected withdrawal requests can be retried",
                    request_id=request_id,
                    status=request.status,
                )
            outstanding = await uow.withdrawals.get_outstanding_for_user(
                user_id, exclude_id=request_id
            )
            if outstanding:
                raise ConflictError(
                    "You already have a pending withdrawal request",
                    request_id=outstanding[0].id,
                )

            BalanceLedger(uow).reserve(user, request.amount)

            swapped = await uow.withdrawals.update_status_if(
                request_id,
                WithdrawalStatus.REJECTED,
                WithdrawalStatus.PENDING,
                rejection_reason=None,
                admin_id=None,
                mpesa_transaction_code=None,
                processed_at=None,
                resolved_at=None,
                requested_at=datetime.now(UTC),
            )
            if not swapped:
                raise ConflictError(
                    "Withdrawal request changed while retrying",
                    request_id=request_id,
                )

            await TransactionJournal(uow).record(
                user_id=user_id,
                tx_type=TransactionType.WITHDRAW_TO_MPESA,
                amount=request.amount,
                correlation_key=withdrawal_correlation_key(request_id),
                description="Withdrawal to M-Pesa (retry)",
                meta={
                    "withdrawal_request_id": request_id,
                    "mpesa_number": request.mpesa_number,
                    "retry": True,
                },
            )
            await uow.commit()

        self.logger.info(
            "Withdrawal retried",
            extra={
                "request_id": request_id,
                "user_id": user_id,
                "amount": str(request.amount),
            },
        )
        return request

    async def _owned_request(
        self, uow: UnitOfWork, request_id: int, user_id: int
    ) -> WithdrawalRequest:
        request = await uow.withdrawals.get_by_id(request_id)
        if request is None or request.user_id != user_id:
            raise NotFoundError(
                "Withdrawal request not found",
                request_id=request_id,
                user_id=user_id,
            )
        return request

    async def _pending_entry(
        self, uow: UnitOfWork, request: WithdrawalRequest
    ) -> Transaction:
        entry = await TransactionJournal(uow).latest_pending(
            withdrawal_correlation_key(request.id),
            TransactionType.WITHDRAW_TO_MPESA,
            user_id=request.user_id,
        )
        if entry is None:
            raise ConsistencyViolation(
                "No pending journal entry for withdrawal request",
                request_id=request.id,
            )
        return entry

    async def _settle(
        self,
        uow: UnitOfWork,
        request_id: int,
        new_status: WithdrawalStatus,
        **values,
    ) -> None:
        settled = await uow.withdrawals.update_status_if(
            request_id, WithdrawalStatus.PROCESSING, new_status, **values
        )
        if not settled:
            raise ConsistencyViolation(
                "Claimed withdrawal request left PROCESSING",
                request_id=request_id,
            )
