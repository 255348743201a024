"""
Transaction journal.

Append-mostly audit log of every financial event. Entries are written in
the same unit of work as the balance mutation they describe, and only
ever move one way out of PENDING.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from loguru import logger

from ybs.database.unit_of_work import UnitOfWork
from ybs.models.enums import TransactionStatus, TransactionType
from ybs.models.transaction import Transaction
from ybs.utils.exceptions import ConsistencyViolation

# Statuses an entry may move to from PENDING
TERMINAL_STATUSES = (
    TransactionStatus.CONFIRMED,
    TransactionStatus.FAILED,
    TransactionStatus.CANCELLED,
)


class TransactionJournal:
    """Journal writer and correlation lookup bound to one unit of work."""

    def __init__(self, uow: UnitOfWork) -> None:
        """Initialize journal."""
        self.uow = uow

    async def record(
        self,
        user_id: int,
        tx_type: TransactionType,
        amount: Decimal,
        correlation_key: str,
        status: TransactionStatus = TransactionStatus.PENDING,
        external_reference: str | None = None,
        description: str | None = None,
        meta: dict[str, Any] | None = None,
    ) -> Transaction:
        """
        Append a journal entry.

        Args:
            user_id: Entry owner
            tx_type: Entry category
            amount: Positive amount
            correlation_key: Key used for idempotent lookups
            status: Initial status
            external_reference: Provider receipt or payout code
            description: Human readable description
            meta: Extra JSON metadata

        Returns:
            Created entry

        Raises:
            ConsistencyViolation: If the amount is not positive
        """
        if amount <= 0:
            raise ConsistencyViolation(
                "Journal amount must be positive",
                user_id=user_id,
                type=tx_type.value,
                amount=amount,
            )

        now = datetime.now(UTC)
        terminal = status != TransactionStatus.PENDING
        entry = await self.uow.transactions.create(
            user_id=user_id,
            type=tx_type.value,
            amount=amount,
            status=status.value,
            correlation_key=correlation_key,
            external_reference=external_reference,
            description=description,
            meta=meta,
            created_at=now,
            confirmed_at=now if status == TransactionStatus.CONFIRMED else None,
            resolved_at=now if terminal else None,
        )

        logger.debug(
            "Journal entry recorded",
            extra={
                "transaction_id": entry.id,
                "user_id": user_id,
                "type": tx_type.value,
                "amount": str(amount),
                "status": status.value,
                "correlation_key": correlation_key,
            },
        )
        return entry

    def transition(
        self,
        entry: Transaction,
        new_status: TransactionStatus,
        external_reference: str | None = None,
    ) -> Transaction:
        """
        Move an entry out of PENDING.

        Args:
            entry: Journal entry (locked by the caller)
            new_status: CONFIRMED, FAILED or CANCELLED
            external_reference: Receipt or payout code to attach

        Returns:
            Updated entry

        Raises:
            ConsistencyViolation: If the entry is not PENDING or the target
                status is not terminal
        """
        if new_status not in TERMINAL_STATUSES:
            raise ConsistencyViolation(
                f"Journal entry cannot move to {new_status.value}",
                transaction_id=entry.id,
            )
        if entry.status != TransactionStatus.PENDING.value:
            raise ConsistencyViolation(
                f"Journal entry is already {entry.status}",
                transaction_id=entry.id,
                requested_status=new_status.value,
            )

        now = datetime.now(UTC)
        entry.status = new_status.value
        entry.resolved_at = now
        if new_status == TransactionStatus.CONFIRMED:
            entry.confirmed_at = now
        if external_reference:
            entry.external_reference = external_reference

        logger.debug(
            "Journal entry transitioned",
            extra={
                "transaction_id": entry.id,
                "status": new_status.value,
            },
        )
        return entry

    async def find_by_correlation(
        self,
        correlation_key: str,
        tx_type: TransactionType | None = None,
        user_id: int | None = None,
    ) -> list[Transaction]:
        """Entries carrying the correlation key, oldest first."""
        return await self.uow.transactions.find_by_correlation(
            correlation_key, tx_type=tx_type, user_id=user_id
        )

    async def latest_pending(
        self,
        correlation_key: str,
        tx_type: TransactionType,
        user_id: int | None = None,
    ) -> Transaction | None:
        """
        Latest PENDING entry for a correlation key, locked for update.

        Args:
            correlation_key: Correlation key
            tx_type: Entry type
            user_id: Optional owner filter

        Returns:
            Newest pending entry or None
        """
        entries = await self.uow.transactions.find_by_correlation(
            correlation_key,
            tx_type=tx_type,
            user_id=user_id,
            status=TransactionStatus.PENDING,
            for_update=True,
        )
        return entries[-1] if entries else None

    async def confirmed_earnings_total(self, user_id: int) -> Decimal:
        """Sum of CONFIRMED referral bonus entries for a user."""
        return await self.uow.transactions.sum_confirmed_earnings(user_id)
