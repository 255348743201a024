"""
Activation state machine.

UNVERIFIED -> ACTIVE. An in-flight payment attempt is tracked only by
the provider's correlation id; nothing is written to the ledger until a
successful payment is confirmed. Confirmation activates the user and
releases every PENDING referral record of that user in one unit of work.

Release is gated on persisted state (account status and each record's
PENDING flag), so duplicate, late or concurrent confirmations never pay
a bonus twice.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Protocol

from ybs.config.settings import Settings, settings as default_settings
from ybs.database.unit_of_work import UnitOfWork, UnitOfWorkFactory
from ybs.integrations.mpesa.callbacks import parse_stk_callback
from ybs.models.enums import (
    AccountStatus,
    EarningsStatus,
    TransactionStatus,
    TransactionType,
)
from ybs.models.user import User
from ybs.services.activation.attempt_registry import ActivationAttemptRegistry
from ybs.services.balance.balance_ledger import BalanceLedger
from ybs.services.base_service import BaseService, ledger_operation
from ybs.services.journal.transaction_journal import TransactionJournal
from ybs.services.referral.chain_resolver import referral_correlation_key
from ybs.utils.codes import generate_activation_reference
from ybs.utils.exceptions import (
    ConflictError,
    ConsistencyViolation,
    NotFoundError,
    ValidationError,
)
from ybs.utils.validation import normalize_phone_number, parse_amount


class PaymentCollector(Protocol):
    """External payment collection (e.g. M-Pesa STK push)."""

    async def initiate(
        self, amount: Decimal, payout_account: str, reference: str
    ) -> str:
        """Start a payment and return its correlation id."""
        ...


@dataclass
class ReleasedBonus:
    """One referral bonus released by an activation."""

    referral_id: int
    referrer_id: int
    level: int
    amount: Decimal


@dataclass
class ActivationOutcome:
    """Result of an activation confirmation."""

    user_id: int
    correlation_id: str
    activated: bool
    already_active: bool = False
    released: list[ReleasedBonus] = field(default_factory=list)

    @property
    def total_released(self) -> Decimal:
        """Sum of released bonuses."""
        return sum((b.amount for b in self.released), Decimal("0"))


class ActivationService(BaseService):
    """Account activation via an external payment collector."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        payment_collector: PaymentCollector,
        attempt_registry: ActivationAttemptRegistry,
        settings: Settings | None = None,
    ) -> None:
        """
        Initialize activation service.

        Args:
            uow_factory: Unit of work factory
            payment_collector: Payment collector returning correlation ids
            attempt_registry: Correlation id -> user mapping
            settings: Settings (defaults to the global settings)
        """
        super().__init__(uow_factory)
        self.payment_collector = payment_collector
        self.attempt_registry = attempt_registry
        self.settings = settings or default_settings

    @ledger_operation
    async def initiate_activation(
        self,
        user_id: int,
        payout_account: str,
        amount: Decimal | int | str | None = None,
    ) -> dict[str, Any]:
        """
        Start an activation payment.

        No ledger row is written here. Any number of attempts may be
        outstanding; only the first confirmed one activates the account.

        Args:
            user_id: User paying the fee
            payout_account: Phone number the payment prompt goes to
            amount: Must equal the activation fee (defaults to it)

        Returns:
            ServiceResult with {"correlation_id", "reference", "amount"}.
            Failure kinds: VALIDATION, NOT_FOUND, CONFLICT (already
            active), EXTERNAL_SERVICE (provider refused or unreachable).
        """
        fee = self.settings.activation_fee
        amount = fee if amount is None else parse_amount(amount)
        if amount != fee:
            raise ValidationError(
                f"Activation fee is KSH {fee}", amount=amount
            )
        phone = normalize_phone_number(payout_account)

        # Read-only check; nothing is held open across the provider call
        async with self.uow_factory() as uow:
            user = await uow.users.get_by_id(user_id)
            if user is None:
                raise NotFoundError("User not found", user_id=user_id)
            if user.is_active:
                raise ConflictError(
                    "Account is already activated", user_id=user_id
                )

        reference = generate_activation_reference(user_id)
        correlation_id = await self.payment_collector.initiate(
            amount, phone, reference
        )
        await self.attempt_registry.register(
            correlation_id, user_id, reference, amount, phone
        )

        self.logger.info(
            "Activation payment initiated",
            extra={
                "user_id": user_id,
                "correlation_id": correlation_id,
                "reference": reference,
                "amount": str(amount),
            },
        )
        return {
            "correlation_id": correlation_id,
            "reference": reference,
            "amount": amount,
        }

    @ledger_operation
    async def confirm_activation(
        self,
        correlation_id: str,
        external_receipt: str | None,
        user_id: int | None = None,
        amount: Decimal | None = None,
    ) -> ActivationOutcome:
        """
        Apply a successful activation payment.

        Idempotent: a duplicate confirmation, or one for an already
        ACTIVE user, succeeds without changing anything.

        Args:
            correlation_id: Provider correlation id
            external_receipt: Provider receipt number
            user_id: Paying user (looked up by correlation id if omitted)
            amount: Amount paid; must equal the activation fee if given

        Returns:
            ServiceResult with an ActivationOutcome. NOT_FOUND when the
            correlation id or user is unknown, VALIDATION when the amount
            paid is not the activation fee.
        """
        if amount is not None and amount != self.settings.activation_fee:
            raise ValidationError(
                f"Activation fee is KSH {self.settings.activation_fee}",
                correlation_id=correlation_id,
                amount=str(amount),
            )
        return await self._confirm(correlation_id, external_receipt, user_id)

    async def _confirm(
        self,
        correlation_id: str,
        external_receipt: str | None,
        user_id: int | None,
    ) -> ActivationOutcome:
        if user_id is None:
            attempt = await self.attempt_registry.resolve(correlation_id)
            if attempt is None:
                raise NotFoundError(
                    "Unknown activation correlation id",
                    correlation_id=correlation_id,
                )
            user_id = attempt.user_id

        async with self.uow_factory() as uow:
            user = await uow.users.get_by_id(user_id, for_update=True)
            if user is None:
                raise NotFoundError("User not found", user_id=user_id)

            if user.is_active:
                self.logger.info(
                    "Activation confirmation for active user ignored",
                    extra={"user_id": user_id, "correlation_id": correlation_id},
                )
                return ActivationOutcome(
                    user_id=user_id,
                    correlation_id=correlation_id,
                    activated=False,
                    already_active=True,
                )

            journal = TransactionJournal(uow)
            previous = await journal.find_by_correlation(
                correlation_id, TransactionType.ACCOUNT_ACTIVATION, user_id=user_id
            )
            if previous:
                raise ConsistencyViolation(
                    "Activation entry exists for an unverified user",
                    user_id=user_id,
                    correlation_id=correlation_id,
                )

            now = datetime.now(UTC)
            await journal.record(
                user_id=user_id,
                tx_type=TransactionType.ACCOUNT_ACTIVATION,
                amount=self.settings.activation_fee,
                correlation_key=correlation_id,
                status=TransactionStatus.CONFIRMED,
                external_reference=external_receipt,
                description="Account activation fee",
            )
            user.account_status = AccountStatus.ACTIVE.value
            user.activated_at = now

            released = await self._release_referral_earnings(uow, user, now)
            await uow.commit()

        self.logger.info(
            "Account activated",
            extra={
                "user_id": user_id,
                "correlation_id": correlation_id,
                "receipt": external_receipt,
                "bonuses_released": len(released),
            },
        )
        return ActivationOutcome(
            user_id=user_id,
            correlation_id=correlation_id,
            activated=True,
            released=released,
        )

    async def _release_referral_earnings(
        self, uow: UnitOfWork, user: User, now: datetime
    ) -> list[ReleasedBonus]:
        """Release every PENDING record where the user is the referred party."""
        records = await uow.referrals.get_pending_for_referred(
            user.id, for_update=True
        )
        if not records:
            return []

        referrers = await uow.users.lock_many(r.referrer_id for r in records)
        ledger = BalanceLedger(uow)
        journal = TransactionJournal(uow)

        released: list[ReleasedBonus] = []
        for record in records:
            if record.earnings_status != EarningsStatus.PENDING.value:
                raise ConsistencyViolation(
                    "Referral record is not pending",
                    referral_id=record.id,
                )
            referrer = referrers.get(record.referrer_id)
            if referrer is None:
                raise ConsistencyViolation(
                    "Referrer of a pending record is missing",
                    referral_id=record.id,
                )

            record.earnings_status = EarningsStatus.AVAILABLE.value
            record.confirmed_at = now
            ledger.release_pending(referrer, record.earnings_amount)

            tx_type = TransactionType.referral_bonus(record.level)
            correlation_key = referral_correlation_key(record.id)
            pending_entry = await journal.latest_pending(
                correlation_key, tx_type, user_id=referrer.id
            )
            if pending_entry is not None:
                journal.transition(pending_entry, TransactionStatus.CONFIRMED)
            else:
                await journal.record(
                    user_id=referrer.id,
                    tx_type=tx_type,
                    amount=record.earnings_amount,
                    correlation_key=correlation_key,
                    status=TransactionStatus.CONFIRMED,
                    description=f"Level {record.level} referral bonus",
                    meta={"referral_id": record.id, "referred_id": user.id},
                )

            released.append(
                ReleasedBonus(
                    referral_id=record.id,
                    referrer_id=referrer.id,
                    level=record.level,
                    amount=record.earnings_amount,
                )
            )

        return released

    @ledger_operation
    async def handle_payment_callback(self, payload: Any) -> dict[str, Any]:
        """
        Process an STK push callback body.

        Failed payments, payments of the wrong amount and unknown
        correlation ids are logged and leave the ledger untouched; the
        last two are logged as errors for manual reconciliation. The
        caller acknowledges the provider no matter what this returns.

        Returns:
            ServiceResult with {"correlation_id", "outcome", ...}.
            VALIDATION for a malformed payload.
        """
        callback = parse_stk_callback(payload)
        correlation_id = callback.checkout_request_id

        if not callback.success:
            self.logger.info(
                "Activation payment failed",
                extra={
                    "correlation_id": correlation_id,
                    "result_code": callback.result_code,
                    "reason": callback.error_message,
                },
            )
            return {
                "correlation_id": correlation_id,
                "outcome": "failed",
                "reason": callback.error_message,
            }

        fee = self.settings.activation_fee
        if callback.amount is not None and callback.amount != fee:
            # Paid, but not the fee: needs a manual refund or top-up
            self.logger.error(
                "Activation payment amount does not match the fee",
                extra={
                    "correlation_id": correlation_id,
                    "receipt": callback.receipt_number,
                    "amount": str(callback.amount),
                    "fee": str(fee),
                    "phone_number": callback.phone_number,
                },
            )
            return {
                "correlation_id": correlation_id,
                "outcome": "amount_mismatch",
                "amount": callback.amount,
            }

        try:
            outcome = await self._confirm(
                correlation_id, callback.receipt_number, None
            )
        except NotFoundError as e:
            # A real payment that can no longer be matched (unknown or
            # expired correlation id): operators reconcile from the receipt
            self.logger.error(
                f"Paid activation callback not applied: {e.message}",
                extra={
                    "correlation_id": correlation_id,
                    "receipt": callback.receipt_number,
                    "amount": str(callback.amount),
                    "phone_number": callback.phone_number,
                    "transaction_date": callback.transaction_date,
                },
            )
            return {"correlation_id": correlation_id, "outcome": "unknown"}

        return {
            "correlation_id": correlation_id,
            "outcome": "activated" if outcome.activated else "already_active",
            "user_id": outcome.user_id,
            "bonuses_released": len(outcome.released),
        }

    @ledger_operation
    async def handle_timeout(self, payload: Any) -> dict[str, Any]:
        """Timeout notification: logged, no state change."""
        correlation_id = None
        if isinstance(payload, dict):
            body = payload.get("Body")
            callback = body.get("stkCallback") if isinstance(body, dict) else None
            if isinstance(callback, dict):
                correlation_id = callback.get("CheckoutRequestID")
        self.logger.info(
            "Activation payment timed out",
            extra={"correlation_id": correlation_id},
        )
        return {"correlation_id": correlation_id, "outcome": "timeout"}

    @ledger_operation
    async def check_activation_status(self, correlation_id: str) -> dict[str, Any]:
        """
        Status of an activation attempt.

        Returns:
            ServiceResult with {"correlation_id", "status", "account_status"}.
            status is PENDING until an activation entry exists for the
            correlation id.
        """
        attempt = await self.attempt_registry.resolve(correlation_id)

        async with self.uow_factory() as uow:
            entries = await uow.transactions.find_by_correlation(
                correlation_id, tx_type=TransactionType.ACCOUNT_ACTIVATION
            )
            user_id = entries[0].user_id if entries else (
                attempt.user_id if attempt else None
            )
            if not entries and user_id is None:
                raise NotFoundError(
                    "Unknown activation correlation id",
                    correlation_id=correlation_id,
                )
            user = await uow.users.get_by_id(user_id)

        return {
            "correlation_id": correlation_id,
            "user_id": user_id,
            "status": entries[0].status if entries else TransactionStatus.PENDING.value,
            "account_status": user.account_status if user else None,
        }
