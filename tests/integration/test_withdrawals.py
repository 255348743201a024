"""Integration tests for the withdrawal request lifecycle."""

from decimal import Decimal

import pytest

from ybs.config.business_constants import USER_CANCELLATION_REASON
from ybs.models import TransactionStatus, TransactionType, WithdrawalStatus
from ybs.services.balance import BalanceAuditService
from ybs.services.withdrawal import (
    WithdrawalLifecycleHandler,
    WithdrawalQueryService,
    WithdrawalRequestHandler,
    withdrawal_correlation_key,
)
from ybs.utils.exceptions import ErrorKind


@pytest.fixture
def requests_handler(uow_factory, test_settings):
    return WithdrawalRequestHandler(uow_factory, test_settings)


@pytest.fixture
def lifecycle(uow_factory):
    return WithdrawalLifecycleHandler(uow_factory)


@pytest.fixture
def queries(uow_factory):
    return WithdrawalQueryService(uow_factory)


async def journal_statuses(uow_factory, request_id):
    async with uow_factory() as uow:
        entries = await uow.transactions.find_by_correlation(
            withdrawal_correlation_key(request_id),
            TransactionType.WITHDRAW_TO_MPESA,
        )
    return [entry.status for entry in entries]


class TestRequestWithdrawal:
    """Request creation and reservation."""

    @pytest.mark.asyncio
    async def test_request_reserves_full_balance(
        self, requests_handler, seed_user, load_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))

        result = await requests_handler.request_withdrawal(user.id, Decimal("1000"))

        assert result.success is True
        request = result.data
        assert request.status == WithdrawalStatus.PENDING.value
        assert request.amount == Decimal("1000")
        assert request.mpesa_number == "254712345678"
        assert (await load_user(user.id)).available_balance == Decimal("0")
        assert await journal_statuses(uow_factory, request.id) == [
            TransactionStatus.PENDING.value
        ]

    @pytest.mark.asyncio
    async def test_custom_payout_number_normalized(self, requests_handler, seed_user):
        user = await seed_user("254712345678", available_balance=Decimal("2000"))

        result = await requests_handler.request_withdrawal(
            user.id, "1500", mpesa_number="0722000111"
        )

        assert result.data.mpesa_number == "254722000111"

    @pytest.mark.asyncio
    async def test_below_minimum_rejected_without_state_change(
        self, requests_handler, seed_user, load_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("5000"))

        result = await requests_handler.request_withdrawal(user.id, Decimal("999.99"))

        assert result.success is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert (await load_user(user.id)).available_balance == Decimal("5000")
        async with uow_factory() as uow:
            assert await uow.withdrawals.count() == 0
            assert await uow.transactions.count() == 0

    @pytest.mark.asyncio
    async def test_minimum_amount_accepted(self, requests_handler, seed_user):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))

        result = await requests_handler.request_withdrawal(
            user.id, requests_handler.get_min_withdrawal_amount()
        )

        assert result.success is True

    @pytest.mark.asyncio
    async def test_insufficient_funds(self, requests_handler, seed_user, uow_factory):
        user = await seed_user("254712345678", available_balance=Decimal("1200"))

        result = await requests_handler.request_withdrawal(user.id, Decimal("1500"))

        assert result.error_kind == ErrorKind.INSUFFICIENT_FUNDS
        async with uow_factory() as uow:
            assert await uow.withdrawals.count() == 0

    @pytest.mark.asyncio
    async def test_oversized_amount_is_validation_failure(
        self, requests_handler, seed_user, load_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))

        result = await requests_handler.request_withdrawal(user.id, "1e30")

        assert result.success is False
        assert result.error_kind == ErrorKind.VALIDATION
        assert (await load_user(user.id)).available_balance == Decimal("1000")

    @pytest.mark.asyncio
    async def test_inactive_account_rejected(self, requests_handler, seed_user):
        user = await seed_user(
            "254712345678", active=False, available_balance=Decimal("1000")
        )

        result = await requests_handler.request_withdrawal(user.id, Decimal("1000"))

        assert result.error_kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_one_outstanding_request_per_user(self, requests_handler, seed_user):
        user = await seed_user("254712345678", available_balance=Decimal("3000"))
        await requests_handler.request_withdrawal(user.id, Decimal("1000"))

        result = await requests_handler.request_withdrawal(user.id, Decimal("1000"))

        assert result.error_kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_unknown_user(self, requests_handler):
        result = await requests_handler.request_withdrawal(404, Decimal("1000"))

        assert result.error_kind == ErrorKind.NOT_FOUND


class TestResolveWithdrawal:
    """Operator resolution."""

    @pytest.mark.asyncio
    async def test_reject_restores_balance(
        self, requests_handler, lifecycle, seed_user, load_user, uow_factory
    ):
        """Balance 1000, request 1000, admin rejects: balance back to 1000."""
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        assert (await load_user(user.id)).available_balance == Decimal("0")

        result = await lifecycle.resolve_withdrawal(
            request.id,
            WithdrawalStatus.REJECTED,
            admin_id="ops-1",
            rejection_reason="Payout number not registered",
        )

        assert result.success is True
        assert result.data.status == WithdrawalStatus.REJECTED.value
        assert result.data.rejection_reason == "Payout number not registered"
        assert result.data.admin_id == "ops-1"
        assert result.data.processed_at is not None
        assert result.data.resolved_at is not None
        assert (await load_user(user.id)).available_balance == Decimal("1000")
        assert await journal_statuses(uow_factory, request.id) == [
            TransactionStatus.FAILED.value
        ]

    @pytest.mark.asyncio
    async def test_complete_records_payout(
        self, requests_handler, lifecycle, seed_user, load_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1500"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data

        result = await lifecycle.resolve_withdrawal(
            request.id,
            "COMPLETED",
            admin_id="ops-1",
            mpesa_transaction_code="RKT5ABC123",
        )

        assert result.data.status == WithdrawalStatus.COMPLETED.value
        assert result.data.mpesa_transaction_code == "RKT5ABC123"
        refreshed = await load_user(user.id)
        assert refreshed.available_balance == Decimal("500")
        assert refreshed.total_withdrawn == Decimal("1000")

        async with uow_factory() as uow:
            entries = await uow.transactions.find_by_correlation(
                withdrawal_correlation_key(request.id)
            )
        assert [(e.status, e.external_reference) for e in entries] == [
            (TransactionStatus.CONFIRMED.value, "RKT5ABC123")
        ]

    @pytest.mark.asyncio
    async def test_second_resolution_conflicts(
        self, requests_handler, lifecycle, seed_user, load_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.resolve_withdrawal(
            request.id, "REJECTED", admin_id="ops-1", rejection_reason="No"
        )

        again = await lifecycle.resolve_withdrawal(
            request.id, "REJECTED", admin_id="ops-2", rejection_reason="No"
        )
        completed = await lifecycle.resolve_withdrawal(
            request.id, "COMPLETED", admin_id="ops-2", mpesa_transaction_code="X1"
        )

        assert again.error_kind == ErrorKind.CONFLICT
        assert completed.error_kind == ErrorKind.CONFLICT
        refreshed = await load_user(user.id)
        assert refreshed.available_balance == Decimal("1000")
        assert refreshed.total_withdrawn == Decimal("0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", ["PENDING", "APPROVED", "COMPLETED", "REJECTED"])
    async def test_invalid_resolution_input(
        self, requests_handler, lifecycle, seed_user, outcome
    ):
        """Unknown outcomes and outcomes missing their details are refused."""
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data

        result = await lifecycle.resolve_withdrawal(
            request.id, outcome, admin_id="ops-1"
        )

        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unknown_request(self, lifecycle):
        result = await lifecycle.resolve_withdrawal(
            12345, "REJECTED", admin_id="ops-1", rejection_reason="No"
        )

        assert result.error_kind == ErrorKind.NOT_FOUND


class TestCancelAndRetry:
    """Self-service cancel and retry."""

    @pytest.mark.asyncio
    async def test_request_then_cancel_round_trip(
        self, requests_handler, lifecycle, seed_user, load_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1750.50"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1200"))
        ).data

        result = await lifecycle.cancel_withdrawal(request.id, user.id)

        assert result.success is True
        assert result.data.status == WithdrawalStatus.REJECTED.value
        assert result.data.rejection_reason == USER_CANCELLATION_REASON
        assert (await load_user(user.id)).available_balance == Decimal("1750.50")
        assert await journal_statuses(uow_factory, request.id) == [
            TransactionStatus.CANCELLED.value
        ]

    @pytest.mark.asyncio
    async def test_cancel_by_other_user_not_found(
        self, requests_handler, lifecycle, seed_user
    ):
        owner = await seed_user("254712345678", available_balance=Decimal("1000"))
        other = await seed_user("254722345678")
        request = (
            await requests_handler.request_withdrawal(owner.id, Decimal("1000"))
        ).data

        result = await lifecycle.cancel_withdrawal(request.id, other.id)

        assert result.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_cancel_after_resolution_conflicts(
        self, requests_handler, lifecycle, seed_user, load_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.resolve_withdrawal(
            request.id, "COMPLETED", admin_id="ops-1", mpesa_transaction_code="X1"
        )

        result = await lifecycle.cancel_withdrawal(request.id, user.id)

        assert result.error_kind == ErrorKind.CONFLICT
        assert (await load_user(user.id)).available_balance == Decimal("0")

    @pytest.mark.asyncio
    async def test_retry_rejected_request(
        self, requests_handler, lifecycle, seed_user, load_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.resolve_withdrawal(
            request.id, "REJECTED", admin_id="ops-1", rejection_reason="Retry later"
        )

        result = await lifecycle.retry_withdrawal(request.id, user.id)

        assert result.success is True
        retried = result.data
        assert retried.status == WithdrawalStatus.PENDING.value
        assert retried.rejection_reason is None
        assert retried.admin_id is None
        assert retried.resolved_at is None
        assert (await load_user(user.id)).available_balance == Decimal("0")
        assert await journal_statuses(uow_factory, request.id) == [
            TransactionStatus.FAILED.value,
            TransactionStatus.PENDING.value,
        ]

        # The fresh entry is the one resolution acts on
        completed = await lifecycle.resolve_withdrawal(
            request.id, "COMPLETED", admin_id="ops-1", mpesa_transaction_code="X9"
        )
        assert completed.success is True
        assert await journal_statuses(uow_factory, request.id) == [
            TransactionStatus.FAILED.value,
            TransactionStatus.CONFIRMED.value,
        ]

    @pytest.mark.asyncio
    async def test_retry_requires_balance(
        self, requests_handler, lifecycle, seed_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.cancel_withdrawal(request.id, user.id)
        second = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.resolve_withdrawal(
            second.id, "COMPLETED", admin_id="ops-1", mpesa_transaction_code="X2"
        )

        result = await lifecycle.retry_withdrawal(request.id, user.id)

        assert result.error_kind == ErrorKind.INSUFFICIENT_FUNDS
        async with uow_factory() as uow:
            stored = await uow.withdrawals.get_by_id(request.id)
        assert stored.status == WithdrawalStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_retry_refused_while_another_request_outstanding(
        self, requests_handler, lifecycle, seed_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("3000"))
        first = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.cancel_withdrawal(first.id, user.id)
        await requests_handler.request_withdrawal(user.id, Decimal("1000"))

        result = await lifecycle.retry_withdrawal(first.id, user.id)

        assert result.error_kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_retry_of_pending_request_conflicts(
        self, requests_handler, lifecycle, seed_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("1000"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data

        result = await lifecycle.retry_withdrawal(request.id, user.id)

        assert result.error_kind == ErrorKind.CONFLICT


class TestWithdrawalQueries:
    """Listings and audits."""

    @pytest.mark.asyncio
    async def test_user_listing_and_status_filter(
        self, requests_handler, lifecycle, queries, seed_user
    ):
        user = await seed_user("254712345678", available_balance=Decimal("5000"))
        first = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data
        await lifecycle.cancel_withdrawal(first.id, user.id)
        second = (
            await requests_handler.request_withdrawal(user.id, Decimal("2000"))
        ).data

        everything = await queries.get_user_withdrawals(user.id)
        pending = await queries.get_user_withdrawals(user.id, status="PENDING")

        assert everything.data["total"] == 2
        assert {r.id for r in everything.data["items"]} == {first.id, second.id}
        assert [r.id for r in pending.data["items"]] == [second.id]
        assert pending.data["pages"] == 1

    @pytest.mark.asyncio
    async def test_admin_listing_defaults_to_pending(
        self, requests_handler, queries, seed_user
    ):
        a = await seed_user("254712345678", available_balance=Decimal("1000"))
        b = await seed_user("254722345678", available_balance=Decimal("1000"))
        await requests_handler.request_withdrawal(a.id, Decimal("1000"))
        await requests_handler.request_withdrawal(b.id, Decimal("1000"))

        result = await queries.list_withdrawals(page_size=1)

        assert result.data["total"] == 2
        assert len(result.data["items"]) == 1
        assert result.data["pages"] == 2

    @pytest.mark.asyncio
    async def test_invalid_status_filter(self, queries):
        result = await queries.list_withdrawals(status="LOST")

        assert result.error_kind == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_get_withdrawal_checks_owner(
        self, requests_handler, queries, seed_user
    ):
        owner = await seed_user("254712345678", available_balance=Decimal("1000"))
        other = await seed_user("254722345678")
        request = (
            await requests_handler.request_withdrawal(owner.id, Decimal("1000"))
        ).data

        mine = await queries.get_withdrawal(request.id, user_id=owner.id)
        theirs = await queries.get_withdrawal(request.id, user_id=other.id)

        assert mine.data.id == request.id
        assert theirs.error_kind == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_audit_after_lifecycle(
        self, requests_handler, lifecycle, seed_user, uow_factory
    ):
        user = await seed_user("254712345678", available_balance=Decimal("2500"))
        request = (
            await requests_handler.request_withdrawal(user.id, Decimal("1000"))
        ).data

        audit = (await BalanceAuditService(uow_factory).audit_user(user.id)).data
        assert audit.is_consistent
        assert audit.reserved_amount == Decimal("1000")
        assert audit.available_balance == Decimal("1500")

        await lifecycle.resolve_withdrawal(
            request.id, "COMPLETED", admin_id="ops-1", mpesa_transaction_code="X1"
        )
        audit = (await BalanceAuditService(uow_factory).audit_user(user.id)).data
        assert audit.reserved_amount == Decimal("0")
        assert audit.total_withdrawn == Decimal("1000")
        assert audit.to_dict()["is_consistent"] is True

    @pytest.mark.asyncio
    async def test_audit_unknown_user(self, uow_factory):
        result = await BalanceAuditService(uow_factory).audit_user(999)

        assert result.error_kind == ErrorKind.NOT_FOUND
