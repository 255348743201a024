"""Tests for ServiceResult and the ledger_operation decorator."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from ybs.services import BaseService, ServiceResult, ledger_operation
from ybs.utils.exceptions import (
    ConflictError,
    ErrorKind,
    ExternalServiceError,
    InsufficientFundsError,
)


class DummyService(BaseService):
    """Service whose operations raise whatever they are given."""

    @ledger_operation
    async def run(self, outcome):
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture
def service():
    return DummyService(MagicMock())


class TestServiceResult:
    """Result container."""

    def test_ok(self):
        result = ServiceResult.ok({"id": 1})

        assert result.success is True
        assert result.data == {"id": 1}
        assert result.error_kind is None

    def test_fail_carries_kind_and_retryable(self):
        result = ServiceResult.fail(ExternalServiceError("M-Pesa down"))

        assert result.success is False
        assert result.error == "M-Pesa down"
        assert result.error_kind == ErrorKind.EXTERNAL_SERVICE
        assert result.retryable is True


class TestLedgerOperation:
    """Exceptions become results, except unexpected ones."""

    @pytest.mark.asyncio
    async def test_payload_wrapped_in_ok(self, service):
        result = await service.run("done")

        assert result.success is True
        assert result.data == "done"

    @pytest.mark.asyncio
    async def test_ledger_error_becomes_failure(self, service):
        result = await service.run(
            InsufficientFundsError("Insufficient balance", user_id=1)
        )

        assert result.success is False
        assert result.error == "Insufficient balance"
        assert result.error_kind == ErrorKind.INSUFFICIENT_FUNDS
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_conflict_is_terminal(self, service):
        result = await service.run(ConflictError("Account is already activated"))

        assert result.error_kind == ErrorKind.CONFLICT
        assert result.retryable is False

    @pytest.mark.asyncio
    async def test_integrity_error_becomes_conflict(self, service):
        error = IntegrityError(
            "INSERT INTO users ...", {}, Exception("UNIQUE constraint failed")
        )

        result = await service.run(error)

        assert result.success is False
        assert result.error_kind == ErrorKind.CONFLICT

    @pytest.mark.asyncio
    async def test_unexpected_error_propagates(self, service):
        with pytest.raises(RuntimeError, match="database exploded"):
            await service.run(RuntimeError("database exploded"))
