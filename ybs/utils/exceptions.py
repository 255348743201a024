"""
Ledger exception taxonomy.

Every business-rule violation carries an ErrorKind so callers can tell
retryable failures from terminal ones without matching on messages.
Raising inside a unit of work aborts the whole transaction.
"""

from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    """Failure category of a ledger operation."""

    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    EXTERNAL_SERVICE = "external_service"
    CONSISTENCY = "consistency"


class LedgerError(Exception):
    """Base class for all ledger errors."""

    kind: ErrorKind = ErrorKind.CONSISTENCY
    retryable: bool = False

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize error.

        Args:
            message: Human readable message
            **context: Structured context for logging
        """
        super().__init__(message)
        self.message = message
        self.context = context


class ValidationError(LedgerError):
    """Malformed or out-of-range input."""

    kind = ErrorKind.VALIDATION


class NotFoundError(LedgerError):
    """Referenced user, code or request does not exist."""

    kind = ErrorKind.NOT_FOUND


class ConflictError(LedgerError):
    """Operation conflicts with current state (duplicate, already done)."""

    kind = ErrorKind.CONFLICT


class InsufficientFundsError(LedgerError):
    """Amount exceeds available balance."""

    kind = ErrorKind.INSUFFICIENT_FUNDS


class ExternalServiceError(LedgerError):
    """Payment provider unreachable, timed out or refused the request."""

    kind = ErrorKind.EXTERNAL_SERVICE
    retryable = True


class ConsistencyViolation(LedgerError):
    """A ledger invariant would be broken; the transaction is aborted."""

    kind = ErrorKind.CONSISTENCY
