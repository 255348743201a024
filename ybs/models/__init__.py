"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from ybs.models.base import Base
from ybs.models.enums import (
    EARNING_TRANSACTION_TYPES,
    OUTSTANDING_WITHDRAWAL_STATUSES,
    AccountStatus,
    EarningsStatus,
    TransactionStatus,
    TransactionType,
    WithdrawalStatus,
)
from ybs.models.referral import Referral
from ybs.models.transaction import Transaction
from ybs.models.user import User
from ybs.models.withdrawal_request import WithdrawalRequest

__all__ = [
    # Base
    "Base",
    # Enums
    "AccountStatus",
    "EarningsStatus",
    "TransactionStatus",
    "TransactionType",
    "WithdrawalStatus",
    "EARNING_TRANSACTION_TYPES",
    "OUTSTANDING_WITHDRAWAL_STATUSES",
    # Models
    "User",
    "Referral",
    "Transaction",
    "WithdrawalRequest",
]
