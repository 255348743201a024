"""
Enumerations shared by the ledger models.

Values are stored as plain strings in the database.
"""

from enum import StrEnum


class AccountStatus(StrEnum):
    """User account status."""

    UNVERIFIED = "UNVERIFIED"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"


class EarningsStatus(StrEnum):
    """Referral record earnings status."""

    PENDING = "PENDING"  # Waiting for the referred user to activate
    AVAILABLE = "AVAILABLE"  # Released into the referrer's balance


class TransactionType(StrEnum):
    """Journal entry category."""

    ACCOUNT_ACTIVATION = "ACCOUNT_ACTIVATION"
    WITHDRAW_TO_MPESA = "WITHDRAW_TO_MPESA"
    LEVEL_1_REFERRAL_BONUS = "LEVEL_1_REFERRAL_BONUS"
    LEVEL_2_REFERRAL_BONUS = "LEVEL_2_REFERRAL_BONUS"
    LEVEL_3_REFERRAL_BONUS = "LEVEL_3_REFERRAL_BONUS"

    @classmethod
    def referral_bonus(cls, level: int) -> "TransactionType":
        """Bonus type for a referral level (1-3)."""
        try:
            return cls(f"LEVEL_{level}_REFERRAL_BONUS")
        except ValueError as exc:
            raise ValueError(f"Invalid referral level: {level}") from exc


# Entry types that count towards a user's total_earned
EARNING_TRANSACTION_TYPES = (
    TransactionType.LEVEL_1_REFERRAL_BONUS,
    TransactionType.LEVEL_2_REFERRAL_BONUS,
    TransactionType.LEVEL_3_REFERRAL_BONUS,
)


class TransactionStatus(StrEnum):
    """Journal entry status. Progresses one way out of PENDING."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class WithdrawalStatus(StrEnum):
    """Withdrawal request status."""

    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"


# Statuses whose amount is still reserved out of available_balance
OUTSTANDING_WITHDRAWAL_STATUSES = (
    WithdrawalStatus.PENDING,
    WithdrawalStatus.PROCESSING,
)
