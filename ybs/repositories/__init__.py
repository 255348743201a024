"""
Repositories.

Data access layer over AsyncSession.
"""

from ybs.repositories.base import BaseRepository
from ybs.repositories.referral_repository import ReferralRepository
from ybs.repositories.transaction_repository import TransactionRepository
from ybs.repositories.user_repository import UserRepository
from ybs.repositories.withdrawal_repository import WithdrawalRepository

__all__ = [
    "BaseRepository",
    "ReferralRepository",
    "TransactionRepository",
    "UserRepository",
    "WithdrawalRepository",
]
