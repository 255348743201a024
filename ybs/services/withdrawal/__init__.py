"""
Withdrawal services.

Request creation, lifecycle (resolve, cancel, retry) and queries.
"""

from ybs.services.withdrawal.withdrawal_lifecycle_handler import (
    WithdrawalLifecycleHandler,
)
from ybs.services.withdrawal.withdrawal_query_service import (
    WithdrawalQueryService,
)
from ybs.services.withdrawal.withdrawal_request_handler import (
    WithdrawalRequestHandler,
    withdrawal_correlation_key,
)

__all__ = [
    "WithdrawalLifecycleHandler",
    "WithdrawalQueryService",
    "WithdrawalRequestHandler",
    "withdrawal_correlation_key",
]
