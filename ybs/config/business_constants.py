"""
Business logic constants for the YBS ledger.

Central location for business rules used across the application.
This module has no project imports so it can be used from settings, models
and services without circular dependencies.
"""

from decimal import Decimal

# One-time account activation fee (KSH)
ACTIVATION_FEE = Decimal("600")

# Minimum amount a user may request to withdraw (KSH)
MIN_WITHDRAWAL_AMOUNT = Decimal("1000")

# 3-level referral program: fixed bonus per level, paid on activation
REFERRAL_DEPTH = 3
REFERRAL_BONUSES = {
    1: Decimal("300"),  # direct referrer
    2: Decimal("100"),
    3: Decimal("50"),
}

# Referral code alphabet and length
REFERRAL_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
REFERRAL_CODE_LENGTH = 8
REFERRAL_CODE_MAX_ATTEMPTS = 10

# Registration rules
PASSWORD_MIN_LENGTH = 6

# Pagination defaults
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

# Rejection reason written when a user cancels their own request
USER_CANCELLATION_REASON = "Cancelled by user"
