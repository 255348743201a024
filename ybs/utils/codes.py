"""Referral code and payment reference generation."""

import secrets
import time

from ybs.config.business_constants import (
    REFERRAL_CODE_ALPHABET,
    REFERRAL_CODE_LENGTH,
)


def generate_referral_code(length: int = REFERRAL_CODE_LENGTH) -> str:
    """Random uppercase alphanumeric referral code."""
    return "".join(
        secrets.choice(REFERRAL_CODE_ALPHABET) for _ in range(length)
    )


def generate_activation_reference(user_id: int) -> str:
    """
    Account reference sent to the payment provider for one attempt.

    Args:
        user_id: User paying the activation fee

    Returns:
        Reference in the form ACT_<user_id>_<epoch-ms>
    """
    return f"ACT_{user_id}_{int(time.time() * 1000)}"
