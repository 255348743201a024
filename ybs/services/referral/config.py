"""
Referral system configuration.

Contains constants and configuration for the referral system.
"""

from decimal import Decimal

from ybs.config.business_constants import REFERRAL_BONUSES, REFERRAL_DEPTH

__all__ = ["REFERRAL_BONUSES", "REFERRAL_DEPTH", "bonus_for_level"]


def bonus_for_level(level: int) -> Decimal:
    """
    Fixed bonus paid to the ancestor at the given level.

    Raises:
        ValueError: If level is outside 1..REFERRAL_DEPTH
    """
    if level not in REFERRAL_BONUSES:
        raise ValueError(f"Invalid referral level: {level}")
    return REFERRAL_BONUSES[level]
