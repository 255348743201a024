"""
Referral services.

Chain resolution at registration, registration itself, and read-only
referral queries.
"""

from ybs.services.referral.chain_resolver import (
    ReferralChainResolver,
    referral_correlation_key,
)
from ybs.services.referral.query_manager import ReferralQueryService
from ybs.services.referral.registration import (
    RegistrationOutcome,
    RegistrationService,
)

__all__ = [
    "ReferralChainResolver",
    "ReferralQueryService",
    "RegistrationOutcome",
    "RegistrationService",
    "referral_correlation_key",
]
