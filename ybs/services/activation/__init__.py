"""Account activation."""

from ybs.services.activation.activation_service import (
    ActivationOutcome,
    ActivationService,
    PaymentCollector,
    ReleasedBonus,
)
from ybs.services.activation.attempt_registry import (
    ActivationAttempt,
    ActivationAttemptRegistry,
)

__all__ = [
    "ActivationAttempt",
    "ActivationAttemptRegistry",
    "ActivationOutcome",
    "ActivationService",
    "PaymentCollector",
    "ReleasedBonus",
]
