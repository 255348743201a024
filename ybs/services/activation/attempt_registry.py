"""
Activation attempt registry.

Maps the correlation id returned by the payment provider to the user who
started the attempt. The provider callback carries no user identity, so
this mapping is what lets a callback find its user. Entries expire after
``activation_attempt_ttl_seconds``.
"""

import json
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any

from loguru import logger
from redis.exceptions import RedisError

from ybs.utils.exceptions import ExternalServiceError

KEY_PREFIX = "ybs:activation_attempt:"


@dataclass(frozen=True)
class ActivationAttempt:
    """One outstanding activation payment attempt."""

    correlation_id: str
    user_id: int
    reference: str
    amount: str
    payout_account: str


class ActivationAttemptRegistry:
    """Redis-backed correlation id -> attempt mapping."""

    def __init__(self, redis_client: Any, ttl_seconds: int) -> None:
        """
        Initialize registry.

        Args:
            redis_client: redis.asyncio client (decode_responses=True)
            ttl_seconds: Entry lifetime
        """
        self.redis_client = redis_client
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def _key(correlation_id: str) -> str:
        return f"{KEY_PREFIX}{correlation_id}"

    async def register(
        self,
        correlation_id: str,
        user_id: int,
        reference: str,
        amount: Decimal,
        payout_account: str,
    ) -> ActivationAttempt:
        """
        Store an attempt.

        Raises:
            ExternalServiceError: If Redis is unavailable
        """
        attempt = ActivationAttempt(
            correlation_id=correlation_id,
            user_id=user_id,
            reference=reference,
            amount=str(amount),
            payout_account=payout_account,
        )
        try:
            await self.redis_client.setex(
                self._key(correlation_id),
                self.ttl_seconds,
                json.dumps(asdict(attempt)),
            )
        except (RedisError, ConnectionError, TimeoutError) as e:
            # The STK prompt is already on the customer's phone
            logger.critical(
                f"Could not register activation attempt: {type(e).__name__}: {e}",
                extra={"correlation_id": correlation_id, "user_id": user_id},
            )
            raise ExternalServiceError(
                "Could not record activation attempt",
                correlation_id=correlation_id,
            ) from e
        return attempt

    async def resolve(self, correlation_id: str) -> ActivationAttempt | None:
        """
        Look up an attempt.

        Returns:
            ActivationAttempt, or None if unknown or expired

        Raises:
            ExternalServiceError: If Redis is unavailable
        """
        try:
            raw = await self.redis_client.get(self._key(correlation_id))
        except (RedisError, ConnectionError, TimeoutError) as e:
            logger.error(
                f"Could not resolve activation attempt: {type(e).__name__}: {e}",
                extra={"correlation_id": correlation_id},
            )
            raise ExternalServiceError(
                "Could not resolve activation attempt",
                correlation_id=correlation_id,
            ) from e

        if raw is None:
            return None
        try:
            return ActivationAttempt(**json.loads(raw))
        except (ValueError, TypeError) as e:
            logger.error(
                f"Invalid activation attempt data in Redis: {e}",
                extra={"correlation_id": correlation_id},
            )
            return None
