"""
Service wiring.

Builds the services the HTTP surface needs from a session maker, a Redis
client and a payment collector.
"""

from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ybs.config.settings import Settings
from ybs.database.unit_of_work import unit_of_work_factory
from ybs.services.activation import (
    ActivationAttemptRegistry,
    ActivationService,
    PaymentCollector,
)
from ybs.services.balance import BalanceAuditService
from ybs.services.withdrawal import (
    WithdrawalLifecycleHandler,
    WithdrawalQueryService,
)


@dataclass
class ServiceContainer:
    """Services exposed over HTTP."""

    settings: Settings
    activation: ActivationService
    withdrawal_lifecycle: WithdrawalLifecycleHandler
    withdrawal_queries: WithdrawalQueryService
    balance_audit: BalanceAuditService


def build_container(
    session_maker: async_sessionmaker[AsyncSession],
    redis_client: Any,
    payment_collector: PaymentCollector,
    settings: Settings,
) -> ServiceContainer:
    """
    Wire services over one session maker.

    Args:
        session_maker: Session factory
        redis_client: redis.asyncio client for the attempt registry
        payment_collector: Payment collector (MpesaClient in production)
        settings: Settings

    Returns:
        ServiceContainer
    """
    uow_factory = unit_of_work_factory(session_maker)
    registry = ActivationAttemptRegistry(
        redis_client, settings.activation_attempt_ttl_seconds
    )
    return ServiceContainer(
        settings=settings,
        activation=ActivationService(
            uow_factory, payment_collector, registry, settings
        ),
        withdrawal_lifecycle=WithdrawalLifecycleHandler(uow_factory),
        withdrawal_queries=WithdrawalQueryService(uow_factory),
        balance_audit=BalanceAuditService(uow_factory),
    )
