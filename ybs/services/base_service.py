"""
Base service class.

Provides common functionality for ledger services: unit of work factory,
logging with bound service context, and the decorator that turns raised
ledger errors into ServiceResult failures.
"""

import functools
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.exc import IntegrityError

from ybs.database.unit_of_work import UnitOfWorkFactory
from ybs.utils.exceptions import ErrorKind, LedgerError

T = TypeVar("T")


@dataclass
class ServiceResult:
    """
    Standard service result container.

    Callers branch on ``error_kind`` and ``retryable`` rather than on the
    message text.
    """

    success: bool
    data: Any = None
    error: str | None = None
    error_kind: ErrorKind | None = None
    retryable: bool = False

    @classmethod
    def ok(cls, data: Any = None) -> "ServiceResult":
        """Successful result."""
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: LedgerError) -> "ServiceResult":
        """Failed result built from a ledger error."""
        return cls(
            success=False,
            error=error.message,
            error_kind=error.kind,
            retryable=error.retryable,
        )


class BaseService:
    """
    Base service class.

    Each public operation opens its own unit of work through
    ``uow_factory`` so that one call equals one atomic transaction.
    """

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        """
        Initialize base service.

        Args:
            uow_factory: Zero-argument factory producing units of work
        """
        self.uow_factory = uow_factory
        self.logger = logger.bind(service=self.__class__.__name__)


def ledger_operation(
    func: Callable[..., Awaitable[Any]],
) -> Callable[..., Awaitable[ServiceResult]]:
    """
    Decorator for public service operations.

    The wrapped coroutine returns its payload and raises LedgerError on
    rule violations. The wrapper returns ServiceResult.ok(payload) or
    ServiceResult.fail(error). IntegrityError (a unique index losing a
    race) becomes CONFLICT. Any other exception is logged and re-raised.

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method returning ServiceResult
    """

    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> ServiceResult:
        start_time = time.time()
        try:
            data = await func(self, *args, **kwargs)
        except LedgerError as e:
            self.logger.warning(
                f"{func.__name__} refused: {e.message}",
                extra={
                    "function": func.__name__,
                    "error_kind": e.kind.value,
                    **{k: str(v) for k, v in e.context.items()},
                },
            )
            return ServiceResult.fail(e)
        except IntegrityError as e:
            self.logger.warning(
                f"{func.__name__} hit a uniqueness conflict",
                extra={"function": func.__name__, "error": str(e.orig)},
            )
            return ServiceResult(
                success=False,
                error="Conflicting concurrent update, record already exists",
                error_kind=ErrorKind.CONFLICT,
            )
        except Exception as e:
            self.logger.error(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                },
                exc_info=True,
            )
            raise

        self.logger.debug(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(time.time() - start_time, 3),
            },
        )
        return ServiceResult.ok(data)

    return wrapper
