"""Database engine, sessions and unit of work."""

from ybs.database.engine import create_engine, create_session_maker
from ybs.database.unit_of_work import (
    UnitOfWork,
    UnitOfWorkFactory,
    unit_of_work_factory,
)

__all__ = [
    "UnitOfWork",
    "UnitOfWorkFactory",
    "create_engine",
    "create_session_maker",
    "unit_of_work_factory",
]
