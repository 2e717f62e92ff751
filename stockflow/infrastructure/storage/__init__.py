"""Storage infrastructure implementations."""

from stockflow.infrastructure.storage.sqlite import (
    ConnectionPool,
    SQLiteUnitOfWork,
    close_pool,
    get_pool,
    get_unit_of_work_factory,
)

__all__ = [
    # Connection pool
    "ConnectionPool",
    "get_pool",
    "close_pool",
    # Unit of work
    "SQLiteUnitOfWork",
    "get_unit_of_work_factory",
]
