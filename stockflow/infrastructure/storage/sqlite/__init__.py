"""SQLite storage implementations."""

from stockflow.core.interfaces.unit_of_work import UnitOfWorkFactory
from stockflow.infrastructure.storage.sqlite.adjustment_store import SQLiteAdjustmentStore
from stockflow.infrastructure.storage.sqlite.connection import (
    ConnectionPool,
    close_pool,
    get_pool,
)
from stockflow.infrastructure.storage.sqlite.delivery_store import SQLiteDeliveryStore
from stockflow.infrastructure.storage.sqlite.ledger_store import SQLiteStockLedger
from stockflow.infrastructure.storage.sqlite.receipt_store import SQLiteReceiptStore
from stockflow.infrastructure.storage.sqlite.reference_store import SQLiteReferenceStore
from stockflow.infrastructure.storage.sqlite.requisition_store import SQLiteRequisitionStore
from stockflow.infrastructure.storage.sqlite.transfer_store import SQLiteTransferStore
from stockflow.infrastructure.storage.sqlite.unit_of_work import SQLiteUnitOfWork


def get_unit_of_work_factory(
    pool: ConnectionPool | None = None, read_only: bool = False
) -> UnitOfWorkFactory:
    """Factory producing a fresh unit of work per call (global pool by default)."""

    def factory() -> SQLiteUnitOfWork:
        return SQLiteUnitOfWork(pool=pool, read_only=read_only)

    return factory


__all__ = [
    # Connection
    "ConnectionPool",
    "get_pool",
    "close_pool",
    # Stores
    "SQLiteStockLedger",
    "SQLiteReceiptStore",
    "SQLiteDeliveryStore",
    "SQLiteTransferStore",
    "SQLiteRequisitionStore",
    "SQLiteAdjustmentStore",
    "SQLiteReferenceStore",
    # Unit of work
    "SQLiteUnitOfWork",
    "get_unit_of_work_factory",
]
