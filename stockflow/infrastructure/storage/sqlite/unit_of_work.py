"""SQLite unit of work: one pooled connection, one transaction."""

from contextlib import AsyncExitStack
from types import TracebackType

from stockflow.config import get_logger
from stockflow.core.interfaces.unit_of_work import IUnitOfWork
from stockflow.infrastructure.storage.sqlite.adjustment_store import SQLiteAdjustmentStore
from stockflow.infrastructure.storage.sqlite.connection import ConnectionPool, get_pool
from stockflow.infrastructure.storage.sqlite.delivery_store import SQLiteDeliveryStore
from stockflow.infrastructure.storage.sqlite.ledger_store import SQLiteStockLedger
from stockflow.infrastructure.storage.sqlite.receipt_store import SQLiteReceiptStore
from stockflow.infrastructure.storage.sqlite.reference_store import SQLiteReferenceStore
from stockflow.infrastructure.storage.sqlite.requisition_store import SQLiteRequisitionStore
from stockflow.infrastructure.storage.sqlite.transfer_store import SQLiteTransferStore

logger = get_logger(__name__)


class SQLiteUnitOfWork(IUnitOfWork):
    """
    Binds every store to a single connection inside one transaction.

    Writers use BEGIN IMMEDIATE, so concurrent workflow transitions queue on
    SQLite's write lock instead of interleaving their check-then-write
    sequences. ``read_only`` units use a deferred BEGIN and never block
    writers.
    """

    def __init__(self, pool: ConnectionPool | None = None, read_only: bool = False):
        self._pool = pool
        self._read_only = read_only
        self._stack: AsyncExitStack | None = None

    async def __aenter__(self) -> "SQLiteUnitOfWork":
        pool = self._pool or await get_pool()
        stack = AsyncExitStack()
        conn = await stack.enter_async_context(
            pool.transaction(immediate=not self._read_only)
        )
        self._stack = stack

        self.ledger = SQLiteStockLedger(conn)
        self.receipts = SQLiteReceiptStore(conn)
        self.deliveries = SQLiteDeliveryStore(conn)
        self.transfers = SQLiteTransferStore(conn)
        self.requisitions = SQLiteRequisitionStore(conn)
        self.adjustments = SQLiteAdjustmentStore(conn)
        self.references = SQLiteReferenceStore(conn)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        stack, self._stack = self._stack, None
        if stack is None:
            return
        if exc_type is not None and not self._read_only:
            logger.debug("unit_of_work_rolled_back", error_type=exc_type.__name__)
        await stack.__aexit__(exc_type, exc, tb)
