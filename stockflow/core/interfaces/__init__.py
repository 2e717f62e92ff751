"""Core interfaces (ports) for dependency injection."""

from stockflow.core.interfaces.document_store import (
    IAdjustmentStore,
    IDeliveryStore,
    IReceiptStore,
    IRequisitionStore,
    ITransferStore,
)
from stockflow.core.interfaces.ledger_store import IStockLedger
from stockflow.core.interfaces.reference_store import IReferenceStore
from stockflow.core.interfaces.unit_of_work import IUnitOfWork, UnitOfWorkFactory

__all__ = [
    # Ledger
    "IStockLedger",
    # Documents
    "IAdjustmentStore",
    "IDeliveryStore",
    "IReceiptStore",
    "IRequisitionStore",
    "ITransferStore",
    # Reference data
    "IReferenceStore",
    # Transactions
    "IUnitOfWork",
    "UnitOfWorkFactory",
]
