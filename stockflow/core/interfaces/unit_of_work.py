"""Unit of work: one transaction spanning the ledger and every document store."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from types import TracebackType

from stockflow.core.interfaces.document_store import (
    IAdjustmentStore,
    IDeliveryStore,
    IReceiptStore,
    IRequisitionStore,
    ITransferStore,
)
from stockflow.core.interfaces.ledger_store import IStockLedger
from stockflow.core.interfaces.reference_store import IReferenceStore


class IUnitOfWork(ABC):
    """
    Transaction scope for a single workflow transition.

    Usage:
        async with uow_factory() as uow:
            delivery = await uow.deliveries.get(delivery_id)
            ...

    Leaving the block normally commits; an exception rolls everything back.
    Stores are only valid inside the block.
    """

    ledger: IStockLedger
    receipts: IReceiptStore
    deliveries: IDeliveryStore
    transfers: ITransferStore
    requisitions: IRequisitionStore
    adjustments: IAdjustmentStore
    references: IReferenceStore

    @abstractmethod
    async def __aenter__(self) -> "IUnitOfWork":
        pass

    @abstractmethod
    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        pass


UnitOfWorkFactory = Callable[[], IUnitOfWork]
