"""
Abstract interfaces for workflow document storage.

Transitions are conditional on the status and version the caller loaded;
a store returns False instead of writing when another transition got there
first. Edits (``update``) use the same guard without changing the status.
"""

from abc import ABC, abstractmethod
from typing import Any

from stockflow.core.entities.adjustment import Adjustment
from stockflow.core.entities.delivery import Delivery, DeliveryLine, DeliveryStatus
from stockflow.core.entities.receipt import Receipt, ReceiptLine, ReceiptStatus
from stockflow.core.entities.requisition import (
    Requisition,
    RequisitionLine,
    RequisitionStatus,
)
from stockflow.core.entities.transfer import Transfer, TransferLine, TransferStatus


class IReceiptStore(ABC):
    """Interface for receipt persistence."""

    @abstractmethod
    async def create(self, receipt: Receipt) -> Receipt:
        """Insert a receipt with its lines."""
        pass

    @abstractmethod
    async def get(self, receipt_id: str) -> Receipt | None:
        """Get receipt by ID."""
        pass

    @abstractmethod
    async def count_for_warehouse(self, warehouse_id: str) -> int:
        pass

    @abstractmethod
    async def list_receipts(
        self,
        warehouse_ids: set[str] | None = None,
        status: ReceiptStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Receipt]:
        """List receipts, newest first."""
        pass

    @abstractmethod
    async def transition(
        self, receipt: Receipt, new_status: ReceiptStatus, **changes: Any
    ) -> bool:
        """Move to ``new_status`` if still at the loaded status/version."""
        pass

    @abstractmethod
    async def update(
        self, receipt: Receipt, lines: list[ReceiptLine] | None = None, **changes: Any
    ) -> bool:
        """Edit header fields and, when given, replace the lines.

        Guarded like ``transition`` but the status is kept.
        """
        pass


class IDeliveryStore(ABC):
    """Interface for delivery persistence."""

    @abstractmethod
    async def create(self, delivery: Delivery) -> Delivery:
        pass

    @abstractmethod
    async def get(self, delivery_id: str) -> Delivery | None:
        pass

    @abstractmethod
    async def get_by_requisition(self, requisition_id: str) -> Delivery | None:
        """The delivery spawned by an approved requisition."""
        pass

    @abstractmethod
    async def count_for_warehouse(self, warehouse_id: str) -> int:
        pass

    @abstractmethod
    async def list_deliveries(
        self,
        warehouse_ids: set[str] | None = None,
        status: DeliveryStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Delivery]:
        """List deliveries whose source or target is in ``warehouse_ids``."""
        pass

    @abstractmethod
    async def transition(
        self, delivery: Delivery, new_status: DeliveryStatus, **changes: Any
    ) -> bool:
        pass

    @abstractmethod
    async def update(
        self, delivery: Delivery, lines: list[DeliveryLine] | None = None, **changes: Any
    ) -> bool:
        pass


class ITransferStore(ABC):
    """Interface for transfer persistence."""

    @abstractmethod
    async def create(self, transfer: Transfer) -> Transfer:
        pass

    @abstractmethod
    async def get(self, transfer_id: str) -> Transfer | None:
        pass

    @abstractmethod
    async def get_by_delivery(self, delivery_id: str) -> Transfer | None:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def list_transfers(
        self,
        warehouse_ids: set[str] | None = None,
        status: TransferStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transfer]:
        pass

    @abstractmethod
    async def transition(
        self, transfer: Transfer, new_status: TransferStatus, **changes: Any
    ) -> bool:
        pass

    @abstractmethod
    async def update(
        self, transfer: Transfer, lines: list[TransferLine] | None = None, **changes: Any
    ) -> bool:
        pass


class IRequisitionStore(ABC):
    """Interface for requisition persistence."""

    @abstractmethod
    async def create(self, requisition: Requisition) -> Requisition:
        pass

    @abstractmethod
    async def get(self, requisition_id: str) -> Requisition | None:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def list_requisitions(
        self,
        warehouse_ids: set[str] | None = None,
        status: RequisitionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Requisition]:
        pass

    @abstractmethod
    async def transition(
        self, requisition: Requisition, new_status: RequisitionStatus, **changes: Any
    ) -> bool:
        pass

    @abstractmethod
    async def update(
        self,
        requisition: Requisition,
        lines: list[RequisitionLine] | None = None,
        **changes: Any,
    ) -> bool:
        pass


class IAdjustmentStore(ABC):
    """Interface for adjustment persistence (insert-only)."""

    @abstractmethod
    async def create(self, adjustment: Adjustment) -> Adjustment:
        pass

    @abstractmethod
    async def get(self, adjustment_id: str) -> Adjustment | None:
        pass

    @abstractmethod
    async def count(self) -> int:
        pass

    @abstractmethod
    async def list_adjustments(
        self,
        warehouse_ids: set[str] | None = None,
        product_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Adjustment]:
        pass
