"""Core domain entities."""

from stockflow.core.entities.adjustment import Adjustment, AdjustmentReason
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.delivery import Delivery, DeliveryLine, DeliveryStatus
from stockflow.core.entities.identity import IdentityContext, Role
from stockflow.core.entities.reference import Location, Product, Warehouse
from stockflow.core.entities.receipt import Receipt, ReceiptLine, ReceiptStatus
from stockflow.core.entities.requisition import (
    Requisition,
    RequisitionLine,
    RequisitionStatus,
)
from stockflow.core.entities.stock import (
    Availability,
    BalanceDiscrepancy,
    DocumentType,
    LowStockItem,
    MovementFilter,
    MovementRoute,
    MovementType,
    StockBalance,
    StockMovement,
    StockPick,
    StockShortfall,
    WarehouseStock,
)
from stockflow.core.entities.transfer import Transfer, TransferLine, TransferStatus

__all__ = [
    # Identity
    "IdentityContext",
    "Role",
    # Reference data
    "Location",
    "Product",
    "Warehouse",
    # Ledger
    "Availability",
    "BalanceDiscrepancy",
    "DocumentType",
    "LowStockItem",
    "MovementFilter",
    "MovementRoute",
    "MovementType",
    "StockBalance",
    "StockMovement",
    "StockPick",
    "StockShortfall",
    "WarehouseStock",
    # Documents
    "Adjustment",
    "AdjustmentReason",
    "Delivery",
    "DeliveryLine",
    "DeliveryStatus",
    "Receipt",
    "ReceiptLine",
    "ReceiptStatus",
    "Requisition",
    "RequisitionLine",
    "RequisitionStatus",
    "Transfer",
    "TransferLine",
    "TransferStatus",
    # Helpers
    "utcnow",
]
