"""Response DTOs for workflow operations.

Pydantic v2 models returned to the hosting layer.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from stockflow.core.entities.delivery import Delivery
from stockflow.core.entities.requisition import Requisition
from stockflow.core.entities.stock import (
    BalanceDiscrepancy,
    LowStockItem,
    StockMovement,
    WarehouseStock,
)


class ErrorResponse(BaseModel):
    """Structured error carried by a failed operation."""

    error_code: str = Field(..., description="Stable error code, e.g. INSUFFICIENT_STOCK")
    message: str = Field(..., description="Human-readable message")
    details: dict[str, Any] = Field(default_factory=dict)
    hint: str | None = Field(default=None, description="Suggested corrective action")


class OperationResult(BaseModel):
    """Outcome of one operation: ``data`` on success, ``error`` otherwise."""

    ok: bool
    data: Any = None
    error: ErrorResponse | None = None


class RequisitionApproval(BaseModel):
    """Approved requisition together with the delivery it spawned."""

    requisition: Requisition
    delivery: Delivery


class MovementPage(BaseModel):
    """One page of ledger movements."""

    items: list[StockMovement] = Field(default_factory=list)
    total: int = 0
    limit: int
    offset: int


class SourceSuggestion(BaseModel):
    """Advisory ranking of warehouses holding a product."""

    product_id: str
    candidates: list[WarehouseStock] = Field(default_factory=list)
    best_source: WarehouseStock | None = None


class LocationStockLevel(BaseModel):
    """One balance row of a product; ``location_id`` None is unlocated stock."""

    location_id: str | None = None
    location_code: str | None = None
    location_name: str | None = None
    quantity: int
    updated_at: datetime | None = None


class WarehouseStockLevels(BaseModel):
    warehouse_id: str
    warehouse_code: str | None = None
    warehouse_name: str | None = None
    total: int = 0
    locations: list[LocationStockLevel] = Field(default_factory=list)


class ProductStockLevels(BaseModel):
    """Where a product's stock sits: per warehouse, then per location."""

    product_id: str
    total_quantity: int = 0
    by_warehouse: list[WarehouseStockLevels] = Field(default_factory=list)


class LowStockReport(BaseModel):
    """Products under their reorder level."""

    warehouse_id: str | None = None
    items: list[LowStockItem] = Field(default_factory=list)


class ReconciliationReport(BaseModel):
    """Balances checked against the movement log."""

    consistent: bool
    discrepancies: list[BalanceDiscrepancy] = Field(default_factory=list)
    checked_at: datetime


class HydratedLine(BaseModel):
    """Document line with product and location details joined in."""

    product_id: str
    sku: str | None = None
    product_name: str | None = None
    unit: str | None = None
    quantity: int
    location_id: str | None = None
    location_code: str | None = None
    target_location_id: str | None = None
    target_location_code: str | None = None


class HydratedDocument(BaseModel):
    """Document with warehouse names and line details for display."""

    document_type: str
    id: str
    number: str
    status: str | None = None
    warehouse_id: str | None = None
    warehouse_code: str | None = None
    warehouse_name: str | None = None
    target_warehouse_id: str | None = None
    target_warehouse_code: str | None = None
    target_warehouse_name: str | None = None
    lines: list[HydratedLine] = Field(default_factory=list)
    created_by: str | None = None
    created_at: datetime | None = None
