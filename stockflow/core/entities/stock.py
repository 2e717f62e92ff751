"""Stock ledger entities: materialized balances and the movement log."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class MovementType(str, Enum):
    """Types of stock movements."""

    RECEIPT = "RECEIPT"
    DELIVERY = "DELIVERY"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"


class DocumentType(str, Enum):
    """Kind of document a movement originates from."""

    RECEIPT = "RECEIPT"
    DELIVERY = "DELIVERY"
    TRANSFER = "TRANSFER"
    ADJUSTMENT = "ADJUSTMENT"


class MovementRoute(BaseModel):
    """Optional from/to linkage recorded on a movement."""

    warehouse_from_id: str | None = None
    location_from_id: str | None = None
    warehouse_to_id: str | None = None
    location_to_id: str | None = None


class StockBalance(BaseModel):
    """Current quantity for a (product, warehouse, location) triple.

    ``location_id`` of None is warehouse-level, unlocated stock.
    """

    id: int | None = None
    product_id: str
    warehouse_id: str
    location_id: str | None = None
    quantity: int = 0
    updated_at: datetime = Field(default_factory=utcnow)


class StockMovement(BaseModel):
    """One immutable, signed quantity change against a balance."""

    id: int | None = None
    product_id: str
    warehouse_id: str  # balance the change was applied to
    location_id: str | None = None
    change: int
    movement_type: MovementType
    source_doc_type: DocumentType
    source_doc_id: str
    warehouse_from_id: str | None = None
    location_from_id: str | None = None
    warehouse_to_id: str | None = None
    location_to_id: str | None = None
    actor_id: str
    created_at: datetime = Field(default_factory=utcnow)


class Availability(BaseModel):
    """Result of an availability check."""

    available: bool
    available_quantity: int


class StockShortfall(BaseModel):
    """A line that cannot be covered by available stock."""

    product_id: str
    warehouse_id: str
    location_id: str | None = None
    requested: int
    available: int


class StockPick(BaseModel):
    """Quantity to take from one location when sourcing a line."""

    location_id: str | None = None
    quantity: int


class MovementFilter(BaseModel):
    """Ledger query filters."""

    product_id: str | None = None
    warehouse_id: str | None = None  # matches balance, from- or to-warehouse
    movement_type: MovementType | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int = 50
    offset: int = 0


class WarehouseStock(BaseModel):
    """Total positive stock of a product in one warehouse."""

    warehouse_id: str
    warehouse_code: str | None = None
    warehouse_name: str | None = None
    total_quantity: int


class LowStockItem(BaseModel):
    """A product whose stock fell below its reorder level."""

    product_id: str
    sku: str
    name: str
    current_stock: int
    reorder_level: int

    @property
    def deficit(self) -> int:
        return self.reorder_level - self.current_stock


class BalanceDiscrepancy(BaseModel):
    """A balance that disagrees with the sum of its movements."""

    product_id: str
    warehouse_id: str
    location_id: str | None = None
    balance: int
    movement_total: int
