"""Master data consumed through reference lookups."""

from datetime import datetime

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class Warehouse(BaseModel):
    """A stock-holding site."""

    id: str
    code: str  # unique, used in document numbers
    name: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class Location(BaseModel):
    """A bin/shelf inside exactly one warehouse."""

    id: str
    warehouse_id: str
    code: str
    name: str | None = None
    created_at: datetime = Field(default_factory=utcnow)


class Product(BaseModel):
    """A stocked product. ``sku`` is immutable once movements reference it."""

    id: str
    sku: str
    name: str
    unit: str = "pcs"
    reorder_level: int = 0
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
