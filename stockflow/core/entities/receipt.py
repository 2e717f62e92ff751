"""Receipt: single-gate, stock-increasing document."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class ReceiptStatus(str, Enum):
    DRAFT = "DRAFT"
    WAITING = "WAITING"
    DONE = "DONE"


class ReceiptLine(BaseModel):
    product_id: str
    location_id: str | None = None
    quantity: int


class Receipt(BaseModel):
    """Incoming goods at one warehouse."""

    id: str
    number: str
    warehouse_id: str
    supplier_name: str | None = None
    reference: str | None = None
    notes: str | None = None
    lines: list[ReceiptLine] = Field(default_factory=list)
    status: ReceiptStatus = ReceiptStatus.DRAFT
    version: int = 1
    created_by: str
    validated_by: str | None = None
    validated_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status == ReceiptStatus.DONE
