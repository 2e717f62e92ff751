"""Transfer: two-phase (dispatch/accept) movement between warehouses."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class TransferStatus(str, Enum):
    DRAFT = "DRAFT"
    IN_TRANSIT = "IN_TRANSIT"
    DONE = "DONE"


class TransferLine(BaseModel):
    product_id: str
    source_location_id: str | None = None
    target_location_id: str | None = None
    quantity: int


class Transfer(BaseModel):
    """Stock leaving the source on dispatch and arriving at the target on accept."""

    id: str
    number: str
    source_warehouse_id: str
    target_warehouse_id: str
    requisition_id: str | None = None
    delivery_id: str | None = None
    notes: str | None = None
    lines: list[TransferLine] = Field(default_factory=list)
    status: TransferStatus = TransferStatus.DRAFT
    version: int = 1
    created_by: str
    dispatched_by: str | None = None
    dispatched_at: datetime | None = None
    received_by: str | None = None
    received_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status == TransferStatus.DONE
