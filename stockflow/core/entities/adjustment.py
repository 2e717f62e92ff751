"""Adjustment: absolute correction of one balance."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class AdjustmentReason(str, Enum):
    COUNT_ERROR = "COUNT_ERROR"
    DAMAGE = "DAMAGE"
    LOSS = "LOSS"
    OTHER = "OTHER"


class Adjustment(BaseModel):
    """Records old/new quantity; the ledger sees only the difference."""

    id: str
    number: str
    product_id: str
    warehouse_id: str
    location_id: str | None = None
    old_quantity: int
    new_quantity: int
    difference: int
    reason: AdjustmentReason
    remarks: str | None = None
    movement_id: int | None = None  # None when difference == 0
    created_by: str
    created_at: datetime = Field(default_factory=utcnow)
