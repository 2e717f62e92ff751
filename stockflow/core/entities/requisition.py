"""Requisition: one warehouse asking another for stock."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class RequisitionStatus(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class RequisitionLine(BaseModel):
    product_id: str
    quantity_requested: int
    needed_by_date: date | None = None


class Requisition(BaseModel):
    """Request raised by ``requesting_warehouse_id``."""

    id: str
    number: str
    requesting_warehouse_id: str
    suggested_source_warehouse_id: str | None = None
    final_source_warehouse_id: str | None = None  # set only on approval
    notes: str | None = None
    lines: list[RequisitionLine] = Field(default_factory=list)
    status: RequisitionStatus = RequisitionStatus.DRAFT
    version: int = 1
    created_by: str
    submitted_at: datetime | None = None
    approved_by: str | None = None
    approved_at: datetime | None = None
    rejected_by: str | None = None
    rejected_reason: str | None = None
    rejected_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in (RequisitionStatus.APPROVED, RequisitionStatus.REJECTED)
