"""Delivery: outbound document with an optional manager approval gate."""

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field

from stockflow.core.entities.clock import utcnow


class DeliveryStatus(str, Enum):
    DRAFT = "DRAFT"
    WAITING = "WAITING"
    READY = "READY"
    DONE = "DONE"
    REJECTED = "REJECTED"


class DeliveryLine(BaseModel):
    product_id: str
    from_location_id: str | None = None
    quantity: int


class Delivery(BaseModel):
    """
    Outbound stock from ``warehouse_id``.

    When ``target_warehouse_id`` is set the delivery goes to another of our
    warehouses and must be approved there first. Requisition-linked
    deliveries never decrement stock themselves; a Transfer does.
    """

    id: str
    number: str
    warehouse_id: str  # source
    target_warehouse_id: str | None = None
    requisition_id: str | None = None
    customer_name: str | None = None
    delivery_address: str | None = None
    reference: str | None = None
    notes: str | None = None
    schedule_date: date | None = None
    lines: list[DeliveryLine] = Field(default_factory=list)
    status: DeliveryStatus = DeliveryStatus.DRAFT
    version: int = 1
    created_by: str
    approved_by: str | None = None
    approved_at: datetime | None = None
    validated_by: str | None = None
    validated_at: datetime | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def is_terminal(self) -> bool:
        return self.status in (DeliveryStatus.DONE, DeliveryStatus.REJECTED)

    @property
    def is_requisition_linked(self) -> bool:
        return self.requisition_id is not None
