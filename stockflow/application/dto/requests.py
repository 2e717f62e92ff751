"""Request DTOs for workflow operations.

Pydantic v2 models carrying caller input into the use cases. Business rules
(positive quantities, non-empty lines, existing references) are enforced by
the workflows so that violations surface as domain ValidationErrors.
"""

from datetime import date

from typing import Any

from pydantic import BaseModel, Field

from stockflow.core.entities.adjustment import AdjustmentReason
from stockflow.core.entities.receipt import ReceiptStatus


class ReceiptLineInput(BaseModel):
    """Line of an incoming receipt."""

    product_id: str = Field(..., description="Product ID")
    location_id: str | None = Field(
        default=None, description="Destination location (None = unlocated)"
    )
    quantity: int = Field(..., description="Units received")


class CreateReceiptRequest(BaseModel):
    """Request to create a receipt."""

    warehouse_id: str = Field(..., description="Receiving warehouse")
    lines: list[ReceiptLineInput] = Field(default_factory=list)
    supplier_name: str | None = Field(default=None, description="Supplier name")
    reference: str | None = Field(default=None, description="External reference")
    notes: str | None = None
    status: ReceiptStatus = Field(
        default=ReceiptStatus.DRAFT,
        description="Initial status (DRAFT or WAITING)",
    )


class UpdateReceiptRequest(BaseModel):
    """Edit of a DRAFT receipt. The receiving warehouse is fixed by its number."""

    supplier_name: str | None = Field(default=None, description="Supplier name")
    reference: str | None = Field(default=None, description="External reference")
    notes: str | None = None
    lines: list[ReceiptLineInput] | None = Field(
        default=None, description="Replaces every line when given"
    )


class DeliveryLineInput(BaseModel):
    """Line of an outbound delivery."""

    product_id: str = Field(..., description="Product ID")
    from_location_id: str | None = Field(
        default=None, description="Source location (None = unlocated)"
    )
    quantity: int = Field(..., description="Units to ship")


class CreateDeliveryRequest(BaseModel):
    """Request to create a delivery."""

    warehouse_id: str = Field(..., description="Source warehouse")
    target_warehouse_id: str | None = Field(
        default=None,
        description="Receiving warehouse; requires approval by its manager",
    )
    lines: list[DeliveryLineInput] = Field(default_factory=list)
    requisition_id: str | None = Field(default=None, description="Approved requisition")
    customer_name: str | None = None
    delivery_address: str | None = None
    reference: str | None = None
    notes: str | None = None
    schedule_date: date | None = None


class UpdateDeliveryRequest(BaseModel):
    """Edit of a DRAFT delivery. Warehouses and requisition link are fixed."""

    customer_name: str | None = None
    delivery_address: str | None = None
    reference: str | None = None
    notes: str | None = None
    schedule_date: date | None = None
    lines: list[DeliveryLineInput] | None = Field(
        default=None, description="Replaces every line when given"
    )


class TransferLineInput(BaseModel):
    """Line of an inter-warehouse transfer."""

    product_id: str = Field(..., description="Product ID")
    source_location_id: str | None = Field(default=None, description="Pick location")
    target_location_id: str | None = Field(default=None, description="Put-away location")
    quantity: int = Field(..., description="Units to move")


class CreateTransferRequest(BaseModel):
    """Request to create a transfer.

    With ``delivery_id`` the transfer is built from that delivery and the
    warehouse and line fields are ignored.
    """

    source_warehouse_id: str | None = None
    target_warehouse_id: str | None = None
    lines: list[TransferLineInput] = Field(default_factory=list)
    requisition_id: str | None = None
    delivery_id: str | None = None
    notes: str | None = None


class UpdateTransferRequest(BaseModel):
    """Edit of a DRAFT transfer. Source and target warehouses are fixed."""

    notes: str | None = None
    lines: list[TransferLineInput] | None = Field(
        default=None, description="Replaces every line when given"
    )


class RequisitionLineInput(BaseModel):
    """Line of a stock requisition."""

    product_id: str = Field(..., description="Product ID")
    quantity_requested: int = Field(..., description="Units requested")
    needed_by_date: date | None = None


class CreateRequisitionRequest(BaseModel):
    """Request to raise a requisition."""

    requesting_warehouse_id: str = Field(..., description="Warehouse that needs stock")
    lines: list[RequisitionLineInput] = Field(default_factory=list)
    suggested_source_warehouse_id: str | None = Field(
        default=None, description="Advisory source warehouse"
    )
    notes: str | None = None
    submit: bool = Field(default=True, description="Submit for approval immediately")


class UpdateRequisitionRequest(BaseModel):
    """Edit of a DRAFT requisition. The requesting warehouse is fixed."""

    suggested_source_warehouse_id: str | None = Field(
        default=None, description="Advisory source warehouse"
    )
    notes: str | None = None
    lines: list[RequisitionLineInput] | None = Field(
        default=None, description="Replaces every line when given"
    )


class ApplyAdjustmentRequest(BaseModel):
    """Request to set a balance to an absolute quantity."""

    product_id: str
    warehouse_id: str
    location_id: str | None = None
    new_quantity: int = Field(..., description="Counted quantity")
    reason: AdjustmentReason = AdjustmentReason.COUNT_ERROR
    remarks: str | None = None


def header_changes(request: BaseModel) -> dict[str, Any]:
    """Header fields an edit sets; None leaves the stored value unchanged."""
    return request.model_dump(exclude_none=True, exclude={"lines"})
