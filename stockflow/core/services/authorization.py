"""
Authorization guard for workflow actions.

Every ``can_*`` function is a pure predicate over an ``IdentityContext`` and
the document (or warehouse) being acted on. The ``require_*`` helpers used by
the workflows raise instead: ``InvalidStateTransitionError`` when the
document is in the wrong status, ``ForbiddenError`` otherwise. Status is
checked first so a repeated call on a finished document reports the
transition problem rather than a permissions one.
"""

from stockflow.core.entities.delivery import Delivery, DeliveryStatus
from stockflow.core.entities.identity import IdentityContext, Role
from stockflow.core.entities.receipt import Receipt, ReceiptStatus
from stockflow.core.entities.requisition import Requisition, RequisitionStatus
from stockflow.core.entities.transfer import Transfer, TransferStatus
from stockflow.core.exceptions import ForbiddenError, InvalidStateTransitionError

STOCK_HANDLERS = frozenset({Role.ADMIN, Role.OPERATOR})
WAREHOUSE_STAFF = frozenset({Role.MANAGER, Role.OPERATOR})

VALIDATABLE_DELIVERY = frozenset({DeliveryStatus.READY, DeliveryStatus.DRAFT})
VALIDATABLE_RECEIPT = frozenset({ReceiptStatus.DRAFT, ReceiptStatus.WAITING})


def _admin_or_scoped(ctx: IdentityContext, roles: frozenset[Role], warehouse_id: str | None) -> bool:
    if ctx.is_admin:
        return True
    return ctx.role in roles and ctx.has_warehouse(warehouse_id)


# --- Receipts ---


def can_create_receipt(ctx: IdentityContext, warehouse_id: str) -> bool:
    return _admin_or_scoped(ctx, STOCK_HANDLERS, warehouse_id)


def can_validate_receipt(ctx: IdentityContext, receipt: Receipt) -> bool:
    return receipt.status in VALIDATABLE_RECEIPT and _admin_or_scoped(
        ctx, STOCK_HANDLERS, receipt.warehouse_id
    )


def can_edit_receipt(ctx: IdentityContext, receipt: Receipt) -> bool:
    return receipt.status == ReceiptStatus.DRAFT and can_create_receipt(ctx, receipt.warehouse_id)


# --- Deliveries ---


def can_create_delivery(ctx: IdentityContext, warehouse_id: str) -> bool:
    return _admin_or_scoped(ctx, WAREHOUSE_STAFF, warehouse_id)


def can_edit_delivery(ctx: IdentityContext, delivery: Delivery) -> bool:
    return delivery.status == DeliveryStatus.DRAFT and can_create_delivery(
        ctx, delivery.warehouse_id
    )


def can_approve_delivery(ctx: IdentityContext, delivery: Delivery) -> bool:
    return (
        ctx.role == Role.MANAGER
        and delivery.status == DeliveryStatus.WAITING
        and ctx.has_warehouse(delivery.target_warehouse_id)
    )


def can_reject_delivery(ctx: IdentityContext, delivery: Delivery) -> bool:
    return can_approve_delivery(ctx, delivery)


def can_validate_delivery(ctx: IdentityContext, delivery: Delivery) -> bool:
    if ctx.role not in STOCK_HANDLERS:
        return False
    if delivery.status not in VALIDATABLE_DELIVERY:
        return False
    if delivery.is_requisition_linked:
        return False
    return ctx.is_admin or ctx.has_warehouse(delivery.warehouse_id)


# --- Transfers ---


def can_create_transfer(ctx: IdentityContext, source_warehouse_id: str) -> bool:
    return _admin_or_scoped(ctx, WAREHOUSE_STAFF, source_warehouse_id)


def can_edit_transfer(ctx: IdentityContext, transfer: Transfer) -> bool:
    return transfer.status == TransferStatus.DRAFT and can_create_transfer(
        ctx, transfer.source_warehouse_id
    )


def can_create_transfer_from_delivery(ctx: IdentityContext, delivery: Delivery) -> bool:
    return (
        ctx.role == Role.OPERATOR
        and delivery.status == DeliveryStatus.READY
        and delivery.is_requisition_linked
        and ctx.has_warehouse(delivery.warehouse_id)
    )


def can_dispatch_transfer(ctx: IdentityContext, transfer: Transfer) -> bool:
    return (
        ctx.role in STOCK_HANDLERS
        and transfer.status == TransferStatus.DRAFT
        and (ctx.is_admin or ctx.has_warehouse(transfer.source_warehouse_id))
    )


def can_accept_transfer(ctx: IdentityContext, transfer: Transfer) -> bool:
    return (
        ctx.role in STOCK_HANDLERS
        and transfer.status == TransferStatus.IN_TRANSIT
        and (ctx.is_admin or ctx.has_warehouse(transfer.target_warehouse_id))
    )


# --- Requisitions ---


def can_create_requisition(ctx: IdentityContext, requesting_warehouse_id: str) -> bool:
    return _admin_or_scoped(ctx, frozenset({Role.OPERATOR}), requesting_warehouse_id)


def can_submit_requisition(ctx: IdentityContext, requisition: Requisition) -> bool:
    return requisition.status == RequisitionStatus.DRAFT and can_create_requisition(
        ctx, requisition.requesting_warehouse_id
    )


def can_edit_requisition(ctx: IdentityContext, requisition: Requisition) -> bool:
    return can_submit_requisition(ctx, requisition)


def can_approve_requisition(
    ctx: IdentityContext,
    requisition: Requisition,
    final_source_warehouse_id: str | None = None,
) -> bool:
    """Manager at the chosen source warehouse, requisition SUBMITTED.

    Without ``final_source_warehouse_id`` only role and status are checked.
    """
    if ctx.role != Role.MANAGER or requisition.status != RequisitionStatus.SUBMITTED:
        return False
    if final_source_warehouse_id is None:
        return True
    return ctx.has_warehouse(final_source_warehouse_id)


def can_reject_requisition(ctx: IdentityContext, requisition: Requisition) -> bool:
    return ctx.role == Role.MANAGER and requisition.status == RequisitionStatus.SUBMITTED


# --- Adjustments ---


def can_apply_adjustment(ctx: IdentityContext, warehouse_id: str) -> bool:
    return _admin_or_scoped(ctx, WAREHOUSE_STAFF, warehouse_id)


# --- Enforcement ---


def require(allowed: bool, action: str, reason: str | None = None) -> None:
    """Raise ForbiddenError unless ``allowed``."""
    if not allowed:
        raise ForbiddenError(action, reason)


def require_status(
    document: str,
    document_id: str,
    current_status: str,
    allowed: frozenset | set,
    action: str,
) -> None:
    """Raise InvalidStateTransitionError unless the status is allowed."""
    if current_status not in allowed:
        raise InvalidStateTransitionError(
            document, document_id, getattr(current_status, "value", current_status), action
        )
