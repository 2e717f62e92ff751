"""
Operations facade and its factory.

``InventoryOperations`` is the single entry point for the hosting layer:
every method takes the caller's IdentityContext explicitly and returns an
OperationResult produced by the error boundary.
"""

from typing import Any

from stockflow.application.dto.requests import (
    ApplyAdjustmentRequest,
    CreateDeliveryRequest,
    CreateReceiptRequest,
    CreateRequisitionRequest,
    CreateTransferRequest,
    UpdateDeliveryRequest,
    UpdateReceiptRequest,
    UpdateRequisitionRequest,
    UpdateTransferRequest,
)
from stockflow.application.dto.responses import OperationResult
from stockflow.application.error_boundary import capture_errors
from stockflow.application.hydrator import Document, DocumentHydrator
from stockflow.application.use_cases import (
    AdjustmentWorkflow,
    DeliveryWorkflow,
    ReceiptWorkflow,
    RequisitionWorkflow,
    StockQueries,
    TransferWorkflow,
)
from stockflow.config.settings import Settings
from stockflow.core.entities.delivery import DeliveryStatus
from stockflow.core.entities.identity import IdentityContext
from stockflow.core.entities.receipt import ReceiptStatus
from stockflow.core.entities.requisition import RequisitionStatus
from stockflow.core.entities.stock import MovementFilter
from stockflow.core.entities.transfer import TransferStatus
from stockflow.core.interfaces.unit_of_work import UnitOfWorkFactory


class InventoryOperations:
    """Workflow and query operations wrapped in the error boundary."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory | None = None,
        read_uow_factory: UnitOfWorkFactory | None = None,
        settings: Settings | None = None,
    ):
        self.receipts = ReceiptWorkflow(uow_factory, settings, read_uow_factory)
        self.deliveries = DeliveryWorkflow(uow_factory, settings, read_uow_factory)
        self.transfers = TransferWorkflow(uow_factory, settings, read_uow_factory)
        self.requisitions = RequisitionWorkflow(uow_factory, settings, read_uow_factory)
        self.adjustments = AdjustmentWorkflow(uow_factory, settings, read_uow_factory)
        self.queries = StockQueries(uow_factory, settings, read_uow_factory)
        self.hydrator = DocumentHydrator(read_uow_factory or uow_factory)

    # --- Receipts ---

    async def create_receipt(
        self, ctx: IdentityContext, request: CreateReceiptRequest | dict[str, Any]
    ) -> OperationResult:
        return await capture_errors(
            "create_receipt",
            lambda: self.receipts.create(ctx, CreateReceiptRequest.model_validate(request)),
        )

    async def update_receipt(
        self,
        ctx: IdentityContext,
        receipt_id: str,
        request: UpdateReceiptRequest | dict[str, Any],
    ) -> OperationResult:
        return await capture_errors(
            "update_receipt",
            lambda: self.receipts.update(
                ctx, receipt_id, UpdateReceiptRequest.model_validate(request)
            ),
        )

    async def validate_receipt(self, ctx: IdentityContext, receipt_id: str) -> OperationResult:
        return await capture_errors(
            "validate_receipt", lambda: self.receipts.validate(ctx, receipt_id)
        )

    async def get_receipt(self, receipt_id: str) -> OperationResult:
        return await capture_errors("get_receipt", lambda: self.receipts.get(receipt_id))

    async def list_receipts(
        self,
        ctx: IdentityContext,
        status: ReceiptStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        return await capture_errors(
            "list_receipts", lambda: self.receipts.list_receipts(ctx, status, limit, offset)
        )

    # --- Deliveries ---

    async def create_delivery(
        self, ctx: IdentityContext, request: CreateDeliveryRequest | dict[str, Any]
    ) -> OperationResult:
        return await capture_errors(
            "create_delivery",
            lambda: self.deliveries.create(ctx, CreateDeliveryRequest.model_validate(request)),
        )

    async def update_delivery(
        self,
        ctx: IdentityContext,
        delivery_id: str,
        request: UpdateDeliveryRequest | dict[str, Any],
    ) -> OperationResult:
        return await capture_errors(
            "update_delivery",
            lambda: self.deliveries.update(
                ctx, delivery_id, UpdateDeliveryRequest.model_validate(request)
            ),
        )

    async def approve_delivery(self, ctx: IdentityContext, delivery_id: str) -> OperationResult:
        return await capture_errors(
            "approve_delivery", lambda: self.deliveries.approve(ctx, delivery_id)
        )

    async def reject_delivery(
        self, ctx: IdentityContext, delivery_id: str, reason: str | None = None
    ) -> OperationResult:
        return await capture_errors(
            "reject_delivery", lambda: self.deliveries.reject(ctx, delivery_id, reason)
        )

    async def validate_delivery(self, ctx: IdentityContext, delivery_id: str) -> OperationResult:
        return await capture_errors(
            "validate_delivery", lambda: self.deliveries.validate(ctx, delivery_id)
        )

    async def get_delivery(self, delivery_id: str) -> OperationResult:
        return await capture_errors("get_delivery", lambda: self.deliveries.get(delivery_id))

    async def list_deliveries(
        self,
        ctx: IdentityContext,
        status: DeliveryStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        return await capture_errors(
            "list_deliveries",
            lambda: self.deliveries.list_deliveries(ctx, status, limit, offset),
        )

    # --- Transfers ---

    async def create_transfer(
        self, ctx: IdentityContext, request: CreateTransferRequest | dict[str, Any]
    ) -> OperationResult:
        return await capture_errors(
            "create_transfer",
            lambda: self.transfers.create(ctx, CreateTransferRequest.model_validate(request)),
        )

    async def update_transfer(
        self,
        ctx: IdentityContext,
        transfer_id: str,
        request: UpdateTransferRequest | dict[str, Any],
    ) -> OperationResult:
        return await capture_errors(
            "update_transfer",
            lambda: self.transfers.update(
                ctx, transfer_id, UpdateTransferRequest.model_validate(request)
            ),
        )

    async def create_transfer_from_delivery(
        self, ctx: IdentityContext, delivery_id: str
    ) -> OperationResult:
        return await capture_errors(
            "create_transfer_from_delivery",
            lambda: self.transfers.create_from_delivery(ctx, delivery_id),
        )

    async def dispatch_transfer(self, ctx: IdentityContext, transfer_id: str) -> OperationResult:
        return await capture_errors(
            "dispatch_transfer", lambda: self.transfers.dispatch(ctx, transfer_id)
        )

    async def accept_transfer(self, ctx: IdentityContext, transfer_id: str) -> OperationResult:
        return await capture_errors(
            "accept_transfer", lambda: self.transfers.accept(ctx, transfer_id)
        )

    async def get_transfer(self, transfer_id: str) -> OperationResult:
        return await capture_errors("get_transfer", lambda: self.transfers.get(transfer_id))

    async def list_transfers(
        self,
        ctx: IdentityContext,
        status: TransferStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        return await capture_errors(
            "list_transfers", lambda: self.transfers.list_transfers(ctx, status, limit, offset)
        )

    # --- Requisitions ---

    async def create_requisition(
        self, ctx: IdentityContext, request: CreateRequisitionRequest | dict[str, Any]
    ) -> OperationResult:
        return await capture_errors(
            "create_requisition",
            lambda: self.requisitions.create(ctx, CreateRequisitionRequest.model_validate(request)),
        )

    async def update_requisition(
        self,
        ctx: IdentityContext,
        requisition_id: str,
        request: UpdateRequisitionRequest | dict[str, Any],
    ) -> OperationResult:
        return await capture_errors(
            "update_requisition",
            lambda: self.requisitions.update(
                ctx, requisition_id, UpdateRequisitionRequest.model_validate(request)
            ),
        )

    async def submit_requisition(self, ctx: IdentityContext, requisition_id: str) -> OperationResult:
        return await capture_errors(
            "submit_requisition", lambda: self.requisitions.submit(ctx, requisition_id)
        )

    async def approve_requisition(
        self,
        ctx: IdentityContext,
        requisition_id: str,
        final_source_warehouse_id: str | None,
    ) -> OperationResult:
        return await capture_errors(
            "approve_requisition",
            lambda: self.requisitions.approve(ctx, requisition_id, final_source_warehouse_id),
        )

    async def reject_requisition(
        self, ctx: IdentityContext, requisition_id: str, reason: str | None = None
    ) -> OperationResult:
        return await capture_errors(
            "reject_requisition", lambda: self.requisitions.reject(ctx, requisition_id, reason)
        )

    async def get_requisition(self, requisition_id: str) -> OperationResult:
        return await capture_errors(
            "get_requisition", lambda: self.requisitions.get(requisition_id)
        )

    async def list_requisitions(
        self,
        ctx: IdentityContext,
        status: RequisitionStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        return await capture_errors(
            "list_requisitions",
            lambda: self.requisitions.list_requisitions(ctx, status, limit, offset),
        )

    # --- Adjustments ---

    async def apply_adjustment(
        self, ctx: IdentityContext, request: ApplyAdjustmentRequest | dict[str, Any]
    ) -> OperationResult:
        return await capture_errors(
            "apply_adjustment",
            lambda: self.adjustments.apply(ctx, ApplyAdjustmentRequest.model_validate(request)),
        )

    async def get_adjustment(self, adjustment_id: str) -> OperationResult:
        return await capture_errors(
            "get_adjustment", lambda: self.adjustments.get(adjustment_id)
        )

    async def list_adjustments(
        self,
        ctx: IdentityContext,
        product_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> OperationResult:
        return await capture_errors(
            "list_adjustments",
            lambda: self.adjustments.list_adjustments(ctx, product_id, limit, offset),
        )

    # --- Read side ---

    async def query_stock_balance(
        self, product_id: str, warehouse_id: str, location_id: str | None = None
    ) -> OperationResult:
        return await capture_errors(
            "query_stock_balance",
            lambda: self.queries.query_stock_balance(product_id, warehouse_id, location_id),
        )

    async def query_availability(
        self,
        product_id: str,
        warehouse_id: str,
        required_qty: int,
        location_id: str | None = None,
        fallback_to_warehouse: bool = False,
    ) -> OperationResult:
        return await capture_errors(
            "query_availability",
            lambda: self.queries.query_availability(
                product_id, warehouse_id, required_qty, location_id, fallback_to_warehouse
            ),
        )

    async def warehouse_total(self, product_id: str, warehouse_id: str) -> OperationResult:
        return await capture_errors(
            "warehouse_total", lambda: self.queries.warehouse_total(product_id, warehouse_id)
        )

    async def product_stock_levels(
        self, product_id: str, warehouse_id: str | None = None
    ) -> OperationResult:
        return await capture_errors(
            "product_stock_levels",
            lambda: self.queries.product_stock_levels(product_id, warehouse_id),
        )

    async def list_movements(
        self, filters: MovementFilter | dict[str, Any] | None = None
    ) -> OperationResult:
        return await capture_errors(
            "list_movements",
            lambda: self.queries.list_movements(MovementFilter.model_validate(filters or {})),
        )

    async def suggest_source_warehouses(
        self, product_id: str, exclude_warehouse_id: str | None = None
    ) -> OperationResult:
        return await capture_errors(
            "suggest_source_warehouses",
            lambda: self.queries.suggest_source_warehouses(product_id, exclude_warehouse_id),
        )

    async def list_low_stock(self, warehouse_id: str | None = None) -> OperationResult:
        return await capture_errors(
            "list_low_stock", lambda: self.queries.list_low_stock(warehouse_id)
        )

    async def reconcile_ledger(self) -> OperationResult:
        return await capture_errors("reconcile_ledger", self.queries.reconcile_ledger)

    async def hydrate(self, document: Document) -> OperationResult:
        return await capture_errors("hydrate", lambda: self.hydrator.hydrate(document))


# Singleton instance
_operations: InventoryOperations | None = None


def get_inventory_operations(
    uow_factory: UnitOfWorkFactory | None = None,
    read_uow_factory: UnitOfWorkFactory | None = None,
) -> InventoryOperations:
    """
    Get or create the InventoryOperations facade.

    Without overrides the global SQLite pool backs every unit of work;
    passing a factory builds a fresh, unshared instance.
    """
    global _operations

    if uow_factory is not None:
        return InventoryOperations(uow_factory, read_uow_factory)

    if _operations is None:
        from stockflow.infrastructure.storage.sqlite import get_unit_of_work_factory

        _operations = InventoryOperations(
            get_unit_of_work_factory(),
            get_unit_of_work_factory(read_only=True),
        )
    return _operations


def reset_services() -> None:
    """Reset singleton instances (for testing)."""
    global _operations
    _operations = None
