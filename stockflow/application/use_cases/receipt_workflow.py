"""
Receipt Workflow.

Single-gate stock increase.
"""

from stockflow.application.dto.requests import (
    CreateReceiptRequest,
    ReceiptLineInput,
    UpdateReceiptRequest,
    header_changes,
)
from stockflow.application.use_cases.base import (
    WorkflowUseCase,
    new_document_id,
    require_lines,
    require_location,
    require_positive,
    require_product,
    require_warehouse,
)
from stockflow.config import get_logger
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.identity import IdentityContext
from stockflow.core.entities.receipt import Receipt, ReceiptLine, ReceiptStatus
from stockflow.core.entities.stock import DocumentType, MovementRoute, MovementType
from stockflow.core.exceptions import (
    AlreadyValidatedError,
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from stockflow.core.interfaces.unit_of_work import IUnitOfWork
from stockflow.core.services import authorization as guard
from stockflow.core.services.numbering import warehouse_document_number

logger = get_logger(__name__)


def check_line_input(lines: list[ReceiptLineInput]) -> None:
    require_lines(lines)
    for i, line in enumerate(lines):
        require_positive(line.quantity, f"lines[{i}].quantity")


async def build_lines(
    uow: IUnitOfWork, warehouse_id: str, lines: list[ReceiptLineInput]
) -> list[ReceiptLine]:
    """Receipt lines whose products exist and whose locations sit in the warehouse."""
    for i, line in enumerate(lines):
        await require_product(uow, line.product_id)
        await require_location(uow, line.location_id, warehouse_id, f"lines[{i}].location_id")
    return [
        ReceiptLine(
            product_id=line.product_id, location_id=line.location_id, quantity=line.quantity
        )
        for line in lines
    ]


class ReceiptWorkflow(WorkflowUseCase):
    """Create receipts and validate them into stock."""

    async def create(self, ctx: IdentityContext, request: CreateReceiptRequest) -> Receipt:
        logger.info(
            "receipt_create_started",
            warehouse_id=request.warehouse_id,
            actor_id=ctx.user_id,
            lines=len(request.lines),
        )

        if request.status not in guard.VALIDATABLE_RECEIPT:
            raise ValidationError("status", "must be DRAFT or WAITING", request.status.value)
        check_line_input(request.lines)

        guard.require(
            guard.can_create_receipt(ctx, request.warehouse_id),
            "create receipt",
            "admin or operator of the receiving warehouse required",
        )

        async with self._uow() as uow:
            warehouse = await require_warehouse(uow, request.warehouse_id, "warehouse_id")
            lines = await build_lines(uow, warehouse.id, request.lines)

            wf = self.settings.workflow
            sequence = await uow.receipts.count_for_warehouse(warehouse.id) + 1
            receipt = Receipt(
                id=new_document_id(),
                number=warehouse_document_number(
                    wf.warehouse_prefix,
                    warehouse.code,
                    wf.receipt_direction,
                    sequence,
                    wf.warehouse_number_padding,
                ),
                warehouse_id=warehouse.id,
                supplier_name=request.supplier_name,
                reference=request.reference,
                notes=request.notes,
                lines=lines,
                status=request.status,
                created_by=ctx.user_id,
            )
            await uow.receipts.create(receipt)

        logger.info("receipt_create_complete", receipt_id=receipt.id, number=receipt.number)
        return receipt

    async def update(
        self, ctx: IdentityContext, receipt_id: str, request: UpdateReceiptRequest
    ) -> Receipt:
        """Edit a DRAFT receipt; ``lines``, when given, replaces every line."""
        logger.info("receipt_update_started", receipt_id=receipt_id, actor_id=ctx.user_id)

        if request.lines is not None:
            check_line_input(request.lines)

        async with self._uow() as uow:
            receipt = await self._load(uow, receipt_id)
            guard.require_status(
                "Receipt", receipt.id, receipt.status, {ReceiptStatus.DRAFT}, "update"
            )
            guard.require(
                guard.can_edit_receipt(ctx, receipt),
                "update receipt",
                "admin or operator of the receiving warehouse required",
            )
            lines = None
            if request.lines is not None:
                lines = await build_lines(uow, receipt.warehouse_id, request.lines)

            loaded_status = receipt.status.value
            if not await uow.receipts.update(receipt, lines, **header_changes(request)):
                raise InvalidStateTransitionError(
                    "Receipt", receipt.id, loaded_status, "update", "modified concurrently"
                )

        logger.info("receipt_update_complete", receipt_id=receipt.id, version=receipt.version)
        return receipt

    async def validate(self, ctx: IdentityContext, receipt_id: str) -> Receipt:
        """Credit every line to the receiving warehouse and close the receipt."""
        logger.info("receipt_validate_started", receipt_id=receipt_id, actor_id=ctx.user_id)

        async with self._uow() as uow:
            receipt = await self._load(uow, receipt_id)
            if receipt.status == ReceiptStatus.DONE:
                raise AlreadyValidatedError("Receipt", receipt.id)
            guard.require(
                guard.can_validate_receipt(ctx, receipt),
                "validate receipt",
                "admin or operator of the receiving warehouse required",
            )

            loaded_status = receipt.status.value
            claimed = await uow.receipts.transition(
                receipt,
                ReceiptStatus.DONE,
                validated_by=ctx.user_id,
                validated_at=utcnow(),
            )
            if not claimed:
                raise InvalidStateTransitionError(
                    "Receipt", receipt.id, loaded_status, "validate", "modified concurrently"
                )

            for line in receipt.lines:
                await uow.ledger.apply_movement(
                    line.product_id,
                    receipt.warehouse_id,
                    line.location_id,
                    line.quantity,
                    MovementType.RECEIPT,
                    DocumentType.RECEIPT,
                    receipt.id,
                    ctx.user_id,
                    MovementRoute(
                        warehouse_to_id=receipt.warehouse_id,
                        location_to_id=line.location_id,
                    ),
                )

        logger.info(
            "receipt_validate_complete",
            receipt_id=receipt.id,
            number=receipt.number,
            lines=len(receipt.lines),
        )
        return receipt

    async def get(self, receipt_id: str) -> Receipt:
        async with self._read_uow() as uow:
            return await self._load(uow, receipt_id)

    async def list_receipts(
        self,
        ctx: IdentityContext,
        status: ReceiptStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Receipt]:
        """Receipts of the actor's warehouses (all for admins)."""
        scope = None if ctx.is_admin else set(ctx.active_warehouse_ids)
        async with self._read_uow() as uow:
            return await uow.receipts.list_receipts(
                scope, status, self._list_limit(limit), offset
            )

    async def _load(self, uow: IUnitOfWork, receipt_id: str) -> Receipt:
        receipt = await uow.receipts.get(receipt_id)
        if receipt is None:
            raise NotFoundError("Receipt", receipt_id)
        return receipt
