"""
Transfer Workflow.

Two-phase movement between warehouses.
"""

from datetime import datetime

from stockflow.application.dto.requests import (
    CreateTransferRequest,
    TransferLineInput,
    UpdateTransferRequest,
    header_changes,
)
from stockflow.application.use_cases.base import (
    WorkflowUseCase,
    new_document_id,
    require_lines,
    require_location,
    require_positive,
    require_product,
    require_value,
    require_warehouse,
)
from stockflow.application.use_cases.stock_allocation import StockDemand, take_stock
from stockflow.config import get_logger
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.delivery import DeliveryStatus
from stockflow.core.entities.identity import IdentityContext
from stockflow.core.entities.requisition import RequisitionStatus
from stockflow.core.entities.stock import DocumentType, MovementRoute, MovementType
from stockflow.core.entities.transfer import Transfer, TransferLine, TransferStatus
from stockflow.core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from stockflow.core.interfaces.unit_of_work import IUnitOfWork
from stockflow.core.services import authorization as guard
from stockflow.core.services.numbering import global_document_number

logger = get_logger(__name__)


def check_line_input(lines: list[TransferLineInput]) -> None:
    require_lines(lines)
    for i, line in enumerate(lines):
        require_positive(line.quantity, f"lines[{i}].quantity")


async def build_lines(
    uow: IUnitOfWork, source_id: str, target_id: str, lines: list[TransferLineInput]
) -> list[TransferLine]:
    """Pick locations must sit in the source warehouse, put-away ones in the target."""
    for i, line in enumerate(lines):
        await require_product(uow, line.product_id)
        await require_location(
            uow, line.source_location_id, source_id, f"lines[{i}].source_location_id"
        )
        await require_location(
            uow, line.target_location_id, target_id, f"lines[{i}].target_location_id"
        )
    return [
        TransferLine(
            product_id=line.product_id,
            source_location_id=line.source_location_id,
            target_location_id=line.target_location_id,
            quantity=line.quantity,
        )
        for line in lines
    ]


class TransferWorkflow(WorkflowUseCase):
    """
    Transfers move DRAFT → IN_TRANSIT → DONE.

    Dispatch takes stock out of the source; accept credits the target. In
    between, the quantity is in flight and on neither balance.
    """

    async def create(self, ctx: IdentityContext, request: CreateTransferRequest) -> Transfer:
        if request.delivery_id:
            return await self.create_from_delivery(ctx, request.delivery_id)

        logger.info(
            "transfer_create_started",
            source_warehouse_id=request.source_warehouse_id,
            target_warehouse_id=request.target_warehouse_id,
            actor_id=ctx.user_id,
        )

        source_id = require_value(request.source_warehouse_id, "source_warehouse_id")
        target_id = require_value(request.target_warehouse_id, "target_warehouse_id")
        if source_id == target_id:
            raise ValidationError(
                "target_warehouse_id", "must differ from the source warehouse", target_id
            )
        check_line_input(request.lines)

        guard.require(
            guard.can_create_transfer(ctx, source_id),
            "create transfer",
            "source warehouse is not in the actor's scope",
        )

        async with self._uow() as uow:
            source = await require_warehouse(uow, source_id, "source_warehouse_id")
            target = await require_warehouse(uow, target_id, "target_warehouse_id")
            lines = await build_lines(uow, source.id, target.id, request.lines)

            if request.requisition_id:
                requisition = await uow.requisitions.get(request.requisition_id)
                if requisition is None:
                    raise NotFoundError("Requisition", request.requisition_id)
                if requisition.status != RequisitionStatus.APPROVED:
                    raise InvalidStateTransitionError(
                        "Requisition",
                        requisition.id,
                        requisition.status.value,
                        "create transfer for",
                        "requisition must be APPROVED",
                    )

            transfer = Transfer(
                id=new_document_id(),
                number=await self._next_number(uow),
                source_warehouse_id=source.id,
                target_warehouse_id=target.id,
                requisition_id=request.requisition_id,
                notes=request.notes,
                lines=lines,
                created_by=ctx.user_id,
            )
            await uow.transfers.create(transfer)

        logger.info("transfer_create_complete", transfer_id=transfer.id, number=transfer.number)
        return transfer

    async def create_from_delivery(self, ctx: IdentityContext, delivery_id: str) -> Transfer:
        """
        Build a DRAFT transfer from an approved requisition-linked delivery.

        Lines carry product and quantity only; the delivery's pick locations
        are dropped and dispatch sources from the whole warehouse.
        """
        logger.info(
            "transfer_from_delivery_started", delivery_id=delivery_id, actor_id=ctx.user_id
        )

        async with self._uow() as uow:
            delivery = await uow.deliveries.get(delivery_id)
            if delivery is None:
                raise NotFoundError("Delivery", delivery_id)
            existing = await uow.transfers.get_by_delivery(delivery.id)
            if existing is not None:
                raise InvalidStateTransitionError(
                    "Delivery",
                    delivery.id,
                    delivery.status.value,
                    "create transfer from",
                    f"transfer {existing.number} already exists",
                )
            guard.require_status(
                "Delivery", delivery.id, delivery.status, {DeliveryStatus.READY}, "create transfer from"
            )
            if not delivery.is_requisition_linked:
                raise ValidationError(
                    "delivery_id",
                    "only requisition-linked deliveries are fulfilled by transfer",
                    delivery.id,
                )
            guard.require(
                guard.can_create_transfer_from_delivery(ctx, delivery),
                "create transfer from delivery",
                "operator of the source warehouse required",
            )

            transfer = Transfer(
                id=new_document_id(),
                number=await self._next_number(uow),
                source_warehouse_id=delivery.warehouse_id,
                target_warehouse_id=delivery.target_warehouse_id,
                requisition_id=delivery.requisition_id,
                delivery_id=delivery.id,
                notes=delivery.notes,
                lines=[
                    TransferLine(product_id=line.product_id, quantity=line.quantity)
                    for line in delivery.lines
                ],
                created_by=ctx.user_id,
            )
            await uow.transfers.create(transfer)

        logger.info(
            "transfer_from_delivery_complete",
            transfer_id=transfer.id,
            number=transfer.number,
            delivery_id=delivery.id,
        )
        return transfer

    async def update(
        self, ctx: IdentityContext, transfer_id: str, request: UpdateTransferRequest
    ) -> Transfer:
        """Edit a DRAFT transfer; ``lines``, when given, replaces every line.

        Lines of a transfer built from a delivery follow that delivery and
        cannot be edited.
        """
        logger.info("transfer_update_started", transfer_id=transfer_id, actor_id=ctx.user_id)

        if request.lines is not None:
            check_line_input(request.lines)

        async with self._uow() as uow:
            transfer = await self._load(uow, transfer_id)
            guard.require_status(
                "Transfer", transfer.id, transfer.status, {TransferStatus.DRAFT}, "update"
            )
            guard.require(
                guard.can_edit_transfer(ctx, transfer),
                "update transfer",
                "source warehouse is not in the actor's scope",
            )
            lines = None
            if request.lines is not None:
                if transfer.delivery_id:
                    raise ValidationError(
                        "lines", "lines of a transfer built from a delivery are fixed", transfer.delivery_id
                    )
                lines = await build_lines(
                    uow, transfer.source_warehouse_id, transfer.target_warehouse_id, request.lines
                )

            loaded_status = transfer.status.value
            if not await uow.transfers.update(transfer, lines, **header_changes(request)):
                raise InvalidStateTransitionError(
                    "Transfer", transfer.id, loaded_status, "update", "modified concurrently"
                )

        logger.info("transfer_update_complete", transfer_id=transfer.id, version=transfer.version)
        return transfer

    async def dispatch(self, ctx: IdentityContext, transfer_id: str) -> Transfer:
        """Take every line out of the source warehouse; stock goes in transit."""
        logger.info("transfer_dispatch_started", transfer_id=transfer_id, actor_id=ctx.user_id)

        fallback = self.settings.workflow.transfer_location_fallback
        async with self._uow() as uow:
            transfer = await self._load(uow, transfer_id)
            guard.require_status(
                "Transfer", transfer.id, transfer.status, {TransferStatus.DRAFT}, "dispatch"
            )
            guard.require(
                guard.can_dispatch_transfer(ctx, transfer),
                "dispatch transfer",
                "admin or operator of the source warehouse required",
            )

            await self._transition(
                uow,
                transfer,
                TransferStatus.IN_TRANSIT,
                "dispatch",
                dispatched_by=ctx.user_id,
                dispatched_at=utcnow(),
            )
            movements = await take_stock(
                uow.ledger,
                [
                    StockDemand(
                        product_id=line.product_id,
                        warehouse_id=transfer.source_warehouse_id,
                        location_id=line.source_location_id,
                        quantity=line.quantity,
                        allow_other_locations=line.source_location_id is None or fallback,
                        warehouse_to_id=transfer.target_warehouse_id,
                        location_to_id=line.target_location_id,
                    )
                    for line in transfer.lines
                ],
                MovementType.TRANSFER,
                DocumentType.TRANSFER,
                transfer.id,
                ctx.user_id,
            )

        logger.info(
            "transfer_dispatch_complete",
            transfer_id=transfer.id,
            number=transfer.number,
            movements=len(movements),
        )
        return transfer

    async def accept(self, ctx: IdentityContext, transfer_id: str) -> Transfer:
        """Credit every line at the target warehouse and close the transfer."""
        logger.info("transfer_accept_started", transfer_id=transfer_id, actor_id=ctx.user_id)

        async with self._uow() as uow:
            transfer = await self._load(uow, transfer_id)
            guard.require_status(
                "Transfer", transfer.id, transfer.status, {TransferStatus.IN_TRANSIT}, "accept"
            )
            guard.require(
                guard.can_accept_transfer(ctx, transfer),
                "accept transfer",
                "admin or operator of the target warehouse required",
            )

            now = utcnow()
            await self._transition(
                uow,
                transfer,
                TransferStatus.DONE,
                "accept",
                received_by=ctx.user_id,
                received_at=now,
            )
            for line in transfer.lines:
                await uow.ledger.apply_movement(
                    line.product_id,
                    transfer.target_warehouse_id,
                    line.target_location_id,
                    line.quantity,
                    MovementType.TRANSFER,
                    DocumentType.TRANSFER,
                    transfer.id,
                    ctx.user_id,
                    MovementRoute(
                        warehouse_from_id=transfer.source_warehouse_id,
                        location_from_id=line.source_location_id,
                        warehouse_to_id=transfer.target_warehouse_id,
                        location_to_id=line.target_location_id,
                    ),
                )

            if transfer.delivery_id:
                await self._complete_delivery(uow, transfer, ctx.user_id, now)

        logger.info("transfer_accept_complete", transfer_id=transfer.id, number=transfer.number)
        return transfer

    async def _complete_delivery(
        self, uow: IUnitOfWork, transfer: Transfer, actor_id: str, now: datetime
    ) -> None:
        """The delivery a transfer was built from is done once the goods arrive."""
        delivery = await uow.deliveries.get(transfer.delivery_id)
        if delivery is None or delivery.status != DeliveryStatus.READY:
            return
        if not await uow.deliveries.transition(
            delivery, DeliveryStatus.DONE, validated_by=actor_id, validated_at=now
        ):
            raise InvalidStateTransitionError(
                "Delivery", delivery.id, DeliveryStatus.READY.value, "complete", "modified concurrently"
            )
        logger.info(
            "delivery_completed_by_transfer",
            delivery_id=delivery.id,
            transfer_id=transfer.id,
        )

    async def get(self, transfer_id: str) -> Transfer:
        async with self._read_uow() as uow:
            return await self._load(uow, transfer_id)

    async def list_transfers(
        self,
        ctx: IdentityContext,
        status: TransferStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Transfer]:
        scope = None if ctx.is_admin else set(ctx.active_warehouse_ids)
        async with self._read_uow() as uow:
            return await uow.transfers.list_transfers(
                scope, status, self._list_limit(limit), offset
            )

    async def _next_number(self, uow: IUnitOfWork) -> str:
        wf = self.settings.workflow
        return global_document_number(
            wf.transfer_prefix, await uow.transfers.count() + 1, wf.global_number_padding
        )

    async def _load(self, uow: IUnitOfWork, transfer_id: str) -> Transfer:
        transfer = await uow.transfers.get(transfer_id)
        if transfer is None:
            raise NotFoundError("Transfer", transfer_id)
        return transfer

    async def _transition(
        self,
        uow: IUnitOfWork,
        transfer: Transfer,
        new_status: TransferStatus,
        action: str,
        **changes,
    ) -> None:
        loaded_status = transfer.status.value
        if not await uow.transfers.transition(transfer, new_status, **changes):
            raise InvalidStateTransitionError(
                "Transfer", transfer.id, loaded_status, action, "modified concurrently"
            )
