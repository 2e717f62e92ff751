"""
Delivery Workflow.

Outbound stock with a manager approval gate.
"""

from stockflow.application.dto.requests import (
    CreateDeliveryRequest,
    DeliveryLineInput,
    UpdateDeliveryRequest,
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
from stockflow.application.use_cases.stock_allocation import StockDemand, take_stock
from stockflow.config import get_logger
from stockflow.config.settings import WorkflowSettings
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.delivery import Delivery, DeliveryLine, DeliveryStatus
from stockflow.core.entities.identity import IdentityContext
from stockflow.core.entities.reference import Warehouse
from stockflow.core.entities.stock import DocumentType, MovementType
from stockflow.core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from stockflow.core.interfaces.unit_of_work import IUnitOfWork
from stockflow.core.services import authorization as guard
from stockflow.core.services.numbering import warehouse_document_number

logger = get_logger(__name__)


async def next_delivery_number(
    uow: IUnitOfWork, warehouse: Warehouse, wf: WorkflowSettings
) -> str:
    """WH-<code>-OUT-<n>, counted per source warehouse."""
    sequence = await uow.deliveries.count_for_warehouse(warehouse.id) + 1
    return warehouse_document_number(
        wf.warehouse_prefix,
        warehouse.code,
        wf.delivery_direction,
        sequence,
        wf.warehouse_number_padding,
    )


def append_note(notes: str | None, addition: str) -> str:
    return f"{notes}\n{addition}" if notes else addition


def check_line_input(lines: list[DeliveryLineInput]) -> None:
    require_lines(lines)
    for i, line in enumerate(lines):
        require_positive(line.quantity, f"lines[{i}].quantity")


async def build_lines(
    uow: IUnitOfWork, warehouse_id: str, lines: list[DeliveryLineInput]
) -> list[DeliveryLine]:
    for i, line in enumerate(lines):
        await require_product(uow, line.product_id)
        await require_location(
            uow, line.from_location_id, warehouse_id, f"lines[{i}].from_location_id"
        )
    return [
        DeliveryLine(
            product_id=line.product_id,
            from_location_id=line.from_location_id,
            quantity=line.quantity,
        )
        for line in lines
    ]


class DeliveryWorkflow(WorkflowUseCase):
    """
    Deliveries move DRAFT/WAITING → READY → DONE, or WAITING → REJECTED.

    Only deliveries without a requisition decrement stock on validation;
    requisition-linked ones are fulfilled by a Transfer.
    """

    async def create(self, ctx: IdentityContext, request: CreateDeliveryRequest) -> Delivery:
        """Create a customer or inter-warehouse delivery.

        Requisition deliveries come only from ``approve_requisition``, so a
        request carrying ``requisition_id`` is refused.
        """
        logger.info(
            "delivery_create_started",
            warehouse_id=request.warehouse_id,
            target_warehouse_id=request.target_warehouse_id,
            actor_id=ctx.user_id,
        )

        if request.requisition_id:
            raise ValidationError(
                "requisition_id",
                "deliveries for a requisition are created by its approval",
                request.requisition_id,
            )
        check_line_input(request.lines)
        if request.target_warehouse_id and request.target_warehouse_id == request.warehouse_id:
            raise ValidationError(
                "target_warehouse_id", "must differ from the source warehouse", request.target_warehouse_id
            )

        guard.require(
            guard.can_create_delivery(ctx, request.warehouse_id),
            "create delivery",
            "manager or operator of the source warehouse required",
        )

        async with self._uow() as uow:
            source = await require_warehouse(uow, request.warehouse_id, "warehouse_id")
            target_id = request.target_warehouse_id
            if target_id:
                await require_warehouse(uow, target_id, "target_warehouse_id")
            lines = await build_lines(uow, source.id, request.lines)

            delivery = Delivery(
                id=new_document_id(),
                number=await next_delivery_number(uow, source, self.settings.workflow),
                warehouse_id=source.id,
                target_warehouse_id=target_id,
                customer_name=request.customer_name,
                delivery_address=request.delivery_address,
                reference=request.reference,
                notes=request.notes,
                schedule_date=request.schedule_date,
                lines=lines,
                # Inter-warehouse deliveries wait for the target manager
                status=DeliveryStatus.WAITING if target_id else DeliveryStatus.DRAFT,
                created_by=ctx.user_id,
            )
            await uow.deliveries.create(delivery)

        logger.info(
            "delivery_create_complete",
            delivery_id=delivery.id,
            number=delivery.number,
            status=delivery.status.value,
        )
        return delivery

    async def update(
        self, ctx: IdentityContext, delivery_id: str, request: UpdateDeliveryRequest
    ) -> Delivery:
        """Edit a DRAFT delivery; ``lines``, when given, replaces every line."""
        logger.info("delivery_update_started", delivery_id=delivery_id, actor_id=ctx.user_id)

        if request.lines is not None:
            check_line_input(request.lines)

        async with self._uow() as uow:
            delivery = await self._load(uow, delivery_id)
            guard.require_status(
                "Delivery", delivery.id, delivery.status, {DeliveryStatus.DRAFT}, "update"
            )
            guard.require(
                guard.can_edit_delivery(ctx, delivery),
                "update delivery",
                "manager or operator of the source warehouse required",
            )
            lines = None
            if request.lines is not None:
                lines = await build_lines(uow, delivery.warehouse_id, request.lines)

            loaded_status = delivery.status.value
            if not await uow.deliveries.update(delivery, lines, **header_changes(request)):
                raise InvalidStateTransitionError(
                    "Delivery", delivery.id, loaded_status, "update", "modified concurrently"
                )

        logger.info("delivery_update_complete", delivery_id=delivery.id, version=delivery.version)
        return delivery

    async def approve(self, ctx: IdentityContext, delivery_id: str) -> Delivery:
        logger.info("delivery_approve_started", delivery_id=delivery_id, actor_id=ctx.user_id)

        async with self._uow() as uow:
            delivery = await self._load(uow, delivery_id)
            self._check_review(ctx, delivery, "approve")
            await self._transition(
                uow,
                delivery,
                DeliveryStatus.READY,
                "approve",
                approved_by=ctx.user_id,
                approved_at=utcnow(),
            )

        logger.info("delivery_approve_complete", delivery_id=delivery.id, number=delivery.number)
        return delivery

    async def reject(
        self, ctx: IdentityContext, delivery_id: str, reason: str | None = None
    ) -> Delivery:
        """Reject a waiting delivery; the reason is appended to its notes."""
        logger.info("delivery_reject_started", delivery_id=delivery_id, actor_id=ctx.user_id)

        reason = reason or self.settings.workflow.default_reject_reason
        async with self._uow() as uow:
            delivery = await self._load(uow, delivery_id)
            self._check_review(ctx, delivery, "reject")
            await self._transition(
                uow,
                delivery,
                DeliveryStatus.REJECTED,
                "reject",
                notes=append_note(delivery.notes, f"Rejected: {reason}"),
            )

        logger.info("delivery_reject_complete", delivery_id=delivery.id, reason=reason)
        return delivery

    def _check_review(self, ctx: IdentityContext, delivery: Delivery, action: str) -> None:
        if delivery.target_warehouse_id is None:
            raise ValidationError(
                "target_warehouse_id", f"cannot {action} a delivery without a target warehouse"
            )
        guard.require_status(
            "Delivery", delivery.id, delivery.status, {DeliveryStatus.WAITING}, action
        )
        guard.require(
            guard.can_approve_delivery(ctx, delivery),
            f"{action} delivery",
            "manager of the target warehouse required",
        )

    async def validate(self, ctx: IdentityContext, delivery_id: str) -> Delivery:
        """Decrement every line at the source and close the delivery."""
        logger.info("delivery_validate_started", delivery_id=delivery_id, actor_id=ctx.user_id)

        async with self._uow() as uow:
            delivery = await self._load(uow, delivery_id)
            if delivery.status == DeliveryStatus.DONE:
                raise InvalidStateTransitionError(
                    "Delivery", delivery.id, delivery.status.value, "validate", "already validated"
                )
            guard.require_status(
                "Delivery", delivery.id, delivery.status, guard.VALIDATABLE_DELIVERY, "validate"
            )
            if delivery.is_requisition_linked:
                raise InvalidStateTransitionError(
                    "Delivery",
                    delivery.id,
                    delivery.status.value,
                    "validate",
                    "requisition-linked deliveries are fulfilled by a transfer",
                )
            guard.require(
                guard.can_validate_delivery(ctx, delivery),
                "validate delivery",
                "admin or operator of the source warehouse required",
            )

            await self._transition(
                uow,
                delivery,
                DeliveryStatus.DONE,
                "validate",
                validated_by=ctx.user_id,
                validated_at=utcnow(),
            )
            await take_stock(
                uow.ledger,
                [
                    StockDemand(
                        product_id=line.product_id,
                        warehouse_id=delivery.warehouse_id,
                        location_id=line.from_location_id,
                        quantity=line.quantity,
                        warehouse_to_id=delivery.target_warehouse_id,
                    )
                    for line in delivery.lines
                ],
                MovementType.DELIVERY,
                DocumentType.DELIVERY,
                delivery.id,
                ctx.user_id,
            )

        logger.info(
            "delivery_validate_complete",
            delivery_id=delivery.id,
            number=delivery.number,
            lines=len(delivery.lines),
        )
        return delivery

    async def get(self, delivery_id: str) -> Delivery:
        async with self._read_uow() as uow:
            return await self._load(uow, delivery_id)

    async def list_deliveries(
        self,
        ctx: IdentityContext,
        status: DeliveryStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Delivery]:
        """Deliveries leaving or entering the actor's warehouses (all for admins)."""
        scope = None if ctx.is_admin else set(ctx.active_warehouse_ids)
        async with self._read_uow() as uow:
            return await uow.deliveries.list_deliveries(
                scope, status, self._list_limit(limit), offset
            )

    async def _load(self, uow: IUnitOfWork, delivery_id: str) -> Delivery:
        delivery = await uow.deliveries.get(delivery_id)
        if delivery is None:
            raise NotFoundError("Delivery", delivery_id)
        return delivery

    async def _transition(
        self,
        uow: IUnitOfWork,
        delivery: Delivery,
        new_status: DeliveryStatus,
        action: str,
        **changes,
    ) -> None:
        loaded_status = delivery.status.value
        if not await uow.deliveries.transition(delivery, new_status, **changes):
            raise InvalidStateTransitionError(
                "Delivery", delivery.id, loaded_status, action, "modified concurrently"
            )
