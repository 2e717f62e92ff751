"""
Requisition Workflow.

One warehouse requesting stock from another.
"""

from stockflow.application.dto.requests import (
    CreateRequisitionRequest,
    RequisitionLineInput,
    UpdateRequisitionRequest,
    header_changes,
)
from stockflow.application.dto.responses import RequisitionApproval
from stockflow.application.use_cases.base import (
    WorkflowUseCase,
    new_document_id,
    require_lines,
    require_positive,
    require_product,
    require_value,
    require_warehouse,
)
from stockflow.application.use_cases.delivery_workflow import next_delivery_number
from stockflow.config import get_logger
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.delivery import Delivery, DeliveryLine, DeliveryStatus
from stockflow.core.entities.identity import IdentityContext, Role
from stockflow.core.entities.requisition import (
    Requisition,
    RequisitionLine,
    RequisitionStatus,
)
from stockflow.core.exceptions import (
    InvalidStateTransitionError,
    NotFoundError,
    ValidationError,
)
from stockflow.core.interfaces.unit_of_work import IUnitOfWork
from stockflow.core.services import authorization as guard
from stockflow.core.services.numbering import global_document_number

logger = get_logger(__name__)


def check_line_input(lines: list[RequisitionLineInput]) -> None:
    require_lines(lines)
    for i, line in enumerate(lines):
        require_positive(line.quantity_requested, f"lines[{i}].quantity_requested")


def check_suggested_source(suggested_id: str | None, requesting_id: str) -> None:
    if suggested_id and suggested_id == requesting_id:
        raise ValidationError(
            "suggested_source_warehouse_id",
            "must differ from the requesting warehouse",
            suggested_id,
        )


async def build_lines(uow: IUnitOfWork, lines: list[RequisitionLineInput]) -> list[RequisitionLine]:
    for line in lines:
        await require_product(uow, line.product_id)
    return [
        RequisitionLine(
            product_id=line.product_id,
            quantity_requested=line.quantity_requested,
            needed_by_date=line.needed_by_date,
        )
        for line in lines
    ]


class RequisitionWorkflow(WorkflowUseCase):
    """
    Requisitions move DRAFT → SUBMITTED → APPROVED | REJECTED.

    Approval and the Delivery it spawns commit in the same transaction, so
    an APPROVED requisition always has exactly one delivery.
    """

    async def create(
        self, ctx: IdentityContext, request: CreateRequisitionRequest
    ) -> Requisition:
        logger.info(
            "requisition_create_started",
            requesting_warehouse_id=request.requesting_warehouse_id,
            actor_id=ctx.user_id,
            submit=request.submit,
        )

        check_line_input(request.lines)
        suggested_id = request.suggested_source_warehouse_id
        check_suggested_source(suggested_id, request.requesting_warehouse_id)

        guard.require(
            guard.can_create_requisition(ctx, request.requesting_warehouse_id),
            "create requisition",
            "operator of the requesting warehouse required",
        )

        async with self._uow() as uow:
            requesting = await require_warehouse(
                uow, request.requesting_warehouse_id, "requesting_warehouse_id"
            )
            if suggested_id:
                await require_warehouse(uow, suggested_id, "suggested_source_warehouse_id")
            lines = await build_lines(uow, request.lines)

            wf = self.settings.workflow
            now = utcnow()
            requisition = Requisition(
                id=new_document_id(),
                number=global_document_number(
                    wf.requisition_prefix,
                    await uow.requisitions.count() + 1,
                    wf.global_number_padding,
                ),
                requesting_warehouse_id=requesting.id,
                suggested_source_warehouse_id=suggested_id,
                notes=request.notes,
                lines=lines,
                status=RequisitionStatus.SUBMITTED if request.submit else RequisitionStatus.DRAFT,
                submitted_at=now if request.submit else None,
                created_by=ctx.user_id,
            )
            await uow.requisitions.create(requisition)

        logger.info(
            "requisition_create_complete",
            requisition_id=requisition.id,
            number=requisition.number,
            status=requisition.status.value,
        )
        return requisition

    async def update(
        self, ctx: IdentityContext, requisition_id: str, request: UpdateRequisitionRequest
    ) -> Requisition:
        """Edit a DRAFT requisition before it is submitted."""
        logger.info(
            "requisition_update_started", requisition_id=requisition_id, actor_id=ctx.user_id
        )

        if request.lines is not None:
            check_line_input(request.lines)

        async with self._uow() as uow:
            requisition = await self._load(uow, requisition_id)
            guard.require_status(
                "Requisition",
                requisition.id,
                requisition.status,
                {RequisitionStatus.DRAFT},
                "update",
            )
            guard.require(
                guard.can_edit_requisition(ctx, requisition),
                "update requisition",
                "operator of the requesting warehouse required",
            )
            suggested_id = request.suggested_source_warehouse_id
            if suggested_id:
                check_suggested_source(suggested_id, requisition.requesting_warehouse_id)
                await require_warehouse(uow, suggested_id, "suggested_source_warehouse_id")
            lines = None if request.lines is None else await build_lines(uow, request.lines)

            loaded_status = requisition.status.value
            if not await uow.requisitions.update(requisition, lines, **header_changes(request)):
                raise InvalidStateTransitionError(
                    "Requisition", requisition.id, loaded_status, "update", "modified concurrently"
                )

        logger.info(
            "requisition_update_complete",
            requisition_id=requisition.id,
            version=requisition.version,
        )
        return requisition

    async def submit(self, ctx: IdentityContext, requisition_id: str) -> Requisition:
        logger.info("requisition_submit_started", requisition_id=requisition_id, actor_id=ctx.user_id)

        async with self._uow() as uow:
            requisition = await self._load(uow, requisition_id)
            guard.require_status(
                "Requisition",
                requisition.id,
                requisition.status,
                {RequisitionStatus.DRAFT},
                "submit",
            )
            guard.require(
                guard.can_submit_requisition(ctx, requisition),
                "submit requisition",
                "operator of the requesting warehouse required",
            )
            await self._transition(
                uow, requisition, RequisitionStatus.SUBMITTED, "submit", submitted_at=utcnow()
            )

        logger.info("requisition_submit_complete", requisition_id=requisition.id)
        return requisition

    async def approve(
        self,
        ctx: IdentityContext,
        requisition_id: str,
        final_source_warehouse_id: str | None,
    ) -> RequisitionApproval:
        """
        Approve from a chosen source warehouse and spawn its Delivery.

        Stock is not checked here; a short source fails later, at dispatch.
        """
        logger.info(
            "requisition_approve_started",
            requisition_id=requisition_id,
            final_source_warehouse_id=final_source_warehouse_id,
            actor_id=ctx.user_id,
        )

        async with self._uow() as uow:
            requisition = await self._load(uow, requisition_id)
            guard.require_status(
                "Requisition",
                requisition.id,
                requisition.status,
                {RequisitionStatus.SUBMITTED},
                "approve",
            )
            source_id = require_value(final_source_warehouse_id, "final_source_warehouse_id")
            if source_id == requisition.requesting_warehouse_id:
                raise ValidationError(
                    "final_source_warehouse_id",
                    "must differ from the requesting warehouse",
                    source_id,
                )
            guard.require(
                guard.can_approve_requisition(ctx, requisition, source_id),
                "approve requisition",
                "manager of the source warehouse required",
            )
            source = await require_warehouse(uow, source_id, "final_source_warehouse_id")

            now = utcnow()
            await self._transition(
                uow,
                requisition,
                RequisitionStatus.APPROVED,
                "approve",
                final_source_warehouse_id=source.id,
                approved_by=ctx.user_id,
                approved_at=now,
            )

            existing = await uow.deliveries.get_by_requisition(requisition.id)
            if existing is not None:
                raise InvalidStateTransitionError(
                    "Requisition",
                    requisition.id,
                    RequisitionStatus.SUBMITTED.value,
                    "approve",
                    f"delivery {existing.number} already exists",
                )

            delivery = Delivery(
                id=new_document_id(),
                number=await next_delivery_number(uow, source, self.settings.workflow),
                warehouse_id=source.id,
                target_warehouse_id=requisition.requesting_warehouse_id,
                requisition_id=requisition.id,
                reference=requisition.number,
                notes=requisition.notes,
                lines=[
                    DeliveryLine(product_id=line.product_id, quantity=line.quantity_requested)
                    for line in requisition.lines
                ],
                status=DeliveryStatus.WAITING,
                created_by=ctx.user_id,
            )
            await uow.deliveries.create(delivery)

        logger.info(
            "requisition_approve_complete",
            requisition_id=requisition.id,
            delivery_id=delivery.id,
            delivery_number=delivery.number,
        )
        return RequisitionApproval(requisition=requisition, delivery=delivery)

    async def reject(
        self, ctx: IdentityContext, requisition_id: str, reason: str | None = None
    ) -> Requisition:
        logger.info("requisition_reject_started", requisition_id=requisition_id, actor_id=ctx.user_id)

        reason = reason or self.settings.workflow.default_reject_reason
        async with self._uow() as uow:
            requisition = await self._load(uow, requisition_id)
            guard.require_status(
                "Requisition",
                requisition.id,
                requisition.status,
                {RequisitionStatus.SUBMITTED},
                "reject",
            )
            guard.require(
                guard.can_reject_requisition(ctx, requisition),
                "reject requisition",
                "manager role required",
            )
            await self._transition(
                uow,
                requisition,
                RequisitionStatus.REJECTED,
                "reject",
                rejected_by=ctx.user_id,
                rejected_reason=reason,
                rejected_at=utcnow(),
            )

        logger.info("requisition_reject_complete", requisition_id=requisition.id, reason=reason)
        return requisition

    async def get(self, requisition_id: str) -> Requisition:
        async with self._read_uow() as uow:
            return await self._load(uow, requisition_id)

    async def list_requisitions(
        self,
        ctx: IdentityContext,
        status: RequisitionStatus | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Requisition]:
        """Requisitions raised by, or sourced from, the actor's warehouses.

        Managers also see every SUBMITTED requisition, since any of them may
        approve it from their own warehouse.
        """
        limit = self._list_limit(limit)
        async with self._read_uow() as uow:
            if ctx.is_admin:
                return await uow.requisitions.list_requisitions(None, status, limit, offset)
            if ctx.role == Role.MANAGER and status == RequisitionStatus.SUBMITTED:
                return await uow.requisitions.list_requisitions(None, status, limit, offset)
            return await uow.requisitions.list_requisitions(
                set(ctx.active_warehouse_ids), status, limit, offset
            )

    async def _load(self, uow: IUnitOfWork, requisition_id: str) -> Requisition:
        requisition = await uow.requisitions.get(requisition_id)
        if requisition is None:
            raise NotFoundError("Requisition", requisition_id)
        return requisition

    async def _transition(
        self,
        uow: IUnitOfWork,
        requisition: Requisition,
        new_status: RequisitionStatus,
        action: str,
        **changes,
    ) -> None:
        loaded_status = requisition.status.value
        if not await uow.requisitions.transition(requisition, new_status, **changes):
            raise InvalidStateTransitionError(
                "Requisition", requisition.id, loaded_status, action, "modified concurrently"
            )
