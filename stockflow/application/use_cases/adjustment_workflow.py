"""
Adjustment Workflow.

Set a balance to a counted quantity.
"""

from dataclasses import dataclass

from stockflow.application.dto.requests import ApplyAdjustmentRequest
from stockflow.application.use_cases.base import (
    WorkflowUseCase,
    new_document_id,
    require_location,
    require_product,
    require_warehouse,
)
from stockflow.config import get_logger
from stockflow.core.entities.adjustment import Adjustment
from stockflow.core.entities.identity import IdentityContext
from stockflow.core.entities.stock import (
    DocumentType,
    MovementRoute,
    MovementType,
    StockMovement,
)
from stockflow.core.exceptions import NotFoundError, ValidationError
from stockflow.core.services import authorization as guard
from stockflow.core.services.numbering import global_document_number

logger = get_logger(__name__)


@dataclass
class AdjustmentResult:
    """Result of applying an adjustment."""

    adjustment: Adjustment
    movement: StockMovement | None  # None when the count matched the balance


class AdjustmentWorkflow(WorkflowUseCase):
    """Direct balance corrections, recorded as one signed movement."""

    async def apply(self, ctx: IdentityContext, request: ApplyAdjustmentRequest) -> AdjustmentResult:
        logger.info(
            "adjustment_apply_started",
            product_id=request.product_id,
            warehouse_id=request.warehouse_id,
            location_id=request.location_id,
            new_quantity=request.new_quantity,
            actor_id=ctx.user_id,
        )

        if request.new_quantity < 0:
            raise ValidationError("new_quantity", "cannot be negative", request.new_quantity)

        guard.require(
            guard.can_apply_adjustment(ctx, request.warehouse_id),
            "apply adjustment",
            "warehouse is not in the actor's scope",
        )

        async with self._uow() as uow:
            warehouse = await require_warehouse(uow, request.warehouse_id, "warehouse_id")
            await require_product(uow, request.product_id)
            await require_location(uow, request.location_id, warehouse.id, "location_id")

            old_quantity = await uow.ledger.query_balance(
                request.product_id, warehouse.id, request.location_id
            )
            difference = request.new_quantity - old_quantity
            adjustment_id = new_document_id()

            movement = None
            if difference != 0:
                if difference > 0:
                    route = MovementRoute(
                        warehouse_to_id=warehouse.id, location_to_id=request.location_id
                    )
                else:
                    route = MovementRoute(
                        warehouse_from_id=warehouse.id, location_from_id=request.location_id
                    )
                movement = await uow.ledger.apply_movement(
                    request.product_id,
                    warehouse.id,
                    request.location_id,
                    difference,
                    MovementType.ADJUSTMENT,
                    DocumentType.ADJUSTMENT,
                    adjustment_id,
                    ctx.user_id,
                    route,
                )

            wf = self.settings.workflow
            adjustment = Adjustment(
                id=adjustment_id,
                number=global_document_number(
                    wf.adjustment_prefix,
                    await uow.adjustments.count() + 1,
                    wf.global_number_padding,
                ),
                product_id=request.product_id,
                warehouse_id=warehouse.id,
                location_id=request.location_id,
                old_quantity=old_quantity,
                new_quantity=request.new_quantity,
                difference=difference,
                reason=request.reason,
                remarks=request.remarks,
                movement_id=movement.id if movement else None,
                created_by=ctx.user_id,
            )
            await uow.adjustments.create(adjustment)

        logger.info(
            "adjustment_apply_complete",
            adjustment_id=adjustment.id,
            number=adjustment.number,
            difference=difference,
        )
        return AdjustmentResult(adjustment=adjustment, movement=movement)

    async def get(self, adjustment_id: str) -> Adjustment:
        async with self._read_uow() as uow:
            adjustment = await uow.adjustments.get(adjustment_id)
        if adjustment is None:
            raise NotFoundError("Adjustment", adjustment_id)
        return adjustment

    async def list_adjustments(
        self,
        ctx: IdentityContext,
        product_id: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Adjustment]:
        scope = None if ctx.is_admin else set(ctx.active_warehouse_ids)
        async with self._read_uow() as uow:
            return await uow.adjustments.list_adjustments(
                scope, product_id, self._list_limit(limit), offset
            )
