"""
Stock Queries.

Read-only views over the ledger.
"""

from stockflow.application.dto.responses import (
    LocationStockLevel,
    LowStockReport,
    MovementPage,
    ProductStockLevels,
    ReconciliationReport,
    SourceSuggestion,
    WarehouseStockLevels,
)
from stockflow.application.hydrator import ReferenceLookup
from stockflow.application.use_cases.base import (
    WorkflowUseCase,
    require_product,
    require_warehouse,
)
from stockflow.config import get_logger
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.stock import Availability, LowStockItem, MovementFilter

logger = get_logger(__name__)


class StockQueries(WorkflowUseCase):
    """Balances, availability, movement history and ledger health."""

    async def query_stock_balance(
        self, product_id: str, warehouse_id: str, location_id: str | None = None
    ) -> int:
        async with self._read_uow() as uow:
            return await uow.ledger.query_balance(product_id, warehouse_id, location_id)

    async def query_availability(
        self,
        product_id: str,
        warehouse_id: str,
        required_qty: int,
        location_id: str | None = None,
        fallback_to_warehouse: bool = False,
    ) -> Availability:
        async with self._read_uow() as uow:
            return await uow.ledger.query_availability(
                product_id, warehouse_id, required_qty, location_id, fallback_to_warehouse
            )

    async def warehouse_total(self, product_id: str, warehouse_id: str) -> int:
        async with self._read_uow() as uow:
            return await uow.ledger.warehouse_total(product_id, warehouse_id)

    async def product_stock_levels(
        self, product_id: str, warehouse_id: str | None = None
    ) -> ProductStockLevels:
        """Every balance of a product, grouped by warehouse with per-location rows."""
        async with self._read_uow() as uow:
            await require_product(uow, product_id)
            if warehouse_id is not None:
                await require_warehouse(uow, warehouse_id, "warehouse_id")
            balances = await uow.ledger.list_balances(product_id, warehouse_id)

            lookup = ReferenceLookup(uow.references)
            groups: dict[str, WarehouseStockLevels] = {}
            for balance in balances:
                group = groups.get(balance.warehouse_id)
                if group is None:
                    warehouse = await lookup.warehouse(balance.warehouse_id)
                    group = groups[balance.warehouse_id] = WarehouseStockLevels(
                        warehouse_id=balance.warehouse_id,
                        warehouse_code=warehouse.code if warehouse else None,
                        warehouse_name=warehouse.name if warehouse else None,
                    )
                location = await lookup.location(balance.location_id)
                group.locations.append(
                    LocationStockLevel(
                        location_id=balance.location_id,
                        location_code=location.code if location else None,
                        location_name=location.name if location else None,
                        quantity=balance.quantity,
                        updated_at=balance.updated_at,
                    )
                )
                group.total += balance.quantity

        by_warehouse = list(groups.values())
        return ProductStockLevels(
            product_id=product_id,
            total_quantity=sum(group.total for group in by_warehouse),
            by_warehouse=by_warehouse,
        )

    async def list_movements(self, filters: MovementFilter | None = None) -> MovementPage:
        filters = filters or MovementFilter()
        async with self._read_uow() as uow:
            items = await uow.ledger.list_movements(filters)
            total = await uow.ledger.count_movements(filters)
        return MovementPage(items=items, total=total, limit=filters.limit, offset=filters.offset)

    async def suggest_source_warehouses(
        self, product_id: str, exclude_warehouse_id: str | None = None
    ) -> SourceSuggestion:
        """Warehouses holding the product, most stock first.

        Advisory only: approval never relies on it.
        """
        async with self._read_uow() as uow:
            candidates = await uow.ledger.stock_by_warehouse(product_id, exclude_warehouse_id)
        return SourceSuggestion(
            product_id=product_id,
            candidates=candidates,
            best_source=candidates[0] if candidates else None,
        )

    async def list_low_stock(self, warehouse_id: str | None = None) -> LowStockReport:
        async with self._read_uow() as uow:
            products = await uow.references.list_products(active_only=True)
            totals = await uow.ledger.product_totals(warehouse_id)

        items = [
            LowStockItem(
                product_id=product.id,
                sku=product.sku,
                name=product.name,
                current_stock=totals.get(product.id, 0),
                reorder_level=product.reorder_level,
            )
            for product in products
            if product.reorder_level > 0 and totals.get(product.id, 0) < product.reorder_level
        ]
        items.sort(key=lambda item: item.deficit, reverse=True)
        return LowStockReport(warehouse_id=warehouse_id, items=items)

    async def reconcile_ledger(self) -> ReconciliationReport:
        """Compare every balance with the sum of its movements."""
        async with self._read_uow() as uow:
            discrepancies = await uow.ledger.find_discrepancies()

        if discrepancies:
            logger.error("ledger_discrepancies_found", count=len(discrepancies))
        else:
            logger.info("ledger_reconciled")
        return ReconciliationReport(
            consistent=not discrepancies,
            discrepancies=discrepancies,
            checked_at=utcnow(),
        )
