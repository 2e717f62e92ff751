"""
Read-side hydration of workflow documents.

Workflows operate on raw IDs only. For display, the hydrator joins product,
warehouse and location details onto a document, caching each lookup for the
duration of one call.
"""

from stockflow.application.dto.responses import HydratedDocument, HydratedLine
from stockflow.core.entities.adjustment import Adjustment
from stockflow.core.entities.delivery import Delivery
from stockflow.core.entities.receipt import Receipt
from stockflow.core.entities.reference import Location, Product, Warehouse
from stockflow.core.entities.requisition import Requisition
from stockflow.core.entities.transfer import Transfer
from stockflow.core.interfaces.reference_store import IReferenceStore
from stockflow.core.interfaces.unit_of_work import UnitOfWorkFactory

Document = Receipt | Delivery | Transfer | Requisition | Adjustment


class ReferenceLookup:
    """Memoized reference lookups within one hydration."""

    def __init__(self, references: IReferenceStore):
        self._references = references
        self._products: dict[str, Product | None] = {}
        self._warehouses: dict[str, Warehouse | None] = {}
        self._locations: dict[str, Location | None] = {}

    async def product(self, product_id: str) -> Product | None:
        if product_id not in self._products:
            self._products[product_id] = await self._references.get_product(product_id)
        return self._products[product_id]

    async def warehouse(self, warehouse_id: str | None) -> Warehouse | None:
        if warehouse_id is None:
            return None
        if warehouse_id not in self._warehouses:
            self._warehouses[warehouse_id] = await self._references.get_warehouse(warehouse_id)
        return self._warehouses[warehouse_id]

    async def location(self, location_id: str | None) -> Location | None:
        if location_id is None:
            return None
        if location_id not in self._locations:
            self._locations[location_id] = await self._references.get_location(location_id)
        return self._locations[location_id]

    async def line(
        self,
        product_id: str,
        quantity: int,
        location_id: str | None = None,
        target_location_id: str | None = None,
    ) -> HydratedLine:
        product = await self.product(product_id)
        location = await self.location(location_id)
        target_location = await self.location(target_location_id)
        return HydratedLine(
            product_id=product_id,
            sku=product.sku if product else None,
            product_name=product.name if product else None,
            unit=product.unit if product else None,
            quantity=quantity,
            location_id=location_id,
            location_code=location.code if location else None,
            target_location_id=target_location_id,
            target_location_code=target_location.code if target_location else None,
        )


class DocumentHydrator:
    """Joins reference metadata onto documents for display."""

    def __init__(self, uow_factory: UnitOfWorkFactory | None = None):
        self._uow_factory = uow_factory

    def _get_uow_factory(self) -> UnitOfWorkFactory:
        if self._uow_factory is None:
            from stockflow.infrastructure.storage.sqlite import get_unit_of_work_factory

            self._uow_factory = get_unit_of_work_factory(read_only=True)
        return self._uow_factory

    async def hydrate(self, document: Document) -> HydratedDocument:
        async with self._get_uow_factory()() as uow:
            return await self._hydrate(ReferenceLookup(uow.references), document)

    async def hydrate_many(self, documents: list[Document]) -> list[HydratedDocument]:
        async with self._get_uow_factory()() as uow:
            lookup = ReferenceLookup(uow.references)
            return [await self._hydrate(lookup, document) for document in documents]

    async def _hydrate(
        self, lookup: ReferenceLookup, document: Document
    ) -> HydratedDocument:
        if isinstance(document, Receipt):
            kind, source_id, target_id = "RECEIPT", document.warehouse_id, None
            lines = [
                await lookup.line(line.product_id, line.quantity, line.location_id)
                for line in document.lines
            ]
        elif isinstance(document, Delivery):
            kind, source_id, target_id = "DELIVERY", document.warehouse_id, document.target_warehouse_id
            lines = [
                await lookup.line(line.product_id, line.quantity, line.from_location_id)
                for line in document.lines
            ]
        elif isinstance(document, Transfer):
            kind = "TRANSFER"
            source_id, target_id = document.source_warehouse_id, document.target_warehouse_id
            lines = [
                await lookup.line(
                    line.product_id,
                    line.quantity,
                    line.source_location_id,
                    line.target_location_id,
                )
                for line in document.lines
            ]
        elif isinstance(document, Requisition):
            kind = "REQUISITION"
            source_id = document.final_source_warehouse_id or document.suggested_source_warehouse_id
            target_id = document.requesting_warehouse_id
            lines = [
                await lookup.line(line.product_id, line.quantity_requested)
                for line in document.lines
            ]
        elif isinstance(document, Adjustment):
            kind, source_id, target_id = "ADJUSTMENT", document.warehouse_id, None
            lines = [
                await lookup.line(document.product_id, document.difference, document.location_id)
            ]
        else:
            raise TypeError(f"Cannot hydrate {type(document).__name__}")

        source = await lookup.warehouse(source_id)
        target = await lookup.warehouse(target_id)
        status = getattr(document, "status", None)
        return HydratedDocument(
            document_type=kind,
            id=document.id,
            number=document.number,
            status=status.value if status is not None else None,
            warehouse_id=source_id,
            warehouse_code=source.code if source else None,
            warehouse_name=source.name if source else None,
            target_warehouse_id=target_id,
            target_warehouse_code=target.code if target else None,
            target_warehouse_name=target.name if target else None,
            lines=lines,
            created_by=document.created_by,
            created_at=document.created_at,
        )
