"""Shared plumbing for workflow use cases."""

import uuid
from collections.abc import Sequence

from stockflow.config import get_settings
from stockflow.config.settings import Settings
from stockflow.core.entities.reference import Location, Product, Warehouse
from stockflow.core.exceptions import NotFoundError, ValidationError
from stockflow.core.interfaces.unit_of_work import IUnitOfWork, UnitOfWorkFactory


class WorkflowUseCase:
    """
    Base for workflows: unit-of-work factories plus settings.

    Transitions run in writer units (``_uow``); plain lookups use the
    read-only factory (``_read_uow``) so they do not queue on the write lock.
    Without an explicit read factory, reads share the writer factory. Both
    are created lazily from the infrastructure layer when not injected.
    """

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory | None = None,
        settings: Settings | None = None,
        read_uow_factory: UnitOfWorkFactory | None = None,
    ):
        self._uow_factory = uow_factory
        self._read_uow_factory = read_uow_factory
        self._settings = settings

    def _get_uow_factory(self) -> UnitOfWorkFactory:
        if self._uow_factory is None:
            from stockflow.infrastructure.storage.sqlite import get_unit_of_work_factory

            self._uow_factory = get_unit_of_work_factory()
        return self._uow_factory

    def _get_read_uow_factory(self) -> UnitOfWorkFactory:
        if self._read_uow_factory is None:
            if self._uow_factory is not None:
                return self._uow_factory
            from stockflow.infrastructure.storage.sqlite import get_unit_of_work_factory

            self._read_uow_factory = get_unit_of_work_factory(read_only=True)
        return self._read_uow_factory

    def _uow(self) -> IUnitOfWork:
        return self._get_uow_factory()()

    def _read_uow(self) -> IUnitOfWork:
        return self._get_read_uow_factory()()

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            self._settings = get_settings()
        return self._settings

    def _list_limit(self, limit: int | None) -> int:
        return limit if limit is not None else self.settings.workflow.default_list_limit


def new_document_id() -> str:
    return str(uuid.uuid4())


def require_value(value: str | None, field: str) -> str:
    if not value:
        raise ValidationError(field, "is required")
    return value


def require_lines(lines: Sequence, field: str = "lines") -> None:
    if not lines:
        raise ValidationError(field, "at least one line is required")


def require_positive(quantity: int, field: str) -> None:
    if quantity <= 0:
        raise ValidationError(field, "must be a positive integer", quantity)


async def require_warehouse(uow: IUnitOfWork, warehouse_id: str | None, field: str) -> Warehouse:
    warehouse = await uow.references.get_warehouse(require_value(warehouse_id, field))
    if warehouse is None:
        raise NotFoundError("Warehouse", warehouse_id)
    return warehouse


async def require_product(uow: IUnitOfWork, product_id: str) -> Product:
    product = await uow.references.get_product(product_id)
    if product is None:
        raise NotFoundError("Product", product_id)
    return product


async def require_location(
    uow: IUnitOfWork, location_id: str | None, warehouse_id: str, field: str
) -> Location | None:
    """A location, when given, must exist inside ``warehouse_id``."""
    if location_id is None:
        return None
    location = await uow.references.get_location(location_id)
    if location is None:
        raise NotFoundError("Location", location_id)
    if location.warehouse_id != warehouse_id:
        raise ValidationError(
            field, f"location does not belong to warehouse {warehouse_id}", location_id
        )
    return location
