"""Abstract interface for master-data reference lookups."""

from abc import ABC, abstractmethod

from stockflow.core.entities.reference import Location, Product, Warehouse


class IReferenceStore(ABC):
    """Existence and metadata lookups for products, warehouses and locations."""

    @abstractmethod
    async def get_product(self, product_id: str) -> Product | None:
        pass

    @abstractmethod
    async def get_warehouse(self, warehouse_id: str) -> Warehouse | None:
        pass

    @abstractmethod
    async def get_location(self, location_id: str) -> Location | None:
        pass

    @abstractmethod
    async def list_products(self, active_only: bool = True) -> list[Product]:
        pass

    @abstractmethod
    async def add_product(self, product: Product) -> Product:
        """Register a product (seeding; master-data screens live elsewhere)."""
        pass

    @abstractmethod
    async def add_warehouse(self, warehouse: Warehouse) -> Warehouse:
        pass

    @abstractmethod
    async def add_location(self, location: Location) -> Location:
        pass
