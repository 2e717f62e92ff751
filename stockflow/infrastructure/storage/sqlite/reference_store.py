"""SQLite implementation of reference (master data) lookups."""

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.reference import Location, Product, Warehouse
from stockflow.core.interfaces.reference_store import IReferenceStore
from stockflow.infrastructure.storage.sqlite.rows import parse_datetime, to_db

logger = get_logger(__name__)


class SQLiteReferenceStore(IReferenceStore):
    """Products, warehouses and locations."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def get_product(self, product_id: str) -> Product | None:
        cursor = await self._conn.execute("SELECT * FROM products WHERE id = ?", (product_id,))
        row = await cursor.fetchone()
        return self._row_to_product(row) if row else None

    async def get_warehouse(self, warehouse_id: str) -> Warehouse | None:
        cursor = await self._conn.execute(
            "SELECT * FROM warehouses WHERE id = ?", (warehouse_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Warehouse(
            id=row["id"],
            code=row["code"],
            name=row["name"],
            is_active=bool(row["is_active"]),
            created_at=parse_datetime(row["created_at"]),
        )

    async def get_location(self, location_id: str) -> Location | None:
        cursor = await self._conn.execute(
            "SELECT * FROM locations WHERE id = ?", (location_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return Location(
            id=row["id"],
            warehouse_id=row["warehouse_id"],
            code=row["code"],
            name=row["name"],
            created_at=parse_datetime(row["created_at"]),
        )

    async def list_products(self, active_only: bool = True) -> list[Product]:
        query = "SELECT * FROM products"
        if active_only:
            query += " WHERE is_active = 1"
        cursor = await self._conn.execute(query + " ORDER BY sku")
        return [self._row_to_product(row) for row in await cursor.fetchall()]

    async def add_product(self, product: Product) -> Product:
        await self._conn.execute(
            """
            INSERT INTO products (id, sku, name, unit, reorder_level, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                product.id,
                product.sku,
                product.name,
                product.unit,
                product.reorder_level,
                to_db(product.is_active),
                to_db(product.created_at),
            ),
        )
        logger.info("product_added", product_id=product.id, sku=product.sku)
        return product

    async def add_warehouse(self, warehouse: Warehouse) -> Warehouse:
        await self._conn.execute(
            "INSERT INTO warehouses (id, code, name, is_active, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                warehouse.id,
                warehouse.code,
                warehouse.name,
                to_db(warehouse.is_active),
                to_db(warehouse.created_at),
            ),
        )
        logger.info("warehouse_added", warehouse_id=warehouse.id, code=warehouse.code)
        return warehouse

    async def add_location(self, location: Location) -> Location:
        await self._conn.execute(
            "INSERT INTO locations (id, warehouse_id, code, name, created_at) VALUES (?, ?, ?, ?, ?)",
            (
                location.id,
                location.warehouse_id,
                location.code,
                location.name,
                to_db(location.created_at),
            ),
        )
        logger.info("location_added", location_id=location.id, warehouse_id=location.warehouse_id)
        return location

    def _row_to_product(self, row: aiosqlite.Row) -> Product:
        return Product(
            id=row["id"],
            sku=row["sku"],
            name=row["name"],
            unit=row["unit"],
            reorder_level=row["reorder_level"],
            is_active=bool(row["is_active"]),
            created_at=parse_datetime(row["created_at"]),
        )
