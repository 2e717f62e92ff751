"""SQLite implementation of the stock ledger."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.clock import utcnow
from stockflow.core.entities.stock import (
    Availability,
    BalanceDiscrepancy,
    DocumentType,
    MovementFilter,
    MovementRoute,
    MovementType,
    StockBalance,
    StockMovement,
    WarehouseStock,
)
from stockflow.core.exceptions import ValidationError
from stockflow.core.interfaces.ledger_store import IStockLedger
from stockflow.infrastructure.storage.sqlite.rows import location_key, parse_datetime

logger = get_logger(__name__)

# Sum of movements per balance key, shared by the reconciliation queries.
_MOVEMENT_TOTALS = """
    SELECT product_id, warehouse_id, COALESCE(location_id, '') AS location_key,
           SUM(change) AS total
    FROM stock_movements
    GROUP BY product_id, warehouse_id, COALESCE(location_id, '')
"""


class SQLiteStockLedger(IStockLedger):
    """
    Balances and movements on one connection.

    The ledger never commits: it runs inside the unit of work's transaction
    so the balance update, the movement row and the document transition
    land together or not at all.
    """

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def apply_movement(
        self,
        product_id: str,
        warehouse_id: str,
        location_id: str | None,
        change: int,
        movement_type: MovementType,
        source_doc_type: DocumentType,
        source_doc_id: str,
        actor_id: str,
        route: MovementRoute | None = None,
    ) -> StockMovement:
        if change == 0:
            raise ValidationError("change", "must be non-zero", change)

        now = utcnow()
        await self._conn.execute(
            """
            INSERT INTO stock_balances (
                product_id, warehouse_id, location_id, location_key, quantity, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (product_id, warehouse_id, location_key) DO UPDATE SET
                quantity = quantity + excluded.quantity,
                updated_at = excluded.updated_at
            """,
            (
                product_id,
                warehouse_id,
                location_id,
                location_key(location_id),
                change,
                now.isoformat(),
            ),
        )
        return await self._record_movement(
            product_id,
            warehouse_id,
            location_id,
            change,
            movement_type,
            source_doc_type,
            source_doc_id,
            actor_id,
            route,
        )

    async def decrement_if_available(
        self,
        product_id: str,
        warehouse_id: str,
        location_id: str | None,
        quantity: int,
        movement_type: MovementType,
        source_doc_type: DocumentType,
        source_doc_id: str,
        actor_id: str,
        route: MovementRoute | None = None,
    ) -> StockMovement | None:
        if quantity <= 0:
            raise ValidationError("quantity", "must be positive", quantity)

        cursor = await self._conn.execute(
            """
            UPDATE stock_balances
            SET quantity = quantity - ?, updated_at = ?
            WHERE product_id = ? AND warehouse_id = ? AND location_key = ?
              AND quantity >= ?
            """,
            (
                quantity,
                utcnow().isoformat(),
                product_id,
                warehouse_id,
                location_key(location_id),
                quantity,
            ),
        )
        if cursor.rowcount != 1:
            logger.debug(
                "conditional_decrement_refused",
                product_id=product_id,
                warehouse_id=warehouse_id,
                location_id=location_id,
                quantity=quantity,
            )
            return None

        return await self._record_movement(
            product_id,
            warehouse_id,
            location_id,
            -quantity,
            movement_type,
            source_doc_type,
            source_doc_id,
            actor_id,
            route,
        )

    async def _record_movement(
        self,
        product_id: str,
        warehouse_id: str,
        location_id: str | None,
        change: int,
        movement_type: MovementType,
        source_doc_type: DocumentType,
        source_doc_id: str,
        actor_id: str,
        route: MovementRoute | None,
    ) -> StockMovement:
        route = route or MovementRoute()
        movement = StockMovement(
            product_id=product_id,
            warehouse_id=warehouse_id,
            location_id=location_id,
            change=change,
            movement_type=movement_type,
            source_doc_type=source_doc_type,
            source_doc_id=source_doc_id,
            warehouse_from_id=route.warehouse_from_id,
            location_from_id=route.location_from_id,
            warehouse_to_id=route.warehouse_to_id,
            location_to_id=route.location_to_id,
            actor_id=actor_id,
        )
        cursor = await self._conn.execute(
            """
            INSERT INTO stock_movements (
                product_id, warehouse_id, location_id, change, movement_type,
                source_doc_type, source_doc_id, warehouse_from_id, location_from_id,
                warehouse_to_id, location_to_id, actor_id, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                movement.product_id,
                movement.warehouse_id,
                movement.location_id,
                movement.change,
                movement.movement_type.value,
                movement.source_doc_type.value,
                movement.source_doc_id,
                movement.warehouse_from_id,
                movement.location_from_id,
                movement.warehouse_to_id,
                movement.location_to_id,
                movement.actor_id,
                movement.created_at.isoformat(),
            ),
        )
        movement.id = cursor.lastrowid
        logger.debug(
            "stock_movement_recorded",
            movement_id=movement.id,
            type=movement.movement_type.value,
            product_id=product_id,
            warehouse_id=warehouse_id,
            change=change,
        )
        return movement

    async def query_balance(
        self, product_id: str, warehouse_id: str, location_id: str | None = None
    ) -> int:
        cursor = await self._conn.execute(
            """
            SELECT quantity FROM stock_balances
            WHERE product_id = ? AND warehouse_id = ? AND location_key = ?
            """,
            (product_id, warehouse_id, location_key(location_id)),
        )
        row = await cursor.fetchone()
        return row["quantity"] if row else 0

    async def query_availability(
        self,
        product_id: str,
        warehouse_id: str,
        required_qty: int,
        location_id: str | None = None,
        fallback_to_warehouse: bool = False,
    ) -> Availability:
        quantity = await self.query_balance(product_id, warehouse_id, location_id)
        if quantity < required_qty and fallback_to_warehouse:
            quantity = await self.warehouse_total(product_id, warehouse_id)
        return Availability(available=quantity >= required_qty, available_quantity=quantity)

    async def warehouse_total(self, product_id: str, warehouse_id: str) -> int:
        cursor = await self._conn.execute(
            """
            SELECT COALESCE(SUM(quantity), 0) AS total FROM stock_balances
            WHERE product_id = ? AND warehouse_id = ?
            """,
            (product_id, warehouse_id),
        )
        row = await cursor.fetchone()
        return row["total"]

    async def list_balances(
        self, product_id: str, warehouse_id: str | None = None
    ) -> list[StockBalance]:
        query = "SELECT * FROM stock_balances WHERE product_id = ?"
        params: list[Any] = [product_id]
        if warehouse_id:
            query += " AND warehouse_id = ?"
            params.append(warehouse_id)
        cursor = await self._conn.execute(
            f"{query} ORDER BY warehouse_id, quantity DESC, location_key", params
        )
        rows = await cursor.fetchall()
        return [self._row_to_balance(row) for row in rows]

    def _movement_where(self, filters: MovementFilter) -> tuple[str, list[Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if filters.product_id:
            clauses.append("product_id = ?")
            params.append(filters.product_id)
        if filters.warehouse_id:
            clauses.append("(warehouse_id = ? OR warehouse_from_id = ? OR warehouse_to_id = ?)")
            params.extend([filters.warehouse_id] * 3)
        if filters.movement_type:
            clauses.append("movement_type = ?")
            params.append(filters.movement_type.value)
        if filters.start:
            clauses.append("created_at >= ?")
            params.append(filters.start.isoformat())
        if filters.end:
            clauses.append("created_at <= ?")
            params.append(filters.end.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    async def list_movements(self, filters: MovementFilter) -> list[StockMovement]:
        where, params = self._movement_where(filters)
        cursor = await self._conn.execute(
            f"SELECT * FROM stock_movements {where} ORDER BY id DESC LIMIT ? OFFSET ?",
            [*params, filters.limit, filters.offset],
        )
        rows = await cursor.fetchall()
        return [self._row_to_movement(row) for row in rows]

    async def count_movements(self, filters: MovementFilter) -> int:
        where, params = self._movement_where(filters)
        cursor = await self._conn.execute(
            f"SELECT COUNT(*) FROM stock_movements {where}", params
        )
        row = await cursor.fetchone()
        return row[0]

    async def stock_by_warehouse(
        self, product_id: str, exclude_warehouse_id: str | None = None
    ) -> list[WarehouseStock]:
        query = """
            SELECT b.warehouse_id, w.code, w.name, SUM(b.quantity) AS total
            FROM stock_balances b
            LEFT JOIN warehouses w ON w.id = b.warehouse_id
            WHERE b.product_id = ?
        """
        params: list[Any] = [product_id]
        if exclude_warehouse_id:
            query += " AND b.warehouse_id <> ?"
            params.append(exclude_warehouse_id)
        query += """
            GROUP BY b.warehouse_id
            HAVING SUM(b.quantity) > 0
            ORDER BY total DESC, b.warehouse_id
        """
        cursor = await self._conn.execute(query, params)
        rows = await cursor.fetchall()
        return [
            WarehouseStock(
                warehouse_id=row["warehouse_id"],
                warehouse_code=row["code"],
                warehouse_name=row["name"],
                total_quantity=row["total"],
            )
            for row in rows
        ]

    async def product_totals(self, warehouse_id: str | None = None) -> dict[str, int]:
        if warehouse_id:
            cursor = await self._conn.execute(
                """
                SELECT product_id, SUM(quantity) AS total FROM stock_balances
                WHERE warehouse_id = ? GROUP BY product_id
                """,
                (warehouse_id,),
            )
        else:
            cursor = await self._conn.execute(
                "SELECT product_id, SUM(quantity) AS total FROM stock_balances GROUP BY product_id"
            )
        rows = await cursor.fetchall()
        return {row["product_id"]: row["total"] for row in rows}

    async def find_discrepancies(self) -> list[BalanceDiscrepancy]:
        cursor = await self._conn.execute(
            f"""
            SELECT b.product_id, b.warehouse_id, b.location_id,
                   b.quantity AS balance, COALESCE(m.total, 0) AS movement_total
            FROM stock_balances b
            LEFT JOIN ({_MOVEMENT_TOTALS}) m
              ON m.product_id = b.product_id
             AND m.warehouse_id = b.warehouse_id
             AND m.location_key = b.location_key
            WHERE b.quantity <> COALESCE(m.total, 0)
            UNION ALL
            SELECT m.product_id, m.warehouse_id, NULLIF(m.location_key, ''),
                   0, m.total
            FROM ({_MOVEMENT_TOTALS}) m
            LEFT JOIN stock_balances b
              ON b.product_id = m.product_id
             AND b.warehouse_id = m.warehouse_id
             AND b.location_key = m.location_key
            WHERE b.id IS NULL AND m.total <> 0
            """
        )
        rows = await cursor.fetchall()
        return [
            BalanceDiscrepancy(
                product_id=row[0],
                warehouse_id=row[1],
                location_id=row[2],
                balance=row[3],
                movement_total=row[4],
            )
            for row in rows
        ]

    def _row_to_balance(self, row: aiosqlite.Row) -> StockBalance:
        return StockBalance(
            id=row["id"],
            product_id=row["product_id"],
            warehouse_id=row["warehouse_id"],
            location_id=row["location_id"],
            quantity=row["quantity"],
            updated_at=parse_datetime(row["updated_at"]),
        )

    def _row_to_movement(self, row: aiosqlite.Row) -> StockMovement:
        return StockMovement(
            id=row["id"],
            product_id=row["product_id"],
            warehouse_id=row["warehouse_id"],
            location_id=row["location_id"],
            change=row["change"],
            movement_type=MovementType(row["movement_type"]),
            source_doc_type=DocumentType(row["source_doc_type"]),
            source_doc_id=row["source_doc_id"],
            warehouse_from_id=row["warehouse_from_id"],
            location_from_id=row["location_from_id"],
            warehouse_to_id=row["warehouse_to_id"],
            location_to_id=row["location_to_id"],
            actor_id=row["actor_id"],
            created_at=parse_datetime(row["created_at"]),
        )
