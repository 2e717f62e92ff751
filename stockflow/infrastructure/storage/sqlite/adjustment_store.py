"""SQLite implementation of adjustment storage."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.adjustment import Adjustment, AdjustmentReason
from stockflow.core.interfaces.document_store import IAdjustmentStore
from stockflow.infrastructure.storage.sqlite.rows import in_clause, parse_datetime, to_db

logger = get_logger(__name__)


class SQLiteAdjustmentStore(IAdjustmentStore):
    """Adjustments are written once and never transition."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def create(self, adjustment: Adjustment) -> Adjustment:
        await self._conn.execute(
            """
            INSERT INTO adjustments (
                id, number, product_id, warehouse_id, location_id, old_quantity,
                new_quantity, difference, reason, remarks, movement_id,
                created_by, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                adjustment.id,
                adjustment.number,
                adjustment.product_id,
                adjustment.warehouse_id,
                adjustment.location_id,
                adjustment.old_quantity,
                adjustment.new_quantity,
                adjustment.difference,
                adjustment.reason.value,
                adjustment.remarks,
                adjustment.movement_id,
                adjustment.created_by,
                to_db(adjustment.created_at),
            ),
        )
        logger.debug("adjustment_stored", adjustment_id=adjustment.id, number=adjustment.number)
        return adjustment

    async def get(self, adjustment_id: str) -> Adjustment | None:
        cursor = await self._conn.execute(
            "SELECT * FROM adjustments WHERE id = ?", (adjustment_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_adjustment(row)

    async def count(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM adjustments")
        row = await cursor.fetchone()
        return row[0]

    async def list_adjustments(
        self,
        warehouse_ids: set[str] | None = None,
        product_id: str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Adjustment]:
        clauses: list[str] = []
        params: list[Any] = []
        if warehouse_ids is not None:
            if not warehouse_ids:
                return []
            clauses.append(f"warehouse_id IN ({in_clause(warehouse_ids)})")
            params.extend(sorted(warehouse_ids))
        if product_id:
            clauses.append("product_id = ?")
            params.append(product_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM adjustments {where} ORDER BY created_at DESC, number DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [self._row_to_adjustment(row) for row in rows]

    def _row_to_adjustment(self, row: aiosqlite.Row) -> Adjustment:
        return Adjustment(
            id=row["id"],
            number=row["number"],
            product_id=row["product_id"],
            warehouse_id=row["warehouse_id"],
            location_id=row["location_id"],
            old_quantity=row["old_quantity"],
            new_quantity=row["new_quantity"],
            difference=row["difference"],
            reason=AdjustmentReason(row["reason"]),
            remarks=row["remarks"],
            movement_id=row["movement_id"],
            created_by=row["created_by"],
            created_at=parse_datetime(row["created_at"]),
        )
