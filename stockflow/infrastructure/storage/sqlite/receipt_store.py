"""SQLite implementation of receipt storage."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.receipt import Receipt, ReceiptLine, ReceiptStatus
from stockflow.core.interfaces.document_store import IReceiptStore
from stockflow.infrastructure.storage.sqlite.rows import (
    conditional_transition,
    conditional_update,
    in_clause,
    parse_datetime,
    to_db,
)

logger = get_logger(__name__)

TRANSITION_COLUMNS = frozenset({"validated_by", "validated_at", "notes"})
EDITABLE_COLUMNS = frozenset({"supplier_name", "reference", "notes"})


class SQLiteReceiptStore(IReceiptStore):
    """Receipts and their lines on the unit of work's connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def create(self, receipt: Receipt) -> Receipt:
        await self._conn.execute(
            """
            INSERT INTO receipts (
                id, number, warehouse_id, supplier_name, reference, notes,
                status, version, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                receipt.id,
                receipt.number,
                receipt.warehouse_id,
                receipt.supplier_name,
                receipt.reference,
                receipt.notes,
                receipt.status.value,
                receipt.version,
                receipt.created_by,
                to_db(receipt.created_at),
                to_db(receipt.updated_at),
            ),
        )
        await self._insert_lines(receipt)
        logger.debug("receipt_stored", receipt_id=receipt.id, number=receipt.number)
        return receipt

    async def get(self, receipt_id: str) -> Receipt | None:
        cursor = await self._conn.execute("SELECT * FROM receipts WHERE id = ?", (receipt_id,))
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_receipt(row)

    async def count_for_warehouse(self, warehouse_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM receipts WHERE warehouse_id = ?", (warehouse_id,)
        )
        row = await cursor.fetchone()
        return row[0]

    async def list_receipts(
        self,
        warehouse_ids: set[str] | None = None,
        status: ReceiptStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Receipt]:
        clauses: list[str] = []
        params: list[Any] = []
        if warehouse_ids is not None:
            if not warehouse_ids:
                return []
            clauses.append(f"warehouse_id IN ({in_clause(warehouse_ids)})")
            params.extend(sorted(warehouse_ids))
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM receipts {where} ORDER BY created_at DESC, number DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [await self._row_to_receipt(row) for row in rows]

    async def transition(
        self, receipt: Receipt, new_status: ReceiptStatus, **changes: Any
    ) -> bool:
        return await conditional_transition(
            self._conn, "receipts", receipt, new_status, TRANSITION_COLUMNS, changes
        )

    async def update(
        self, receipt: Receipt, lines: list[ReceiptLine] | None = None, **changes: Any
    ) -> bool:
        if not await conditional_update(
            self._conn, "receipts", receipt, EDITABLE_COLUMNS, changes
        ):
            return False
        if lines is not None:
            await self._conn.execute(
                "DELETE FROM receipt_lines WHERE receipt_id = ?", (receipt.id,)
            )
            receipt.lines = lines
            await self._insert_lines(receipt)
        logger.debug("receipt_updated", receipt_id=receipt.id, version=receipt.version)
        return True

    async def _insert_lines(self, receipt: Receipt) -> None:
        await self._conn.executemany(
            """
            INSERT INTO receipt_lines (receipt_id, line_no, product_id, location_id, quantity)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (receipt.id, line_no, line.product_id, line.location_id, line.quantity)
                for line_no, line in enumerate(receipt.lines, start=1)
            ],
        )

    async def _row_to_receipt(self, row: aiosqlite.Row) -> Receipt:
        cursor = await self._conn.execute(
            "SELECT * FROM receipt_lines WHERE receipt_id = ? ORDER BY line_no",
            (row["id"],),
        )
        lines = [
            ReceiptLine(
                product_id=line["product_id"],
                location_id=line["location_id"],
                quantity=line["quantity"],
            )
            for line in await cursor.fetchall()
        ]
        return Receipt(
            id=row["id"],
            number=row["number"],
            warehouse_id=row["warehouse_id"],
            supplier_name=row["supplier_name"],
            reference=row["reference"],
            notes=row["notes"],
            lines=lines,
            status=ReceiptStatus(row["status"]),
            version=row["version"],
            created_by=row["created_by"],
            validated_by=row["validated_by"],
            validated_at=parse_datetime(row["validated_at"]),
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )
