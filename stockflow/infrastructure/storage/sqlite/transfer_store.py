"""SQLite implementation of transfer storage."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.transfer import Transfer, TransferLine, TransferStatus
from stockflow.core.interfaces.document_store import ITransferStore
from stockflow.infrastructure.storage.sqlite.rows import (
    conditional_transition,
    conditional_update,
    in_clause,
    parse_datetime,
    to_db,
)

logger = get_logger(__name__)

TRANSITION_COLUMNS = frozenset(
    {"dispatched_by", "dispatched_at", "received_by", "received_at", "notes"}
)
EDITABLE_COLUMNS = frozenset({"notes"})


class SQLiteTransferStore(ITransferStore):
    """Transfers and their lines on the unit of work's connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def create(self, transfer: Transfer) -> Transfer:
        await self._conn.execute(
            """
            INSERT INTO transfers (
                id, number, source_warehouse_id, target_warehouse_id,
                requisition_id, delivery_id, notes, status, version,
                created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transfer.id,
                transfer.number,
                transfer.source_warehouse_id,
                transfer.target_warehouse_id,
                transfer.requisition_id,
                transfer.delivery_id,
                transfer.notes,
                transfer.status.value,
                transfer.version,
                transfer.created_by,
                to_db(transfer.created_at),
                to_db(transfer.updated_at),
            ),
        )
        await self._insert_lines(transfer)
        logger.debug("transfer_stored", transfer_id=transfer.id, number=transfer.number)
        return transfer

    async def get(self, transfer_id: str) -> Transfer | None:
        cursor = await self._conn.execute(
            "SELECT * FROM transfers WHERE id = ?", (transfer_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_transfer(row)

    async def get_by_delivery(self, delivery_id: str) -> Transfer | None:
        cursor = await self._conn.execute(
            "SELECT * FROM transfers WHERE delivery_id = ?", (delivery_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_transfer(row)

    async def count(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM transfers")
        row = await cursor.fetchone()
        return row[0]

    async def list_transfers(
        self,
        warehouse_ids: set[str] | None = None,
        status: TransferStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Transfer]:
        clauses: list[str] = []
        params: list[Any] = []
        if warehouse_ids is not None:
            if not warehouse_ids:
                return []
            ids = sorted(warehouse_ids)
            clauses.append(
                f"(source_warehouse_id IN ({in_clause(ids)}) "
                f"OR target_warehouse_id IN ({in_clause(ids)}))"
            )
            params.extend(ids + ids)
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM transfers {where} ORDER BY created_at DESC, number DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [await self._row_to_transfer(row) for row in rows]

    async def transition(
        self, transfer: Transfer, new_status: TransferStatus, **changes: Any
    ) -> bool:
        return await conditional_transition(
            self._conn, "transfers", transfer, new_status, TRANSITION_COLUMNS, changes
        )

    async def update(
        self, transfer: Transfer, lines: list[TransferLine] | None = None, **changes: Any
    ) -> bool:
        if not await conditional_update(
            self._conn, "transfers", transfer, EDITABLE_COLUMNS, changes
        ):
            return False
        if lines is not None:
            await self._conn.execute(
                "DELETE FROM transfer_lines WHERE transfer_id = ?", (transfer.id,)
            )
            transfer.lines = lines
            await self._insert_lines(transfer)
        logger.debug("transfer_updated", transfer_id=transfer.id, version=transfer.version)
        return True

    async def _insert_lines(self, transfer: Transfer) -> None:
        await self._conn.executemany(
            """
            INSERT INTO transfer_lines (
                transfer_id, line_no, product_id, source_location_id,
                target_location_id, quantity
            ) VALUES (?, ?, ?, ?, ?, ?)
            """,
            [
                (
                    transfer.id,
                    line_no,
                    line.product_id,
                    line.source_location_id,
                    line.target_location_id,
                    line.quantity,
                )
                for line_no, line in enumerate(transfer.lines, start=1)
            ],
        )

    async def _row_to_transfer(self, row: aiosqlite.Row) -> Transfer:
        cursor = await self._conn.execute(
            "SELECT * FROM transfer_lines WHERE transfer_id = ? ORDER BY line_no",
            (row["id"],),
        )
        lines = [
            TransferLine(
                product_id=line["product_id"],
                source_location_id=line["source_location_id"],
                target_location_id=line["target_location_id"],
                quantity=line["quantity"],
            )
            for line in await cursor.fetchall()
        ]
        return Transfer(
            id=row["id"],
            number=row["number"],
            source_warehouse_id=row["source_warehouse_id"],
            target_warehouse_id=row["target_warehouse_id"],
            requisition_id=row["requisition_id"],
            delivery_id=row["delivery_id"],
            notes=row["notes"],
            lines=lines,
            status=TransferStatus(row["status"]),
            version=row["version"],
            created_by=row["created_by"],
            dispatched_by=row["dispatched_by"],
            dispatched_at=parse_datetime(row["dispatched_at"]),
            received_by=row["received_by"],
            received_at=parse_datetime(row["received_at"]),
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )
