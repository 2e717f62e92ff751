"""SQLite implementation of requisition storage."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.requisition import (
    Requisition,
    RequisitionLine,
    RequisitionStatus,
)
from stockflow.core.interfaces.document_store import IRequisitionStore
from stockflow.infrastructure.storage.sqlite.rows import (
    conditional_transition,
    conditional_update,
    in_clause,
    parse_date,
    parse_datetime,
    to_db,
)

logger = get_logger(__name__)

TRANSITION_COLUMNS = frozenset(
    {
        "submitted_at",
        "final_source_warehouse_id",
        "approved_by",
        "approved_at",
        "rejected_by",
        "rejected_reason",
        "rejected_at",
    }
)
EDITABLE_COLUMNS = frozenset({"suggested_source_warehouse_id", "notes"})


class SQLiteRequisitionStore(IRequisitionStore):
    """Requisitions and their lines on the unit of work's connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def create(self, requisition: Requisition) -> Requisition:
        await self._conn.execute(
            """
            INSERT INTO requisitions (
                id, number, requesting_warehouse_id, suggested_source_warehouse_id,
                final_source_warehouse_id, notes, status, version, created_by,
                submitted_at, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                requisition.id,
                requisition.number,
                requisition.requesting_warehouse_id,
                requisition.suggested_source_warehouse_id,
                requisition.final_source_warehouse_id,
                requisition.notes,
                requisition.status.value,
                requisition.version,
                requisition.created_by,
                to_db(requisition.submitted_at),
                to_db(requisition.created_at),
                to_db(requisition.updated_at),
            ),
        )
        await self._insert_lines(requisition)
        logger.debug(
            "requisition_stored", requisition_id=requisition.id, number=requisition.number
        )
        return requisition

    async def get(self, requisition_id: str) -> Requisition | None:
        cursor = await self._conn.execute(
            "SELECT * FROM requisitions WHERE id = ?", (requisition_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_requisition(row)

    async def count(self) -> int:
        cursor = await self._conn.execute("SELECT COUNT(*) FROM requisitions")
        row = await cursor.fetchone()
        return row[0]

    async def list_requisitions(
        self,
        warehouse_ids: set[str] | None = None,
        status: RequisitionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Requisition]:
        clauses: list[str] = []
        params: list[Any] = []
        if warehouse_ids is not None:
            if not warehouse_ids:
                return []
            ids = sorted(warehouse_ids)
            marks = in_clause(ids)
            clauses.append(
                f"(requesting_warehouse_id IN ({marks}) "
                f"OR suggested_source_warehouse_id IN ({marks}) "
                f"OR final_source_warehouse_id IN ({marks}))"
            )
            params.extend(ids * 3)
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM requisitions {where} ORDER BY created_at DESC, number DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [await self._row_to_requisition(row) for row in rows]

    async def transition(
        self, requisition: Requisition, new_status: RequisitionStatus, **changes: Any
    ) -> bool:
        return await conditional_transition(
            self._conn, "requisitions", requisition, new_status, TRANSITION_COLUMNS, changes
        )

    async def update(
        self,
        requisition: Requisition,
        lines: list[RequisitionLine] | None = None,
        **changes: Any,
    ) -> bool:
        if not await conditional_update(
            self._conn, "requisitions", requisition, EDITABLE_COLUMNS, changes
        ):
            return False
        if lines is not None:
            await self._conn.execute(
                "DELETE FROM requisition_lines WHERE requisition_id = ?", (requisition.id,)
            )
            requisition.lines = lines
            await self._insert_lines(requisition)
        logger.debug(
            "requisition_updated", requisition_id=requisition.id, version=requisition.version
        )
        return True

    async def _insert_lines(self, requisition: Requisition) -> None:
        await self._conn.executemany(
            """
            INSERT INTO requisition_lines (
                requisition_id, line_no, product_id, quantity_requested, needed_by_date
            ) VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    requisition.id,
                    line_no,
                    line.product_id,
                    line.quantity_requested,
                    to_db(line.needed_by_date),
                )
                for line_no, line in enumerate(requisition.lines, start=1)
            ],
        )

    async def _row_to_requisition(self, row: aiosqlite.Row) -> Requisition:
        cursor = await self._conn.execute(
            "SELECT * FROM requisition_lines WHERE requisition_id = ? ORDER BY line_no",
            (row["id"],),
        )
        lines = [
            RequisitionLine(
                product_id=line["product_id"],
                quantity_requested=line["quantity_requested"],
                needed_by_date=parse_date(line["needed_by_date"]),
            )
            for line in await cursor.fetchall()
        ]
        return Requisition(
            id=row["id"],
            number=row["number"],
            requesting_warehouse_id=row["requesting_warehouse_id"],
            suggested_source_warehouse_id=row["suggested_source_warehouse_id"],
            final_source_warehouse_id=row["final_source_warehouse_id"],
            notes=row["notes"],
            lines=lines,
            status=RequisitionStatus(row["status"]),
            version=row["version"],
            created_by=row["created_by"],
            submitted_at=parse_datetime(row["submitted_at"]),
            approved_by=row["approved_by"],
            approved_at=parse_datetime(row["approved_at"]),
            rejected_by=row["rejected_by"],
            rejected_reason=row["rejected_reason"],
            rejected_at=parse_datetime(row["rejected_at"]),
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )
