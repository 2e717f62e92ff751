"""SQLite implementation of delivery storage."""

from typing import Any

import aiosqlite

from stockflow.config import get_logger
from stockflow.core.entities.delivery import Delivery, DeliveryLine, DeliveryStatus
from stockflow.core.interfaces.document_store import IDeliveryStore
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
    {"approved_by", "approved_at", "validated_by", "validated_at", "notes"}
)
EDITABLE_COLUMNS = frozenset(
    {"customer_name", "delivery_address", "reference", "notes", "schedule_date"}
)


class SQLiteDeliveryStore(IDeliveryStore):
    """Deliveries and their lines on the unit of work's connection."""

    def __init__(self, conn: aiosqlite.Connection):
        self._conn = conn

    async def create(self, delivery: Delivery) -> Delivery:
        await self._conn.execute(
            """
            INSERT INTO deliveries (
                id, number, warehouse_id, target_warehouse_id, requisition_id,
                customer_name, delivery_address, reference, notes, schedule_date,
                status, version, created_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                delivery.id,
                delivery.number,
                delivery.warehouse_id,
                delivery.target_warehouse_id,
                delivery.requisition_id,
                delivery.customer_name,
                delivery.delivery_address,
                delivery.reference,
                delivery.notes,
                to_db(delivery.schedule_date),
                delivery.status.value,
                delivery.version,
                delivery.created_by,
                to_db(delivery.created_at),
                to_db(delivery.updated_at),
            ),
        )
        await self._insert_lines(delivery)
        logger.debug("delivery_stored", delivery_id=delivery.id, number=delivery.number)
        return delivery

    async def get(self, delivery_id: str) -> Delivery | None:
        cursor = await self._conn.execute(
            "SELECT * FROM deliveries WHERE id = ?", (delivery_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_delivery(row)

    async def get_by_requisition(self, requisition_id: str) -> Delivery | None:
        cursor = await self._conn.execute(
            "SELECT * FROM deliveries WHERE requisition_id = ?", (requisition_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return await self._row_to_delivery(row)

    async def count_for_warehouse(self, warehouse_id: str) -> int:
        cursor = await self._conn.execute(
            "SELECT COUNT(*) FROM deliveries WHERE warehouse_id = ?", (warehouse_id,)
        )
        row = await cursor.fetchone()
        return row[0]

    async def list_deliveries(
        self,
        warehouse_ids: set[str] | None = None,
        status: DeliveryStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[Delivery]:
        clauses: list[str] = []
        params: list[Any] = []
        if warehouse_ids is not None:
            if not warehouse_ids:
                return []
            ids = sorted(warehouse_ids)
            clauses.append(
                f"(warehouse_id IN ({in_clause(ids)}) OR target_warehouse_id IN ({in_clause(ids)}))"
            )
            params.extend(ids + ids)
        if status:
            clauses.append("status = ?")
            params.append(status.value)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        cursor = await self._conn.execute(
            f"SELECT * FROM deliveries {where} ORDER BY created_at DESC, number DESC LIMIT ? OFFSET ?",
            [*params, limit, offset],
        )
        rows = await cursor.fetchall()
        return [await self._row_to_delivery(row) for row in rows]

    async def transition(
        self, delivery: Delivery, new_status: DeliveryStatus, **changes: Any
    ) -> bool:
        return await conditional_transition(
            self._conn, "deliveries", delivery, new_status, TRANSITION_COLUMNS, changes
        )

    async def update(
        self, delivery: Delivery, lines: list[DeliveryLine] | None = None, **changes: Any
    ) -> bool:
        if not await conditional_update(
            self._conn, "deliveries", delivery, EDITABLE_COLUMNS, changes
        ):
            return False
        if lines is not None:
            await self._conn.execute(
                "DELETE FROM delivery_lines WHERE delivery_id = ?", (delivery.id,)
            )
            delivery.lines = lines
            await self._insert_lines(delivery)
        logger.debug("delivery_updated", delivery_id=delivery.id, version=delivery.version)
        return True

    async def _insert_lines(self, delivery: Delivery) -> None:
        await self._conn.executemany(
            """
            INSERT INTO delivery_lines (delivery_id, line_no, product_id, from_location_id, quantity)
            VALUES (?, ?, ?, ?, ?)
            """,
            [
                (delivery.id, line_no, line.product_id, line.from_location_id, line.quantity)
                for line_no, line in enumerate(delivery.lines, start=1)
            ],
        )

    async def _row_to_delivery(self, row: aiosqlite.Row) -> Delivery:
        cursor = await self._conn.execute(
            "SELECT * FROM delivery_lines WHERE delivery_id = ? ORDER BY line_no",
            (row["id"],),
        )
        lines = [
            DeliveryLine(
                product_id=line["product_id"],
                from_location_id=line["from_location_id"],
                quantity=line["quantity"],
            )
            for line in await cursor.fetchall()
        ]
        return Delivery(
            id=row["id"],
            number=row["number"],
            warehouse_id=row["warehouse_id"],
            target_warehouse_id=row["target_warehouse_id"],
            requisition_id=row["requisition_id"],
            customer_name=row["customer_name"],
            delivery_address=row["delivery_address"],
            reference=row["reference"],
            notes=row["notes"],
            schedule_date=parse_date(row["schedule_date"]),
            lines=lines,
            status=DeliveryStatus(row["status"]),
            version=row["version"],
            created_by=row["created_by"],
            approved_by=row["approved_by"],
            approved_at=parse_datetime(row["approved_at"]),
            validated_by=row["validated_by"],
            validated_at=parse_datetime(row["validated_at"]),
            created_at=parse_datetime(row["created_at"]),
            updated_at=parse_datetime(row["updated_at"]),
        )
