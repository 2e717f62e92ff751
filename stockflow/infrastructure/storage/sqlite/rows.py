"""Value conversion between entities and SQLite columns."""

from datetime import date, datetime
from enum import Enum
from typing import Any

import aiosqlite

from stockflow.core.entities.clock import utcnow


def to_db(value: Any) -> Any:
    """Convert an entity value to something sqlite3 can bind."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value)


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    return date.fromisoformat(value)


def location_key(location_id: str | None) -> str:
    """Unique-index key for a balance; unlocated stock maps to ''."""
    return location_id or ""


def in_clause(values: set[str] | list[str]) -> str:
    return ", ".join("?" for _ in values)


async def _guarded_update(
    conn: aiosqlite.Connection, table: str, document: Any, values: dict[str, Any]
) -> datetime | None:
    """UPDATE ``values`` if the row still has the loaded status and version.

    Returns the new ``updated_at``, or None when another writer got there first.
    """
    now = utcnow()
    assignments = [f"{column} = ?" for column in values]
    assignments += ["version = version + 1", "updated_at = ?"]
    params = [to_db(value) for value in values.values()]
    params += [now.isoformat(), document.id, document.status.value, document.version]

    cursor = await conn.execute(
        f"UPDATE {table} SET {', '.join(assignments)} "
        "WHERE id = ? AND status = ? AND version = ?",
        params,
    )
    return now if cursor.rowcount == 1 else None


def _apply(document: Any, now: datetime, changes: dict[str, Any]) -> None:
    document.version += 1
    document.updated_at = now
    for column, value in changes.items():
        setattr(document, column, value)


def _check_columns(table: str, allowed_columns: frozenset[str], changes: dict[str, Any]) -> None:
    unknown = set(changes) - allowed_columns
    if unknown:
        raise ValueError(f"Cannot set {sorted(unknown)} on {table}")


async def conditional_transition(
    conn: aiosqlite.Connection,
    table: str,
    document: Any,
    new_status: Enum,
    allowed_columns: frozenset[str],
    changes: dict[str, Any],
) -> bool:
    """
    Move ``document`` to ``new_status`` only if the row still has the status
    and version the caller loaded. On success the entity is updated in place
    (status, version + 1, updated_at and ``changes``).
    """
    _check_columns(table, allowed_columns, changes)
    now = await _guarded_update(conn, table, document, {"status": new_status, **changes})
    if now is None:
        return False
    document.status = new_status
    _apply(document, now, changes)
    return True


async def conditional_update(
    conn: aiosqlite.Connection,
    table: str,
    document: Any,
    allowed_columns: frozenset[str],
    changes: dict[str, Any],
) -> bool:
    """Edit header columns in place, keeping the status; same guard as a transition."""
    _check_columns(table, allowed_columns, changes)
    now = await _guarded_update(conn, table, document, changes)
    if now is None:
        return False
    _apply(document, now, changes)
    return True
