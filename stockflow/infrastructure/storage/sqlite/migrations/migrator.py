"""
Schema migrator for the stockflow database.

Migrations are plain SQL files named ``vNNN_<name>.sql`` in this package.
Each applied file is recorded in ``schema_migrations`` with a checksum, so a
file edited after it shipped is refused instead of silently re-run. An
existing database is copied aside before migrating and restored if the run
blows up.
"""

import hashlib
import re
import shutil
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from stockflow.config import get_logger, get_settings

logger = get_logger(__name__)

MIGRATIONS_DIR = Path(__file__).parent
MIGRATION_FILE = re.compile(r"v(\d+)_(.+)\.sql")

REQUIRED_TABLES = [
    "warehouses",
    "locations",
    "products",
    "stock_balances",
    "stock_movements",
    "receipts",
    "receipt_lines",
    "deliveries",
    "delivery_lines",
    "transfers",
    "transfer_lines",
    "requisitions",
    "requisition_lines",
    "adjustments",
    "schema_migrations",
]

# Guards that keep the movement log append-only and SKUs stable
REQUIRED_TRIGGERS = [
    "trg_stock_movements_no_update",
    "trg_stock_movements_no_delete",
    "trg_products_sku_locked",
]

# One delivery per requisition, one transfer per delivery
REQUIRED_UNIQUE_INDEXES = [
    "idx_deliveries_requisition",
    "idx_transfers_delivery",
]


@dataclass
class MigrationInfo:
    """A migration file on disk."""

    version: str
    name: str
    path: Path
    checksum: str

    @classmethod
    def from_file(cls, path: Path) -> "MigrationInfo":
        match = MIGRATION_FILE.fullmatch(path.name)
        if not match:
            raise ValueError(f"Invalid migration filename: {path.name}")
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        return cls(version=match.group(1), name=match.group(2), path=path, checksum=digest[:16])


@dataclass
class MigrationResult:
    """Outcome of applying (or refusing) one migration."""

    version: str
    name: str
    success: bool
    execution_time_ms: int
    error: str | None = None


def discover_migrations(directory: Path = MIGRATIONS_DIR) -> list[MigrationInfo]:
    """Migration files in version order; misnamed files are skipped."""
    migrations = []
    for path in sorted(directory.glob("v*.sql")):
        try:
            migrations.append(MigrationInfo.from_file(path))
        except ValueError as e:
            logger.warning("skipping_invalid_migration", path=str(path), error=str(e))
    return migrations


async def get_applied_migrations(conn: aiosqlite.Connection) -> dict[str, str]:
    """Applied versions mapped to their recorded checksums ({} on a blank database)."""
    try:
        cursor = await conn.execute(
            "SELECT version, checksum FROM schema_migrations ORDER BY version"
        )
    except aiosqlite.OperationalError:
        return {}
    return {version: checksum for version, checksum in await cursor.fetchall()}


async def get_current_version(conn: aiosqlite.Connection) -> str | None:
    applied = await get_applied_migrations(conn)
    return max(applied) if applied else None


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def apply_migration(conn: aiosqlite.Connection, migration: MigrationInfo) -> MigrationResult:
    """Run one migration script and record it."""
    logger.info("applying_migration", version=migration.version, name=migration.name)
    started = time.perf_counter()

    try:
        await conn.executescript(migration.path.read_text(encoding="utf-8"))
        await conn.execute(
            """
            INSERT OR REPLACE INTO schema_migrations (version, name, checksum, execution_time_ms)
            VALUES (?, ?, ?, ?)
            """,
            (migration.version, migration.name, migration.checksum, _elapsed_ms(started)),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        await conn.rollback()
        logger.error("migration_failed", version=migration.version, error=str(e))
        return MigrationResult(
            migration.version, migration.name, False, _elapsed_ms(started), str(e)
        )

    elapsed = _elapsed_ms(started)
    logger.info("migration_applied", version=migration.version, execution_time_ms=elapsed)
    return MigrationResult(migration.version, migration.name, True, elapsed)


async def _foreign_key_violations(conn: aiosqlite.Connection) -> int:
    cursor = await conn.execute("PRAGMA foreign_key_check")
    return len(await cursor.fetchall())


def create_backup(db_path: Path) -> Path:
    """Copy the database next to itself with a timestamped suffix."""
    stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    backup_path = db_path.with_suffix(f".backup_{stamp}.db")
    shutil.copy2(db_path, backup_path)
    logger.info("database_backup_created", backup_path=str(backup_path))
    return backup_path


def restore_backup(db_path: Path, backup_path: Path) -> None:
    shutil.copy2(backup_path, db_path)
    logger.info("database_restored_from_backup", backup_path=str(backup_path))


async def _migrate(conn: aiosqlite.Connection) -> list[MigrationResult]:
    """Apply pending migrations in order, stopping at the first failure."""
    results: list[MigrationResult] = []
    applied = await get_applied_migrations(conn)

    for migration in discover_migrations():
        recorded = applied.get(migration.version)
        if recorded == migration.checksum:
            continue
        if recorded is not None:
            logger.error(
                "migration_checksum_changed",
                version=migration.version,
                recorded=recorded,
                found=migration.checksum,
            )
            results.append(
                MigrationResult(
                    migration.version,
                    migration.name,
                    False,
                    0,
                    f"checksum changed since it was applied ({recorded} != {migration.checksum})",
                )
            )
            break

        result = await apply_migration(conn, migration)
        results.append(result)
        if not result.success:
            break

        violations = await _foreign_key_violations(conn)
        if violations:
            result.success = False
            result.error = f"{violations} foreign key violations after migration"
            logger.error("post_migration_check_failed", version=migration.version, violations=violations)
            break

    return results


async def initialize_database(
    db_path: Path | None = None,
    create_backup_before: bool = True,
) -> list[MigrationResult]:
    """
    Bring the database up to the latest schema version.

    Args:
        db_path: Database file (defaults to the configured storage path)
        create_backup_before: Copy an existing database aside first

    Returns:
        One result per migration attempted; empty when already current
    """
    db_path = db_path or get_settings().storage.db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info("initializing_database", db_path=str(db_path))

    backup_path = create_backup(db_path) if create_backup_before and db_path.exists() else None

    try:
        async with aiosqlite.connect(db_path) as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.execute("PRAGMA foreign_keys=ON")
            results = await _migrate(conn)
    except Exception as e:
        logger.error("database_initialization_failed", error=str(e))
        if backup_path and backup_path.exists():
            restore_backup(db_path, backup_path)
        raise

    if backup_path and all(r.success for r in results):
        backup_path.unlink()
        logger.info("backup_cleaned_up")
    return results


async def get_migration_status(db_path: Path | None = None) -> dict[str, Any]:
    """Current version plus applied and pending migration versions."""
    db_path = db_path or get_settings().storage.db_path
    discovered = discover_migrations()

    if not db_path.exists():
        return {
            "exists": False,
            "current_version": None,
            "applied_migrations": [],
            "pending_migrations": [m.version for m in discovered],
            "total_migrations": len(discovered),
        }

    async with aiosqlite.connect(db_path) as conn:
        applied = await get_applied_migrations(conn)

    return {
        "exists": True,
        "current_version": max(applied) if applied else None,
        "applied_migrations": list(applied),
        "pending_migrations": [m.version for m in discovered if m.version not in applied],
        "total_migrations": len(discovered),
    }


def _check(name: str, passed: bool, **details: Any) -> dict[str, Any]:
    return {"check": name, "status": "PASS" if passed else "FAIL", **details}


async def verify_schema_integrity(db_path: Path | None = None) -> list[dict[str, Any]]:
    """
    SQLite integrity plus the schema objects the ledger relies on.

    Each entry is ``{"check", "status": PASS|FAIL, ...details}``.
    """
    db_path = db_path or get_settings().storage.db_path

    async with aiosqlite.connect(db_path) as conn:
        violations = await _foreign_key_violations(conn)
        cursor = await conn.execute("PRAGMA integrity_check")
        (integrity,) = await cursor.fetchone()
        cursor = await conn.execute("SELECT type, name FROM sqlite_master")
        objects = {(kind, name) for kind, name in await cursor.fetchall()}

    def missing(kind: str, names: list[str]) -> list[str]:
        return [name for name in names if (kind, name) not in objects]

    tables = missing("table", REQUIRED_TABLES)
    triggers = missing("trigger", REQUIRED_TRIGGERS)
    indexes = missing("index", REQUIRED_UNIQUE_INDEXES)
    return [
        _check("foreign_keys", violations == 0, violations=violations),
        _check("integrity", integrity == "ok", result=integrity),
        _check("required_tables", not tables, missing=tables),
        _check("ledger_guards", not triggers, missing=triggers),
        _check("document_links", not indexes, missing=indexes),
    ]
