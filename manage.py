#!/usr/bin/env python3
"""
Stockflow management CLI.

Usage:
    python manage.py migrate     Apply pending schema migrations
    python manage.py status      Show migration status
    python manage.py verify      Check schema integrity and reconcile the ledger
"""

import argparse
import asyncio
import sys
from pathlib import Path

from stockflow.application.use_cases import StockQueries
from stockflow.config import configure_logging, get_settings
from stockflow.infrastructure.storage.sqlite import (
    ConnectionPool,
    get_unit_of_work_factory,
)
from stockflow.infrastructure.storage.sqlite.migrations import (
    get_migration_status,
    initialize_database,
    verify_schema_integrity,
)


def cmd_migrate(args: argparse.Namespace) -> None:
    results = asyncio.run(
        initialize_database(db_path=args.db_path, create_backup_before=not args.no_backup)
    )
    if not results:
        print("Database is up to date.")
        return
    for result in results:
        state = "ok" if result.success else f"FAILED: {result.error}"
        print(f"  v{result.version}_{result.name} ({result.execution_time_ms} ms) {state}")
    if not all(r.success for r in results):
        sys.exit(1)


def cmd_status(args: argparse.Namespace) -> None:
    status = asyncio.run(get_migration_status(args.db_path))
    if not status["exists"]:
        print("Database does not exist. Run 'migrate' first.")
        return
    print(f"Current version: {status['current_version']}")
    print(f"Applied:  {', '.join(status['applied_migrations']) or '-'}")
    print(f"Pending:  {', '.join(status['pending_migrations']) or '-'}")


async def _verify(db_path: Path | None) -> bool:
    checks = await verify_schema_integrity(db_path)
    healthy = True
    for check in checks:
        print(f"  {check['check']}: {check['status']}")
        healthy = healthy and check["status"] == "PASS"

    storage = get_settings().storage
    pool = ConnectionPool(db_path or storage.db_path, storage.pool_size, storage.busy_timeout)
    try:
        queries = StockQueries(get_unit_of_work_factory(pool, read_only=True))
        report = await queries.reconcile_ledger()
    finally:
        await pool.close()
    print(f"  ledger: {'PASS' if report.consistent else 'FAIL'}")
    for d in report.discrepancies:
        print(
            f"    {d.product_id} @ {d.warehouse_id}/{d.location_id or '-'}: "
            f"balance {d.balance}, movements {d.movement_total}"
        )
    return healthy and report.consistent


def cmd_verify(args: argparse.Namespace) -> None:
    if not asyncio.run(_verify(args.db_path)):
        sys.exit(1)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Stockflow management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--db-path", type=Path, default=None, help="Database file (default: from settings)"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    # migrate
    p_migrate = sub.add_parser("migrate", help="Apply pending schema migrations")
    p_migrate.add_argument("--no-backup", action="store_true", help="Skip the pre-migration backup")
    p_migrate.set_defaults(func=cmd_migrate)

    # status
    p_status = sub.add_parser("status", help="Show migration status")
    p_status.set_defaults(func=cmd_status)

    # verify
    p_verify = sub.add_parser("verify", help="Check schema integrity and ledger consistency")
    p_verify.set_defaults(func=cmd_verify)

    args = parser.parse_args()
    configure_logging()
    args.func(args)


if __name__ == "__main__":
    main()
