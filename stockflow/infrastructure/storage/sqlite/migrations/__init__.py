"""Versioned SQL migrations."""

from stockflow.infrastructure.storage.sqlite.migrations.migrator import (
    MigrationResult,
    get_migration_status,
    initialize_database,
    verify_schema_integrity,
)

__all__ = [
    "MigrationResult",
    "get_migration_status",
    "initialize_database",
    "verify_schema_integrity",
]
