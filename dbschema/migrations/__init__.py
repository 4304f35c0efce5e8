"""Versioned schema migrations with a version-tracking table."""

from dbschema.migrations.helpers import (
    create_enum_table,
    create_table,
    create_view,
    insert_enum_table,
)
from dbschema.migrations.loader import load_migration_set
from dbschema.migrations.models import (
    ActionKind,
    Direction,
    Migration,
    MigrationSet,
    ProcedureAction,
    SqlAction,
)
from dbschema.migrations.runner import run_migrations
from dbschema.migrations.service import MigrationReport, migrate, migrate_database
from dbschema.migrations.version_store import VersionRecord, VersionStore

__all__ = [
    "ActionKind",
    "Direction",
    "Migration",
    "MigrationReport",
    "MigrationSet",
    "ProcedureAction",
    "SqlAction",
    "VersionRecord",
    "VersionStore",
    "create_enum_table",
    "create_table",
    "create_view",
    "insert_enum_table",
    "load_migration_set",
    "migrate",
    "migrate_database",
    "run_migrations",
]
