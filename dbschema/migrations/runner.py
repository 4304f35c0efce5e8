"""Transactional execution of an ordered list of migrations.

Each migration is its own transaction: the action and its version-table
bookkeeping are committed together, or rolled back together before the
error is re-raised. Migrations after a failure are never attempted and
earlier, committed migrations stay committed.
"""

from typing import Optional, Sequence

from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError

from dbschema.exceptions import InvalidMigrationError, UnsupportedOperationError
from dbschema.logging_config import get_logger
from dbschema.migrations.models import (
    ActionKind,
    Direction,
    Migration,
    check_unique_versions,
)
from dbschema.migrations.version_store import VersionStore

logger = get_logger(name=__name__)


def execute_action(connection: Connection, action, version_id: str) -> None:
    """Run one migration action on the connection."""
    kind = getattr(action, "kind", None)
    if kind is ActionKind.SQL:
        if action.sql.strip():
            connection.exec_driver_sql(action.sql, execution_options={"no_parameters": True})
    elif kind is ActionKind.PROCEDURE:
        action.procedure(connection)
    else:
        raise InvalidMigrationError(f"don't know how to run {version_id}: {action!r}")


def _rollback(connection: Connection, version_id: str) -> None:
    try:
        connection.rollback()
    except DBAPIError as error:
        # The original failure is re-raised by the caller.
        logger.error("Rollback of {} failed: {}", version_id, error)


def _check_most_recent(store: VersionStore, version_id: str) -> None:
    latest = store.latest()
    if latest is None or latest.version_id != version_id:
        current = latest.version_id if latest else "none"
        raise UnsupportedOperationError(
            f"can only downgrade the most recent migration: {version_id} requested, "
            f"most recent is {current}"
        )


def run_migrations(
    connection: Connection,
    direction: Direction,
    migrations: Sequence[Migration],
    store: Optional[VersionStore] = None,
) -> int:
    """Apply migrations in list order, one transaction per migration.

    Args:
        connection: Open connection; the runner commits and rolls back on it
        direction: Upgrade, or downgrade of a single migration
        migrations: Migrations to run, already filtered to the pending ones
        store: Version store bound to the same connection

    Returns:
        Number of migrations run

    Raises:
        UnsupportedOperationError: Downgrading more than one migration, raised
            before the connection is used; or downgrading one that is not the
            most recently applied, raised before any action runs.
        Exception: Whatever a migration raised, after its rollback.
    """
    direction = Direction(direction)
    migrations = list(migrations)

    if direction is Direction.DOWNGRADE and len(migrations) > 1:
        raise UnsupportedOperationError(
            "downgrade is only supported for the most recent migration "
            f"({len(migrations)} requested)"
        )
    check_unique_versions(migrations)

    total = len(migrations)
    if total == 0:
        logger.info("No migrations to run.")
        return 0

    store = store or VersionStore(connection)
    if direction is Direction.DOWNGRADE:
        _check_most_recent(store, migrations[0].version_id)

    for number, migration in enumerate(migrations, start=1):
        version_id = migration.version_id
        action = migration.action_for(direction)
        logger.info("Running {} for {} ({} of {})...", direction.value, version_id, number, total)

        try:
            execute_action(connection, action, version_id)
            if direction is Direction.UPGRADE:
                store.record_upgrade(version_id, action.describe())
            else:
                store.record_downgrade(version_id)
            connection.commit()
        except Exception as exc:
            logger.error("{} for {} failed ({})", direction.value, version_id, exc)
            _rollback(connection, version_id)
            raise

        logger.info("{} for {} done.", direction.value, version_id)

    logger.info("Migrations complete.")
    return total
