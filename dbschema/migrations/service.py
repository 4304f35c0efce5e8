"""Schema migration: bring a database up to the end of a migration list."""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from sqlalchemy.engine import Connection

from dbschema.config.postgres import open_connection
from dbschema.exceptions import UnsupportedOperationError, VersionConsistencyError
from dbschema.logging_config import get_logger
from dbschema.migrations.models import (
    Direction,
    Migration,
    MigrationSet,
    check_unique_versions,
)
from dbschema.migrations.runner import run_migrations
from dbschema.migrations.version_store import DEFAULT_VERSION_TABLE, VersionStore
from dbschema.settings import Settings, get_settings

logger = get_logger(name=__name__)


@dataclass
class MigrationReport:
    """Summary of one migrate call."""
    direction: Direction
    total: int
    already_applied: int
    ran: int
    version_ids: List[str] = field(default_factory=list)
    unknown_versions: List[str] = field(default_factory=list)

    @property
    def nothing_to_do(self) -> bool:
        return self.ran == 0

    @property
    def status(self) -> str:
        return "nothing to do" if self.nothing_to_do else "complete"


def _reject_downgrade(direction: Direction) -> None:
    if direction is Direction.DOWNGRADE:
        # Without a verified target version a downgrade would revert everything.
        raise UnsupportedOperationError("downgrade is not currently supported")


def migrate(
    connection: Connection,
    direction: Direction,
    migrations: Sequence[Migration],
    table_name: str = DEFAULT_VERSION_TABLE,
    fail_on_unknown: bool = False,
) -> MigrationReport:
    """Run every migration of the list that the database has not applied.

    The version table is created (and committed) first, the applied set is
    read fresh, and the pending migrations run in list order.

    Raises:
        UnsupportedOperationError: For a downgrade, before any database I/O.
        VersionConsistencyError: If fail_on_unknown is set and the database
            records versions that are not in the list.
    """
    direction = Direction(direction)
    _reject_downgrade(direction)

    migrations = list(migrations)
    check_unique_versions(migrations)

    store = VersionStore(connection, table_name)
    logger.info("Creating {} table if it does not exist", store.table_name)
    store.ensure_schema()
    connection.commit()

    applied = store.applied_set()
    logger.info("Schema currently has {} of {} upgrades", len(applied), len(migrations))

    known = {m.version_id for m in migrations}
    unknown = sorted(applied - known)
    if unknown:
        logger.warning(
            "Database records {} version(s) missing from the migration list: {}",
            len(unknown),
            ", ".join(unknown),
        )
        if fail_on_unknown:
            raise VersionConsistencyError(
                "Applied versions missing from the migration list: {}".format(", ".join(unknown))
            )

    pending = [m for m in migrations if m.version_id not in applied]
    ran = run_migrations(connection, Direction.UPGRADE, pending, store=store)

    return MigrationReport(
        direction=direction,
        total=len(migrations),
        already_applied=len(migrations) - len(pending),
        ran=ran,
        version_ids=[m.version_id for m in pending],
        unknown_versions=unknown,
    )


def migrate_database(
    migration_set: MigrationSet,
    direction: Direction,
    settings: Optional[Settings] = None,
) -> MigrationReport:
    """Open a connection to the migration set's database and migrate it."""
    direction = Direction(direction)
    _reject_downgrade(direction)

    settings = settings or get_settings()
    config = migration_set.database or settings.database

    with open_connection(config) as connection:
        return migrate(
            connection,
            direction,
            migration_set.migrations,
            table_name=settings.version_table,
            fail_on_unknown=settings.fail_on_unknown_versions,
        )
