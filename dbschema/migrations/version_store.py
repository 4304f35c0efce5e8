"""Version-tracking table inside the target database.

Every call runs on the caller's connection and inside the caller's
transaction; nothing here commits.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Set

from sqlalchemy import (
    Column,
    DateTime,
    MetaData,
    String,
    Table,
    Text,
    delete,
    func,
    insert,
    select,
)
from sqlalchemy.engine import Connection

from dbschema.exceptions import VersionConsistencyError
from dbschema.logging_config import get_logger
from dbschema.migrations.models import MAX_VERSION_ID_LENGTH
from dbschema.settings import is_identifier

logger = get_logger(name=__name__)

DEFAULT_VERSION_TABLE = "schema_version"


def version_table(name: str = DEFAULT_VERSION_TABLE, metadata: MetaData = None) -> Table:
    """Table definition for the version-tracking table."""
    if not is_identifier(name):
        raise ValueError(f"Invalid version table name: {name!r}")
    return Table(
        name,
        metadata if metadata is not None else MetaData(),
        Column("version_id", String(MAX_VERSION_ID_LENGTH), nullable=False, unique=True),
        Column("migrated_at", DateTime, nullable=False, server_default=func.now()),
        Column("applied_sql", Text, nullable=False),
    )


@dataclass(frozen=True)
class VersionRecord:
    version_id: str
    migrated_at: datetime
    applied_sql: str


class VersionStore:
    """Reads and writes rows of the version-tracking table."""

    def __init__(self, connection: Connection, table_name: str = DEFAULT_VERSION_TABLE):
        self.connection = connection
        self.table = version_table(table_name)

    @property
    def table_name(self) -> str:
        return self.table.name

    def ensure_schema(self) -> None:
        """Create the table if it does not exist."""
        self.table.create(self.connection, checkfirst=True)

    def applied_set(self) -> Set[str]:
        result = self.connection.execute(select(self.table.c.version_id))
        return set(result.scalars())

    def records(self) -> List[VersionRecord]:
        result = self.connection.execute(
            select(self.table).order_by(self.table.c.migrated_at, self.table.c.version_id)
        )
        return [VersionRecord(row.version_id, row.migrated_at, row.applied_sql) for row in result]

    def latest(self) -> Optional[VersionRecord]:
        """Most recently applied version, ties on migrated_at broken by version_id."""
        row = self.connection.execute(
            select(self.table)
            .order_by(self.table.c.migrated_at.desc(), self.table.c.version_id.desc())
            .limit(1)
        ).first()
        if row is None:
            return None
        return VersionRecord(row.version_id, row.migrated_at, row.applied_sql)

    def record_upgrade(self, version_id: str, applied_sql: str) -> None:
        result = self.connection.execute(
            insert(self.table).values(version_id=version_id, applied_sql=applied_sql)
        )
        self._expect_one(result.rowcount, version_id, "insert")

    def record_downgrade(self, version_id: str) -> None:
        result = self.connection.execute(
            delete(self.table).where(self.table.c.version_id == version_id)
        )
        self._expect_one(result.rowcount, version_id, "delete")

    def _expect_one(self, rowcount: int, version_id: str, operation: str) -> None:
        if rowcount != 1:
            logger.error("Version {} of {} affected {} rows", operation, version_id, rowcount)
            raise VersionConsistencyError(
                f"version not bumped: {operation} of {version_id} in {self.table_name} "
                f"affected {rowcount} rows"
            )
