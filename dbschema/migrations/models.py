"""Migration records and their actions.

A migration has a unique ``version_id`` plus an upgrade and a downgrade
action. An action is either SQL text or a procedure called with the open
connection. Prefer SQL: it is recorded verbatim in the version table,
while a procedure is only recorded by name.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, ClassVar, Iterable, List, Optional, Union

from sqlalchemy.engine import Connection

from dbschema.exceptions import InvalidMigrationError
from dbschema.settings import DatabaseConfig

# Width of the version_id column.
MAX_VERSION_ID_LENGTH = 80


class Direction(str, Enum):
    UPGRADE = "upgrade"
    DOWNGRADE = "downgrade"


class ActionKind(str, Enum):
    SQL = "sql"
    PROCEDURE = "procedure"


@dataclass(frozen=True)
class SqlAction:
    """SQL script executed as-is. An empty script is a no-op."""
    sql: str
    kind: ClassVar[ActionKind] = ActionKind.SQL

    def describe(self) -> str:
        return self.sql


@dataclass(frozen=True)
class ProcedureAction:
    """Python callable run with the migration's connection.

    The connection is inside the migration's transaction; the procedure
    must not commit or roll back.
    """
    procedure: Callable[[Connection], Any]
    description: Optional[str] = None
    kind: ClassVar[ActionKind] = ActionKind.PROCEDURE

    def describe(self) -> str:
        if self.description:
            return self.description
        module = getattr(self.procedure, "__module__", None) or "?"
        name = getattr(self.procedure, "__qualname__", None) or repr(self.procedure)
        return f"<procedure {module}.{name}>"


Action = Union[SqlAction, ProcedureAction]


def as_action(value: Any) -> Any:
    """Wrap plain SQL strings and callables; leave anything else untouched.

    Unknown shapes are rejected by the runner when the action is executed.
    """
    if isinstance(value, (SqlAction, ProcedureAction)):
        return value
    if isinstance(value, str):
        return SqlAction(value)
    if callable(value):
        return ProcedureAction(value)
    return value


@dataclass(frozen=True)
class Migration:
    version_id: str
    upgrade: Action
    downgrade: Action

    def __post_init__(self):
        if not isinstance(self.version_id, str) or not self.version_id:
            raise InvalidMigrationError(f"version_id must be a non-empty string, got {self.version_id!r}")
        if len(self.version_id) > MAX_VERSION_ID_LENGTH:
            raise InvalidMigrationError(
                f"version_id {self.version_id!r} is longer than {MAX_VERSION_ID_LENGTH} characters"
            )
        object.__setattr__(self, "upgrade", as_action(self.upgrade))
        object.__setattr__(self, "downgrade", as_action(self.downgrade))

    def action_for(self, direction: Direction) -> Action:
        if Direction(direction) is Direction.UPGRADE:
            return self.upgrade
        return self.downgrade


def check_unique_versions(migrations: Iterable[Migration]) -> None:
    """Raise InvalidMigrationError if a version_id appears twice."""
    seen: set[str] = set()
    for migration in migrations:
        if migration.version_id in seen:
            raise InvalidMigrationError(f"Duplicate migration version_id: {migration.version_id}")
        seen.add(migration.version_id)


@dataclass
class MigrationSet:
    """Ordered migrations plus the database they apply to.

    ``database`` may be None, in which case the connection descriptor comes
    from settings.
    """
    migrations: List[Migration] = field(default_factory=list)
    database: Optional[DatabaseConfig] = None

    def __post_init__(self):
        self.migrations = list(self.migrations)
        for migration in self.migrations:
            if not isinstance(migration, Migration):
                raise InvalidMigrationError(f"Not a Migration: {migration!r}")
        check_unique_versions(self.migrations)

    @property
    def version_ids(self) -> List[str]:
        return [m.version_id for m in self.migrations]
