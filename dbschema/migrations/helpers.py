"""Builders for common migrations."""

from typing import Iterable, Sequence

from dbschema.exceptions import InvalidMigrationError
from dbschema.migrations.models import Migration

# PostgreSQL's limit on CREATE TYPE ... ENUM labels.
ENUM_NAME_TYPE = "VARCHAR(63)"


def _quote(value: str) -> str:
    return "'{}'".format(value.replace("'", "''"))


def _enum_values(names: Iterable[str]) -> str:
    return ",".join(f"({_quote(name)})" for name in names)


def create_table(version_id: str, table: str, column_defs: Sequence[str]) -> Migration:
    """CREATE TABLE with the given column/constraint definitions; drops it on downgrade."""
    body = ",\n".join(column_defs)
    return Migration(
        version_id,
        f"CREATE TABLE {table} (\n{body}\n)",
        f"DROP TABLE IF EXISTS {table}",
    )


def create_view(version_id: str, view: str, query: str) -> Migration:
    return Migration(
        version_id,
        f"CREATE VIEW {view} AS {query}",
        f"DROP VIEW IF EXISTS {view}",
    )


def create_enum_table(version_id: str, table: str, names: Sequence[str]) -> Migration:
    """Single-column lookup table acting as an enum, seeded with names."""
    sql = f"CREATE TABLE {table} (name {ENUM_NAME_TYPE} PRIMARY KEY);\n"
    if names:
        sql += f"INSERT INTO {table} VALUES {_enum_values(names)}"
    return Migration(version_id, sql, f"DROP TABLE IF EXISTS {table}")


def insert_enum_table(version_id: str, table: str, names: Sequence[str]) -> Migration:
    """Add values to an enum table. The downgrade is a no-op."""
    if not names:
        raise InvalidMigrationError(f"{version_id}: no enum values to insert into {table}")
    return Migration(
        version_id,
        f"INSERT INTO {table} VALUES {_enum_values(names)}",
        "",
    )
