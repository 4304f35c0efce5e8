"""Tests for the migration builders."""

import pytest
from sqlalchemy import inspect, text

from dbschema.exceptions import InvalidMigrationError
from dbschema.migrations import (
    Direction,
    create_enum_table,
    create_table,
    create_view,
    insert_enum_table,
    migrate,
    run_migrations,
)


def test_create_table_sql():
    migration = create_table("001_widget", "widget", ["id INTEGER PRIMARY KEY", "name TEXT NOT NULL"])

    assert migration.version_id == "001_widget"
    assert migration.upgrade.sql == "CREATE TABLE widget (\nid INTEGER PRIMARY KEY,\nname TEXT NOT NULL\n)"
    assert migration.downgrade.sql == "DROP TABLE IF EXISTS widget"


def test_create_view_sql():
    migration = create_view("002_names", "widget_names", "SELECT name FROM widget")

    assert migration.upgrade.sql == "CREATE VIEW widget_names AS SELECT name FROM widget"
    assert migration.downgrade.sql == "DROP VIEW IF EXISTS widget_names"


def test_create_enum_table_sql():
    migration = create_enum_table("003_status", "status", ["open", "closed", "won't fix"])

    assert migration.upgrade.sql == (
        "CREATE TABLE status (name VARCHAR(63) PRIMARY KEY);\n"
        "INSERT INTO status VALUES ('open'),('closed'),('won''t fix')"
    )
    assert migration.downgrade.sql == "DROP TABLE IF EXISTS status"


def test_create_enum_table_without_values():
    migration = create_enum_table("003_status", "status", [])

    assert migration.upgrade.sql == "CREATE TABLE status (name VARCHAR(63) PRIMARY KEY);\n"


def test_insert_enum_table_sql():
    migration = insert_enum_table("004_status", "status", ["reopened"])

    assert migration.upgrade.sql == "INSERT INTO status VALUES ('reopened')"
    assert migration.downgrade.sql == ""


def test_insert_enum_table_requires_values():
    with pytest.raises(InvalidMigrationError):
        insert_enum_table("004_status", "status", [])


def test_builders_apply_and_revert(connection, engine):
    widget = create_table("001_widget", "widget", ["id INTEGER PRIMARY KEY", "name TEXT NOT NULL"])
    names = create_view("002_names", "widget_names", "SELECT name FROM widget")

    migrate(connection, Direction.UPGRADE, [widget, names])
    connection.execute(text("INSERT INTO widget (id, name) VALUES (1, 'gear')"))
    connection.commit()

    assert connection.execute(text("SELECT name FROM widget_names")).scalars().all() == ["gear"]

    run_migrations(connection, Direction.DOWNGRADE, [names])

    assert "widget_names" not in inspect(engine).get_view_names()
    assert "widget" in inspect(engine).get_table_names()
