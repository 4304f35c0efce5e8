"""Tests for transactional migration execution."""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.exc import IntegrityError, OperationalError

from dbschema.exceptions import InvalidMigrationError, UnsupportedOperationError
from dbschema.migrations.models import Direction, Migration, ProcedureAction
from dbschema.migrations.runner import run_migrations
from dbschema.migrations.version_store import VersionStore

A = Migration("A", "CREATE TABLE alpha (id INTEGER)", "DROP TABLE alpha")
B = Migration("B", "CREATE TABLE beta (id INTEGER)", "DROP TABLE beta")
C = Migration("C", "CREATE TABLE gamma (id INTEGER)", "DROP TABLE gamma")


@pytest.fixture
def store(connection):
    version_store = VersionStore(connection)
    version_store.ensure_schema()
    connection.commit()
    return version_store


def committed_versions(engine):
    """Versions visible from a fresh connection, i.e. committed ones."""
    with engine.connect() as other:
        return set(other.execute(text("SELECT version_id FROM schema_version")).scalars())


def tracking(migration, order):
    """Wrap a SQL migration so its execution order is observable."""
    def apply(conn):
        order.append(migration.version_id)
        conn.exec_driver_sql(migration.upgrade.sql)
    return Migration(migration.version_id, apply, migration.downgrade)


def test_runs_all_in_order(store, connection, engine):
    order = []
    tracked = [tracking(m, order) for m in (A, B, C)]

    assert run_migrations(connection, Direction.UPGRADE, tracked, store=store) == 3

    assert order == ["A", "B", "C"]
    assert committed_versions(engine) == {"A", "B", "C"}
    assert {"alpha", "beta", "gamma"} <= set(inspect(engine).get_table_names())


def test_sql_is_recorded_verbatim(store, connection):
    run_migrations(connection, Direction.UPGRADE, [A], store=store)

    [record] = store.records()
    assert record.applied_sql == "CREATE TABLE alpha (id INTEGER)"


def test_failure_halts_and_keeps_earlier_commits(store, connection, engine):
    broken = Migration("B", "CREATE TABLE beta (", "DROP TABLE beta")

    with pytest.raises(OperationalError):
        run_migrations(connection, Direction.UPGRADE, [A, broken, C], store=store)

    assert committed_versions(engine) == {"A"}
    assert "gamma" not in inspect(engine).get_table_names()


def test_failing_procedure_is_rolled_back(store, connection, engine):
    run_migrations(connection, Direction.UPGRADE, [A], store=store)

    def insert_then_fail(conn):
        conn.execute(text("INSERT INTO alpha (id) VALUES (1)"))
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        run_migrations(
            connection,
            Direction.UPGRADE,
            [Migration("B", insert_then_fail, "")],
            store=store,
        )

    with engine.connect() as other:
        assert other.execute(text("SELECT count(*) FROM alpha")).scalar_one() == 0
    assert committed_versions(engine) == {"A"}


def test_bookkeeping_failure_rolls_back_the_action(store, connection, engine):
    run_migrations(connection, Direction.UPGRADE, [A], store=store)

    def insert_row(conn):
        conn.execute(text("INSERT INTO alpha (id) VALUES (1)"))

    # "A" is already recorded, so the version insert violates the unique constraint.
    with pytest.raises(IntegrityError):
        run_migrations(connection, Direction.UPGRADE, [Migration("A", insert_row, "")], store=store)

    with engine.connect() as other:
        assert other.execute(text("SELECT count(*) FROM alpha")).scalar_one() == 0


def test_bookkeeping_failure_rolls_back_ddl(store, connection, engine):
    run_migrations(connection, Direction.UPGRADE, [A], store=store)

    # Same version id as A: the table is created, then the version insert fails.
    delta = Migration("A", "CREATE TABLE delta (id INTEGER)", "DROP TABLE delta")
    with pytest.raises(IntegrityError):
        run_migrations(connection, Direction.UPGRADE, [delta], store=store)

    assert "delta" not in inspect(engine).get_table_names()
    assert committed_versions(engine) == {"A"}


def test_procedure_recorded_by_description(store, connection):
    action = ProcedureAction(lambda conn: None, description="backfill account names")

    run_migrations(connection, Direction.UPGRADE, [Migration("P", action, "")], store=store)

    assert store.records()[0].applied_sql == "backfill account names"


def test_blank_sql_is_a_noop_but_recorded(store, connection):
    assert run_migrations(connection, Direction.UPGRADE, [Migration("N", "  ", "")], store=store) == 1
    assert store.applied_set() == {"N"}


def test_unknown_action_shape_is_fatal(store, connection, engine):
    odd = Migration("X", 42, "")

    with pytest.raises(InvalidMigrationError, match="don't know how to run X"):
        run_migrations(connection, Direction.UPGRADE, [odd, C], store=store)

    assert committed_versions(engine) == set()


def test_downgrade_most_recent(store, connection, engine):
    run_migrations(connection, Direction.UPGRADE, [A, B], store=store)

    assert run_migrations(connection, Direction.DOWNGRADE, [B], store=store) == 1

    assert committed_versions(engine) == {"A"}
    assert "beta" not in inspect(engine).get_table_names()


def test_downgrade_of_earlier_migration_is_rejected(store, connection, engine):
    run_migrations(connection, Direction.UPGRADE, [A, B], store=store)

    with pytest.raises(UnsupportedOperationError, match="most recent is B"):
        run_migrations(connection, Direction.DOWNGRADE, [A], store=store)

    assert committed_versions(engine) == {"A", "B"}
    assert {"alpha", "beta"} <= set(inspect(engine).get_table_names())


def test_downgrade_with_nothing_applied_is_rejected(store, connection):
    with pytest.raises(UnsupportedOperationError, match="most recent is none"):
        run_migrations(connection, Direction.DOWNGRADE, [A], store=store)


def test_downgrade_of_several_fails_before_touching_the_database():
    connection = MagicMock()

    with pytest.raises(UnsupportedOperationError):
        run_migrations(connection, Direction.DOWNGRADE, [A, B])

    assert connection.mock_calls == []


def test_duplicate_versions_rejected():
    connection = MagicMock()

    with pytest.raises(InvalidMigrationError, match="Duplicate"):
        run_migrations(connection, Direction.UPGRADE, [A, A])

    assert connection.mock_calls == []


def test_empty_list(store, connection):
    assert run_migrations(connection, "upgrade", [], store=store) == 0
