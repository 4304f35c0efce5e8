# tests/conftest.py
import stat
from pathlib import Path

import pytest
from loguru import logger
from sqlalchemy import create_engine, event

from dbschema.settings import Settings, get_settings
from dbschema.subprocess_handler import clear_tool_cache


@pytest.fixture(autouse=True)
def _reset_caches():
    """Resolved tool paths and settings must not leak between tests."""
    clear_tool_cache()
    get_settings.cache_clear()
    yield
    clear_tool_cache()
    get_settings.cache_clear()


@pytest.fixture
def make_settings():
    """Build Settings without reading a .env file."""
    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **overrides)
    return _make


@pytest.fixture
def make_executable(tmp_path):
    """Write an executable /bin/sh script and return its path."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text("#!/bin/sh\n" + body)
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path
    return _make


@pytest.fixture
def log_messages():
    """Capture loguru messages emitted during a test."""
    messages: list[str] = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def engine(tmp_path):
    """File-backed SQLite engine so separate connections share the data.

    pysqlite's own transaction handling commits before DDL; it is switched
    off and BEGIN is emitted explicitly so DDL is rolled back like DML.
    """
    db_engine = create_engine(f"sqlite:///{tmp_path / 'schema.db'}")

    @event.listens_for(db_engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(db_engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")

    yield db_engine
    db_engine.dispose()


@pytest.fixture
def connection(engine):
    with engine.connect() as conn:
        yield conn

