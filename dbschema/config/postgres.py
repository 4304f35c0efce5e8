"""Database connection management for migration runs.

Migrations run on a single synchronous SQLAlchemy connection. SQLAlchemy
2.x connections begin a transaction implicitly and never autocommit, so
every migration is committed or rolled back explicitly by the runner.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.engine import Connection
from sqlalchemy.exc import DBAPIError

from dbschema.exceptions import ConfigurationError, DatabaseConnectionError
from dbschema.logging_config import get_logger
from dbschema.settings import DatabaseConfig

logger = get_logger(name=__name__)


def remediation_hint(config: DatabaseConfig) -> str:
    """SQL an operator can run in psql to create the configured database."""
    user = config.user or "<user>"
    database = config.database_name or "<database>"
    return (
        "If this is a new database, please run the following commands in psql:\n"
        f"CREATE USER {user} WITH PASSWORD '<password>';\n"
        f"CREATE DATABASE {database} ENCODING 'UTF8' OWNER {user};\n"
        f"GRANT ALL PRIVILEGES ON DATABASE {database} TO {user};"
    )


def create_db_engine(config: DatabaseConfig, **kwargs) -> Engine:
    """Create a SQLAlchemy engine for the configured database.

    Raises:
        ConfigurationError: If any connection parameter is missing.
    """
    missing = config.missing_fields()
    if missing:
        raise ConfigurationError(
            "Missing database parameters: {}".format(", ".join(missing)),
            hint=remediation_hint(config),
        )

    kwargs.setdefault("echo", False)
    return create_engine(config.url, **kwargs)


@contextmanager
def open_connection(config: DatabaseConfig) -> Iterator[Connection]:
    """Open a connection and dispose of the engine when the block exits.

    Raises:
        ConfigurationError: If any connection parameter is missing.
        DatabaseConnectionError: If the database cannot be reached.
    """
    engine = create_db_engine(config)
    try:
        try:
            connection = engine.connect()
        except DBAPIError as exc:
            logger.error("Could not open connection to {}", config.describe())
            raise DatabaseConnectionError(
                f"Could not open connection to {config.describe()}. "
                f"Please verify the database exists and that {config.user} has access to it.",
                hint=remediation_hint(config),
            ) from exc

        logger.info("Connected to {}", config.describe())
        try:
            yield connection
        finally:
            connection.close()
    finally:
        engine.dispose()
