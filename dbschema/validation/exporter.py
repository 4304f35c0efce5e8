"""Schema export through pg_dump."""

import os
from typing import Optional

from dbschema.logging_config import get_logger
from dbschema.settings import DatabaseConfig, Settings, get_settings, is_identifier
from dbschema.subprocess_handler import resolve_tool, run_command
from dbschema.validation.models import ExportResult

logger = get_logger(name=__name__)

PG_DUMP_ARGS = ("--schema-only",)


def pg_environment(config: Optional[DatabaseConfig] = None) -> dict:
    """Environment for pg_dump, carrying connection details as PG* variables.

    Keeps the command line fixed: only the database name is ever appended.
    """
    env = os.environ.copy()
    if config is None:
        return env

    if config.driver and config.subname:
        url = config.url
        if url.host:
            env["PGHOST"] = url.host
        if url.port:
            env["PGPORT"] = str(url.port)
    if config.user:
        env["PGUSER"] = config.user
    if config.password:
        env["PGPASSWORD"] = config.password
    return env


async def export_schema(
    database_name: str,
    settings: Optional[Settings] = None,
    config: Optional[DatabaseConfig] = None,
) -> ExportResult:
    """Dump the schema (DDL only) of a database.

    Args:
        database_name: Database to dump; letters, digits and underscores only
        settings: Tool settings (cached settings when None)
        config: Connection descriptor passed to pg_dump through its environment

    Returns:
        ExportResult with the raw dump, or the trimmed stderr on failure

    Raises:
        ValueError: If database_name is not a plain identifier. No process
            is started in that case.
    """
    if not is_identifier(database_name):
        raise ValueError(f"Invalid database name: {database_name!r}")

    settings = settings or get_settings()
    pg_dump_bin = await resolve_tool("pg_dump", settings.pg_dump_path)
    cmd = [pg_dump_bin, *PG_DUMP_ARGS, database_name]

    logger.info("Dumping schema of {} with {}", database_name, pg_dump_bin)
    result = await run_command(cmd, env=pg_environment(config))

    if not result.success:
        error = result.stderr.strip()
        logger.error("pg_dump failed with return code {}: {}", result.return_code, error)
        return ExportResult(
            database_name=database_name,
            success=False,
            return_code=result.return_code,
            error=error,
        )

    logger.info("Dumped {} bytes of schema in {:.2f}s", len(result.stdout), result.duration_seconds)
    return ExportResult(
        database_name=database_name,
        success=True,
        return_code=result.return_code,
        dump=result.stdout,
    )
