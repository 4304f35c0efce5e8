"""Schema drift detection: pg_dump, normalize, diff against the reference."""

import asyncio
from pathlib import Path
from typing import Optional

from dbschema.config.postgres import remediation_hint
from dbschema.exceptions import ConfigurationError
from dbschema.logging_config import get_logger
from dbschema.settings import DatabaseConfig, Settings, get_settings
from dbschema.validation.differ import diff_schema
from dbschema.validation.exporter import export_schema
from dbschema.validation.models import (
    EXPORT_FAILED_CODE,
    ValidationOutcome,
    ValidationStatus,
)
from dbschema.validation.normalizer import normalize_dump

logger = get_logger(name=__name__)


async def validate_schema(
    database_name: Optional[str] = None,
    settings: Optional[Settings] = None,
    config: Optional[DatabaseConfig] = None,
    reference_path: Optional[Path] = None,
) -> ValidationOutcome:
    """Compare the live schema of a database with the reference dump.

    Args:
        database_name: Database to validate (taken from config when None)
        settings: Tool settings (cached settings when None)
        config: Connection descriptor (settings' descriptor when None)
        reference_path: Golden schema file (settings' reference when None)

    Returns:
        ValidationOutcome; an export failure stops before any diff runs
    """
    settings = settings or get_settings()
    config = config or settings.database
    database_name = database_name or config.database_name
    if not database_name:
        raise ConfigurationError(
            "No database to validate: set DB_SUBNAME or pass a database name",
            hint=remediation_hint(config),
        )
    reference = Path(reference_path or settings.reference_schema_path)

    export = await export_schema(database_name, settings=settings, config=config)
    if not export.success:
        logger.error("validation failed: {}", export.error)
        return ValidationOutcome(
            status=ValidationStatus.EXPORT_FAILED,
            return_code=EXPORT_FAILED_CODE,
            error=export.error,
        )

    return await diff_schema(reference, normalize_dump(export.dump), settings=settings)


def run_validation(
    database_name: Optional[str] = None,
    settings: Optional[Settings] = None,
    config: Optional[DatabaseConfig] = None,
    reference_path: Optional[Path] = None,
) -> ValidationOutcome:
    """Synchronous entry point; the event loop is closed before returning."""
    return asyncio.run(
        validate_schema(
            database_name=database_name,
            settings=settings,
            config=config,
            reference_path=reference_path,
        )
    )
