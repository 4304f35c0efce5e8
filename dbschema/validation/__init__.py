"""Schema validation pipeline.

pg_dump the live schema, strip non-semantic noise, and diff it against
the packaged reference dump.
"""

from dbschema.validation.differ import diff_schema, snapshot_path_for, write_snapshot
from dbschema.validation.exporter import export_schema
from dbschema.validation.models import (
    EXPORT_FAILED_CODE,
    ExportResult,
    ValidationOutcome,
    ValidationStatus,
)
from dbschema.validation.normalizer import normalize_dump
from dbschema.validation.service import run_validation, validate_schema

__all__ = [
    "EXPORT_FAILED_CODE",
    "ExportResult",
    "ValidationOutcome",
    "ValidationStatus",
    "diff_schema",
    "export_schema",
    "normalize_dump",
    "run_validation",
    "snapshot_path_for",
    "validate_schema",
    "write_snapshot",
]
