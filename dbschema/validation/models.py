"""Result types for schema export and validation."""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from dbschema.exceptions import DiffToolError, SchemaExportError

# Exit status reported when pg_dump fails and no diff is attempted.
EXPORT_FAILED_CODE = 2


class ValidationStatus(str, Enum):
    VALID = "valid"
    DIFFERENCES = "differences"
    DIFF_ERROR = "diff_error"
    EXPORT_FAILED = "export_failed"


@dataclass
class ExportResult:
    """Outcome of one pg_dump run."""
    database_name: str
    success: bool
    return_code: int
    dump: str = ""
    error: Optional[str] = None

    def raise_for_status(self) -> str:
        """Return the dump, or raise SchemaExportError if pg_dump failed."""
        if not self.success:
            raise SchemaExportError(
                f"pg_dump of {self.database_name} failed: {self.error}",
                return_code=self.return_code,
            )
        return self.dump


@dataclass
class ValidationOutcome:
    """Outcome of comparing a live schema with the reference dump.

    ``return_code`` is the diff exit status (0 match, 1 differences, other
    values a tool failure), or EXPORT_FAILED_CODE when no diff was run.
    """
    status: ValidationStatus
    return_code: int
    diff_text: str = ""
    snapshot_path: Optional[Path] = None
    snapshot_written: bool = False
    error: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        return self.status is ValidationStatus.VALID

    @property
    def exit_code(self) -> int:
        return self.return_code

    def raise_for_status(self) -> "ValidationOutcome":
        """Raise for the failure branches; differences are not an error."""
        if self.status is ValidationStatus.EXPORT_FAILED:
            raise SchemaExportError(self.error or "schema export failed", self.return_code)
        if self.status is ValidationStatus.DIFF_ERROR:
            raise DiffToolError(
                f"diff failed (code = {self.return_code}): {self.error}",
                self.return_code,
            )
        return self
