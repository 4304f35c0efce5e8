"""Exceptions raised by the schema tool."""

from typing import Optional


class SchemaToolError(Exception):
    """Base class for all schema tool errors."""


class ConfigurationError(SchemaToolError):
    """Connection parameters are missing or unusable."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class DatabaseConnectionError(SchemaToolError):
    """The database could not be reached with the configured parameters."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message)
        self.hint = hint


class SchemaExportError(SchemaToolError):
    """pg_dump exited with a non-zero status."""

    def __init__(self, message: str, return_code: int):
        super().__init__(message)
        self.return_code = return_code


class DiffToolError(SchemaToolError):
    """diff exited with a status other than 0 or 1."""

    def __init__(self, message: str, return_code: int):
        super().__init__(message)
        self.return_code = return_code


class VersionConsistencyError(SchemaToolError):
    """The version-tracking table disagrees with the executed migrations."""


class UnsupportedOperationError(SchemaToolError):
    """The requested operation is deliberately not supported."""


class InvalidMigrationError(SchemaToolError):
    """A migration list or action is malformed."""


class ToolNotFoundError(SchemaToolError):
    """No working executable was found for an external tool."""
