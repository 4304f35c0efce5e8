"""Versioned schema migrations and schema drift validation for PostgreSQL."""

__version__ = "0.1.0"
