"""Configuration module for the schema tool.

This module provides:
- Settings management with environment variables
- Database connection utilities
"""

from dbschema.settings import DatabaseConfig, Settings, get_settings
from .postgres import create_db_engine, open_connection, remediation_hint

__all__ = [
    # Settings
    "DatabaseConfig",
    "Settings",
    "get_settings",
    # Connections
    "create_db_engine",
    "open_connection",
    "remediation_hint",
]
