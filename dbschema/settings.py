"""Settings for the schema tool.

Values come from the environment or a ``.env`` file in the working
directory. Connection parameters are optional at load time; a missing
value is reported with remediation hints when a connection is opened.
"""

import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


_PACKAGE_DIR = Path(__file__).resolve().parent

DEFAULT_REFERENCE_SCHEMA = _PACKAGE_DIR / "resources" / "schema-validate.sql"

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z0-9_]+")


def is_identifier(value: str) -> bool:
    """Return True if value is made of letters, digits and underscores only."""
    return isinstance(value, str) and IDENTIFIER_PATTERN.fullmatch(value) is not None


class DatabaseConfig(BaseModel):
    """Connection descriptor for the target database.

    ``driver`` is the SQLAlchemy dialect+driver (``postgresql+psycopg``) and
    ``subname`` the rest of the connection string (``//host:5432/appdb``).
    """

    driver: Optional[str] = None
    subname: Optional[str] = None
    user: Optional[str] = None
    password: Optional[str] = None

    def missing_fields(self) -> List[str]:
        return [
            name
            for name in ("driver", "subname", "user", "password")
            if not getattr(self, name)
        ]

    @property
    def database_name(self) -> str:
        """Database part of the connection string, without host or query."""
        return re.sub(r"^.*/|\?.*$", "", self.subname or "")

    @property
    def url(self) -> URL:
        return make_url(f"{self.driver}:{self.subname}").set(
            username=self.user,
            password=self.password,
        )

    def describe(self) -> str:
        """Connection string safe for logs (password hidden)."""
        return f"{self.driver}:{self.subname} (user={self.user})"


class Settings(BaseSettings):
    """Schema tool settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === Connection descriptor ===
    db_driver: str = Field(
        default="postgresql+psycopg",
        description="SQLAlchemy dialect+driver used to connect",
    )
    db_subname: Optional[str] = Field(
        default=None,
        description="Connection string after the driver, e.g. //localhost:5432/appdb",
    )
    db_user: Optional[str] = Field(default=None, description="Database user")
    db_password: Optional[str] = Field(default=None, description="Database password")

    # === External tools ===
    pg_dump_path: Optional[str] = Field(
        default=None,
        description="Explicit pg_dump binary (otherwise resolved from PATH)",
    )
    diff_path: Optional[str] = Field(
        default=None,
        description="Explicit diff binary (otherwise resolved from PATH)",
    )

    # === Validation ===
    reference_schema_path: Path = Field(
        default=DEFAULT_REFERENCE_SCHEMA,
        description="Golden schema dump compared against the live database",
    )

    # === Migrations ===
    migration_set: str = Field(
        default="db_schema_migration",
        description="Module providing get_migration_set()",
    )
    version_table: str = Field(
        default="schema_version",
        description="Name of the version-tracking table",
    )
    fail_on_unknown_versions: bool = Field(
        default=False,
        description="Abort a migration run if the database records versions missing from the list",
    )

    @field_validator("reference_schema_path", mode="before")
    @classmethod
    def convert_to_path(cls, v):
        if v is None or v == "":
            return DEFAULT_REFERENCE_SCHEMA
        return Path(v)

    @field_validator("version_table")
    @classmethod
    def check_version_table(cls, v: str) -> str:
        if not is_identifier(v):
            raise ValueError(f"version_table must be a plain identifier, got {v!r}")
        return v

    @property
    def database(self) -> DatabaseConfig:
        return DatabaseConfig(
            driver=self.db_driver,
            subname=self.db_subname,
            user=self.db_user,
            password=self.db_password,
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
