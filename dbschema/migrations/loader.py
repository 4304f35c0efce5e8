"""Loading of migration sets by name.

A migration set is provided by a module exposing ``get_migration_set()``,
which returns a MigrationSet. The identifier is a dotted module name;
dashes are accepted and mapped to underscores (``db-schema-migration``
loads ``db_schema_migration``).
"""

import importlib

from dbschema.exceptions import ConfigurationError, InvalidMigrationError
from dbschema.logging_config import get_logger
from dbschema.migrations.models import MigrationSet

logger = get_logger(name=__name__)

FACTORY_NAME = "get_migration_set"


def module_name_for(identifier: str) -> str:
    return identifier.strip().replace("-", "_")


def load_migration_set(identifier: str) -> MigrationSet:
    """Import a migration-set module and build its MigrationSet.

    Raises:
        ConfigurationError: If the module or its factory cannot be found.
        InvalidMigrationError: If the factory returns something else.
    """
    module_name = module_name_for(identifier)
    try:
        module = importlib.import_module(module_name)
    except ModuleNotFoundError as exc:
        if exc.name and (module_name == exc.name or module_name.startswith(exc.name + ".")):
            raise ConfigurationError(
                f"Migration set module {module_name!r} not found. "
                "Make it importable or pass another migration set name."
            ) from exc
        raise

    factory = getattr(module, FACTORY_NAME, None)
    if not callable(factory):
        raise ConfigurationError(f"Migration set module {module_name!r} has no {FACTORY_NAME}() function")

    migration_set = factory()
    if not isinstance(migration_set, MigrationSet):
        raise InvalidMigrationError(
            f"{module_name}.{FACTORY_NAME}() returned {type(migration_set).__name__}, expected MigrationSet"
        )

    logger.info("Loaded migration set {} ({} migrations)", module_name, len(migration_set.migrations))
    return migration_set
