#!/usr/bin/env python3
"""
Database Schema Migration CLI

Usage:
    dbschema validate [MIGRATION_SET]     # Compare the live schema with schema-validate.sql
    dbschema upgrade [MIGRATION_SET]      # Apply pending migrations
    dbschema downgrade [MIGRATION_SET]    # Not supported; always fails

MIGRATION_SET names a module exposing get_migration_set(). It defaults to
the MIGRATION_SET setting. For validate it only supplies the database to
dump.

Exit status: validate returns the diff status (0 valid, 1 differences,
other values a tool error); upgrade and downgrade return 0 on success and
2 on any error.
"""

import argparse
import sys
from typing import Optional, Sequence

from dbschema.exceptions import ConfigurationError, DatabaseConnectionError
from dbschema.logging_config import configure_logging, get_logger
from dbschema.migrations import Direction, load_migration_set, migrate_database
from dbschema.settings import Settings, get_settings
from dbschema.validation import ValidationOutcome, ValidationStatus, run_validation

logger = get_logger(name=__name__)

ERROR_EXIT_CODE = 2


def print_outcome(outcome: ValidationOutcome, settings: Settings) -> None:
    """Print the validation result for the operator."""
    if outcome.status is ValidationStatus.VALID:
        print("Schema is valid")
    elif outcome.status is ValidationStatus.DIFFERENCES:
        print("Schema differences found!")
        print(outcome.diff_text)
        print(f"Writing current schema to {outcome.snapshot_path}")
        if outcome.snapshot_written:
            print(
                "If the above differences are correct, please copy this file over "
                f"{settings.reference_schema_path.name}"
            )
        elif outcome.snapshot_path.exists():
            print(f"WARNING {outcome.snapshot_path} exists! Not overwriting.")
        else:
            print(f"WARNING could not write {outcome.snapshot_path}; see the log for details.")
    elif outcome.status is ValidationStatus.EXPORT_FAILED:
        print(f"validation failed: {outcome.error}")
    else:
        print(f"DIFF ERROR! (code = {outcome.return_code})")
        print(outcome.error)


def validate(args, settings: Settings) -> int:
    """Dump, normalize and diff the schema of the configured database."""
    config = settings.database
    if args.migration_set:
        config = load_migration_set(args.migration_set).database or config

    outcome = run_validation(settings=settings, config=config)
    print_outcome(outcome, settings)
    return outcome.exit_code


def migrate(args, settings: Settings) -> int:
    """Upgrade (or reject a downgrade of) the migration set's database."""
    direction = Direction(args.command)
    identifier = args.migration_set or settings.migration_set
    print(f"Migration set: {identifier}")

    migration_set = load_migration_set(identifier)
    report = migrate_database(migration_set, direction, settings=settings)

    if report.nothing_to_do:
        print(f"No migrations to run ({report.already_applied} of {report.total} already applied).")
    else:
        print(f"Migrations complete: ran {report.ran} of {report.total}.")
        for version_id in report.version_ids:
            print(f"  - {version_id}")
    if report.unknown_versions:
        print("WARNING applied versions missing from the migration set: {}".format(
            ", ".join(report.unknown_versions)))
    return 0


COMMANDS = {
    "validate": validate,
    "upgrade": migrate,
    "downgrade": migrate,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dbschema",
        description="Database schema migration and validation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    for name, help_text in (
        ("validate", "Compare the live schema with the reference dump"),
        ("upgrade", "Apply pending migrations"),
        ("downgrade", "Revert migrations (not supported)"),
    ):
        command_parser = subparsers.add_parser(name, help=help_text)
        command_parser.add_argument(
            "migration_set",
            nargs="?",
            help="Migration set module (defaults to the MIGRATION_SET setting)",
        )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main CLI entry point."""
    configure_logging()
    parser = build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)

    if not argv:
        parser.print_help()
        print("\nPlease specify one of 'upgrade', 'downgrade', or 'validate'")
        return 0

    # Unknown commands and extra arguments exit with status 2.
    args = parser.parse_args(argv)

    try:
        settings = get_settings()
        return COMMANDS[args.command](args, settings)
    except (ConfigurationError, DatabaseConnectionError) as exc:
        logger.exception("{} failed", args.command)
        print(f"❌ {exc}")
        if exc.hint:
            print(exc.hint)
        return ERROR_EXIT_CODE
    except Exception:
        logger.exception("{} failed", args.command)
        return ERROR_EXIT_CODE


if __name__ == "__main__":
    sys.exit(main())
