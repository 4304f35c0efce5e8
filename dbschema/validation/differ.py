"""Comparison of a normalized dump against the reference schema file."""

from datetime import datetime
from pathlib import Path
from typing import Optional

from dbschema.logging_config import get_logger
from dbschema.settings import Settings, get_settings
from dbschema.subprocess_handler import resolve_tool, run_command
from dbschema.validation.models import ValidationOutcome, ValidationStatus

logger = get_logger(name=__name__)

SNAPSHOT_PREFIX = "schema-validate."
SNAPSHOT_TIME_FORMAT = "%Y-%m-%dT%H%M%S"


def snapshot_path_for(reference: Path, now: Optional[datetime] = None) -> Path:
    """Timestamped snapshot file beside the reference, one per second."""
    stamp = (now or datetime.now()).strftime(SNAPSHOT_TIME_FORMAT)
    return reference.parent / f"{SNAPSHOT_PREFIX}{stamp}.sql"


def write_snapshot(path: Path, content: str) -> bool:
    """Write content to a new file; never overwrite an existing one.

    Returns:
        True if the file was written, False if it already existed or could
        not be created
    """
    try:
        with open(path, "x", encoding="utf-8", newline="") as f:
            f.write(content)
    except FileExistsError:
        logger.warning("{} exists! Not overwriting.", path)
        return False
    except OSError as exc:
        logger.error("Could not write current schema to {}: {}", path, exc)
        return False

    logger.info("Wrote current schema to {}", path)
    return True


async def diff_schema(
    reference: Path,
    actual: str,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> ValidationOutcome:
    """Diff the reference file against ``actual`` fed on diff's stdin.

    Exit status 0 is a match and 1 means differences, in which case
    ``actual`` is saved as a snapshot for review. Any other status is a
    tool failure carrying stderr (or stdout when stderr is empty).
    """
    reference = Path(reference)
    settings = settings or get_settings()
    diff_bin = await resolve_tool("diff", settings.diff_path, probe=False)

    result = await run_command([diff_bin, str(reference), "-"], input_text=actual)

    if result.return_code == 0:
        logger.info("Schema is valid")
        return ValidationOutcome(status=ValidationStatus.VALID, return_code=0)

    if result.return_code == 1:
        logger.warning("Schema differences found against {}", reference)
        snapshot = snapshot_path_for(reference, now)
        written = write_snapshot(snapshot, actual)
        return ValidationOutcome(
            status=ValidationStatus.DIFFERENCES,
            return_code=1,
            diff_text=result.stdout,
            snapshot_path=snapshot,
            snapshot_written=written,
        )

    error = result.stderr.strip() or result.stdout.strip()
    logger.error("DIFF ERROR! (code = {}) {}", result.return_code, error)
    return ValidationOutcome(
        status=ValidationStatus.DIFF_ERROR,
        return_code=result.return_code,
        error=error,
    )
