"""Normalization of pg_dump output before comparison.

Comments, ownership changes, grants/revokes and blank lines vary between
environments without changing the schema, so they are stripped line by
line. Kept lines retain their original line endings.
"""

import re

# One physical line including its terminator (\n, \r\n or a lone \r).
_LINE = re.compile(r"[^\r\n]*(?:\r\n?|\n)|[^\r\n]+\Z")

_COMMENT = re.compile(r"^--")
_OWNER = re.compile(r"^ALTER\s.*\sOWNER TO\s.*;\s*$")
_GRANT = re.compile(r"^(?:GRANT|REVOKE)\s.*;\s*$")

NOISE_PATTERNS = (_COMMENT, _OWNER, _GRANT)


def is_noise(line: str) -> bool:
    """Return True for a line that carries no schema information."""
    content = line.rstrip("\r\n")
    if not content.strip():
        return True
    return any(pattern.match(content) for pattern in NOISE_PATTERNS)


def normalize_dump(dump: str) -> str:
    """Strip non-semantic noise from a schema dump.

    Idempotent: normalizing an already normalized dump returns it unchanged.
    """
    return "".join(line for line in _LINE.findall(dump) if not is_noise(line))
