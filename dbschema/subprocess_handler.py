"""Subprocess execution for the external schema tools (pg_dump, diff).

Input is written and both output streams are drained concurrently so a
tool blocked on a full stdout pipe can never deadlock against a parent
blocked on the tool's stdin. All three tasks finish before the exit status
is read.
"""

import asyncio
import os
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Mapping, Optional, Sequence

from dbschema.exceptions import ToolNotFoundError
from dbschema.logging_config import get_logger

logger = get_logger(name=__name__)

_HOMEBREW_ROOTS = ("/opt/homebrew", "/usr/local")
_POSTGRES_MAJORS = ("17", "16", "15", "14")
_POSTGRES_TOOLS = {"pg_dump", "pg_restore", "psql"}

_tool_cache: dict[str, str] = {}


@dataclass
class SubprocessResult:
    """Result from subprocess execution."""
    return_code: int
    stdout: str
    stderr: str
    duration_seconds: float

    @property
    def success(self) -> bool:
        return self.return_code == 0


async def _read_stream(stream: Optional[asyncio.StreamReader]) -> str:
    if stream is None:
        return ""
    data = await stream.read()
    return data.decode("utf-8", errors="replace")


async def _feed_stdin(stream: Optional[asyncio.StreamWriter], data: bytes, program: str) -> None:
    if stream is None:
        return
    try:
        stream.write(data)
        await stream.drain()
        stream.close()
        await stream.wait_closed()
    except (BrokenPipeError, ConnectionResetError):
        # The exit status tells the caller why the tool stopped reading.
        logger.debug("{} closed its input before reading everything", program)
    finally:
        if not stream.is_closing():
            stream.close()


async def run_command(
    cmd: Sequence[str],
    input_text: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> SubprocessResult:
    """Run a command to completion, capturing stdout and stderr in full.

    Args:
        cmd: Program and arguments, passed without a shell
        input_text: Text written to the program's stdin (stdin is closed
            immediately when None)
        env: Environment for the child process (inherits when None)

    Returns:
        SubprocessResult with the exit status and decoded output
    """
    start_time = datetime.now(timezone.utc)
    program = cmd[0]

    process = await asyncio.create_subprocess_exec(
        *cmd,
        stdin=asyncio.subprocess.PIPE if input_text is not None else asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
        env=dict(env) if env is not None else None,
    )

    try:
        _, stdout, stderr = await asyncio.gather(
            _feed_stdin(process.stdin, (input_text or "").encode("utf-8"), program),
            _read_stream(process.stdout),
            _read_stream(process.stderr),
        )
        return_code = await process.wait()
    except BaseException:
        if process.returncode is None:
            process.kill()
            await process.wait()
        raise

    duration = (datetime.now(timezone.utc) - start_time).total_seconds()
    logger.debug("{} exited {} after {:.2f}s", program, return_code, duration)

    return SubprocessResult(
        return_code=return_code,
        stdout=stdout,
        stderr=stderr,
        duration_seconds=duration,
    )


def get_tool_candidates(tool_name: str, override: Optional[str] = None) -> list[str]:
    """Build candidate executable paths for an external tool."""
    candidates: list[str] = []

    # Explicit override wins.
    if override:
        candidates.append(override)

    resolved = shutil.which(tool_name)
    if resolved:
        candidates.append(resolved)

    # Homebrew keeps the PostgreSQL client tools off PATH.
    if tool_name in _POSTGRES_TOOLS:
        for root in _HOMEBREW_ROOTS:
            candidates.append(f"{root}/opt/libpq/bin/{tool_name}")
            for major in _POSTGRES_MAJORS:
                candidates.append(f"{root}/opt/postgresql@{major}/bin/{tool_name}")

    deduped: list[str] = []
    seen: set[str] = set()
    for candidate in candidates:
        if candidate not in seen:
            deduped.append(candidate)
            seen.add(candidate)
    return deduped


async def resolve_tool(
    tool_name: str,
    override: Optional[str] = None,
    probe: bool = True,
) -> str:
    """Resolve a working executable for an external tool.

    Args:
        tool_name: Executable name, e.g. ``pg_dump``
        override: Explicit path tried before anything else
        probe: Run ``<tool> --version`` and require exit status 0

    Raises:
        ToolNotFoundError: If no candidate is usable
    """
    cache_key = f"{tool_name}:{override or ''}"
    if cache_key in _tool_cache:
        return _tool_cache[cache_key]

    diagnostics: list[str] = []

    for candidate in get_tool_candidates(tool_name, override):
        if not Path(candidate).exists():
            diagnostics.append(f"{candidate}: not found")
            continue
        if not os.access(candidate, os.X_OK):
            diagnostics.append(f"{candidate}: not executable")
            continue

        if probe:
            try:
                result = await run_command([candidate, "--version"])
            except OSError as error:
                diagnostics.append(f"{candidate}: probe error - {error}")
                continue

            if not result.success:
                detail = result.stderr.strip() or result.stdout.strip() or "unknown error"
                diagnostics.append(f"{candidate}: exited {result.return_code} ({detail})")
                continue
            logger.info("Resolved {} executable: {} ({})", tool_name, candidate,
                        result.stdout.strip() or "version ok")
        else:
            logger.info("Resolved {} executable: {}", tool_name, candidate)

        _tool_cache[cache_key] = candidate
        return candidate

    diagnostic_text = "\n".join(diagnostics[-8:]) or "no candidates on PATH"
    raise ToolNotFoundError(
        f"No working '{tool_name}' executable found.\n"
        f"Set {tool_name.upper()}_PATH to a valid binary path.\n"
        f"Diagnostics:\n{diagnostic_text}"
    )


def clear_tool_cache() -> None:
    """Forget previously resolved executables."""
    _tool_cache.clear()
