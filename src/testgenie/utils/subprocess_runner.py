"""Async subprocess execution for the git backend.

Commands run without blocking the event loop.  A non-zero exit or a timeout
is reported in the :class:`SubprocessResult`; only a command that cannot be
started raises :class:`SubprocessError`.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0

_TIMEOUT_MESSAGE = b"Process timed out and was killed"


@dataclass
class SubprocessResult:
    """Exit status and decoded output of one command."""

    returncode: int
    stdout: str
    stderr: str

    timed_out: bool = False
    """True if the command was killed when the timeout expired."""

    duration_ms: float = 0.0

    @property
    def success(self) -> bool:
        """True if the command exited 0 within the timeout."""
        return self.returncode == 0 and not self.timed_out


class SubprocessError(Exception):
    """Raised when a command cannot be started."""

    def __init__(self, message: str, result: SubprocessResult) -> None:
        super().__init__(message)
        self.result = result


def _not_started(exc: OSError) -> SubprocessResult:
    return SubprocessResult(returncode=-1, stdout="", stderr=str(exc))


def _working_dir(cwd: Path | None) -> Path:
    work_dir = cwd.resolve() if cwd else Path.cwd()
    if not work_dir.exists():
        raise ValueError(f"Working directory does not exist: {work_dir}")
    return work_dir


async def _communicate(
    process: asyncio.subprocess.Process, timeout: float
) -> tuple[bytes, bytes, bool]:
    """Collect output, killing the process once *timeout* seconds pass."""
    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except TimeoutError:
        logger.warning("Subprocess timed out after %s seconds", timeout)
        with contextlib.suppress(ProcessLookupError):
            process.kill()
        await process.wait()
        return b"", _TIMEOUT_MESSAGE, True
    return stdout, stderr, False


async def run_subprocess(
    command: Sequence[str],
    *,
    cwd: Path | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    env: dict[str, str] | None = None,
) -> SubprocessResult:
    """Run *command* and capture its output as UTF-8 text.

    Args:
        command: Program and arguments, e.g. ``['git', 'status']``.
        cwd: Working directory; defaults to the current directory.
        timeout: Seconds before the process is killed.
        env: Extra environment variables, merged over the current environment.

    Raises:
        SubprocessError: If the command cannot be started.
        ValueError: If command is empty, timeout is not positive or cwd is missing.
    """
    if not command:
        raise ValueError("Command cannot be empty")
    if timeout <= 0:
        raise ValueError(f"Timeout must be positive, got {timeout}")
    work_dir = _working_dir(cwd)

    logger.debug("Running %s (cwd=%s, timeout=%s)", " ".join(command), work_dir, timeout)
    start = time.perf_counter()
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=work_dir,
            env={**os.environ, **env} if env else None,
        )
    except FileNotFoundError as exc:
        logger.error("Command not found: %s", command[0])
        raise SubprocessError(f"Command not found: {command[0]}", _not_started(exc)) from exc
    except OSError as exc:
        logger.exception("Could not start %s", command[0])
        raise SubprocessError(f"Subprocess execution failed: {exc}", _not_started(exc)) from exc

    stdout, stderr, timed_out = await _communicate(process, timeout)
    result = SubprocessResult(
        returncode=process.returncode or (-1 if timed_out else 0),
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        timed_out=timed_out,
        duration_ms=(time.perf_counter() - start) * 1000,
    )
    logger.debug("%s exited %d in %.2fms", command[0], result.returncode, result.duration_ms)
    return result
