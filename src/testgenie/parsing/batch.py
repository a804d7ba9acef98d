"""Concurrent parsing of many source files.

Reads and parses run in worker threads so the event loop stays responsive.
A failure in one file is recorded and never aborts the batch.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from testgenie.parsing.languages import extract_from_source
from testgenie.parsing.treesitter import ParsedFile, ParseError, detect_language

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 8


@dataclass
class FileFailure:
    """A file the batch could not parse."""

    file_path: str
    error: str
    """Exception class name, e.g. ``ParseError``."""
    message: str


@dataclass
class BatchParseResult:
    """Outcome of :func:`parse_files`, in input order."""

    parsed: list[ParsedFile] = field(default_factory=list)
    failures: list[FileFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    """Files not attempted because the batch was cancelled."""

    @property
    def cancelled(self) -> bool:
        return bool(self.skipped)


async def parse_file(file_path: str | Path, *, root: Path | None = None) -> ParsedFile:
    """Read and parse one file without blocking the event loop.

    Args:
        file_path: Path of the file; reported unchanged in the result.
        root: Directory that relative *file_path* values are read from.

    Raises:
        FileNotFoundError: If the file does not exist.
        ParseError: If the extension is unsupported or the source is invalid.
    """
    display = str(file_path)
    if detect_language(display) is None:
        raise ParseError(display, f"unsupported file type {Path(display).suffix!r}")
    path = Path(file_path)
    if root is not None and not path.is_absolute():
        path = root / path
    source = await asyncio.to_thread(path.read_bytes)
    return await asyncio.to_thread(extract_from_source, source, display)


async def parse_files(
    paths: Sequence[str | Path],
    *,
    root: Path | None = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    cancel_event: asyncio.Event | None = None,
) -> BatchParseResult:
    """Parse *paths* with at most *max_concurrency* files in flight.

    Setting *cancel_event* stops new files from starting; files already in
    flight finish and the rest are reported in ``skipped``.
    """
    if max_concurrency < 1:
        raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")

    semaphore = asyncio.Semaphore(max_concurrency)

    async def _parse_one(path: str | Path) -> ParsedFile | FileFailure | None:
        async with semaphore:
            if cancel_event is not None and cancel_event.is_set():
                return None
            try:
                return await parse_file(path, root=root)
            except ParseError as exc:
                logger.warning("Could not parse %s: %s", path, exc.message)
                return FileFailure(str(path), type(exc).__name__, exc.message)
            except OSError as exc:
                logger.warning("Could not read %s: %s", path, exc)
                return FileFailure(str(path), type(exc).__name__, str(exc))

    outcomes = await asyncio.gather(*(_parse_one(p) for p in paths))

    result = BatchParseResult()
    for path, outcome in zip(paths, outcomes, strict=True):
        if outcome is None:
            result.skipped.append(str(path))
        elif isinstance(outcome, FileFailure):
            result.failures.append(outcome)
        else:
            result.parsed.append(outcome)

    logger.debug(
        "Parsed %d files (%d failed, %d skipped)",
        len(result.parsed),
        len(result.failures),
        len(result.skipped),
    )
    return result
