"""File discovery: find the source and test files of a project.

Paths are returned relative to the project root, POSIX-separated and sorted.
Dependency, build output and VCS directories are never entered.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from testgenie.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus
from testgenie.utils.paths import SOURCE_EXTENSIONS, is_source_file, is_test_file

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

logger = logging.getLogger(__name__)

# Default directories to skip during scanning.
DEFAULT_SKIP_DIRS: frozenset[str] = frozenset(
    {
        ".git",
        ".hg",
        ".svn",
        "node_modules",
        "dist",
        "build",
        "coverage",
        ".next",
        ".nuxt",
        ".turbo",
        ".cache",
    }
)

TEST_DIR_NAME = "__tests__"
"""Directory name whose contents are always treated as tests."""

_BRACE_RE = re.compile(r"\{([^{}]*)\}")


class DiscoveryError(Exception):
    """Raised when the project tree cannot be read."""

    def __init__(self, root: Path | str, message: str) -> None:
        super().__init__(f"{message}: {root}")
        self.root = str(root)
        self.message = message


@dataclass
class DiscoveryResult:
    """Source and test files found under a project root."""

    source_files: list[str] = field(default_factory=list)
    test_files: list[str] = field(default_factory=list)


# ── Glob matching ────────────────────────────────────────────────


def _expand_braces(pattern: str) -> list[str]:
    """Expand ``{a,b}`` alternatives, e.g. ``*.{js,ts}`` -> ``*.js``, ``*.ts``."""
    match = _BRACE_RE.search(pattern)
    if match is None:
        return [pattern]
    head, tail = pattern[: match.start()], pattern[match.end() :]
    expanded: list[str] = []
    for option in match.group(1).split(","):
        expanded.extend(_expand_braces(f"{head}{option}{tail}"))
    return expanded


def compile_globs(patterns: Iterable[str]) -> tuple[str, ...]:
    """Turn gitignore-style globs into fnmatch patterns.

    ``**/`` may match zero directories, so each pattern also yields variants
    with those segments collapsed.
    """
    variants: set[str] = set()
    for pattern in patterns:
        for expanded in _expand_braces(pattern.replace("\\", "/").removeprefix("./")):
            collapsed = expanded.replace("/**/", "/")
            for candidate in (expanded, collapsed):
                variants.add(candidate)
                if candidate.startswith("**/"):
                    variants.add(candidate[3:])
    return tuple(sorted(variants))


def matches_any(path: str, globs: Sequence[str]) -> bool:
    """Return True if the relative POSIX *path* matches one of *globs*."""
    return any(fnmatch.fnmatchcase(path, glob) for glob in globs)


# ── Walking ──────────────────────────────────────────────────────


def _iter_code_files(
    root: Path,
    relative: Path,
    exclude: Sequence[str],
    skip_dirs: frozenset[str],
) -> Iterator[str]:
    directory = root / relative
    try:
        children = sorted(directory.iterdir())
    except OSError as exc:
        raise DiscoveryError(directory, f"Cannot read directory ({exc.strerror or exc})") from exc

    for child in children:
        rel = relative / child.name
        rel_posix = rel.as_posix()
        if child.is_dir():
            if child.name in skip_dirs or child.is_symlink():
                continue
            if matches_any(f"{rel_posix}/", exclude):
                continue
            yield from _iter_code_files(root, rel, exclude, skip_dirs)
        elif child.is_file() and child.name.endswith(SOURCE_EXTENSIONS):
            if not matches_any(rel_posix, exclude):
                yield rel_posix


def _check_root(root: Path) -> None:
    if not root.exists():
        raise DiscoveryError(root, "Project root does not exist")
    if not root.is_dir():
        raise DiscoveryError(root, "Project root is not a directory")


def find_source_files(
    root: Path | str,
    *,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> list[str]:
    """Find code files under *root* that are not tests.

    Args:
        root: Project root directory.
        include: Optional globs; when given, a file must match one of them.
        exclude: Globs for files or directories to leave out.

    Raises:
        DiscoveryError: If *root* is missing or a directory cannot be read.
    """
    root_path = Path(root)
    _check_root(root_path)
    include_globs = compile_globs(include)
    skip_dirs = DEFAULT_SKIP_DIRS | {TEST_DIR_NAME}
    return [
        path
        for path in _iter_code_files(root_path, Path(), compile_globs(exclude), skip_dirs)
        if is_source_file(path) and (not include_globs or matches_any(path, include_globs))
    ]


def find_test_files(root: Path | str, *, exclude: Iterable[str] = ()) -> list[str]:
    """Find test files under *root*.

    A test file either lives below a ``__tests__`` directory or follows the
    ``*.test.*`` / ``*.spec.*`` naming convention.

    Raises:
        DiscoveryError: If *root* is missing or a directory cannot be read.
    """
    root_path = Path(root)
    _check_root(root_path)
    return [
        path
        for path in _iter_code_files(root_path, Path(), compile_globs(exclude), DEFAULT_SKIP_DIRS)
        if is_test_file(path) or TEST_DIR_NAME in path.split("/")[:-1]
    ]


async def discover_files(
    root: Path | str,
    *,
    include: Iterable[str] = (),
    exclude: Iterable[str] = (),
) -> DiscoveryResult:
    """Run source and test discovery concurrently in worker threads."""
    include, exclude = tuple(include), tuple(exclude)
    source_files, test_files = await asyncio.gather(
        asyncio.to_thread(find_source_files, root, include=include, exclude=exclude),
        asyncio.to_thread(find_test_files, root, exclude=exclude),
    )
    logger.debug(
        "Discovered %d source files and %d test files under %s",
        len(source_files),
        len(test_files),
        root,
    )
    return DiscoveryResult(source_files=source_files, test_files=test_files)


class FileDiscoverer(BaseAgent):
    """Agent that lists a project's source and test files."""

    @property
    def name(self) -> str:
        return "file-discoverer"

    @property
    def description(self) -> str:
        return "Find JavaScript and TypeScript source and test files in a project."

    async def run(self, task: TaskInput) -> TaskOutput:
        """Run discovery on ``task.target``.

        Optional ``task.context["include"]`` and ``task.context["exclude"]``
        hold glob lists.
        """
        try:
            result = await discover_files(
                task.target,
                include=task.context.get("include", ()),
                exclude=task.context.get("exclude", ()),
            )
        except DiscoveryError as exc:
            return TaskOutput.failed(str(exc))

        return TaskOutput(status=TaskStatus.COMPLETED, result={"discovery": result})
