"""Git repository queries for testgenie.

The change resolver talks to a repository only through the small
:class:`GitRepository` protocol (status, log, diff and the top-level
directory).  The default implementation shells out to the ``git`` binary;
tests and alternative backends can supply any object with the same
coroutine methods.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from testgenie.utils.subprocess_runner import SubprocessError, run_subprocess

logger = logging.getLogger(__name__)

EMPTY_TREE_SHA = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"
"""Object id of the empty tree; diffing against it shows a root commit in full."""

_DEFAULT_GIT_TIMEOUT = 60.0

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"

# Porcelain v1 status columns
_XY_WIDTH = 2
_PATH_OFFSET = 3
_UNTRACKED = "??"
_IGNORED = "!!"
_NOT_STAGED = frozenset({" ", "?", "!", "U"})
_CLEAN_TREE = frozenset({" ", "?", "!"})


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


class NotAGitRepositoryError(GitOperationError):
    """Raised when a git query runs outside a repository."""


@dataclass
class RepositoryStatus:
    """Normalized working-tree status of a repository."""

    current: str | None = None
    """Current branch name, or None when HEAD is detached."""

    modified: list[str] = field(default_factory=list)
    """Files with staged or unstaged content modifications."""

    created: list[str] = field(default_factory=list)
    """Files added to the index."""

    deleted: list[str] = field(default_factory=list)
    """Files deleted in the index or the working tree."""

    renamed: list[str] = field(default_factory=list)
    """New paths of renamed files."""

    staged: list[str] = field(default_factory=list)
    """Every path with a change recorded in the index."""

    not_staged: list[str] = field(default_factory=list)
    """Tracked paths whose working-tree copy differs from the index."""

    not_added: list[str] = field(default_factory=list)
    """Untracked files."""


@dataclass
class LogEntry:
    """A single commit from ``git log``."""

    hash: str
    """Full commit SHA."""

    message: str
    """First line of the commit message."""

    parents: list[str] = field(default_factory=list)
    """Parent commit SHAs (empty for a root commit)."""


class GitRepository(Protocol):
    """Repository-query capability consumed by the change resolver."""

    async def status(self) -> RepositoryStatus:
        """Return the current working-tree status."""
        ...

    async def log(
        self, *, since: str | None = None, max_count: int | None = None
    ) -> list[LogEntry]:
        """Return commits reachable from HEAD, newest first."""
        ...

    async def diff(self, *args: str) -> str:
        """Return unified diff text for ``git diff <args>``."""
        ...

    async def toplevel(self) -> Path:
        """Return the repository root that status paths are relative to."""
        ...


def _parse_branch_header(header: str) -> str | None:
    for prefix in ("No commits yet on ", "Initial commit on "):
        if header.startswith(prefix):
            return header[len(prefix) :].strip() or None
    if header.startswith("HEAD (no branch)"):
        return None
    branch = header.split("...", 1)[0].split(" ", 1)[0].strip()
    return branch or None


def parse_porcelain_status(output: str) -> RepositoryStatus:
    """Parse ``git status --porcelain=v1 --branch -z`` output.

    Args:
        output: Raw NUL-separated status output.

    Returns:
        RepositoryStatus with files bucketed by change kind.
    """
    status = RepositoryStatus()
    entries = output.split("\0")
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if not entry:
            continue
        if entry.startswith("## "):
            status.current = _parse_branch_header(entry[_PATH_OFFSET:])
            continue
        if len(entry) <= _PATH_OFFSET:
            logger.debug("Skipping malformed status entry: %r", entry)
            continue

        xy, path = entry[:_XY_WIDTH], entry[_PATH_OFFSET:]
        index_state, tree_state = xy[0], xy[1]

        if xy == _UNTRACKED:
            status.not_added.append(path)
            continue
        if xy == _IGNORED:
            continue
        if index_state in "RC":
            # The original path follows as its own NUL-terminated entry
            index += 1
            status.renamed.append(path)

        if index_state == "A":
            status.created.append(path)
        if "M" in xy or "U" in xy:
            status.modified.append(path)
        if "D" in xy:
            status.deleted.append(path)
        if index_state not in _NOT_STAGED and tree_state != "U":
            status.staged.append(path)
        if tree_state not in _CLEAN_TREE:
            status.not_staged.append(path)

    return status


def parse_log_output(output: str) -> list[LogEntry]:
    """Parse ``git log`` output produced with the record/field separators."""
    commits: list[LogEntry] = []
    for raw in output.split(_RECORD_SEP):
        record = raw.strip("\n")
        if not record.strip():
            continue
        sha, parents, message = (record.split(_FIELD_SEP) + ["", ""])[:3]
        commits.append(
            LogEntry(
                hash=sha.strip(),
                message=message.strip(),
                parents=parents.split(),
            )
        )
    return commits


class SubprocessGitRepository:
    """GitRepository backed by the ``git`` command-line tool."""

    def __init__(self, repo_path: Path | str, *, timeout: float = _DEFAULT_GIT_TIMEOUT) -> None:
        self._root = Path(repo_path)
        self._timeout = timeout

    @property
    def root(self) -> Path:
        """Directory the git commands run in."""
        return self._root

    async def _run(self, *args: str) -> str:
        command = [_git_executable(), *args]
        try:
            result = await run_subprocess(command, cwd=self._root, timeout=self._timeout)
        except ValueError as exc:
            raise NotAGitRepositoryError(f"Not a git repository: {self._root} ({exc})") from exc
        except SubprocessError as exc:
            raise GitOperationError(f"git {args[0]} failed: {exc}") from exc

        if result.success:
            return result.stdout

        stderr = result.stderr.strip()
        if "not a git repository" in stderr.lower():
            raise NotAGitRepositoryError(f"Not a git repository: {self._root}")
        raise GitOperationError(f"git {args[0]} failed ({result.returncode}): {stderr}")

    async def status(self) -> RepositoryStatus:
        output = await self._run("status", "--porcelain=v1", "--branch", "-z")
        return parse_porcelain_status(output)

    async def log(
        self, *, since: str | None = None, max_count: int | None = None
    ) -> list[LogEntry]:
        args = ["log", f"--format=%H{_FIELD_SEP}%P{_FIELD_SEP}%s{_RECORD_SEP}"]
        if since:
            args.append(f"--since={since}")
        if max_count is not None:
            args.append(f"--max-count={max_count}")
        try:
            output = await self._run(*args)
        except NotAGitRepositoryError:
            raise
        except GitOperationError as exc:
            # A repository without commits has no HEAD to walk
            if "does not have any commits" in str(exc):
                return []
            raise
        return parse_log_output(output)

    async def diff(self, *args: str) -> str:
        return await self._run("diff", *args)

    async def toplevel(self) -> Path:
        output = await self._run("rev-parse", "--show-toplevel")
        return Path(output.strip())
