"""Git change resolution: what changed in the working tree, index or history.

:class:`GitChangeResolver` turns repository status into a reconciled list of
:class:`GitFileChange` entries and pairs it with the matching diff text.
:class:`DiffAnalyzer` is the agent that resolves changes and parses the
changed source files.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

from testgenie.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus
from testgenie.parsing.batch import DEFAULT_MAX_CONCURRENCY, parse_files
from testgenie.utils.git import (
    EMPTY_TREE_SHA,
    GitOperationError,
    NotAGitRepositoryError,
    SubprocessGitRepository,
)
from testgenie.utils.paths import is_source_file

if TYPE_CHECKING:
    from testgenie.utils.git import GitRepository, RepositoryStatus

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

DEFAULT_BRANCH = "main"
"""Reported when HEAD is detached or the branch name is unknown."""

DEFAULT_RECENT_COMMITS = 5

SHORT_SHA_LENGTH = 7


class ChangeStatus(Enum):
    """How a file changed."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"
    STAGED = "staged"  # only known from the index


class DiffMode(Enum):
    """Which set of changes a diff covers."""

    UNCOMMITTED = "uncommitted"
    STAGED = "staged"
    SINCE = "since"


# ── Data models ──────────────────────────────────────────────────


@dataclass
class GitFileChange:
    """One changed file, reconciled across the status buckets."""

    file: str
    """Repository-relative path."""

    status: ChangeStatus

    staged: bool = False
    """True if the change is recorded in the index."""

    modified: bool = False
    """True if the working tree holds changes not yet staged."""


@dataclass
class GitDiffInfo:
    """A set of changes plus the unified diff text covering them."""

    changes: list[GitFileChange] = field(default_factory=list)
    diff_text: str = ""

    @property
    def total_files(self) -> int:
        return len(self.changes)

    @property
    def code_files(self) -> int:
        """Number of changed files that are source (non-test) code."""
        return sum(1 for change in self.changes if is_source_file(change.file))


def reconcile_changes(status: RepositoryStatus) -> list[GitFileChange]:
    """Merge status buckets into one entry per file.

    Classification order is modified, created, deleted; the first bucket a
    file appears in decides its status.  Staged paths then either flag an
    existing entry or become ``STAGED`` entries of their own.  ``modified``
    marks entries whose working-tree copy still differs from the index.
    """
    by_file: dict[str, GitFileChange] = {}
    buckets = (
        (status.modified, ChangeStatus.MODIFIED),
        (status.created, ChangeStatus.ADDED),
        (status.deleted, ChangeStatus.DELETED),
    )
    unstaged = set(status.not_staged)
    for paths, change_status in buckets:
        for path in paths:
            if path not in by_file:
                by_file[path] = GitFileChange(
                    file=path,
                    status=change_status,
                    modified=path in unstaged,
                )

    for path in status.staged:
        existing = by_file.get(path)
        if existing is not None:
            existing.staged = True
        else:
            by_file[path] = GitFileChange(
                file=path,
                status=ChangeStatus.STAGED,
                staged=True,
                modified=path in unstaged,
            )

    # Type changes land in no bucket but still show in `git diff`
    for path in status.not_staged:
        if path not in by_file:
            by_file[path] = GitFileChange(file=path, status=ChangeStatus.MODIFIED, modified=True)

    return list(by_file.values())


# ── Resolver ─────────────────────────────────────────────────────


class GitChangeResolver:
    """Answers change queries against a single repository.

    Queries are serialized; the repository is never asked two things at once.
    """

    def __init__(self, repository: GitRepository) -> None:
        self._repo = repository
        self._lock = asyncio.Lock()

    async def is_git_repository(self) -> bool:
        """Return True if the repository answers a status query."""
        async with self._lock:
            try:
                await self._repo.status()
            except Exception as exc:  # any failure means "not usable as a repo"
                logger.debug("Repository status check failed: %s", exc)
                return False
        return True

    async def _changes(self) -> list[GitFileChange]:
        return reconcile_changes(await self._repo.status())

    async def get_uncommitted_diff(self) -> GitDiffInfo:
        """Changes not yet staged, with ``git diff`` text."""
        async with self._lock:
            changes = await self._changes()
            diff_text = await self._repo.diff()
        return GitDiffInfo(
            changes=[change for change in changes if change.modified],
            diff_text=diff_text,
        )

    async def get_staged_diff(self) -> GitDiffInfo:
        """Changes recorded in the index, with ``git diff --cached`` text."""
        async with self._lock:
            changes = await self._changes()
            diff_text = await self._repo.diff("--cached")
        return GitDiffInfo(
            changes=[change for change in changes if change.staged],
            diff_text=diff_text,
        )

    async def get_diff_since(self, since: str) -> GitDiffInfo:
        """Diff from just before the oldest commit matching *since* to HEAD.

        The change list mirrors the current working-tree status.  When no
        commit falls in the window the diff text is empty.

        Args:
            since: A date expression git understands, e.g. ``"2 days ago"``.
        """
        if not since or not since.strip():
            raise ValueError("since must be a non-empty date expression")

        async with self._lock:
            changes = await self._changes()
            commits = await self._repo.log(since=since)
            if not commits:
                logger.debug("No commits since %s", since)
                return GitDiffInfo(changes=changes, diff_text="")

            oldest = commits[-1]
            base = oldest.parents[0] if oldest.parents else EMPTY_TREE_SHA
            diff_text = await self._repo.diff(base, "HEAD")
        return GitDiffInfo(changes=changes, diff_text=diff_text)

    async def get_repository_root(self) -> Path:
        """Top-level directory that change paths are relative to."""
        async with self._lock:
            return await self._repo.toplevel()

    async def get_current_branch(self) -> str:
        """Current branch name, ``"main"`` when it cannot be determined."""
        async with self._lock:
            status = await self._repo.status()
        return status.current or DEFAULT_BRANCH

    async def get_recent_commits(self, count: int = DEFAULT_RECENT_COMMITS) -> list[str]:
        """Newest commits as ``"<short sha> - <subject>"`` lines."""
        if count < 1:
            return []
        async with self._lock:
            commits = await self._repo.log(max_count=count)
        return [f"{c.hash[:SHORT_SHA_LENGTH]} - {c.message}" for c in commits[:count]]

    @staticmethod
    def get_changed_source_files(diff_info: GitDiffInfo) -> list[str]:
        """Changed source files that still exist in the working tree."""
        return [
            change.file
            for change in diff_info.changes
            if change.status is not ChangeStatus.DELETED and is_source_file(change.file)
        ]


# ── DiffAnalyzer ─────────────────────────────────────────────────


def _scope_within(project_root: Path, repo_root: Path) -> tuple[str, ...]:
    """Path parts of *project_root* below *repo_root*; empty when not nested."""
    try:
        return project_root.resolve().relative_to(repo_root.resolve()).parts
    except ValueError:
        return ()


@dataclass
class DiffAnalysisTask(TaskInput):
    """Task input for diff analysis."""

    task_type: str = "analyze_diff"
    """Type of task (defaults to 'analyze_diff')."""

    target: str = ""
    """Target for the task (defaults to project_root)."""

    project_root: str = ""
    """Directory to analyze: the repository root or a directory inside it.

    Changes are resolved for the whole repository; only changed source files
    under this directory are parsed.
    """

    mode: DiffMode = DiffMode.UNCOMMITTED
    """Which changes to resolve."""

    since: str | None = None
    """Date expression, required for ``DiffMode.SINCE``."""

    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    """Files parsed at once."""

    def __post_init__(self) -> None:
        """Initialize base TaskInput fields if not already set."""
        if not self.target and self.project_root:
            self.target = self.project_root


class DiffAnalyzer(BaseAgent):
    """Agent that resolves git changes and parses the changed source files."""

    def __init__(self, repository: GitRepository | None = None) -> None:
        """Initialize the DiffAnalyzer.

        Args:
            repository: Repository to query.  Defaults to the ``git`` CLI
                in the task's project root.
        """
        self._repository = repository

    @property
    def name(self) -> str:
        """Unique name identifying this agent."""
        return "diff_analyzer"

    @property
    def description(self) -> str:
        """Human-readable description of what this agent does."""
        return "Resolves git changes and parses changed source files"

    async def run(self, task: TaskInput) -> TaskOutput:
        """Execute diff analysis.

        Returns:
            TaskOutput with the GitDiffInfo in ``result['diff_info']``, the
            branch in ``result['branch']`` and the BatchParseResult of the
            changed source files in ``result['parse_result']``.  Change paths stay
            relative to the repository root.
        """
        if not isinstance(task, DiffAnalysisTask):
            return TaskOutput.failed("Task must be a DiffAnalysisTask instance")

        project_root = Path(task.project_root or task.target or ".")
        repository = self._repository or SubprocessGitRepository(project_root)
        resolver = GitChangeResolver(repository)

        logger.info("Resolving %s changes in %s", task.mode.value, project_root)
        try:
            if task.mode is DiffMode.STAGED:
                diff_info = await resolver.get_staged_diff()
            elif task.mode is DiffMode.SINCE:
                if not task.since:
                    return TaskOutput.failed("A date expression is required for --since")
                diff_info = await resolver.get_diff_since(task.since)
            else:
                diff_info = await resolver.get_uncommitted_diff()
            branch = await resolver.get_current_branch()
            repo_root = await resolver.get_repository_root()
        except NotAGitRepositoryError as exc:
            return TaskOutput.failed(str(exc))
        except GitOperationError as exc:
            logger.exception("Git command failed")
            return TaskOutput.failed(f"Git command failed: {exc}")

        scope = _scope_within(project_root, repo_root)
        changed_sources = [
            path
            for path in resolver.get_changed_source_files(diff_info)
            if Path(path).parts[: len(scope)] == scope
        ]
        parse_result = await parse_files(
            changed_sources,
            root=repo_root,
            max_concurrency=task.max_concurrency,
        )

        logger.info(
            "Diff analysis complete: %d changed files, %d source files parsed",
            diff_info.total_files,
            len(parse_result.parsed),
        )
        return TaskOutput(
            status=TaskStatus.COMPLETED,
            result={
                "diff_info": diff_info,
                "branch": branch,
                "changed_source_files": changed_sources,
                "parse_result": parse_result,
            },
        )
