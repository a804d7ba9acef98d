"""CoverageAnalyzer agent: which source files already have a test file.

Coverage here is file-level and structural.  A source file is tested when a
test file exists at (or near) the location :func:`get_test_file_path`
assigns it; no tests are executed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from testgenie.agents.base import BaseAgent, TaskInput, TaskOutput, TaskStatus
from testgenie.agents.detectors.discovery import DiscoveryError, DiscoveryResult, discover_files
from testgenie.utils.paths import DEFAULT_TEST_DIR, get_test_file_path

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

DEFAULT_COVERAGE_THRESHOLD = 80.0
"""Percentage of source files that must have tests."""


# ── Data models ──────────────────────────────────────────────────


@dataclass
class CoverageResult:
    """File-level test coverage of a project."""

    untested: list[str] = field(default_factory=list)
    """Source files without a matching test file, in input order."""

    tested: list[str] = field(default_factory=list)
    """Source files with a matching test file, in input order."""

    coverage_percent: float = 0.0
    """Share of tested source files, rounded to one decimal place."""

    @property
    def total(self) -> int:
        return len(self.tested) + len(self.untested)


@dataclass
class CoverageAnalysisTask(TaskInput):
    """Task input for coverage analysis."""

    task_type: str = "analyze_coverage"
    """Type of task (defaults to 'analyze_coverage')."""

    target: str = ""
    """Target for the task (defaults to project_root)."""

    project_root: str = ""
    """Root directory of the project to analyze."""

    test_dir: str = DEFAULT_TEST_DIR
    """Directory expected test paths are placed under."""

    include: list[str] = field(default_factory=list)
    """Globs restricting which source files count."""

    exclude: list[str] = field(default_factory=list)
    """Globs for files or directories to leave out."""

    threshold: float = DEFAULT_COVERAGE_THRESHOLD
    """Minimum acceptable coverage percentage."""

    strict: bool = False
    """Require exact path matches instead of substring matches."""

    def __post_init__(self) -> None:
        """Initialize base TaskInput fields if not already set."""
        if not self.target and self.project_root:
            self.target = self.project_root


@dataclass
class CoverageReport:
    """Discovery and coverage results for one project."""

    discovery: DiscoveryResult
    coverage: CoverageResult
    threshold: float = DEFAULT_COVERAGE_THRESHOLD

    @property
    def meets_threshold(self) -> bool:
        return self.coverage.coverage_percent >= self.threshold


# ── Coverage computation ─────────────────────────────────────────


def _normalize(path: str) -> str:
    return path.replace("\\", "/").removeprefix("./")


def _has_test(expected: str, test_files: Sequence[str], *, strict: bool) -> bool:
    if strict:
        return expected in test_files
    # Loose matching accepts tests placed anywhere that shares the path
    # suffix, e.g. colocated `src/foo.test.ts` for `__tests__/src/foo.test.ts`.
    return any(expected in test or test in expected for test in test_files)


def compute_coverage(
    source_files: Iterable[str],
    test_files: Iterable[str],
    *,
    test_dir: str = DEFAULT_TEST_DIR,
    strict: bool = False,
) -> CoverageResult:
    """Partition *source_files* into tested and untested.

    Args:
        source_files: Project-relative source paths.
        test_files: Project-relative test paths.
        test_dir: Directory that expected test paths are placed under.
        strict: Require the expected test path to exist exactly.

    Returns:
        CoverageResult; ``coverage_percent`` is 0.0 when there are no sources.
    """
    tests = [_normalize(t) for t in test_files if t]
    result = CoverageResult()
    for source in source_files:
        expected = get_test_file_path(source, test_dir)
        if _has_test(expected, tests, strict=strict):
            result.tested.append(source)
        else:
            result.untested.append(source)

    if result.total:
        result.coverage_percent = round(len(result.tested) / result.total * 100, 1)
    return result


# ── CoverageAnalyzer ─────────────────────────────────────────────


class CoverageAnalyzer(BaseAgent):
    """Agent that discovers a project's files and reports untested sources."""

    @property
    def name(self) -> str:
        """Unique name identifying this agent."""
        return "coverage_analyzer"

    @property
    def description(self) -> str:
        """Human-readable description of what this agent does."""
        return "Finds source files that have no corresponding test file"

    async def analyze(self, task: CoverageAnalysisTask) -> CoverageReport:
        """Discover files and compute coverage.

        Raises:
            DiscoveryError: If the project tree cannot be read.
        """
        discovery = await discover_files(
            task.project_root or task.target,
            include=task.include,
            exclude=task.exclude,
        )
        coverage = compute_coverage(
            discovery.source_files,
            discovery.test_files,
            test_dir=task.test_dir,
            strict=task.strict,
        )
        logger.info(
            "Coverage: %d/%d source files tested (%.1f%%)",
            len(coverage.tested),
            coverage.total,
            coverage.coverage_percent,
        )
        return CoverageReport(discovery=discovery, coverage=coverage, threshold=task.threshold)

    async def run(self, task: TaskInput) -> TaskOutput:
        """Execute coverage analysis.

        Returns:
            TaskOutput with the CoverageReport in ``result['coverage_report']``.
        """
        if not isinstance(task, CoverageAnalysisTask):
            return TaskOutput.failed("Task must be a CoverageAnalysisTask instance")

        try:
            report = await self.analyze(task)
        except DiscoveryError as exc:
            return TaskOutput.failed(str(exc))

        return TaskOutput(status=TaskStatus.COMPLETED, result={"coverage_report": report})
