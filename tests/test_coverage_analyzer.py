"""Tests for file-level coverage resolution and the CoverageAnalyzer agent."""

from __future__ import annotations

from pathlib import Path

from testgenie.agents.analyzers.coverage import (
    CoverageAnalysisTask,
    CoverageAnalyzer,
    CoverageReport,
    CoverageResult,
    compute_coverage,
)
from testgenie.agents.base import TaskInput, TaskStatus
from testgenie.agents.detectors.discovery import DiscoveryResult
from tests.conftest import write_file

# ── compute_coverage ─────────────────────────────────────────────


class TestComputeCoverage:
    def test_percentage(self) -> None:
        sources = [f"src/m{i}.js" for i in range(10)]
        tests = [f"__tests__/src/m{i}.test.js" for i in range(7)]

        result = compute_coverage(sources, tests)

        assert result.coverage_percent == 70.0
        assert result.tested == sources[:7]
        assert result.untested == sources[7:]
        assert result.total == 10

    def test_rounds_to_one_decimal(self) -> None:
        result = compute_coverage(["a.js", "b.js", "c.js"], ["__tests__/a.test.js"])
        assert result.coverage_percent == 33.3

    def test_no_sources(self) -> None:
        assert compute_coverage([], ["__tests__/a.test.js"]) == CoverageResult()

    def test_no_tests(self) -> None:
        result = compute_coverage(["src/b.ts", "src/a.ts"], [])
        assert result.untested == ["src/b.ts", "src/a.ts"]
        assert result.coverage_percent == 0.0

    def test_extension_must_match(self) -> None:
        result = compute_coverage(["src/a.ts"], ["__tests__/src/a.test.js"])
        assert result.untested == ["src/a.ts"]

    def test_colocated_test_matches_loosely(self) -> None:
        result = compute_coverage(["src/a.js"], ["src/a.test.js"])
        assert result.tested == ["src/a.js"]

    def test_nested_test_dir_matches_loosely(self) -> None:
        result = compute_coverage(["a.js"], ["packages/web/__tests__/a.test.js"])
        assert result.tested == ["a.js"]

    def test_strict_requires_exact_path(self) -> None:
        tests = ["src/a.test.js", "__tests__/src/b.test.js"]

        result = compute_coverage(["src/a.js", "src/b.js"], tests, strict=True)

        assert result.tested == ["src/b.js"]
        assert result.untested == ["src/a.js"]
        assert result.coverage_percent == 50.0

    def test_custom_test_dir(self) -> None:
        result = compute_coverage(
            ["src/a.ts", "src/b.ts"],
            ["test/src/a.test.ts", "__tests__/src/b.test.ts"],
            test_dir="test",
            strict=True,
        )
        assert result.tested == ["src/a.ts"]

    def test_test_paths_are_normalized(self) -> None:
        result = compute_coverage(["src/a.js"], ["./__tests__\\src\\a.test.js"], strict=True)
        assert result.tested == ["src/a.js"]


def test_report_threshold() -> None:
    coverage = CoverageResult(tested=["a.js"], untested=["b.js"], coverage_percent=50.0)

    assert CoverageReport(DiscoveryResult(), coverage, threshold=50.0).meets_threshold
    assert not CoverageReport(DiscoveryResult(), coverage, threshold=50.1).meets_threshold


# ── CoverageAnalyzer ─────────────────────────────────────────────


async def test_analyzer_on_project(tmp_path: Path) -> None:
    write_file(tmp_path, "src/a.js", "export const a = 1;\n")
    write_file(tmp_path, "src/b.tsx", "export const B = () => null;\n")
    write_file(tmp_path, "src/vendor/c.js", "module.exports = {};\n")
    write_file(tmp_path, "__tests__/src/a.test.js", "test('a', () => {});\n")
    task = CoverageAnalysisTask(project_root=str(tmp_path), exclude=["**/vendor/**"])

    output = await CoverageAnalyzer().run(task)

    assert output.status == TaskStatus.COMPLETED
    report = output.result["coverage_report"]
    assert report.discovery.source_files == ["src/a.js", "src/b.tsx"]
    assert report.discovery.test_files == ["__tests__/src/a.test.js"]
    assert report.coverage.untested == ["src/b.tsx"]
    assert report.coverage.coverage_percent == 50.0
    assert report.threshold == 80.0
    assert not report.meets_threshold


async def test_analyzer_include_globs(tmp_path: Path) -> None:
    write_file(tmp_path, "src/a.js")
    write_file(tmp_path, "scripts/build.js")
    task = CoverageAnalysisTask(project_root=str(tmp_path), include=["src/**"])

    report = await CoverageAnalyzer().analyze(task)

    assert report.discovery.source_files == ["src/a.js"]


async def test_analyzer_missing_root(tmp_path: Path) -> None:
    task = CoverageAnalysisTask(project_root=str(tmp_path / "missing"))

    output = await CoverageAnalyzer().run(task)

    assert output.status == TaskStatus.FAILED
    assert "does not exist" in output.errors[0]


async def test_analyzer_rejects_wrong_task_type(tmp_path: Path) -> None:
    output = await CoverageAnalyzer().run(TaskInput(task_type="x", target=str(tmp_path)))
    assert output.status == TaskStatus.FAILED


def test_task_target_defaults_to_project_root() -> None:
    task = CoverageAnalysisTask(project_root="/project")
    assert task.target == "/project"
    assert task.task_type == "analyze_coverage"
