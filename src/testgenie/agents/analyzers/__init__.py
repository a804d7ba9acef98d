"""Analyzer agents for testgenie."""

from testgenie.agents.analyzers.coverage import (
    CoverageAnalysisTask,
    CoverageAnalyzer,
    CoverageReport,
    CoverageResult,
    compute_coverage,
)
from testgenie.agents.analyzers.diff import (
    ChangeStatus,
    DiffAnalysisTask,
    DiffAnalyzer,
    DiffMode,
    GitChangeResolver,
    GitDiffInfo,
    GitFileChange,
    reconcile_changes,
)

__all__ = [
    "ChangeStatus",
    "CoverageAnalysisTask",
    "CoverageAnalyzer",
    "CoverageReport",
    "CoverageResult",
    "DiffAnalysisTask",
    "DiffAnalyzer",
    "DiffMode",
    "GitChangeResolver",
    "GitDiffInfo",
    "GitFileChange",
    "compute_coverage",
    "reconcile_changes",
]
