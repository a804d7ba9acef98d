"""Reporters for outputting scan and audit results."""

from __future__ import annotations

from testgenie.agents.reporters.terminal import CLIReporter, reporter

__all__ = [
    "CLIReporter",
    "reporter",
]
