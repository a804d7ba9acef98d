"""Detector agents for project file discovery."""

from testgenie.agents.detectors.discovery import (
    DEFAULT_SKIP_DIRS,
    DiscoveryError,
    DiscoveryResult,
    FileDiscoverer,
    discover_files,
    find_source_files,
    find_test_files,
)

__all__ = [
    "DEFAULT_SKIP_DIRS",
    "DiscoveryError",
    "DiscoveryResult",
    "FileDiscoverer",
    "discover_files",
    "find_source_files",
    "find_test_files",
]
