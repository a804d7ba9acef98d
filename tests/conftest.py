"""Shared fixtures for testgenie tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

# ── File creation helpers ────────────────────────────────────────


def write_file(root: Path, rel: str, content: str = "") -> Path:
    """Write *content* to a file under *root*, creating parent directories."""
    f = root / rel
    f.parent.mkdir(parents=True, exist_ok=True)
    f.write_text(content, encoding="utf-8")
    return f


def git(cwd: Path, *args: str) -> str:
    """Run a git command in *cwd* and return its stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


# ── Repository fixtures ──────────────────────────────────────────


@pytest.fixture()
def git_repo(tmp_path: Path) -> Path:
    """Create an empty git repository on branch ``main``."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "symbolic-ref", "HEAD", "refs/heads/main")
    git(repo, "config", "user.email", "dev@example.com")
    git(repo, "config", "user.name", "Dev")
    git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture()
def committed_repo(git_repo: Path) -> Path:
    """A repository with one commit containing a source file and its test."""
    write_file(git_repo, "src/math.js", "export function add(a, b) {\n  return a + b;\n}\n")
    write_file(git_repo, "__tests__/src/math.test.js", "test('add', () => {});\n")
    git(git_repo, "add", ".")
    git(git_repo, "commit", "-q", "-m", "Initial commit")
    return git_repo
