"""Tests for the testgenie CLI commands."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

import pytest
import yaml
from click.testing import CliRunner

from testgenie import __version__
from testgenie.agents.reporters.terminal import reporter
from testgenie.cli import _mask_sensitive_values, cli
from tests.conftest import git, write_file


@pytest.fixture()
def half_tested(tmp_path: Path) -> Path:
    """Two source files, one with a test under ``__tests__``."""
    write_file(tmp_path, "src/a.js", "export function a() {}\n")
    write_file(tmp_path, "src/b.js", "export function b() {}\n")
    write_file(tmp_path, "__tests__/src/a.test.js", "test('a', () => {});\n")
    return tmp_path


def _invoke(*args: str) -> tuple[int, str, str]:
    result = CliRunner().invoke(cli, list(args))
    return result.exit_code, result.stdout, result.output


def test_version() -> None:
    code, _, output = _invoke("--version")
    assert code == 0
    assert f"testgenie, version {__version__}" in output


def test_help_lists_commands() -> None:
    code, _, output = _invoke("--help")
    assert code == 0
    for command in ("scan", "audit", "parse", "files", "config"):
        assert command in output


# ── parse ────────────────────────────────────────────────────────


class TestParse:
    def test_json_output(self, tmp_path: Path) -> None:
        f = write_file(
            tmp_path,
            "greet.ts",
            "import { fmt } from './fmt';\nexport async function greet(name: string) {}\n",
        )

        code, stdout, _ = _invoke("parse", str(f), "--json-output")

        assert code == 0
        data = json.loads(stdout)
        assert data["file_path"].endswith("greet.ts")
        assert data["imports"] == ["./fmt"]
        assert data["exports"] == ["greet"]
        (fn,) = data["functions"]
        assert fn["name"] == "greet"
        assert fn["params"] == ["name"]
        assert fn["is_async"] is True
        assert fn["is_exported"] is True

    def test_table_output(self, tmp_path: Path) -> None:
        f = write_file(tmp_path, "a.js", "function helper(x) {}\n")

        code, _, output = _invoke("parse", str(f))

        assert code == 0
        assert "Functions" in output
        assert "helper" in output

    def test_missing_file(self, tmp_path: Path) -> None:
        code, _, output = _invoke("parse", str(tmp_path / "nope.js"))
        assert code == 1
        assert "File not found" in output

    def test_syntax_error(self, tmp_path: Path) -> None:
        f = write_file(tmp_path, "broken.js", "function (broken {\n")
        code, _, output = _invoke("parse", str(f))
        assert code == 1
        assert "Could not parse" in output


# ── audit ────────────────────────────────────────────────────────


class TestAudit:
    def test_below_threshold_exits_non_zero(self, half_tested: Path) -> None:
        code, stdout, _ = _invoke("audit", str(half_tested), "--json-output")

        assert code == 1
        data = json.loads(stdout)
        assert data["coverage_percent"] == 50.0
        assert data["untested"] == ["src/b.js"]
        assert data["tested"] == ["src/a.js"]
        assert data["threshold"] == 80.0
        assert data["meets_threshold"] is False

    def test_configured_threshold(self, half_tested: Path) -> None:
        (half_tested / ".testgenie.yml").write_text(
            yaml.dump({"coverage": {"threshold": 50}}), encoding="utf-8"
        )

        code, _, output = _invoke("audit", str(half_tested))

        assert code == 0
        assert "Test Coverage" in output
        assert "50.0%" in output

    def test_table_output_below_threshold(self, half_tested: Path) -> None:
        code, _, output = _invoke("audit", str(half_tested))
        assert code == 1
        assert "below the 80.0% threshold" in output

    def test_strict_rejects_colocated_tests(self, tmp_path: Path) -> None:
        write_file(tmp_path, "src/a.js", "export const a = 1;\n")
        write_file(tmp_path, "src/a.test.js", "test('a', () => {});\n")

        loose_code, loose, _ = _invoke("audit", str(tmp_path), "--json-output")
        strict_code, strict, _ = _invoke("audit", str(tmp_path), "--strict", "--json-output")

        assert loose_code == 0
        assert json.loads(loose)["coverage_percent"] == 100.0
        assert strict_code == 1
        assert json.loads(strict)["untested"] == ["src/a.js"]


# ── scan ─────────────────────────────────────────────────────────


class TestScan:
    def test_full_scan_json(self, half_tested: Path) -> None:
        code, stdout, _ = _invoke("scan", str(half_tested), "--json-output")

        assert code == 0
        assert json.loads(stdout) == {
            "source_files": 2,
            "test_files": 1,
            "untested": ["src/b.js"],
            "coverage_percent": 50.0,
        }

    def test_full_scan_lists_untested(self, half_tested: Path) -> None:
        code, _, output = _invoke("scan", str(half_tested))
        assert code == 0
        assert "Untested files (1)" in output
        assert "src/b.js" in output

    def test_missing_path(self, tmp_path: Path) -> None:
        code, _, output = _invoke("scan", str(tmp_path / "missing"))
        assert code == 1
        assert "Project root does not exist" in output

    def test_git_modes_are_exclusive(self, tmp_path: Path) -> None:
        code, _, output = _invoke("scan", str(tmp_path), "--diff", "--staged")
        assert code == 2
        assert "mutually exclusive" in output

    def test_diff_outside_repository(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        if shutil.which("git") is None:
            pytest.skip("git is not installed")
        monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))

        code, _, output = _invoke("scan", str(tmp_path), "--diff")

        assert code == 1
        assert "Not a git repository" in output

    def test_staged_json(self, committed_repo: Path) -> None:
        write_file(committed_repo, "src/extra.ts", "export function extra(n: number) {}\n")
        git(committed_repo, "add", "src/extra.ts")

        code, stdout, _ = _invoke("scan", str(committed_repo), "--staged", "--json-output")

        assert code == 0
        data = json.loads(stdout)
        assert data["branch"] == "main"
        assert data["total_files"] == 1
        assert data["code_files"] == 1
        assert data["changes"] == [
            {"file": "src/extra.ts", "status": "added", "staged": True, "modified": False}
        ]
        assert [p["file_path"] for p in data["parsed"]] == ["src/extra.ts"]
        assert data["failures"] == []

    def test_diff_from_subdirectory(self, committed_repo: Path) -> None:
        write_file(committed_repo, "src/math.js", "export function add(a, b) { return b + a; }\n")

        code, stdout, _ = _invoke("scan", str(committed_repo / "src"), "--diff", "--json-output")

        assert code == 0
        data = json.loads(stdout)
        assert [c["file"] for c in data["changes"]] == ["src/math.js"]
        assert data["changes"][0]["modified"] is True
        assert [p["file_path"] for p in data["parsed"]] == ["src/math.js"]
        assert data["failures"] == []

    def test_diff_with_no_changes(self, committed_repo: Path) -> None:
        code, _, output = _invoke("scan", str(committed_repo), "--diff")
        assert code == 0
        assert "No changes detected" in output


# ── files ────────────────────────────────────────────────────────


def test_files_json(half_tested: Path) -> None:
    code, stdout, _ = _invoke("files", str(half_tested), "--json-output")

    assert code == 0
    assert json.loads(stdout) == {
        "source_files": ["src/a.js", "src/b.js"],
        "test_files": ["__tests__/src/a.test.js"],
    }


# ── config ───────────────────────────────────────────────────────


class TestConfigCommands:
    def _write(self, root: Path, data: dict) -> None:
        (root / ".testgenie.yml").write_text(yaml.dump(data), encoding="utf-8")

    def test_show_masks_api_key(self, tmp_path: Path) -> None:
        self._write(tmp_path, {"ai": {"api_key": "sk-abcdefghijkl1234"}})

        code, stdout, _ = _invoke("config", "show", "--path", str(tmp_path), "--json-output")

        assert code == 0
        data = json.loads(stdout)
        assert data["ai"]["api_key"] == "sk-a...1234"
        assert "raw" not in data

    def test_show_no_mask(self, tmp_path: Path) -> None:
        self._write(tmp_path, {"ai": {"api_key": "sk-abcdefghijkl1234"}})

        _, stdout, _ = _invoke(
            "config", "show", "--path", str(tmp_path), "--json-output", "--no-mask"
        )

        assert json.loads(stdout)["ai"]["api_key"] == "sk-abcdefghijkl1234"

    def test_show_yaml(self, tmp_path: Path) -> None:
        code, _, output = _invoke("config", "show", "--path", str(tmp_path))
        assert code == 0
        assert "framework: jest" in output

    def test_validate_ok(self, tmp_path: Path) -> None:
        code, _, output = _invoke("config", "validate", "--path", str(tmp_path))
        assert code == 0
        assert "Configuration is valid!" in output

    def test_validate_errors(self, tmp_path: Path) -> None:
        self._write(tmp_path, {"framework": "karma"})

        code, _, output = _invoke("config", "validate", "--path", str(tmp_path))

        assert code == 1
        assert "framework must be one of" in output

    def test_colors_can_be_disabled(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(reporter.console, "no_color", False)
        self._write(tmp_path, {"output": {"colors": False}})

        code, _, output = _invoke("config", "validate", "--path", str(tmp_path))

        assert code == 0
        assert "Configuration is valid!" in output
        assert reporter.console.no_color is True

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / ".testgenie.yml").write_text("framework: [jest\n", encoding="utf-8")

        code, _, output = _invoke("config", "validate", "--path", str(tmp_path))

        assert code == 1
        assert "Failed to load configuration" in output


def test_mask_sensitive_values() -> None:
    masked = _mask_sensitive_values(
        {"ai": {"api_key": "short", "model": "m"}, "token": "0123456789", "password": ""}
    )
    assert masked == {
        "ai": {"api_key": "***", "model": "m"},
        "token": "0123...6789",
        "password": "",
    }
