"""Configuration parsing from ``.testgenie.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from testgenie.utils.paths import DEFAULT_TEST_DIR

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".testgenie.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")

VALID_FRAMEWORKS = ("jest", "vitest", "mocha")
VALID_STYLES = ("bdd", "tdd", "minimal", "verbose")
VALID_PROVIDERS = ("openai", "anthropic", "gemini", "local")

DEFAULT_EXCLUDES = ["**/node_modules/**", "**/dist/**", "**/build/**"]
COVERAGE_EXCLUDES = ["**/*.config.js", "**/migrations/**"]


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _str_list(value: Any, default: list[str]) -> list[str]:
    if not isinstance(value, list):
        return list(default)
    return [str(item) for item in value]


@dataclass
class AIConfig:
    """Settings for the test-generation model provider."""

    provider: str = "openai"
    """Provider name (openai, anthropic, gemini, local)."""

    model: str = ""
    """Model identifier."""

    api_key: str = ""
    """API key for the provider (supports ${ENV_VAR} expansion)."""


@dataclass
class CoverageConfig:
    """Coverage threshold configuration."""

    threshold: float = 80.0
    """Minimum percentage of source files that must have a test."""

    exclude: list[str] = field(default_factory=lambda: list(COVERAGE_EXCLUDES))
    """Globs left out of coverage discovery."""


@dataclass
class PatternsConfig:
    """Globs selecting which files are scanned."""

    include: list[str] = field(default_factory=list)
    """Source globs to include; empty means every source file."""

    exclude: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDES))
    """Globs for files or directories never scanned."""


@dataclass
class OutputConfig:
    """Terminal output configuration."""

    verbose: bool = False
    """Enable debug logging."""

    colors: bool = True
    """Use colored terminal output; false strips color from rich output."""


@dataclass
class TestgenieConfig:
    """Complete testgenie configuration from ``.testgenie.yml``."""

    root: str
    """Project root directory."""

    framework: str = "jest"
    """Test framework generated tests target."""

    style: str = "bdd"
    """Style of generated tests."""

    test_dir: str = DEFAULT_TEST_DIR
    """Directory generated tests are written to."""

    ai: AIConfig = field(default_factory=AIConfig)
    coverage: CoverageConfig = field(default_factory=CoverageConfig)
    patterns: PatternsConfig = field(default_factory=PatternsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML for extension/debugging."""

    @property
    def discovery_excludes(self) -> list[str]:
        """Exclude globs from ``patterns`` and ``coverage`` combined, deduplicated."""
        return list(dict.fromkeys([*self.patterns.exclude, *self.coverage.exclude]))


def load_config(root: str | Path) -> TestgenieConfig:
    """Load and parse the ``.testgenie.yml`` configuration.

    Falls back to defaults and ``TESTGENIE_*`` environment variables when
    the YAML file is missing or incomplete.

    Raises:
        yaml.YAMLError: If the file exists but is not valid YAML.
    """
    root_path = Path(root).resolve()
    config_file = root_path / CONFIG_FILENAME

    raw: dict[str, Any] = {}
    if config_file.is_file():
        text = config_file.read_text(encoding="utf-8")
        parsed = yaml.safe_load(text)
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
        elif parsed is not None:
            logger.warning("Ignoring %s: top level is not a mapping", config_file)

    ai_raw = _section(raw, "ai")
    ai = AIConfig(
        provider=str(ai_raw.get("provider", os.environ.get("TESTGENIE_AI_PROVIDER", "openai"))),
        model=str(ai_raw.get("model", os.environ.get("TESTGENIE_AI_MODEL", ""))),
        api_key=str(ai_raw.get("api_key", os.environ.get("TESTGENIE_AI_API_KEY", ""))),
    )

    coverage_raw = _section(raw, "coverage")
    coverage = CoverageConfig(
        threshold=float(coverage_raw.get("threshold", 80.0)),
        exclude=_str_list(coverage_raw.get("exclude"), COVERAGE_EXCLUDES),
    )

    patterns_raw = _section(raw, "patterns")
    patterns = PatternsConfig(
        include=_str_list(patterns_raw.get("include"), []),
        exclude=_str_list(patterns_raw.get("exclude"), DEFAULT_EXCLUDES),
    )

    output_raw = _section(raw, "output")
    output = OutputConfig(
        verbose=bool(output_raw.get("verbose", False)),
        colors=bool(output_raw.get("colors", True)),
    )

    return TestgenieConfig(
        root=str(root_path),
        framework=str(raw.get("framework", "jest")),
        style=str(raw.get("style", "bdd")),
        test_dir=str(raw.get("test_dir", os.environ.get("TESTGENIE_TEST_DIR", DEFAULT_TEST_DIR))),
        ai=ai,
        coverage=coverage,
        patterns=patterns,
        output=output,
        raw=raw,
    )


def _validate_ai_config(ai: AIConfig) -> list[str]:
    """Validate model provider fields."""
    errors: list[str] = []

    if ai.provider not in VALID_PROVIDERS:
        errors.append(
            f"ai.provider not recognized: {ai.provider} (should be {', '.join(VALID_PROVIDERS)})"
        )

    return errors


def validate_config(config: TestgenieConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []
    max_percentage = 100.0

    if config.framework not in VALID_FRAMEWORKS:
        errors.append(
            f"framework must be one of: {', '.join(VALID_FRAMEWORKS)} (got: {config.framework})"
        )

    if config.style not in VALID_STYLES:
        errors.append(f"style must be one of: {', '.join(VALID_STYLES)} (got: {config.style})")

    if not config.test_dir.strip():
        errors.append("test_dir must not be empty")

    if not 0.0 <= config.coverage.threshold <= max_percentage:
        errors.append(
            f"coverage.threshold must be between 0 and 100 (got: {config.coverage.threshold})"
        )

    errors.extend(_validate_ai_config(config.ai))
    return errors
