"""testgenie CLI — top-level command group."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
from dataclasses import asdict
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from testgenie import __version__
from testgenie.agents.analyzers.coverage import CoverageAnalysisTask, CoverageAnalyzer
from testgenie.agents.analyzers.diff import DiffAnalysisTask, DiffAnalyzer, DiffMode
from testgenie.agents.base import TaskInput
from testgenie.agents.detectors.discovery import FileDiscoverer
from testgenie.agents.reporters.terminal import console, reporter
from testgenie.config import CONFIG_FILENAME, TestgenieConfig, load_config, validate_config
from testgenie.parsing.batch import parse_file
from testgenie.parsing.treesitter import ParseError

logger = logging.getLogger(__name__)

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8

_SENSITIVE_KEYS = frozenset({"api_key", "token", "password"})


def _configure_logging(*, verbose: bool, colors: bool = True) -> None:
    """Route log records through rich; DEBUG when verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[
            RichHandler(console=Console(stderr=True, no_color=not colors), rich_tracebacks=True)
        ],
        force=True,
    )


def _load_config_or_abort(path: str) -> TestgenieConfig:
    try:
        config = load_config(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise click.Abort from e
    if not config.output.colors:
        reporter.disable_colors()
    if config.output.verbose:
        _configure_logging(verbose=True, colors=config.output.colors)
    return config


def _config_to_dict(config: TestgenieConfig) -> dict[str, Any]:
    """Convert TestgenieConfig to dictionary for display."""
    result = asdict(config)
    # Remove the raw field as it's redundant
    result.pop("raw", None)
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask sensitive values in configuration dict."""
    result = copy.deepcopy(config_dict)

    def _mask_dict(data: dict[str, Any]) -> None:
        for key, value in data.items():
            if key in _SENSITIVE_KEYS and isinstance(value, str) and value:
                # Show first and last 4 chars, mask the rest
                if len(value) > _MIN_MASKED_VALUE_LENGTH:
                    data[key] = f"{value[:4]}...{value[-4:]}"
                else:
                    data[key] = "***"
            elif isinstance(value, dict):
                _mask_dict(value)

    _mask_dict(result)
    return result


def _diff_mode(*, diff: bool, staged: bool, since: str | None) -> DiffMode | None:
    flags = (("--diff", diff), ("--staged", staged), ("--since", since))
    selected = [flag for flag, on in flags if on]
    if len(selected) > 1:
        raise click.UsageError(f"Options {' and '.join(selected)} are mutually exclusive.")
    if staged:
        return DiffMode.STAGED
    if since:
        return DiffMode.SINCE
    if diff:
        return DiffMode.UNCOMMITTED
    return None


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="testgenie")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """testgenie — find untested JavaScript/TypeScript code and get it covered."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


# ── scan ─────────────────────────────────────────────────────────


@cli.command()
@click.argument("path", default=".", type=click.Path(file_okay=False, resolve_path=True))
@click.option("--diff", is_flag=True, help="Only uncommitted (unstaged) changes.")
@click.option("--staged", is_flag=True, help="Only staged changes.")
@click.option("--since", default=None, help='Changes since a date, e.g. "2 days ago".')
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of tables.")
def scan(path: str, *, diff: bool, staged: bool, since: str | None, as_json: bool) -> None:
    """List untested source files, or changed code files in git modes.

    Examples:
      testgenie scan
      testgenie scan --staged
      testgenie scan --since "1 week ago"
    """
    mode = _diff_mode(diff=diff, staged=staged, since=since)
    if mode is not None:
        _scan_diff_mode(path, mode, since, as_json=as_json)
        return

    config = _load_config_or_abort(path)
    if not as_json:
        console.print(f"[bold]Scanning[/bold] {path} ...")

    task = CoverageAnalysisTask(
        project_root=path,
        test_dir=config.test_dir,
        include=config.patterns.include,
        exclude=config.discovery_excludes,
        threshold=config.coverage.threshold,
    )
    output = asyncio.run(CoverageAnalyzer().run(task))
    if not output.ok:
        reporter.print_error(f"Scan failed: {', '.join(output.errors)}")
        raise click.Abort

    report = output.result["coverage_report"]
    if as_json:
        click.echo(
            json.dumps(
                {
                    "source_files": len(report.discovery.source_files),
                    "test_files": len(report.discovery.test_files),
                    "untested": report.coverage.untested,
                    "coverage_percent": report.coverage.coverage_percent,
                },
                indent=2,
            )
        )
        return

    reporter.print_info(
        f"Found {len(report.discovery.source_files)} source file(s) "
        f"and {len(report.discovery.test_files)} test file(s)"
    )
    reporter.print_untested_files(report.coverage.untested)


def _scan_diff_mode(path: str, mode: DiffMode, since: str | None, *, as_json: bool) -> None:
    """Run scan in a git mode: resolve changes and parse changed sources."""
    if not as_json:
        console.print(f"[bold]Analyzing {mode.value} changes[/bold] in {path} ...")

    task = DiffAnalysisTask(project_root=path, mode=mode, since=since)
    result = asyncio.run(DiffAnalyzer().run(task))

    if not result.ok:
        reporter.print_error(f"Diff analysis failed: {', '.join(result.errors)}")
        raise click.Abort

    diff_info = result.result["diff_info"]
    parse_result = result.result["parse_result"]

    if as_json:
        output = {
            "branch": result.result["branch"],
            "total_files": diff_info.total_files,
            "code_files": diff_info.code_files,
            "changes": [
                {
                    "file": change.file,
                    "status": change.status.value,
                    "staged": change.staged,
                    "modified": change.modified,
                }
                for change in diff_info.changes
            ],
            "parsed": [asdict(parsed) for parsed in parse_result.parsed],
            "failures": [asdict(failure) for failure in parse_result.failures],
        }
        click.echo(json.dumps(output, indent=2))
        return

    reporter.print_diff_info(diff_info, branch=result.result["branch"])
    if result.result["changed_source_files"]:
        reporter.print_batch_summary(parse_result)
        for parsed in parse_result.parsed:
            names = ", ".join(fn.name for fn in parsed.functions) or "no functions"
            reporter.print_info(f"{parsed.file_path}: {names}")


# ── audit ────────────────────────────────────────────────────────


@cli.command()
@click.argument("path", default=".", type=click.Path(file_okay=False, resolve_path=True))
@click.option("--strict", is_flag=True, help="Require tests at exactly the expected path.")
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of tables.")
def audit(path: str, *, strict: bool, as_json: bool) -> None:
    """Report test coverage against the configured threshold.

    Exits non-zero when coverage is below ``coverage.threshold``.
    """
    config = _load_config_or_abort(path)
    task = CoverageAnalysisTask(
        project_root=path,
        test_dir=config.test_dir,
        include=config.patterns.include,
        exclude=config.discovery_excludes,
        threshold=config.coverage.threshold,
        strict=strict,
    )
    output = asyncio.run(CoverageAnalyzer().run(task))
    if not output.ok:
        reporter.print_error(f"Audit failed: {', '.join(output.errors)}")
        raise click.Abort

    report = output.result["coverage_report"]
    if as_json:
        payload = asdict(report.coverage)
        payload["threshold"] = report.threshold
        payload["meets_threshold"] = report.meets_threshold
        click.echo(json.dumps(payload, indent=2))
    else:
        reporter.print_coverage_report(report)

    if not report.meets_threshold:
        if not as_json:
            reporter.print_error(
                f"Coverage {report.coverage.coverage_percent:.1f}% is below "
                f"the {report.threshold:.1f}% threshold"
            )
        raise SystemExit(1)


# ── parse ────────────────────────────────────────────────────────


@cli.command("parse")
@click.argument("file", type=click.Path(dir_okay=False))
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of tables.")
def parse_command(file: str, *, as_json: bool) -> None:
    """Show the functions, imports and exports of a source file."""
    try:
        parsed = asyncio.run(parse_file(file))
    except FileNotFoundError as e:
        reporter.print_error(f"File not found: {file}")
        raise click.Abort from e
    except ParseError as e:
        reporter.print_error(f"Could not parse {e.file_path}: {e.message}")
        raise click.Abort from e

    if as_json:
        click.echo(json.dumps(asdict(parsed), indent=2))
    else:
        reporter.print_parsed_file(parsed)


# ── files ────────────────────────────────────────────────────────


@cli.command("files")
@click.argument("path", default=".", type=click.Path(file_okay=False, resolve_path=True))
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of a list.")
def files_command(path: str, *, as_json: bool) -> None:
    """List the source and test files testgenie sees."""
    config = _load_config_or_abort(path)
    task = TaskInput(
        task_type="discover_files",
        target=path,
        context={"include": config.patterns.include, "exclude": config.discovery_excludes},
    )
    output = asyncio.run(FileDiscoverer().run(task))
    if not output.ok:
        reporter.print_error(f"Discovery failed: {', '.join(output.errors)}")
        raise click.Abort

    discovery = output.result["discovery"]
    if as_json:
        click.echo(json.dumps(asdict(discovery), indent=2))
        return

    reporter.print_header(f"Source files ({len(discovery.source_files)})")
    for source in discovery.source_files:
        console.print(f"  {source}")
    reporter.print_header(f"Test files ({len(discovery.test_files)})")
    for test in discovery.test_files:
        console.print(f"  {test}")


# ── config ───────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Inspect `.testgenie.yml` configuration."""


@config_group.command("show")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
@click.option("--no-mask", is_flag=True, help="Show sensitive values unmasked.")
def config_show(path: str, *, as_json: bool, no_mask: bool) -> None:
    """Display resolved configuration with masked sensitive values."""
    config = _load_config_or_abort(path)
    config_dict = _config_to_dict(config)
    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print("[bold cyan]Configuration:[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--path",
    default=".",
    type=click.Path(exists=True, file_okay=False, resolve_path=True),
    help="Project root directory.",
)
def config_validate(path: str) -> None:
    """Validate `.testgenie.yml` and list any problems."""
    config = _load_config_or_abort(path)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        return

    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()
    console.print(
        f"[dim]Fix these errors in {CONFIG_FILENAME} and run "
        "'testgenie config validate' again.[/dim]"
    )
    raise click.Abort


def main() -> None:
    """Console-script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
