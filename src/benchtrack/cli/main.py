"""Main CLI entry point for benchtrack.

This module defines the Typer application and all CLI commands.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import AsyncExitStack
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, NoReturn

import typer

from benchtrack import __version__
from benchtrack.benchmarks import BenchmarkHistory, HTTPStore, JSONFileStore
from benchtrack.core.config import Settings
from benchtrack.core.exceptions import (
    BenchtrackError,
    ConfigurationError,
    ParseError,
    StoreIOError,
    ValidationError,
)
from benchtrack.core.types import LaneKey, to_epoch_ms
from benchtrack.ingest import (
    compare_target_directories,
    compare_targets,
    load_commit_file,
    load_wrk_directory,
    parse_wrk_output,
    read_wrk_file,
)
from benchtrack.ingestion import EXIT_INVALID, EXIT_STORE_ERROR, IngestionReport, ingest
from benchtrack.query import QueryService
from benchtrack.regression import RegressionDetector, RegressionThresholds
from benchtrack.reporters import ConsoleReporter, JSONReporter

if TYPE_CHECKING:
    from benchtrack.benchmarks import StorageProtocol
    from benchtrack.query import LaneSummary

logger = logging.getLogger(__name__)

# Create the main Typer app
app = typer.Typer(
    name="benchtrack",
    help="benchtrack: Continuous-benchmark history store and regression comparator.",
    add_completion=False,
    no_args_is_help=True,
)

# Global state for options
state: dict[str, bool] = {
    "json": False,
    "no_color": False,
    "verbose": False,
}

RepoOption = Annotated[str, typer.Option("--repo", "-r", help="Repository URL the history belongs to.")]
GroupOption = Annotated[
    str | None,
    typer.Option("--name", help="Tool-group key of the series (default: BENCHTRACK_GROUP or 'Benchmark')."),
]
DataDirOption = Annotated[
    Path | None,
    typer.Option("--data-dir", "-d", help="Directory of local history files (default: BENCHTRACK_DATA_DIR)."),
]
RemoteUrlOption = Annotated[
    str | None,
    typer.Option("--remote-url", help="Remote artifact store base URL (default: BENCHTRACK_REMOTE_URL)."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"benchtrack v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option(
            "--json",
            help="Output results in JSON format.",
        ),
    ] = False,
    no_color: Annotated[
        bool,
        typer.Option(
            "--no-color",
            help="Disable colored output.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """benchtrack: Continuous-benchmark history store and regression comparator.

    Accumulate per-metric benchmark series per repository and flag regressions
    of every new CI run against its history.
    """
    state["json"] = json_output
    state["no_color"] = no_color
    state["verbose"] = verbose


@app.command()
def version() -> None:
    """Show the current version."""
    typer.echo(f"benchtrack v{__version__}")


def _configure_logging(settings: Settings) -> None:
    """Send log records to stderr at the configured level."""
    level = logging.DEBUG if state["verbose"] else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _build_store(
    settings: Settings,
    data_dir: Path | None,
    remote_url: str | None,
    js_wrapper: bool = False,
) -> StorageProtocol:
    """Select the storage backend from CLI flags and settings."""
    remote_url = remote_url or settings.remote_url
    if data_dir is None and remote_url:
        return HTTPStore(
            remote_url,
            timeout=settings.timeout_seconds,
            max_retries=settings.max_retries,
            backoff=settings.retry_backoff_seconds,
        )
    return JSONFileStore(data_dir or settings.data_dir, js_wrapper=js_wrapper)


def _check_store_flags(data_dir: Path | None, remote_url: str | None) -> None:
    """Reject selecting both a local and a remote store."""
    if data_dir is not None and remote_url is not None:
        _exit_with_error(ConfigurationError("Use either --data-dir or --remote-url, not both"), EXIT_INVALID)


def _exit_with_error(error: BenchtrackError, exit_code: int) -> NoReturn:
    """Report an error and exit with the given code."""
    if state["json"]:
        typer.echo(json.dumps({"status": "error", "error": str(error), "exit_code": exit_code}, indent=2))
    else:
        typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(exit_code)


def _error_exit_code(error: BenchtrackError) -> int:
    """Map an error to its process exit code."""
    if isinstance(error, StoreIOError):
        return EXIT_STORE_ERROR
    return EXIT_INVALID


def _load_thresholds(
    settings: Settings,
    threshold: float | None,
    thresholds_file: Path | None,
) -> RegressionThresholds:
    """Build thresholds from settings, an optional YAML file, and CLI overrides."""
    if thresholds_file is not None:
        thresholds = RegressionThresholds.from_yaml(thresholds_file)
    else:
        thresholds = RegressionThresholds.from_settings(settings)
    if threshold is not None:
        if threshold < 0:
            msg = f"--threshold must be non-negative, got {threshold}"
            raise ConfigurationError(msg)
        thresholds.regression_percent = threshold
    return thresholds


def _read_bench_input(
    bench_file: Path,
    input_format: str,
    endpoint: str | None,
    reference_file: Path | None,
    reference_label: str,
) -> str | list[dict[str, Any]]:
    """Read raw benchmark output from disk.

    Raises:
        ParseError: If the file cannot be read or the format is unknown.
    """
    if input_format == "custom":
        try:
            return bench_file.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Cannot read benchmark file {bench_file}: {e}"
            raise ParseError(msg) from e

    if input_format != "wrk":
        msg = f"Unknown input format {input_format!r} (expected 'custom' or 'wrk')"
        raise ParseError(msg)

    if reference_file is not None and bench_file.is_dir() != reference_file.is_dir():
        msg = "--bench-file and --reference-file must both be files or both be directories"
        raise ParseError(msg)

    if bench_file.is_dir():
        if reference_file is not None:
            return compare_target_directories(bench_file, reference_file, reference_label=reference_label)
        return load_wrk_directory(bench_file)

    text = read_wrk_file(bench_file)
    endpoint = endpoint or bench_file.stem.removeprefix("benchmark_")
    if reference_file is not None:
        return compare_targets(text, read_wrk_file(reference_file), endpoint, reference_label=reference_label)
    return parse_wrk_output(text, endpoint)


@app.command(name="ingest")
def ingest_command(
    repo: RepoOption,
    tool: Annotated[
        str,
        typer.Option(
            "--tool",
            "-t",
            help="Aggregation tool: customBiggerIsBetter or customSmallerIsBetter.",
        ),
    ],
    commit_file: Annotated[
        Path,
        typer.Option(
            "--commit-file",
            "-c",
            help="JSON file with the commit descriptor (GitHub push-event 'head_commit' shape).",
        ),
    ],
    bench_file: Annotated[
        Path,
        typer.Option(
            "--bench-file",
            "-b",
            help="Benchmark output: custom JSON list, or wrk output file/directory with --format wrk.",
        ),
    ],
    name: GroupOption = None,
    input_format: Annotated[
        str,
        typer.Option(
            "--format",
            "-f",
            help="Input format: custom or wrk.",
        ),
    ] = "custom",
    endpoint: Annotated[
        str | None,
        typer.Option(
            "--endpoint",
            help="Endpoint name for wrk metrics (default: derived from the file name).",
        ),
    ] = None,
    reference_file: Annotated[
        Path | None,
        typer.Option(
            "--reference-file",
            help=(
                "wrk output of a reference target to compare against (wrk format only). "
                "With a --bench-file directory, a directory of benchmark_sidecar_<endpoint>.txt files."
            ),
        ),
    ] = None,
    reference_label: Annotated[
        str,
        typer.Option(
            "--reference-label",
            help="Display name of the reference target.",
        ),
    ] = "Sidecar",
    data_dir: DataDirOption = None,
    remote_url: RemoteUrlOption = None,
    js_wrapper: Annotated[
        bool,
        typer.Option(
            "--js",
            help="Write local history as a dashboard data.js file.",
        ),
    ] = False,
    threshold: Annotated[
        float | None,
        typer.Option(
            "--threshold",
            help="Regression threshold in percent (default: BENCHTRACK_REGRESSION_PERCENT).",
        ),
    ] = None,
    thresholds_file: Annotated[
        Path | None,
        typer.Option(
            "--thresholds-file",
            help="YAML file with regression thresholds and per-metric overrides.",
        ),
    ] = None,
    date: Annotated[
        int | None,
        typer.Option(
            "--date",
            help="Ingestion instant in epoch milliseconds (default: now).",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Also write the JSON report to this file.",
        ),
    ] = None,
) -> None:
    """Ingest one CI run, append it to history, and check for regressions.

    Exit codes: 0 no regression, 1 regression detected,
    2 invalid input, 3 history store or report file error.

    Examples:
        benchtrack ingest -r https://github.com/org/repo -t customSmallerIsBetter \\
            -c commit.json -b output.json
        benchtrack ingest -r https://github.com/org/repo -t customSmallerIsBetter \\
            -c commit.json -b results/ --format wrk --js
        benchtrack ingest -r https://github.com/org/repo -t customBiggerIsBetter \\
            -c commit.json -b results/ --reference-file sidecar/ --format wrk --name "Sidecar Comparison"
        benchtrack --json ingest ... --thresholds-file thresholds.yaml
    """
    settings = Settings()
    _configure_logging(settings)

    _check_store_flags(data_dir, remote_url)

    try:
        thresholds = _load_thresholds(settings, threshold, thresholds_file)
        commit = load_commit_file(commit_file)
        raw = _read_bench_input(bench_file, input_format, endpoint, reference_file, reference_label)
    except BenchtrackError as e:
        _exit_with_error(e, EXIT_INVALID)

    store = _build_store(settings, data_dir, remote_url, js_wrapper)
    group = name or settings.group
    run_date = date if date is not None else to_epoch_ms(datetime.now(timezone.utc))

    async def run_ingest() -> IngestionReport:
        async with AsyncExitStack() as stack:
            if isinstance(store, HTTPStore):
                await stack.enter_async_context(store)
            history = await stack.enter_async_context(
                BenchmarkHistory(store, detector=RegressionDetector(thresholds))
            )
            return await ingest(history, repo, group, raw, tool, commit, run_date)

    try:
        report = asyncio.run(run_ingest())
    except (ParseError, ValidationError, StoreIOError) as e:
        _exit_with_error(e, _error_exit_code(e))

    if output is not None:
        try:
            JSONReporter().report_to_file(report, output)
        except OSError as e:
            msg = f"Cannot write report to {output}: {e}"
            _exit_with_error(StoreIOError(msg), EXIT_STORE_ERROR)

    if state["json"]:
        typer.echo(JSONReporter().report(report))
    else:
        ConsoleReporter(use_colors=not state["no_color"]).report_ingestion(report)
        if output is not None:
            typer.echo(f"  Report saved to: {output}")

    raise typer.Exit(report.exit_code)


@app.command()
def series(
    repo: RepoOption,
    metric: Annotated[
        str,
        typer.Option(
            "--metric",
            "-m",
            help="Metric name, e.g. 'health - Avg Latency'.",
        ),
    ],
    name: GroupOption = None,
    occurrence: Annotated[
        int,
        typer.Option(
            "--occurrence",
            min=0,
            help="Index among same-named metrics in a run.",
        ),
    ] = 0,
    data_dir: DataDirOption = None,
    remote_url: RemoteUrlOption = None,
) -> None:
    """Print the history of one metric lane.

    Examples:
        benchtrack series -r https://github.com/org/repo -m "health - Avg Latency"
        benchtrack --json series -r https://github.com/org/repo -m "blocks - Avg Latency" --occurrence 1
    """
    settings = Settings()
    _configure_logging(settings)
    _check_store_flags(data_dir, remote_url)
    store = _build_store(settings, data_dir, remote_url)
    group = name or settings.group

    async def run_query() -> list[Any]:
        async with BenchmarkHistory(store) as history:
            return await QueryService(history, settings).get_series(repo, group, metric, occurrence)

    try:
        points = asyncio.run(run_query())
    except StoreIOError as e:
        _exit_with_error(e, EXIT_STORE_ERROR)

    if state["json"]:
        typer.echo(JSONReporter().report_series(metric, occurrence, points))
    else:
        ConsoleReporter(use_colors=not state["no_color"]).report_series(LaneKey(metric, occurrence).label, points)


@app.command()
def summary(
    repo: RepoOption,
    name: GroupOption = None,
    window: Annotated[
        int | None,
        typer.Option(
            "--window",
            "-w",
            min=1,
            help="Number of recent runs to summarize (default: BENCHTRACK_WINDOW_SIZE).",
        ),
    ] = None,
    data_dir: DataDirOption = None,
    remote_url: RemoteUrlOption = None,
) -> None:
    """Print windowed statistics for every lane of a series.

    Examples:
        benchtrack summary -r https://github.com/org/repo
        benchtrack --json summary -r https://github.com/org/repo --window 5
    """
    settings = Settings()
    _configure_logging(settings)
    _check_store_flags(data_dir, remote_url)
    store = _build_store(settings, data_dir, remote_url)
    group = name or settings.group
    window = window or settings.window_size

    async def run_query() -> dict[LaneKey, LaneSummary]:
        async with BenchmarkHistory(store) as history:
            return await QueryService(history, settings).get_latest_summary(repo, group, window)

    try:
        summaries = asyncio.run(run_query())
    except StoreIOError as e:
        _exit_with_error(e, EXIT_STORE_ERROR)

    if state["json"]:
        typer.echo(JSONReporter().report_summary(summaries, window))
    else:
        ConsoleReporter(use_colors=not state["no_color"]).report_summary(summaries)


@app.command()
def groups(
    repo: RepoOption,
    data_dir: DataDirOption = None,
    remote_url: RemoteUrlOption = None,
) -> None:
    """List the series (tool-group keys) stored for a repository.

    Examples:
        benchtrack groups -r https://github.com/org/repo
    """
    settings = Settings()
    _configure_logging(settings)
    _check_store_flags(data_dir, remote_url)
    store = _build_store(settings, data_dir, remote_url)

    async def run_query() -> list[str]:
        async with BenchmarkHistory(store) as history:
            return await history.groups(repo)

    try:
        names = asyncio.run(run_query())
    except StoreIOError as e:
        _exit_with_error(e, EXIT_STORE_ERROR)

    if state["json"]:
        typer.echo(JSONReporter().report_groups(repo, names))
    else:
        ConsoleReporter(use_colors=not state["no_color"]).report_groups(repo, names)


if __name__ == "__main__":
    app()
