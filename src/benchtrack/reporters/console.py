"""Console reporter for benchtrack.

This module provides terminal output for ingestion reports and query
results, with box-drawn tables and colored verdicts.
"""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING, TextIO

from benchtrack.regression import Verdict

if TYPE_CHECKING:
    from benchtrack.core.types import LaneKey
    from benchtrack.ingestion import IngestionReport
    from benchtrack.query import LaneSummary, SeriesPoint
    from benchtrack.regression import LaneVerdict


# ANSI color codes
class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    # Status colors
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"


VERDICT_STYLES: dict[Verdict, tuple[str, str]] = {
    Verdict.IMPROVED: ("improved", Colors.GREEN),
    Verdict.STABLE: ("stable", Colors.DIM),
    Verdict.REGRESSION_DETECTED: ("REGRESSION", Colors.RED),
    Verdict.BASELINE_ZERO: ("baseline=0", Colors.YELLOW),
    Verdict.UNIT_CHANGED: ("unit changed", Colors.YELLOW),
    Verdict.NEW_LANE: ("new", Colors.BLUE),
}


class ConsoleReporter:
    """Reporter that outputs benchmark results to the terminal.

    Attributes:
        use_colors: Whether to use ANSI colors in output.
        output: Output stream (defaults to stdout).

    Example:
        >>> reporter = ConsoleReporter()
        >>> reporter.report_ingestion(report)
          ┌──────────────────────┬──────────┬─────────┬──────┬────────┬─────────┐
          │ Lane                 │ Baseline │ Current │ Unit │ Change │ Verdict │
          ├──────────────────────┼──────────┼─────────┼──────┼────────┼─────────┤
          │ health - Avg Latency │ 1.06     │ 1.05    │ ms   │ +0.94% │ stable  │
          └──────────────────────┴──────────┴─────────┴──────┴────────┴─────────┘
    """

    def __init__(
        self,
        use_colors: bool = True,
        output: TextIO | None = None,
    ) -> None:
        """Initialize ConsoleReporter.

        Args:
            use_colors: Whether to use ANSI colors. Defaults to True.
            output: Output stream. Defaults to sys.stdout.
        """
        self.use_colors = use_colors and _supports_color(output or sys.stdout)
        self.output = output or sys.stdout

    def _color(self, text: str, color: str) -> str:
        """Apply color to text if colors are enabled."""
        if self.use_colors:
            return f"{color}{text}{Colors.RESET}"
        return text

    def _print(self, text: str = "") -> None:
        """Print text to output stream."""
        print(text, file=self.output)

    def report_ingestion(self, report: IngestionReport) -> None:
        """Report skipped metrics followed by the regression verdict.

        Args:
            report: The ingestion report to render.
        """
        comparison = report.comparison
        self.print_header(f"{comparison.group} @ {report.run.commit.short_id}")

        if report.diagnostics:
            self.print_warning(f"Skipped {len(report.diagnostics)} metric(s):")
            for diagnostic in report.diagnostics:
                self._print(self._color(f"      [{diagnostic.code.value}] {diagnostic.describe()}", Colors.DIM))

        if comparison.verdicts:
            self._print_verdict_table(comparison.verdicts)
        else:
            self.print_info("Run carries no metrics.")

        if report.passed:
            self.print_success(comparison.summary())
        else:
            for verdict in comparison.regressions:
                marker = "CRITICAL" if verdict.severity == "critical" else "WARNING"
                self.print_error(f"[{marker}] {verdict.message}")
        self._print()

    def report_series(self, label: str, points: list[SeriesPoint]) -> None:
        """Report the points of one lane.

        Args:
            label: Lane label for the title.
            points: Points in append order.
        """
        self.print_header(label)
        if not points:
            self.print_info("No data points.")
            return

        rows = [
            (point.commit.short_id, point.date.strftime("%Y-%m-%d %H:%M:%S"), _format_value(point.value), point.unit)
            for point in points
        ]
        self._print_table(("Commit", "Date", "Value", "Unit"), rows)

    def report_summary(self, summaries: dict[LaneKey, LaneSummary]) -> None:
        """Report windowed lane statistics.

        Args:
            summaries: Mapping of lane to summary.
        """
        self.print_header("Latest Summary")
        if not summaries:
            self.print_info("No data points.")
            return

        rows = [
            (
                lane.label,
                _format_value(summary.latest_value),
                _format_value(summary.window_mean),
                _format_value(summary.window_stddev),
                summary.unit,
                str(summary.samples),
            )
            for lane, summary in summaries.items()
        ]
        self._print_table(("Lane", "Latest", "Mean", "Stddev", "Unit", "N"), rows)

    def report_groups(self, repo_url: str, groups: list[str]) -> None:
        """Report the series stored for a repository."""
        self.print_header(f"Series of {repo_url}")
        if not groups:
            self.print_info("No series stored.")
            return
        for group in groups:
            self._print(f"  - {group}")

    def _print_verdict_table(self, verdicts: list[LaneVerdict]) -> None:
        """Print one row per lane verdict."""
        rows: list[tuple[str, ...]] = []
        colors: list[str] = []
        for verdict in verdicts:
            text, color = VERDICT_STYLES[verdict.verdict]
            change = f"{verdict.improvement_percent:+.2f}%" if verdict.improvement_percent is not None else "-"
            baseline = _format_value(verdict.baseline_value) if verdict.baseline_value is not None else "-"
            current = _format_value(verdict.current_value)
            rows.append((verdict.lane.label, baseline, current, verdict.unit, change, text))
            colors.append(color)
        self._print_table(("Lane", "Baseline", "Current", "Unit", "Change", "Verdict"), rows, last_column_colors=colors)

    def _print_table(
        self,
        headers: tuple[str, ...],
        rows: list[tuple[str, ...]],
        last_column_colors: list[str] | None = None,
    ) -> None:
        """Print a box-drawn table.

        Args:
            headers: Column headers.
            rows: Cell text per row.
            last_column_colors: Optional color per row for the last column.
        """
        widths = [max([len(headers[i])] + [len(row[i]) for row in rows]) + 2 for i in range(len(headers))]

        def border(left: str, mid: str, right: str) -> str:
            return f"  {left}{mid.join('─' * w for w in widths)}{right}"

        def line(cells: tuple[str, ...], colors: tuple[str, ...]) -> str:
            parts = []
            for cell, width, color in zip(cells, widths, colors):
                padded = f" {cell:<{width - 2}} "
                parts.append(self._color(padded, color) if color else padded)
            return f"  │{'│'.join(parts)}│"

        self._print(border("┌", "┬", "┐"))
        self._print(line(headers, (Colors.BOLD,) * len(headers)))
        self._print(border("├", "┼", "┤"))
        for index, row in enumerate(rows):
            colors = [""] * len(row)
            if last_column_colors:
                colors[-1] = last_column_colors[index]
            self._print(line(row, tuple(colors)))
        self._print(border("└", "┴", "┘"))

    def print_header(self, text: str) -> None:
        """Print a section header.

        Args:
            text: Header text to display.
        """
        self._print()
        self._print(self._color(f"{'=' * 50}", Colors.DIM))
        self._print(self._color(f"  {text}", Colors.BOLD + Colors.CYAN))
        self._print(self._color(f"{'=' * 50}", Colors.DIM))

    def print_success(self, text: str) -> None:
        """Print a success message."""
        self._print(self._color(f"  ✅ {text}", Colors.GREEN))

    def print_warning(self, text: str) -> None:
        """Print a warning message."""
        self._print(self._color(f"  ⚠️  {text}", Colors.YELLOW))

    def print_error(self, text: str) -> None:
        """Print an error message."""
        self._print(self._color(f"  ❌ {text}", Colors.RED))

    def print_info(self, text: str) -> None:
        """Print an info message."""
        self._print(self._color(f"  [i] {text}", Colors.BLUE))


def _format_value(value: float) -> str:
    """Format a metric value without trailing noise."""
    return str(round(value, 4))


def _supports_color(stream: TextIO) -> bool:
    """Check if the output stream supports ANSI colors.

    Args:
        stream: Output stream to check.

    Returns:
        True if colors are supported, False otherwise.
    """
    # Check if stream is a TTY
    if not hasattr(stream, "isatty"):
        return False
    if not stream.isatty():
        return False

    # Check for common environment variables that disable color
    import os

    if os.environ.get("NO_COLOR"):
        return False

    return os.environ.get("TERM") != "dumb"
