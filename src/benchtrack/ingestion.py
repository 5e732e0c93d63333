"""End-to-end ingestion of one CI run.

This module ties the ingest parser to the history store: raw output is
validated, appended, and compared, and the outcome is returned as an
IngestionReport listing dropped metrics followed by the regression verdict.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from benchtrack.ingest import parse_run

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

    from benchtrack.benchmarks.history import BenchmarkHistory
    from benchtrack.core.types import BenchmarkRun, CommitInfo, Tool
    from benchtrack.ingest.models import Diagnostic
    from benchtrack.regression import ComparisonResult

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_REGRESSION = 1
EXIT_INVALID = 2
EXIT_STORE_ERROR = 3


@dataclass(frozen=True)
class IngestionReport:
    """Outcome of ingesting one run.

    Attributes:
        run: The run that was appended.
        comparison: Regression verdicts against the pre-append series.
        diagnostics: Metrics dropped during validation, in input order.
    """

    run: BenchmarkRun
    comparison: ComparisonResult
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def passed(self) -> bool:
        """True when no lane regressed."""
        return not self.comparison.has_regressions

    @property
    def exit_code(self) -> int:
        """Process exit code for CI gating."""
        return EXIT_OK if self.passed else EXIT_REGRESSION

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "status": "pass" if self.passed else "fail",
            "commit": self.run.commit.id,
            "date": self.run.date_ms,
            "tool": self.run.tool.value,
            "accepted": len(self.run.benches),
            "skipped": [d.to_dict() for d in self.diagnostics],
            "comparison": self.comparison.to_dict(),
        }


async def ingest(
    history: BenchmarkHistory,
    repo_url: str,
    group: str,
    raw: str | list[Any],
    tool: str | Tool,
    commit: CommitInfo | Mapping[str, Any],
    date: datetime | int,
) -> IngestionReport:
    """Validate, append, and compare one CI run.

    Args:
        history: History handle to append to.
        repo_url: Repository URL.
        group: Tool-group key of the series.
        raw: Raw benchmark output (JSON text or decoded list).
        tool: Aggregation tool name.
        commit: Commit descriptor.
        date: Ingestion instant.

    Returns:
        IngestionReport for the run.

    Raises:
        ParseError: If the raw output, tool, or commit cannot be read.
        OutOfOrderError: If the run is older than the series' last run.
        StoreIOError: If the run could not be persisted.

    Example:
        >>> report = await ingest(history, repo_url, "Benchmark", raw, "customSmallerIsBetter", commit, now_ms)
        >>> sys.exit(report.exit_code)
    """
    parsed = parse_run(raw, tool, commit, date)
    comparison = await history.append(repo_url, group, parsed.run)

    logger.info(
        f"Ingested {len(parsed.run.benches)} results for {parsed.run.commit.short_id} "
        f"({parsed.dropped_count} skipped, {len(comparison.regressions)} regressions)"
    )
    return IngestionReport(run=parsed.run, comparison=comparison, diagnostics=parsed.diagnostics)
