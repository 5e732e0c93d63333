"""JSON reporter for benchtrack.

This module provides JSON output for ingestion reports and query results,
suitable for CI/CD pipelines and machine processing.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from benchtrack.core.types import LaneKey
    from benchtrack.ingestion import IngestionReport
    from benchtrack.query import LaneSummary, SeriesPoint


class JSONReporter:
    """Reporter that outputs benchmark results as JSON.

    Attributes:
        indent: JSON indentation level (None for compact).

    Example:
        >>> reporter = JSONReporter()
        >>> print(reporter.report(report))
        {
          "timestamp": "2025-10-23T20:13:39+00:00",
          "status": "pass",
          "skipped": [],
          "comparison": {...}
        }
    """

    def __init__(self, indent: int | None = 2) -> None:
        """Initialize JSONReporter.

        Args:
            indent: JSON indentation level. Defaults to 2. Use None for compact output.
        """
        self.indent = indent

    def _get_timestamp(self) -> str:
        """Get current timestamp in ISO 8601 format."""
        return datetime.now(timezone.utc).isoformat(timespec="seconds")

    def _dumps(self, data: dict[str, Any]) -> str:
        return json.dumps({"timestamp": self._get_timestamp(), **data}, indent=self.indent)

    def report(self, report: IngestionReport) -> str:
        """Generate JSON for an ingestion report.

        Args:
            report: The ingestion report.

        Returns:
            JSON string with skipped metrics and the regression verdict.
        """
        return self._dumps(report.to_dict())

    def report_to_file(self, report: IngestionReport, path: Path | str) -> None:
        """Write an ingestion report to a file.

        Args:
            report: The ingestion report.
            path: Path to the output file.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.report(report), encoding="utf-8")

    def report_series(self, name: str, occurrence: int, points: list[SeriesPoint]) -> str:
        """Generate JSON for the points of one lane."""
        return self._dumps(
            {
                "name": name,
                "occurrence": occurrence,
                "points": [point.to_dict() for point in points],
            }
        )

    def report_summary(self, summaries: dict[LaneKey, LaneSummary], window: int) -> str:
        """Generate JSON for windowed lane statistics.

        Lanes are listed in order, each identified by name and occurrence.
        """
        return self._dumps(
            {
                "window": window,
                "lanes": [
                    {"name": lane.name, "occurrence": lane.occurrence, **summary.to_dict()}
                    for lane, summary in summaries.items()
                ],
            }
        )

    def report_groups(self, repo_url: str, groups: list[str]) -> str:
        """Generate JSON listing the series of a repository."""
        return self._dumps({"repo_url": repo_url, "groups": groups})
