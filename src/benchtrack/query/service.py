"""Read-only projections over benchmark history.

This module provides QueryService, which turns the runs of a series into
per-lane points for charting and windowed summaries for dashboards.
"""

from __future__ import annotations

import statistics
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from benchtrack.core.config import Settings
from benchtrack.core.types import LaneKey

if TYPE_CHECKING:
    from datetime import datetime

    from benchtrack.benchmarks.history import BenchmarkHistory
    from benchtrack.core.types import CommitInfo


@dataclass(frozen=True)
class SeriesPoint:
    """One value of a lane in one run.

    Attributes:
        commit: Commit of the run.
        date: Ingestion date of the run.
        value: Metric value.
        unit: Metric unit.
    """

    commit: CommitInfo
    date: datetime
    value: float
    unit: str

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "commit": self.commit.id,
            "date": self.date.isoformat(),
            "value": self.value,
            "unit": self.unit,
        }


@dataclass(frozen=True)
class LaneSummary:
    """Windowed statistics of one lane.

    Attributes:
        latest_value: Value in the most recent run carrying the lane.
        window_mean: Mean over the window.
        window_stddev: Sample standard deviation over the window (0.0 for one sample).
        unit: Unit of the latest value.
        samples: Number of runs in the window carrying the lane in that unit.
    """

    latest_value: float
    window_mean: float
    window_stddev: float
    unit: str
    samples: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "latest_value": self.latest_value,
            "window_mean": self.window_mean,
            "window_stddev": self.window_stddev,
            "unit": self.unit,
            "samples": self.samples,
        }


class QueryService:
    """Read-only queries over a BenchmarkHistory.

    Runs that lack a lane contribute nothing to it: a lane that appears in
    only some runs yields a sparse series, never zeros.

    Example:
        >>> service = QueryService(history)
        >>> points = await service.get_series(repo_url, "Benchmark", "health - Avg Latency")
        >>> summary = await service.get_latest_summary(repo_url, "Benchmark", window=5)
    """

    def __init__(self, history: BenchmarkHistory, settings: Settings | None = None) -> None:
        """Initialize QueryService.

        Args:
            history: History handle to read from.
            settings: Settings providing the default window size.
        """
        self.history = history
        self.settings = settings or Settings()

    async def get_series(
        self,
        repo_url: str,
        group: str,
        name: str,
        occurrence: int = 0,
    ) -> list[SeriesPoint]:
        """Get the points of one lane in append order.

        Args:
            repo_url: Repository URL.
            group: Tool-group key.
            name: Metric name.
            occurrence: Index among same-named results in a run.

        Returns:
            One point per run carrying the lane.
        """
        lane = LaneKey(name, occurrence)
        points: list[SeriesPoint] = []
        for run in await self.history.read(repo_url, group):
            bench = run.lane(lane)
            if bench is not None:
                points.append(SeriesPoint(commit=run.commit, date=run.date, value=bench.value, unit=bench.unit))
        return points

    async def get_latest_summary(
        self,
        repo_url: str,
        group: str,
        window: int | None = None,
    ) -> dict[LaneKey, LaneSummary]:
        """Summarize every lane over the last ``window`` runs.

        Args:
            repo_url: Repository URL.
            group: Tool-group key.
            window: Number of most recent runs to consider
                (default: ``Settings.window_size``).

        Returns:
            Mapping of lane to LaneSummary, in first-seen lane order. A lane's
            statistics cover only the samples in its latest unit.

        Raises:
            ValueError: If window is not positive.
        """
        window = self.settings.window_size if window is None else window
        if window < 1:
            msg = f"window must be positive, got {window}"
            raise ValueError(msg)

        runs = (await self.history.read(repo_url, group))[-window:]

        samples: dict[LaneKey, list[tuple[float, str]]] = {}
        for run in runs:
            for lane, bench in run.lanes():
                samples.setdefault(lane, []).append((bench.value, bench.unit))

        return {lane: _summarize(lane_samples) for lane, lane_samples in samples.items()}


def _summarize(samples: list[tuple[float, str]]) -> LaneSummary:
    """Summarize the ``(value, unit)`` samples of one lane, oldest first.

    Samples recorded in a unit other than the latest one are left out.
    """
    latest_value, unit = samples[-1]
    values = [value for value, sample_unit in samples if sample_unit == unit]
    return LaneSummary(
        latest_value=latest_value,
        window_mean=statistics.fmean(values),
        window_stddev=statistics.stdev(values) if len(values) > 1 else 0.0,
        unit=unit,
        samples=len(values),
    )
