"""Unit tests for the query module."""

from __future__ import annotations

import statistics
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from benchtrack.benchmarks import BenchmarkHistory, MemoryStore
from benchtrack.core.config import Settings
from benchtrack.core.types import BenchmarkRun, BenchResult, CommitInfo, GitUser, LaneKey, Tool
from benchtrack.query import LaneSummary, QueryService

REPO_URL = "https://github.com/paritytech/polkadot-rest-api"
BASE_DATE = 1761250419654


def make_run(commit_id: str, date: int, benches: list[tuple[str, float]]) -> BenchmarkRun:
    user = GitUser(name="paritytech", username="paritytech")
    return BenchmarkRun(
        commit=CommitInfo(author=user, committer=user, id=commit_id, timestamp="2025-10-23T15:16:21Z"),
        date=date,
        tool=Tool.CUSTOM_SMALLER_IS_BETTER,
        benches=tuple(BenchResult(name=name, value=value, unit="ms") for name, value in benches),
    )


@pytest_asyncio.fixture
async def history() -> AsyncIterator[BenchmarkHistory]:
    """History with a sparse blocks lane and a duplicate-name lane."""
    history = BenchmarkHistory(MemoryStore())
    runs = [
        make_run("r1", BASE_DATE, [("health - Avg Latency", 1.06), ("blocks - Avg Latency", 3.0)]),
        make_run("r2", BASE_DATE + 1, [("health - Avg Latency", 1.05)]),
        make_run("r3", BASE_DATE + 2, [("health - Avg Latency", 1.10), ("blocks - Avg Latency", 3.4)]),
        make_run(
            "r4",
            BASE_DATE + 3,
            [("health - Avg Latency", 1.02), ("blocks - Avg Latency", 3.2), ("blocks - Avg Latency", 8.0)],
        ),
    ]
    for run in runs:
        await history.append(REPO_URL, "Benchmark", run)
    yield history
    await history.aclose()


# ============================================================================
# get_series Tests
# ============================================================================


class TestGetSeries:
    """Tests for QueryService.get_series."""

    @pytest.mark.asyncio
    async def test_full_series(self, history: BenchmarkHistory) -> None:
        """Points come in append order."""
        points = await QueryService(history).get_series(REPO_URL, "Benchmark", "health - Avg Latency")

        assert [p.value for p in points] == [1.06, 1.05, 1.10, 1.02]
        assert [p.commit.id for p in points] == ["r1", "r2", "r3", "r4"]
        assert points[0].unit == "ms"
        assert points[0].date.year == 2025

    @pytest.mark.asyncio
    async def test_sparse_series(self, history: BenchmarkHistory) -> None:
        """Runs lacking the lane contribute nothing."""
        points = await QueryService(history).get_series(REPO_URL, "Benchmark", "blocks - Avg Latency")

        assert [(p.commit.id, p.value) for p in points] == [("r1", 3.0), ("r3", 3.4), ("r4", 3.2)]

    @pytest.mark.asyncio
    async def test_occurrence(self, history: BenchmarkHistory) -> None:
        """Later occurrences are separate lanes."""
        points = await QueryService(history).get_series(REPO_URL, "Benchmark", "blocks - Avg Latency", occurrence=1)

        assert [(p.commit.id, p.value) for p in points] == [("r4", 8.0)]

    @pytest.mark.asyncio
    async def test_unknown_key(self, history: BenchmarkHistory) -> None:
        """Unknown keys yield no points."""
        service = QueryService(history)

        assert await service.get_series(REPO_URL, "Other", "health - Avg Latency") == []
        assert await service.get_series("https://github.com/org/none", "Benchmark", "x") == []


# ============================================================================
# get_latest_summary Tests
# ============================================================================


class TestGetLatestSummary:
    """Tests for QueryService.get_latest_summary."""

    @pytest.mark.asyncio
    async def test_default_window(self, history: BenchmarkHistory) -> None:
        """The default window covers every run here."""
        summary = await QueryService(history).get_latest_summary(REPO_URL, "Benchmark")

        health = summary[LaneKey("health - Avg Latency")]
        assert health.latest_value == 1.02
        assert health.samples == 4
        assert health.window_mean == pytest.approx(statistics.mean([1.06, 1.05, 1.10, 1.02]))
        assert health.window_stddev == pytest.approx(statistics.stdev([1.06, 1.05, 1.10, 1.02]))
        assert health.unit == "ms"

        assert summary[LaneKey("blocks - Avg Latency")].samples == 3
        assert summary[LaneKey("blocks - Avg Latency", 1)] == LaneSummary(
            latest_value=8.0,
            window_mean=8.0,
            window_stddev=0.0,
            unit="ms",
            samples=1,
        )

    @pytest.mark.asyncio
    async def test_window(self, history: BenchmarkHistory) -> None:
        """Only the last N runs count, skipping those without the lane."""
        summary = await QueryService(history).get_latest_summary(REPO_URL, "Benchmark", window=2)

        assert summary[LaneKey("health - Avg Latency")].samples == 2
        assert summary[LaneKey("health - Avg Latency")].window_mean == pytest.approx(1.06)
        assert summary[LaneKey("blocks - Avg Latency")].samples == 2
        assert summary[LaneKey("blocks - Avg Latency")].window_mean == pytest.approx(3.3)

    @pytest.mark.asyncio
    async def test_window_from_settings(self, history: BenchmarkHistory) -> None:
        """The default window comes from settings."""
        service = QueryService(history, Settings(_env_file=None, window_size=1))

        summary = await service.get_latest_summary(REPO_URL, "Benchmark")

        assert summary[LaneKey("health - Avg Latency")].samples == 1
        assert summary[LaneKey("health - Avg Latency")].window_stddev == 0.0

    @pytest.mark.asyncio
    async def test_empty(self, history: BenchmarkHistory) -> None:
        """An empty series has no lanes."""
        assert await QueryService(history).get_latest_summary(REPO_URL, "Other") == {}

    @pytest.mark.asyncio
    async def test_invalid_window(self, history: BenchmarkHistory) -> None:
        """The window must be positive."""
        with pytest.raises(ValueError, match="positive"):
            await QueryService(history).get_latest_summary(REPO_URL, "Benchmark", window=0)

    @pytest.mark.asyncio
    async def test_unit_change_restarts_statistics(self) -> None:
        """Samples in a unit other than the latest one are left out."""
        user = GitUser(name="paritytech", username="paritytech")
        commit = CommitInfo(author=user, committer=user, id="r1", timestamp="2025-10-23T15:16:21Z")
        async with BenchmarkHistory(MemoryStore()) as history:
            for offset, (value, unit) in enumerate([(1.0, "ms"), (1000.0, "us")]):
                run = BenchmarkRun(
                    commit=commit,
                    date=BASE_DATE + offset,
                    tool=Tool.CUSTOM_SMALLER_IS_BETTER,
                    benches=(BenchResult(name="health - Avg Latency", value=value, unit=unit),),
                )
                await history.append(REPO_URL, "Benchmark", run)

            summary = await QueryService(history).get_latest_summary(REPO_URL, "Benchmark")

        assert summary[LaneKey("health - Avg Latency")] == LaneSummary(
            latest_value=1000.0,
            window_mean=1000.0,
            window_stddev=0.0,
            unit="us",
            samples=1,
        )

    @pytest.mark.asyncio
    async def test_names_resembling_labels_stay_distinct(self) -> None:
        """A metric named like a later occurrence's label is its own lane."""
        async with BenchmarkHistory(MemoryStore()) as history:
            run = make_run("r1", BASE_DATE, [("x", 1.0), ("x", 2.0), ("x [2]", 3.0)])
            await history.append(REPO_URL, "Benchmark", run)

            summary = await QueryService(history).get_latest_summary(REPO_URL, "Benchmark")

        assert len(summary) == 3
        assert summary[LaneKey("x", 1)].latest_value == 2.0
        assert summary[LaneKey("x [2]")].latest_value == 3.0
