"""End-to-end tests for CLI workflow.

Tests the full ingest → series → summary pipeline against a local history
directory, the way a CI job would drive it run after run.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import pytest
from typer.testing import CliRunner

from benchtrack.benchmarks import JSONFileStore, loads
from benchtrack.cli.main import app

os.environ["BENCHTRACK_LOG_LEVEL"] = "CRITICAL"

runner = CliRunner()

REPO_URL = "https://github.com/paritytech/polkadot-rest-api"
BASE_DATE = 1761250419654


def write_commit(directory: Path, commit_id: str) -> Path:
    user = {"name": "paritytech", "username": "paritytech"}
    path = directory / f"commit_{commit_id}.json"
    path.write_text(
        json.dumps(
            {
                "author": user,
                "committer": user,
                "id": commit_id,
                "message": "feat: Benchmarking",
                "timestamp": "2025-10-23T15:16:21Z",
                "url": f"https://github.com/paritytech/polkadot-rest-api/commit/{commit_id}",
            }
        )
    )
    return path


def write_output(directory: Path, commit_id: str, metrics: dict[str, float]) -> Path:
    path = directory / f"output_{commit_id}.json"
    path.write_text(json.dumps([{"name": name, "value": value, "unit": "ms"} for name, value in metrics.items()]))
    return path


def ingest(directory: Path, data_dir: Path, commit_id: str, date: int, metrics: dict[str, float]) -> dict:
    result = runner.invoke(
        app,
        [
            "--json",
            "ingest",
            "-r",
            REPO_URL,
            "-t",
            "customSmallerIsBetter",
            "-c",
            str(write_commit(directory, commit_id)),
            "-b",
            str(write_output(directory, commit_id, metrics)),
            "-d",
            str(data_dir),
            "--date",
            str(date),
            "--js",
        ],
    )
    data = json.loads(result.stdout)
    data["exit_code"] = result.exit_code
    return data


@pytest.mark.e2e
class TestCLIWorkflow:
    """E2E tests for the CLI workflow."""

    def test_history_accumulates(self, tmp_path: Path) -> None:
        """Successive runs build one series and regressions gate the job."""
        data_dir = tmp_path / "benchmarks"

        first = ingest(
            tmp_path, data_dir, "aaaaaaa1", BASE_DATE, {"health - Avg Latency": 1.06, "blocks - Avg Latency": 3.0}
        )
        assert first["exit_code"] == 0
        assert first["comparison"]["counts"]["new_lane"] == 2

        metrics = {"health - Avg Latency": 0.90, "blocks - Avg Latency": 3.1}
        second = ingest(tmp_path, data_dir, "bbbbbbb2", BASE_DATE + 60_000, metrics)
        assert second["exit_code"] == 0
        verdicts = {v["name"]: v["verdict"] for v in second["comparison"]["verdicts"]}
        assert verdicts == {"health - Avg Latency": "improved", "blocks - Avg Latency": "stable"}

        metrics = {"health - Avg Latency": 0.91, "blocks - Avg Latency": 9.0}
        third = ingest(tmp_path, data_dir, "ccccccc3", BASE_DATE + 120_000, metrics)
        assert third["exit_code"] == 1
        assert third["status"] == "fail"
        regression = [v for v in third["comparison"]["verdicts"] if v["verdict"] == "regression_detected"]
        assert [(v["name"], v["baseline_commit"], v["severity"]) for v in regression] == [
            ("blocks - Avg Latency", "bbbbbbb2", "critical")
        ]

        # The regressed run is still part of history
        path = JSONFileStore(data_dir, js_wrapper=True).path_for(REPO_URL)
        document = loads(path.read_text(encoding="utf-8"))
        assert [run.commit.id for run in document.series("Benchmark")] == ["aaaaaaa1", "bbbbbbb2", "ccccccc3"]

        series = runner.invoke(
            app, ["--json", "series", "-r", REPO_URL, "-m", "blocks - Avg Latency", "-d", str(data_dir)]
        )
        assert series.exit_code == 0
        assert [p["value"] for p in json.loads(series.stdout)["points"]] == [3.0, 3.1, 9.0]

        summary = runner.invoke(app, ["--json", "summary", "-r", REPO_URL, "-w", "2", "-d", str(data_dir)])
        assert summary.exit_code == 0
        lanes = {lane["name"]: lane for lane in json.loads(summary.stdout)["lanes"]}
        assert lanes["health - Avg Latency"]["latest_value"] == 0.91
        assert lanes["health - Avg Latency"]["window_mean"] == pytest.approx(0.905)

    def test_rejected_run_leaves_history_untouched(self, tmp_path: Path) -> None:
        """An out-of-order run fails without modifying the file."""
        data_dir = tmp_path / "benchmarks"
        ingest(tmp_path, data_dir, "aaaaaaa1", BASE_DATE, {"health - Avg Latency": 1.06})
        path = JSONFileStore(data_dir, js_wrapper=True).path_for(REPO_URL)
        before = path.read_text(encoding="utf-8")

        late = ingest(tmp_path, data_dir, "bbbbbbb2", BASE_DATE - 1, {"health - Avg Latency": 1.0})

        assert late["status"] == "error"
        assert late["exit_code"] == 2
        assert path.read_text(encoding="utf-8") == before


@pytest.mark.e2e
class TestCLIErrorHandling:
    """E2E tests for CLI error handling."""

    def test_missing_required_option(self) -> None:
        """Missing required options are usage errors."""
        result = runner.invoke(app, ["ingest", "-r", REPO_URL])

        assert result.exit_code == 2

    def test_no_args_shows_help(self) -> None:
        """Running without a command prints usage."""
        result = runner.invoke(app, [])

        assert "ingest" in result.output
        assert "summary" in result.output
