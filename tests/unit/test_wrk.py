"""Unit tests for wrk output parsing."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

from benchtrack.core.exceptions import ParseError
from benchtrack.ingest import (
    compare_target_directories,
    compare_targets,
    load_wrk_directory,
    parse_wrk_metrics,
    parse_wrk_output,
    read_wrk_file,
)

WRK_LOCAL = """\
Running 30s test @ http://127.0.0.1:8080/v1/health
  4 threads and 100 connections
  Thread Stats   Avg      Stdev     Max   +/- Stdev
    Latency     1.06ms  512.30us  12.45ms   89.12%
    Req/Sec    11.09k     1.20k   14.02k    71.25%
  Latency Distribution
     50%    0.98ms
     75%    1.21ms
     90%    1.54ms
     99%    3.02ms
  1324512 requests in 30.01s, 189.23MB read
Requests/sec:  44130.09
Transfer/sec:      6.31MB
"""

WRK_REFERENCE = """\
Running 30s test @ http://127.0.0.1:8045/blocks/head
  4 threads and 100 connections
  Thread Stats   Avg      Stdev     Max   +/- Stdev
    Latency     4.00ms    1.10ms  40.12ms   91.02%
    Req/Sec     2.50k   300.00     3.10k    70.00%
  Latency Distribution
     50%    3.50ms
     75%    4.20ms
     90%    5.10ms
     99%     1.20s
  300000 requests in 30.00s, 120.00MB read
Requests/sec:  10000.00
Transfer/sec:      4.00MB
"""


class TestParseWrkMetrics:
    """Tests for parse_wrk_metrics."""

    def test_all_metrics(self) -> None:
        """Average, percentiles and throughput are extracted."""
        metrics = parse_wrk_metrics(WRK_LOCAL)

        assert metrics.avg_latency_ms == 1.06
        assert metrics.p50_latency_ms == 0.98
        assert metrics.p90_latency_ms == 1.54
        assert metrics.p99_latency_ms == 3.02
        assert metrics.requests_per_sec == 44130.09
        assert not metrics.is_empty

    def test_units_normalized_to_ms(self) -> None:
        """Microsecond and second latencies become milliseconds."""
        text = "    Latency   850.00us  1.00ms  5.00ms  90.00%\n     99%    1.50s\n"

        metrics = parse_wrk_metrics(text)

        assert metrics.avg_latency_ms == 0.85
        assert metrics.p99_latency_ms == 1500.0

    def test_decimal_percentiles(self) -> None:
        """wrk2-style 50.000% percentile labels are recognized."""
        metrics = parse_wrk_metrics(" 50.000%    2.10ms\n 99.000%    9.00ms\n")

        assert metrics.p50_latency_ms == 2.1
        assert metrics.p99_latency_ms == 9.0

    def test_missing_metrics_are_none(self) -> None:
        """Missing figures are omitted, never zero."""
        metrics = parse_wrk_metrics("Requests/sec:  512.00\n")

        assert metrics.requests_per_sec == 512.0
        assert metrics.avg_latency_ms is None
        assert metrics.p99_latency_ms is None

    def test_empty(self) -> None:
        """Unrelated text yields no metrics."""
        assert parse_wrk_metrics("connection refused").is_empty


class TestParseWrkOutput:
    """Tests for parse_wrk_output."""

    def test_entries(self) -> None:
        """One entry per metric, named after the endpoint."""
        entries = parse_wrk_output(WRK_LOCAL, "health")

        assert [(e["name"], e["unit"], e["value"]) for e in entries] == [
            ("health - Avg Latency", "ms", 1.06),
            ("health - P50 Latency", "ms", 0.98),
            ("health - P90 Latency", "ms", 1.54),
            ("health - P99 Latency", "ms", 3.02),
            ("health - Throughput", "req/sec", 44130.09),
        ]
        assert entries[-1]["extra"] == "biggerIsBetter"
        assert "extra" not in entries[0]

    def test_no_metrics(self) -> None:
        """Output without metrics is a parse error."""
        with pytest.raises(ParseError, match="No wrk metrics"):
            parse_wrk_output("unable to connect to 127.0.0.1:8080", "health")


class TestLoadWrkDirectory:
    """Tests for load_wrk_directory."""

    def test_reads_sorted_files(self, tmp_path: Path) -> None:
        """Files are read in name order and bad files are skipped."""
        (tmp_path / "benchmark_health.txt").write_text(WRK_LOCAL)
        (tmp_path / "benchmark_blocks.txt").write_text(WRK_REFERENCE)
        (tmp_path / "benchmark_broken.txt").write_text("socket errors only")
        (tmp_path / "notes.txt").write_text(WRK_LOCAL)

        entries = load_wrk_directory(tmp_path)

        names = [e["name"] for e in entries]
        assert names[0] == "blocks - Avg Latency"
        assert "health - Throughput" in names
        assert not any(name.startswith("broken") or name.startswith("notes") for name in names)

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing directory is a parse error."""
        with pytest.raises(ParseError, match="not found"):
            load_wrk_directory(tmp_path / "results")

    def test_no_metrics(self, tmp_path: Path) -> None:
        """A directory without metrics is a parse error."""
        (tmp_path / "benchmark_health.txt").write_text("")

        with pytest.raises(ParseError, match="No wrk metrics"):
            load_wrk_directory(tmp_path)

    def test_unreadable_file(self, tmp_path: Path) -> None:
        """A file that is not UTF-8 fails the whole directory."""
        (tmp_path / "benchmark_health.txt").write_text(WRK_LOCAL)
        (tmp_path / "benchmark_blocks.txt").write_bytes(b"\xff\xfeLatency")

        with pytest.raises(ParseError, match="Cannot read wrk output"):
            load_wrk_directory(tmp_path)


class TestReadWrkFile:
    """Tests for read_wrk_file."""

    def test_reads_text(self, tmp_path: Path) -> None:
        """UTF-8 files are returned as text."""
        path = tmp_path / "benchmark_health.txt"
        path.write_text(WRK_LOCAL, encoding="utf-8")

        assert read_wrk_file(path) == WRK_LOCAL

    def test_directory(self, tmp_path: Path) -> None:
        """A directory is not a wrk output file."""
        with pytest.raises(ParseError, match="Cannot read wrk output"):
            read_wrk_file(tmp_path)

    def test_missing(self, tmp_path: Path) -> None:
        """A missing file is a parse error."""
        with pytest.raises(ParseError):
            read_wrk_file(tmp_path / "benchmark_health.txt")


class TestCompareTargets:
    """Tests for compare_targets."""

    def test_entries(self) -> None:
        """Improvement lanes are positive when local is better."""
        entries = {e["name"]: e for e in compare_targets(WRK_LOCAL, WRK_REFERENCE, "blocks")}

        throughput = entries["blocks - Throughput Improvement vs Sidecar"]
        assert throughput["value"] == 341.3
        assert throughput["unit"] == "%"

        latency = entries["blocks - Avg Latency Improvement vs Sidecar"]
        assert latency["value"] == 73.5

        p99 = entries["blocks - P99 Latency Improvement vs Sidecar"]
        assert p99["value"] == 99.75

        assert entries["blocks - Local Throughput"]["value"] == 44130.09
        assert entries["blocks - Sidecar Throughput"]["value"] == 10000.0
        assert entries["blocks - Local Avg Latency"]["extra"] == "smallerIsBetter"
        assert entries["blocks - Sidecar Avg Latency"]["value"] == 4.0

    def test_reference_label(self) -> None:
        """The reference target name appears in lane names."""
        entries = compare_targets(WRK_LOCAL, WRK_REFERENCE, "health", reference_label="Substrate API")

        assert entries[0]["name"] == "health - Throughput Improvement vs Substrate API"

    def test_missing_reference(self) -> None:
        """Only lanes with both inputs get an improvement figure."""
        entries = compare_targets(WRK_LOCAL, "", "health")

        assert [e["name"] for e in entries] == ["health - Local Throughput", "health - Local Avg Latency"]

    def test_nothing_comparable(self) -> None:
        """No metrics on either side is a parse error."""
        with pytest.raises(ParseError):
            compare_targets("", "", "health")


class TestCompareTargetDirectories:
    """Tests for compare_target_directories."""

    @pytest.fixture
    def local_dir(self, tmp_path: Path) -> Path:
        local = tmp_path / "local"
        local.mkdir()
        (local / "benchmark_health.txt").write_text(WRK_LOCAL)
        (local / "benchmark_blocks.txt").write_text(WRK_LOCAL)
        return local

    def test_pairs_endpoints(self, tmp_path: Path, local_dir: Path) -> None:
        """Each local file is compared against its sidecar partner, in endpoint order."""
        sidecar = tmp_path / "sidecar"
        sidecar.mkdir()
        (sidecar / "benchmark_sidecar_health.txt").write_text(WRK_REFERENCE)
        (sidecar / "benchmark_sidecar_blocks.txt").write_text(WRK_REFERENCE)

        entries = compare_target_directories(local_dir, sidecar)

        assert entries == [
            *compare_targets(WRK_LOCAL, WRK_REFERENCE, "blocks"),
            *compare_targets(WRK_LOCAL, WRK_REFERENCE, "health"),
        ]

    def test_missing_partner_skipped(
        self,
        tmp_path: Path,
        local_dir: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Endpoints without a sidecar result are skipped with a warning."""
        sidecar = tmp_path / "sidecar"
        sidecar.mkdir()
        (sidecar / "benchmark_sidecar_health.txt").write_text(WRK_REFERENCE)

        with caplog.at_level("WARNING", logger="benchtrack.ingest.wrk"):
            entries = compare_target_directories(local_dir, sidecar)

        assert {e["name"].split(" - ")[0] for e in entries} == {"health"}
        assert "No sidecar result for blocks" in caplog.text

    def test_shared_directory(self, tmp_path: Path) -> None:
        """Sidecar files next to local ones are not taken for local results."""
        (tmp_path / "benchmark_health.txt").write_text(WRK_LOCAL)
        (tmp_path / "benchmark_sidecar_health.txt").write_text(WRK_REFERENCE)

        entries = compare_target_directories(tmp_path, tmp_path)

        assert entries == compare_targets(WRK_LOCAL, WRK_REFERENCE, "health")

    def test_custom_prefix_and_label(self, tmp_path: Path, local_dir: Path) -> None:
        """The reference prefix and label are configurable."""
        reference = tmp_path / "substrate"
        reference.mkdir()
        (reference / "benchmark_substrate_health.txt").write_text(WRK_REFERENCE)

        entries = compare_target_directories(
            local_dir,
            reference,
            reference_prefix="benchmark_substrate_",
            reference_label="Substrate API",
        )

        assert entries[0]["name"] == "health - Throughput Improvement vs Substrate API"

    def test_nothing_paired(self, tmp_path: Path, local_dir: Path) -> None:
        """No comparable endpoint at all is a parse error."""
        sidecar = tmp_path / "sidecar"
        sidecar.mkdir()

        with pytest.raises(ParseError, match="could be compared"):
            compare_target_directories(local_dir, sidecar)

    def test_missing_directory(self, tmp_path: Path, local_dir: Path) -> None:
        """Both directories must exist."""
        with pytest.raises(ParseError, match="not found"):
            compare_target_directories(local_dir, tmp_path / "sidecar")
