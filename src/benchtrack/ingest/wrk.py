"""Readers for ``wrk --latency`` load-test output.

Turns the text wrk prints into benchmark-action "custom" result entries,
ready for parse_run(). Latencies are normalized to milliseconds.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from benchtrack.core.exceptions import ParseError

logger = logging.getLogger(__name__)

_AVG_LATENCY_RE = re.compile(r"^\s*Latency\s+([\d.]+)(us|ms|s|m|h)\b", re.MULTILINE)
_PERCENTILE_RE = re.compile(r"^\s*(50|75|90|99)(?:\.0+)?%\s+([\d.]+)(us|ms|s|m|h)\s*$", re.MULTILINE)
_RPS_RE = re.compile(r"^\s*Requests/sec:\s+([\d.]+)", re.MULTILINE)

# Multipliers to milliseconds for wrk duration suffixes
_TO_MS: dict[str, float] = {
    "us": 0.001,
    "ms": 1.0,
    "s": 1000.0,
    "m": 60_000.0,
    "h": 3_600_000.0,
}


@dataclass(frozen=True)
class WrkMetrics:
    """Metrics extracted from one wrk run. Missing metrics are None.

    Attributes:
        avg_latency_ms: Mean latency.
        p50_latency_ms: Median latency.
        p90_latency_ms: 90th percentile latency.
        p99_latency_ms: 99th percentile latency.
        requests_per_sec: Throughput.
    """

    avg_latency_ms: float | None = None
    p50_latency_ms: float | None = None
    p90_latency_ms: float | None = None
    p99_latency_ms: float | None = None
    requests_per_sec: float | None = None

    @property
    def is_empty(self) -> bool:
        """True when no metric could be read."""
        return all(
            value is None
            for value in (
                self.avg_latency_ms,
                self.p50_latency_ms,
                self.p90_latency_ms,
                self.p99_latency_ms,
                self.requests_per_sec,
            )
        )


def _to_ms(value: str, suffix: str) -> float:
    return round(float(value) * _TO_MS[suffix], 4)


def parse_wrk_metrics(text: str) -> WrkMetrics:
    """Extract latency and throughput figures from wrk output.

    Percentile lines are anchored to the ``Latency Distribution`` block
    layout, so the ``+/- Stdev`` column of the thread stats never matches.

    Args:
        text: Raw wrk output.

    Returns:
        WrkMetrics with every figure that was found.
    """
    avg_match = _AVG_LATENCY_RE.search(text)
    percentiles: dict[str, float] = {}
    for match in _PERCENTILE_RE.finditer(text):
        percentiles[match.group(1)] = _to_ms(match.group(2), match.group(3))
    rps_match = _RPS_RE.search(text)

    return WrkMetrics(
        avg_latency_ms=_to_ms(avg_match.group(1), avg_match.group(2)) if avg_match else None,
        p50_latency_ms=percentiles.get("50"),
        p90_latency_ms=percentiles.get("90"),
        p99_latency_ms=percentiles.get("99"),
        requests_per_sec=float(rps_match.group(1)) if rps_match else None,
    )


def parse_wrk_output(text: str, endpoint: str) -> list[dict[str, Any]]:
    """Convert wrk output for one endpoint into result entries.

    Args:
        text: Raw wrk output.
        endpoint: Endpoint label used as the metric name prefix.

    Returns:
        Entries for Avg/P50/P90/P99 latency (ms) and throughput (req/sec).

    Raises:
        ParseError: If no metric can be found in the output.

    Example:
        >>> entries = parse_wrk_output(wrk_text, "health")
        >>> [e["name"] for e in entries][-1]
        'health - Throughput'
    """
    metrics = parse_wrk_metrics(text)
    if metrics.is_empty:
        msg = f"No wrk metrics found for endpoint {endpoint!r}"
        raise ParseError(msg)

    entries: list[dict[str, Any]] = []
    latencies = [
        ("Avg Latency", metrics.avg_latency_ms),
        ("P50 Latency", metrics.p50_latency_ms),
        ("P90 Latency", metrics.p90_latency_ms),
        ("P99 Latency", metrics.p99_latency_ms),
    ]
    for label, value in latencies:
        if value is not None:
            entries.append({"name": f"{endpoint} - {label}", "unit": "ms", "value": value})

    if metrics.requests_per_sec is not None:
        entries.append(
            {
                "name": f"{endpoint} - Throughput",
                "unit": "req/sec",
                "value": metrics.requests_per_sec,
                "extra": "biggerIsBetter",
            }
        )
    return entries


def read_wrk_file(path: Path | str) -> str:
    """Read one wrk output file as UTF-8 text.

    Raises:
        ParseError: If the file cannot be read or is not UTF-8.
    """
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read wrk output {path}: {e}"
        raise ParseError(msg) from e


def load_wrk_directory(directory: Path | str, prefix: str = "benchmark_") -> list[dict[str, Any]]:
    """Read every ``<prefix><endpoint>.txt`` file of a directory.

    Files are processed in sorted order; files without metrics are skipped.

    Args:
        directory: Directory holding wrk output files.
        prefix: File name prefix preceding the endpoint name.

    Returns:
        Result entries of all endpoints, concatenated.

    Raises:
        ParseError: If the directory is missing, a file is unreadable, or no
            metric is found at all.
    """
    directory = Path(directory)
    if not directory.is_dir():
        msg = f"wrk results directory not found: {directory}"
        raise ParseError(msg)

    entries: list[dict[str, Any]] = []
    for path in sorted(directory.glob(f"{prefix}*.txt")):
        endpoint = path.stem[len(prefix) :]
        text = read_wrk_file(path)
        try:
            entries.extend(parse_wrk_output(text, endpoint))
        except ParseError as e:
            logger.warning(f"Skipping {path.name}: {e}")

    if not entries:
        msg = f"No wrk metrics found in {directory}"
        raise ParseError(msg)
    return entries


def _improvement(local: float, reference: float, *, bigger_is_better: bool) -> float:
    """Percent by which local beats reference; 0 when reference is 0."""
    if reference == 0:
        return 0.0
    delta = local - reference if bigger_is_better else reference - local
    return round(delta / reference * 100, 2)


def compare_targets(
    local_text: str,
    reference_text: str,
    endpoint: str,
    reference_label: str = "Sidecar",
) -> list[dict[str, Any]]:
    """Build "local vs reference" result entries for one endpoint.

    Improvement lanes are in percent and positive when the local target is
    better. Latency lanes carry ``smallerIsBetter`` so the run can be stored
    under ``customBiggerIsBetter``.

    Args:
        local_text: wrk output measured against the local target.
        reference_text: wrk output measured against the reference target.
        endpoint: Endpoint label used as the metric name prefix.
        reference_label: Display name of the reference target.

    Returns:
        Result entries; lanes whose inputs are missing are omitted.
    """
    local = parse_wrk_metrics(local_text)
    reference = parse_wrk_metrics(reference_text)
    entries: list[dict[str, Any]] = []

    def add(name: str, unit: str, value: float, extra: str) -> None:
        entries.append({"name": f"{endpoint} - {name}", "unit": unit, "value": value, "extra": extra})

    if local.requests_per_sec is not None and reference.requests_per_sec is not None:
        add(
            f"Throughput Improvement vs {reference_label}",
            "%",
            _improvement(local.requests_per_sec, reference.requests_per_sec, bigger_is_better=True),
            "biggerIsBetter",
        )
    if local.avg_latency_ms is not None and reference.avg_latency_ms is not None:
        add(
            f"Avg Latency Improvement vs {reference_label}",
            "%",
            _improvement(local.avg_latency_ms, reference.avg_latency_ms, bigger_is_better=False),
            "biggerIsBetter",
        )
    if local.p99_latency_ms is not None and reference.p99_latency_ms is not None:
        add(
            f"P99 Latency Improvement vs {reference_label}",
            "%",
            _improvement(local.p99_latency_ms, reference.p99_latency_ms, bigger_is_better=False),
            "biggerIsBetter",
        )
    if local.requests_per_sec is not None:
        add("Local Throughput", "req/sec", local.requests_per_sec, "biggerIsBetter")
    if reference.requests_per_sec is not None:
        add(f"{reference_label} Throughput", "req/sec", reference.requests_per_sec, "biggerIsBetter")
    if local.avg_latency_ms is not None:
        add("Local Avg Latency", "ms", local.avg_latency_ms, "smallerIsBetter")
    if reference.avg_latency_ms is not None:
        add(f"{reference_label} Avg Latency", "ms", reference.avg_latency_ms, "smallerIsBetter")

    if not entries:
        msg = f"No comparable wrk metrics found for endpoint {endpoint!r}"
        raise ParseError(msg)
    return entries


def compare_target_directories(
    local_dir: Path | str,
    reference_dir: Path | str,
    reference_prefix: str = "benchmark_sidecar_",
    reference_label: str = "Sidecar",
    prefix: str = "benchmark_",
) -> list[dict[str, Any]]:
    """Compare every endpoint of a local results directory against a reference one.

    Each ``<prefix><endpoint>.txt`` in ``local_dir`` is paired with
    ``<reference_prefix><endpoint>.txt`` in ``reference_dir``. Endpoints
    without a partner file, or with no comparable metric, are skipped with
    a warning.

    Args:
        local_dir: Directory of wrk output measured against the local target.
        reference_dir: Directory of wrk output measured against the reference.
        reference_prefix: File name prefix of the reference files.
        reference_label: Display name of the reference target.
        prefix: File name prefix of the local files.

    Returns:
        Comparison entries of all paired endpoints, in sorted endpoint order.

    Raises:
        ParseError: If a directory is missing, a file is unreadable, or no
            endpoint could be compared.

    Example:
        >>> entries = compare_target_directories("results/local", "results/sidecar")
        >>> entries[0]["name"]
        'blocks - Throughput Improvement vs Sidecar'
    """
    local_dir = Path(local_dir)
    reference_dir = Path(reference_dir)
    for directory in (local_dir, reference_dir):
        if not directory.is_dir():
            msg = f"wrk results directory not found: {directory}"
            raise ParseError(msg)

    entries: list[dict[str, Any]] = []
    for path in sorted(local_dir.glob(f"{prefix}*.txt")):
        if path.name.startswith(reference_prefix):
            continue
        endpoint = path.stem[len(prefix) :]
        partner = reference_dir / f"{reference_prefix}{endpoint}.txt"
        if not partner.is_file():
            logger.warning(f"No {reference_label.lower()} result for {endpoint}, skipping")
            continue
        local_text = read_wrk_file(path)
        reference_text = read_wrk_file(partner)
        try:
            entries.extend(compare_targets(local_text, reference_text, endpoint, reference_label=reference_label))
        except ParseError as e:
            logger.warning(f"Skipping {endpoint}: {e}")

    if not entries:
        msg = f"No endpoint of {local_dir} could be compared against {reference_dir}"
        raise ParseError(msg)
    return entries
