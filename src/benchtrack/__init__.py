"""benchtrack: A continuous-benchmark history store and regression comparator."""

from __future__ import annotations

__version__ = "0.1.0"

from benchtrack.benchmarks import BenchmarkHistory, HistoryDocument, HTTPStore, JSONFileStore, MemoryStore
from benchtrack.ingest import Diagnostic, IngestResult, parse_run
from benchtrack.ingestion import IngestionReport, ingest
from benchtrack.query import LaneSummary, QueryService, SeriesPoint
from benchtrack.regression import ComparisonResult, LaneVerdict, RegressionDetector, RegressionThresholds, Verdict

__all__ = [
    # History store
    "BenchmarkHistory",
    "HTTPStore",
    "HistoryDocument",
    "JSONFileStore",
    "MemoryStore",
    # Ingestion
    "Diagnostic",
    "IngestResult",
    "IngestionReport",
    "ingest",
    "parse_run",
    # Query
    "LaneSummary",
    "QueryService",
    "SeriesPoint",
    # Regression
    "ComparisonResult",
    "LaneVerdict",
    "RegressionDetector",
    "RegressionThresholds",
    "Verdict",
    # Version
    "__version__",
]
