"""Ingestion module for benchtrack.

This module validates raw CI benchmark output into typed runs.

Example:
    >>> from benchtrack.ingest import parse_run, parse_wrk_output
    >>>
    >>> entries = parse_wrk_output(wrk_text, "health")
    >>> result = parse_run(entries, "customSmallerIsBetter", commit, date_ms)
    >>> for diagnostic in result.diagnostics:
    ...     print(diagnostic.describe())
"""

from __future__ import annotations

from benchtrack.ingest.models import Diagnostic, IngestResult
from benchtrack.ingest.parser import load_commit_file, parse_commit, parse_run
from benchtrack.ingest.wrk import (
    WrkMetrics,
    compare_target_directories,
    compare_targets,
    load_wrk_directory,
    parse_wrk_metrics,
    parse_wrk_output,
    read_wrk_file,
)

__all__ = [
    "Diagnostic",
    "IngestResult",
    "WrkMetrics",
    "compare_target_directories",
    "compare_targets",
    "load_commit_file",
    "load_wrk_directory",
    "parse_commit",
    "parse_run",
    "parse_wrk_metrics",
    "parse_wrk_output",
    "read_wrk_file",
]
