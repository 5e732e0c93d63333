"""Benchmark history module for benchtrack.

This module provides the append-only history store: the BenchmarkHistory
handle, its storage backends, and the persisted document format.

Example:
    >>> from benchtrack.benchmarks import BenchmarkHistory, JSONFileStore
    >>>
    >>> async with BenchmarkHistory(JSONFileStore(".benchtrack")) as history:
    ...     result = await history.append(repo_url, "Benchmark", run)
    ...     if result.has_regressions:
    ...         print(result.summary())
"""

from __future__ import annotations

from benchtrack.benchmarks.history import BenchmarkHistory
from benchtrack.benchmarks.models import HistoryDocument, dumps, loads
from benchtrack.benchmarks.storage import HTTPStore, JSONFileStore, MemoryStore, StorageProtocol

__all__ = [
    "BenchmarkHistory",
    "HTTPStore",
    "HistoryDocument",
    "JSONFileStore",
    "MemoryStore",
    "StorageProtocol",
    "dumps",
    "loads",
]
