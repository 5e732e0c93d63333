"""Storage backends for benchmark history.

This module provides storage protocols and implementations for
persisting history documents.

Example:
    >>> from benchtrack.benchmarks.storage import JSONFileStore
    >>> store = JSONFileStore(".benchtrack")
    >>> await store.save(document)
"""

from __future__ import annotations

from benchtrack.benchmarks.storage.base import StorageProtocol
from benchtrack.benchmarks.storage.http_store import HTTPStore
from benchtrack.benchmarks.storage.json_store import JSONFileStore
from benchtrack.benchmarks.storage.memory import MemoryStore

__all__ = [
    "HTTPStore",
    "JSONFileStore",
    "MemoryStore",
    "StorageProtocol",
]
