"""In-memory storage implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from benchtrack.benchmarks.models import HistoryDocument


class MemoryStore:
    """In-memory storage for benchmark history.

    Simple dictionary-based store. Data is lost when the process exits.

    Example:
        >>> store = MemoryStore()
        >>> history = BenchmarkHistory(store)
    """

    def __init__(self) -> None:
        """Initialize the memory store."""
        self._documents: dict[str, HistoryDocument] = {}
        self.save_count = 0

    async def load(self, repo_url: str) -> HistoryDocument | None:
        """Load the history document of a repository."""
        return self._documents.get(repo_url)

    async def save(self, document: HistoryDocument) -> None:
        """Store a history document, replacing the previous one."""
        self._documents[document.repo_url] = document
        self.save_count += 1

    def __len__(self) -> int:
        """Return the number of stored repositories."""
        return len(self._documents)
