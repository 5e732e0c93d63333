"""Base protocol for benchmark history storage backends.

This module defines the StorageProtocol that all storage backends must implement.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from benchtrack.benchmarks.models import HistoryDocument


@runtime_checkable
class StorageProtocol(Protocol):
    """Protocol for benchmark history storage backends.

    A backend persists one HistoryDocument per repository. ``save`` must be
    all-or-nothing: after a failed save the previously stored document is
    still the one ``load`` returns.

    Example:
        >>> class MyStorage:
        ...     async def load(self, repo_url: str) -> HistoryDocument | None: ...
        ...     async def save(self, document: HistoryDocument) -> None: ...
        >>> isinstance(MyStorage(), StorageProtocol)
        True
    """

    async def load(self, repo_url: str) -> HistoryDocument | None:
        """Load the history document of a repository.

        Args:
            repo_url: Repository URL.

        Returns:
            The stored document, or None if the repository has no history.

        Raises:
            StoreIOError: If the document exists but cannot be read.
        """
        ...

    async def save(self, document: HistoryDocument) -> None:
        """Persist a history document, replacing the previous one.

        Args:
            document: The document to persist.

        Raises:
            StoreIOError: If the document could not be persisted.
        """
        ...
