"""JSON file storage for benchmark history.

This module provides a JSON file-based storage backend holding one
history document per repository.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from benchtrack.benchmarks.models import HistoryDocument, dumps, loads
from benchtrack.core.exceptions import StoreIOError
from benchtrack.core.hashing import repo_slug

logger = logging.getLogger(__name__)


class JSONFileStore:
    """JSON file storage for benchmark history.

    Uses atomic writes (temp file + rename) for safety. With ``js_wrapper``
    the files use the dashboard's ``data.js`` form; reading accepts both.

    Example:
        >>> store = JSONFileStore(".benchtrack")
        >>> await store.save(document)
        >>> document = await store.load("https://github.com/org/repo")
    """

    def __init__(
        self,
        directory: str | Path = ".benchtrack",
        js_wrapper: bool = False,
    ) -> None:
        """Initialize the JSON file store.

        Args:
            directory: Directory holding the history files.
            js_wrapper: Write ``window.BENCHMARK_DATA = ...`` files.
        """
        self._directory = Path(directory)
        self._js_wrapper = js_wrapper

    @property
    def directory(self) -> Path:
        """Directory holding the history files."""
        return self._directory

    def path_for(self, repo_url: str) -> Path:
        """Return the file holding the history of a repository.

        Args:
            repo_url: Repository URL.

        Returns:
            Path of the history file.
        """
        suffix = ".js" if self._js_wrapper else ".json"
        return self._directory / f"{repo_slug(repo_url)}{suffix}"

    def _existing_path(self, repo_url: str) -> Path | None:
        """Find the history file of a repository in either form."""
        path = self.path_for(repo_url)
        alternate = path.with_suffix(".json" if self._js_wrapper else ".js")
        for candidate in (path, alternate):
            if candidate.exists():
                return candidate
        return None

    async def load(self, repo_url: str) -> HistoryDocument | None:
        """Load the history document of a repository.

        Args:
            repo_url: Repository URL.

        Returns:
            The stored document, or None if there is none yet.

        Raises:
            StoreIOError: If the file cannot be read or is malformed.
        """
        path = self._existing_path(repo_url)
        if path is None:
            return None

        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            msg = f"Failed to read benchmark history from {path}: {e}"
            raise StoreIOError(msg) from e

        if not content.strip():
            return None

        document = loads(content)
        if document.repo_url != repo_url:
            msg = f"{path} holds history of {document.repo_url}, not {repo_url}"
            raise StoreIOError(msg)
        return document

    async def save(self, document: HistoryDocument) -> None:
        """Save a history document with atomic write.

        Uses temp file + rename for atomic operation.

        Args:
            document: The document to persist.

        Raises:
            StoreIOError: If the file cannot be written.
        """
        path = self.path_for(document.repo_url)
        content = dumps(document, js_wrapper=self._js_wrapper)

        try:
            # Ensure parent directory exists
            path.parent.mkdir(parents=True, exist_ok=True)

            # Atomic write: write to temp file, then rename
            temp_fd, temp_path = tempfile.mkstemp(
                dir=path.parent,
                prefix=".history_",
                suffix=".tmp",
            )
        except OSError as e:
            msg = f"Failed to prepare benchmark history file {path}: {e}"
            raise StoreIOError(msg) from e

        try:
            with os.fdopen(temp_fd, "w", encoding="utf-8") as f:
                f.write(content)
            # Atomic rename
            Path(temp_path).replace(path)
        except OSError as e:
            # Clean up temp file on failure
            Path(temp_path).unlink(missing_ok=True)
            msg = f"Failed to write benchmark history to {path}: {e}"
            raise StoreIOError(msg) from e

        logger.debug(f"Saved benchmark history of {document.repo_url} to {path}")
