"""Models for benchmark history.

This module provides the HistoryDocument dataclass, the persisted form of
every series of one repository, and its wire codec.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from benchtrack.core.exceptions import StoreIOError
from benchtrack.core.types import BenchmarkRun, Series

# Prefix of the dashboard's data.js form of the document
JS_PREFIX = "window.BENCHMARK_DATA = "


@dataclass(frozen=True)
class HistoryDocument:
    """All series of one repository, as persisted.

    Documents are never mutated; ``with_run`` returns a new document.

    Attributes:
        repo_url: Repository the history belongs to.
        last_update: Epoch milliseconds of the last successful append.
        entries: Series per tool-group key, oldest run first.

    Example:
        >>> doc = HistoryDocument(repo_url="https://github.com/org/repo")
        >>> doc = doc.with_run("Benchmark", run, last_update=1761250419654)
        >>> len(doc.series("Benchmark"))
        1
    """

    repo_url: str
    last_update: int = 0
    entries: dict[str, Series] = field(default_factory=dict)

    def series(self, group: str) -> Series:
        """Return the series of a group (empty if the group has no runs)."""
        return self.entries.get(group, ())

    def with_run(self, group: str, run: BenchmarkRun, last_update: int) -> HistoryDocument:
        """Return a copy of this document with ``run`` appended to ``group``.

        Args:
            group: Tool-group key.
            run: Run to append.
            last_update: New ``lastUpdate`` value in epoch milliseconds.

        Returns:
            New HistoryDocument; this one is left untouched.
        """
        entries = dict(self.entries)
        entries[group] = (*self.series(group), run)
        return HistoryDocument(repo_url=self.repo_url, last_update=last_update, entries=entries)

    def to_dict(self) -> dict[str, Any]:
        """Convert document to its wire form.

        Returns:
            ``{"lastUpdate", "repoUrl", "entries"}`` dictionary.
        """
        return {
            "lastUpdate": self.last_update,
            "repoUrl": self.repo_url,
            "entries": {group: [run.to_dict() for run in runs] for group, runs in self.entries.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> HistoryDocument:
        """Create document from its wire form.

        Args:
            data: Dictionary with ``lastUpdate``, ``repoUrl`` and ``entries``.

        Returns:
            HistoryDocument instance.

        Raises:
            StoreIOError: If the document is malformed.
        """
        try:
            entries = {
                str(group): tuple(BenchmarkRun.from_dict(run) for run in runs)
                for group, runs in data.get("entries", {}).items()
            }
            return cls(
                repo_url=data["repoUrl"],
                last_update=int(data.get("lastUpdate", 0)),
                entries=entries,
            )
        except (KeyError, TypeError, AttributeError, ValueError, PydanticValidationError) as e:
            msg = f"Malformed history document: {e}"
            raise StoreIOError(msg) from e


def dumps(document: HistoryDocument, js_wrapper: bool = False) -> str:
    """Serialize a document.

    Args:
        document: Document to serialize.
        js_wrapper: Emit the dashboard's ``window.BENCHMARK_DATA = {...}`` form.

    Returns:
        Serialized text.
    """
    content = json.dumps(document.to_dict(), indent=2, ensure_ascii=False)
    if js_wrapper:
        return f"{JS_PREFIX}{content}\n"
    return content


def loads(text: str) -> HistoryDocument:
    """Parse a document from plain JSON or the data.js form.

    Args:
        text: Serialized document.

    Returns:
        Parsed HistoryDocument.

    Raises:
        StoreIOError: If the text is not a valid document.
    """
    content = text.strip()
    if content.startswith("window.BENCHMARK_DATA"):
        content = content.split("=", 1)[1].strip().rstrip(";").strip()

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        msg = f"History document is not valid JSON: {e}"
        raise StoreIOError(msg) from e

    if not isinstance(data, dict):
        msg = "History document must be a JSON object"
        raise StoreIOError(msg)
    return HistoryDocument.from_dict(data)
