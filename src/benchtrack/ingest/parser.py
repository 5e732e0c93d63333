"""Ingest parser for benchmark results.

This module turns raw benchmark-action "custom" output (a JSON list of
``{"name", "value", "unit", "extra"}`` objects) into a validated
BenchmarkRun. Bad metrics are dropped one by one and reported; an unknown
tool or unreadable input fails the whole run.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError as PydanticValidationError

from benchtrack.core.exceptions import ParseError, ValidationCode
from benchtrack.core.types import BenchmarkRun, BenchResult, CommitInfo, Tool
from benchtrack.ingest.models import Diagnostic, IngestResult

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


def parse_run(
    raw: str | list[Any],
    tool: str | Tool,
    commit: CommitInfo | Mapping[str, Any],
    date: datetime | int,
) -> IngestResult:
    """Validate one CI run's raw output into a BenchmarkRun.

    Args:
        raw: JSON text or decoded list of result objects.
        tool: Aggregation tool name (``customBiggerIsBetter`` or
            ``customSmallerIsBetter``).
        commit: Commit descriptor, as a model or its wire mapping.
        date: Ingestion instant, as a datetime or epoch milliseconds.

    Returns:
        IngestResult with the run and one diagnostic per dropped metric.

    Raises:
        UnknownToolError: If the tool is not a known aggregation policy.
        ParseError: If the input, commit, or date cannot be read.

    Example:
        >>> result = parse_run(
        ...     '[{"name": "health - Avg Latency", "value": 1.06, "unit": "ms"}]',
        ...     "customSmallerIsBetter",
        ...     commit,
        ...     1761250419654,
        ... )
        >>> len(result.run.benches)
        1
    """
    resolved_tool = Tool.parse(tool)
    entries = _decode_entries(raw)
    commit_info = parse_commit(commit)

    benches: list[BenchResult] = []
    diagnostics: list[Diagnostic] = []
    for index, entry in enumerate(entries):
        outcome = _validate_entry(index, entry)
        if isinstance(outcome, Diagnostic):
            logger.warning(f"Dropping benchmark result {outcome.describe()}")
            diagnostics.append(outcome)
        else:
            benches.append(outcome)

    try:
        run = BenchmarkRun(
            commit=commit_info,
            date=date,
            tool=resolved_tool,
            benches=tuple(benches),
        )
    except PydanticValidationError as e:
        msg = f"Invalid run date {date!r}: {e}"
        raise ParseError(msg) from e

    return IngestResult(run=run, diagnostics=tuple(diagnostics))


def parse_commit(commit: CommitInfo | Mapping[str, Any]) -> CommitInfo:
    """Validate a commit descriptor.

    Args:
        commit: A CommitInfo or its wire mapping (GitHub ``head_commit`` shape).

    Returns:
        The validated CommitInfo.

    Raises:
        ParseError: If required fields are missing or malformed.
    """
    if isinstance(commit, CommitInfo):
        return commit
    try:
        return CommitInfo.model_validate(dict(commit))
    except (PydanticValidationError, TypeError, ValueError) as e:
        msg = f"Invalid commit descriptor: {e}"
        raise ParseError(msg) from e


def load_commit_file(path: Path | str) -> CommitInfo:
    """Load a commit descriptor from a JSON file.

    Args:
        path: Path to the JSON file.

    Returns:
        The validated CommitInfo.

    Raises:
        ParseError: If the file is missing, unreadable, or not a valid commit
            descriptor.
    """
    path = Path(path)
    if not path.exists():
        msg = f"Commit file not found: {path}"
        raise ParseError(msg)

    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read commit file {path}: {e}"
        raise ParseError(msg) from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        msg = f"Commit file {path} is not valid JSON: {e}"
        raise ParseError(msg) from e

    if not isinstance(data, dict):
        msg = f"Commit file {path} must contain a JSON object"
        raise ParseError(msg)
    return parse_commit(data)


def _decode_entries(raw: str | list[Any]) -> list[Any]:
    """Decode raw input into a list of result entries."""
    if isinstance(raw, str):
        try:
            raw = json.loads(raw)
        except json.JSONDecodeError as e:
            msg = f"Benchmark output is not valid JSON: {e}"
            raise ParseError(msg) from e

    if not isinstance(raw, list):
        msg = f"Benchmark output must be a JSON list, got {type(raw).__name__}"
        raise ParseError(msg)
    return raw


def _validate_entry(index: int, entry: Any) -> BenchResult | Diagnostic:
    """Validate a single raw result entry.

    Returns:
        The BenchResult, or a Diagnostic describing why it was dropped.
    """
    if not isinstance(entry, dict):
        return Diagnostic(
            code=ValidationCode.MALFORMED_ENTRY,
            index=index,
            name=None,
            message=f"expected an object, got {type(entry).__name__}",
        )

    name = entry.get("name")
    if not isinstance(name, str) or not name.strip():
        return Diagnostic(
            code=ValidationCode.MISSING_NAME,
            index=index,
            name=None,
            message="name is missing or empty",
        )

    value = _coerce_value(entry.get("value"))
    if value is None:
        return Diagnostic(
            code=ValidationCode.INVALID_VALUE,
            index=index,
            name=name,
            message=f"value {entry.get('value')!r} is not a number",
        )
    if not math.isfinite(value):
        return Diagnostic(
            code=ValidationCode.NON_FINITE_VALUE,
            index=index,
            name=name,
            message=f"value {value!r} is not finite",
        )

    unit = entry.get("unit")
    if not isinstance(unit, str) or not unit.strip():
        return Diagnostic(
            code=ValidationCode.MISSING_UNIT,
            index=index,
            name=name,
            message="unit is missing or empty",
        )

    extra = entry.get("extra")
    return BenchResult(
        name=name,
        value=value,
        unit=unit,
        extra=None if extra is None else str(extra),
    )


def _coerce_value(value: Any) -> float | None:
    """Read a metric value; numeric strings are accepted."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None
