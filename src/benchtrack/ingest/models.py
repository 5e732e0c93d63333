"""Models for benchmark ingestion.

This module provides dataclasses describing the outcome of parsing one
CI run: the validated run plus the metrics that were dropped along the way.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from benchtrack.core.exceptions import ValidationCode
    from benchtrack.core.types import BenchmarkRun


@dataclass(frozen=True)
class Diagnostic:
    """A metric dropped during ingestion.

    Attributes:
        code: Why the metric was dropped.
        index: Position of the metric in the raw input.
        name: Metric name, if one could be read.
        message: Human-readable reason.

    Example:
        >>> diag = Diagnostic(
        ...     code=ValidationCode.MISSING_UNIT,
        ...     index=3,
        ...     name="health - P99 Latency",
        ...     message="unit is empty",
        ... )
        >>> diag.describe()
        "#3 'health - P99 Latency': unit is empty"
    """

    code: ValidationCode
    index: int
    name: str | None
    message: str

    def describe(self) -> str:
        """One-line description for reports."""
        label = repr(self.name) if self.name else "<unnamed>"
        return f"#{self.index} {label}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "code": self.code.value,
            "index": self.index,
            "name": self.name,
            "message": self.message,
        }


@dataclass(frozen=True)
class IngestResult:
    """A validated run plus the diagnostics collected while building it.

    Attributes:
        run: The run containing every metric that survived validation.
        diagnostics: One entry per dropped metric, in input order.
    """

    run: BenchmarkRun
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def dropped_count(self) -> int:
        """Number of metrics dropped during validation."""
        return len(self.diagnostics)
