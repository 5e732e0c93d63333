"""Regression detection module for benchtrack.

This module compares a new benchmark run lane by lane against the
series it is appended to.

Example:
    >>> from benchtrack.regression import RegressionDetector, RegressionThresholds
    >>>
    >>> detector = RegressionDetector(
    ...     thresholds=RegressionThresholds(regression_percent=10.0),
    ... )
    >>> result = detector.detect(series, run)
    >>> if result.has_critical:
    ...     print("Critical regressions detected!")
"""

from __future__ import annotations

from benchtrack.regression.detector import RegressionDetector, improvement_percent
from benchtrack.regression.models import (
    ComparisonResult,
    LaneVerdict,
    RegressionThresholds,
    Verdict,
)

__all__ = [
    "ComparisonResult",
    "LaneVerdict",
    "RegressionDetector",
    "RegressionThresholds",
    "Verdict",
    "improvement_percent",
]
