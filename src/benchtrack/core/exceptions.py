"""Custom exceptions for benchtrack.

This module defines the exception hierarchy used throughout the library.
All exceptions inherit from BenchtrackError for easy catching.
"""

from __future__ import annotations

from enum import Enum


class ValidationCode(str, Enum):
    """Reason a metric or run failed validation."""

    NON_FINITE_VALUE = "non_finite_value"
    INVALID_VALUE = "invalid_value"
    MISSING_UNIT = "missing_unit"
    MISSING_NAME = "missing_name"
    MALFORMED_ENTRY = "malformed_entry"
    OUT_OF_ORDER = "out_of_order"


class BenchtrackError(Exception):
    """Base exception for all benchtrack errors.

    All custom exceptions in benchtrack inherit from this class,
    making it easy to catch all library-specific errors.

    Example:
        >>> try:
        ...     await history.append(repo_url, "Benchmark", run)
        ... except BenchtrackError as e:
        ...     print(f"benchtrack error: {e}")
    """


class ParseError(BenchtrackError):
    """Raised when raw benchmark output cannot be turned into a run.

    Fatal to the run: nothing is ingested.

    Example:
        >>> raise ParseError("Benchmark output is not a JSON list")
    """


class UnknownToolError(ParseError):
    """Raised when a tool name does not map to an aggregation policy.

    Example:
        >>> raise UnknownToolError("cargo")
    """

    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"Unknown benchmark tool: {tool!r}")


class ValidationError(BenchtrackError):
    """Raised when a run violates a store invariant.

    Metric-level validation problems are reported as diagnostics instead of
    being raised; only run-level problems surface as this exception.

    Attributes:
        code: Machine-readable reason.
    """

    def __init__(self, message: str, code: ValidationCode) -> None:
        self.code = code
        super().__init__(message)


class OutOfOrderError(ValidationError):
    """Raised when a run is older than the last run already stored for its key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, ValidationCode.OUT_OF_ORDER)


class DataError(BenchtrackError):
    """Raised when stored data cannot be compared, e.g. a lane changed unit.

    Example:
        >>> raise DataError("Unit changed for 'health - Avg Latency': ms -> us")
    """


class BaselineZeroError(BenchtrackError):
    """Raised when a baseline value of zero makes a percent change undefined."""


class StoreIOError(BenchtrackError):
    """Raised when the history document cannot be loaded or persisted.

    Fatal to the whole ingestion: nothing is persisted for the run.

    Example:
        >>> raise StoreIOError("PUT https://bench.example/history failed after 3 retries")
    """


class ConfigurationError(BenchtrackError):
    """Raised when configuration is invalid or missing.

    Example:
        >>> raise ConfigurationError("Thresholds file not found: thresholds.yaml")
    """
