"""Core module for benchtrack.

This module contains the fundamental types, exceptions, and configuration
used throughout the library.
"""

from __future__ import annotations

from benchtrack.core.config import Settings
from benchtrack.core.exceptions import (
    BaselineZeroError,
    BenchtrackError,
    ConfigurationError,
    DataError,
    OutOfOrderError,
    ParseError,
    StoreIOError,
    UnknownToolError,
    ValidationCode,
    ValidationError,
)
from benchtrack.core.types import (
    BenchmarkRun,
    BenchResult,
    CommitInfo,
    Direction,
    GitUser,
    LaneKey,
    Series,
    Tool,
)

__all__ = [
    # Exceptions
    "BaselineZeroError",
    "BenchtrackError",
    "ConfigurationError",
    "DataError",
    "OutOfOrderError",
    "ParseError",
    "StoreIOError",
    "UnknownToolError",
    "ValidationCode",
    "ValidationError",
    # Types
    "BenchResult",
    "BenchmarkRun",
    "CommitInfo",
    "Direction",
    "GitUser",
    "LaneKey",
    "Series",
    "Tool",
    # Config
    "Settings",
]
