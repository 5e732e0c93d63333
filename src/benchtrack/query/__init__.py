"""Query module for benchtrack.

Read-only series and summary projections over the benchmark history.
"""

from __future__ import annotations

from benchtrack.query.service import LaneSummary, QueryService, SeriesPoint

__all__ = [
    "LaneSummary",
    "QueryService",
    "SeriesPoint",
]
