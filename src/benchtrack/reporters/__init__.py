"""Reporters module for benchtrack.

This module provides output formatters for ingestion reports and queries:
- Console: Terminal output with tables and colors
- JSON: Machine-readable format
"""

from __future__ import annotations

from benchtrack.reporters.console import ConsoleReporter
from benchtrack.reporters.json import JSONReporter

__all__ = [
    "ConsoleReporter",
    "JSONReporter",
]
