"""CLI module for benchtrack.

This module provides the command-line interface using Typer.
"""

from __future__ import annotations

from benchtrack.cli.main import app

__all__ = ["app"]
