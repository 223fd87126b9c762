"""Command-line interface for ngpack."""

from __future__ import annotations

from ngpack.cli.main import cli, main

__all__ = ["cli", "main"]
