"""CLI utility functions and error handling.

Shared helpers for the ngpack CLI:
- Exit code constants
- Output helpers for consistent stderr/stdout usage

Example:
    from ngpack.cli.utils import error_exit, ExitCode

    if not path.exists():
        error_exit("Project not found", exit_code=ExitCode.CONFIGURATION_ERROR, path=str(path))
"""

from __future__ import annotations

import sys
from enum import IntEnum
from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from typing import NoReturn


class ExitCode(IntEnum):
    """Exit codes of the ngpack CLI.

    Build failures map onto the stage that failed, see
    ``BuildStage.exit_code``.
    """

    SUCCESS = 0
    """Build completed successfully."""

    GENERAL_ERROR = 1
    """Unexpected failure."""

    USAGE_ERROR = 2
    """Invalid usage (bad arguments, missing required options)."""

    CONFIGURATION_ERROR = 3
    """Descriptor, build directory or compiler configuration failed."""

    ASSET_ERROR = 4
    """A template or stylesheet could not be resolved or inlined."""

    TOOLCHAIN_ERROR = 5
    """A delegated tool (ngc, rollup, tsc, uglifyjs, sorcery) failed."""


def _format(prefix: str, message: str, context: dict[str, str | int | bool | None]) -> str:
    context_str = ", ".join(f"{k}={v}" for k, v in context.items() if v is not None)
    if context_str:
        return f"{prefix}: {message} ({context_str})"
    return f"{prefix}: {message}"


def error(message: str, **context: str | int | bool | None) -> None:
    """Print an error message to stderr.

    Example:
        error("Build failed", stage="COMPILE")
        # Output: Error: Build failed (stage=COMPILE)
    """
    click.echo(_format("Error", message, context), err=True)


def error_exit(
    message: str,
    exit_code: ExitCode | int = ExitCode.GENERAL_ERROR,
    **context: str | int | bool | None,
) -> NoReturn:
    """Print an error message to stderr and exit with a code.

    Args:
        message: Error message to display.
        exit_code: Exit code to use (default: GENERAL_ERROR).
        **context: Optional context key-value pairs to include.

    Raises:
        SystemExit: Always exits with the specified code.
    """
    error(message, **context)
    sys.exit(int(exit_code))


def warn(message: str, **context: str | int | bool | None) -> None:
    """Print a warning message to stderr."""
    click.echo(_format("Warning", message, context), err=True)


def success(message: str) -> None:
    """Print a success message to stdout."""
    click.echo(message)


def info(message: str) -> None:
    """Print an informational message to stderr.

    Used for progress updates that should not be captured by stdout
    redirection.
    """
    click.echo(message, err=True)


__all__ = ["ExitCode", "error", "error_exit", "info", "success", "warn"]
