"""``ngpack build``: package an Angular library.

Example:
    $ ngpack build --project projects/my-lib
    Built @my/lib (MyLib) in projects/my-lib/dist
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import click
import structlog

from ngpack.cli.utils import ExitCode, error, error_exit, info, success

logger = structlog.get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


@click.command(
    name="build",
    help="Build the Angular library package of a project.",
    epilog="""
Examples:
    $ ngpack build
    $ ngpack build --project projects/my-lib
    $ ngpack build -p projects/my-lib/ng-package.json --log-level DEBUG --json-logs
""",
)
@click.option(
    "--project",
    "-p",
    type=click.Path(exists=True, resolve_path=True, path_type=Path),
    default=".",
    show_default=True,
    help="Project directory, ng-package.json, or package.json with an ngPackage key.",
    metavar="PATH",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Minimum level of log events written to stderr.",
)
@click.option(
    "--json-logs",
    is_flag=True,
    default=False,
    help="Write log events as JSON lines.",
)
def build_command(project: Path, log_level: str, json_logs: bool) -> None:
    """Run the build pipeline and report the outcome.

    Exits with the failing stage's code on build errors, 5 on toolchain
    errors and 1 on anything unexpected.
    """
    # Late imports keep --help fast
    from ngpack.build.errors import BuildException
    from ngpack.build.stages import build_package
    from ngpack.telemetry.logging import configure_logging
    from ngpack.telemetry.sanitization import sanitize_error_message
    from ngpack.toolchain.errors import ToolchainError

    configure_logging(log_level=log_level.upper(), json_output=json_logs)
    info(f"Building {project}")

    try:
        result = asyncio.run(build_package(project))
    except BuildException as e:
        error(e.error.format())
        error_exit("Build failed", exit_code=e.exit_code, code=e.error.code)
    except ToolchainError as e:
        if e.stderr:
            info(e.stderr)
        error_exit(
            f"Build failed: {e}",
            exit_code=ExitCode.TOOLCHAIN_ERROR,
            tool=e.tool,
            returncode=e.returncode,
        )
    except Exception as e:
        logger.exception("build_unexpected_error")
        error_exit(f"Build failed: {sanitize_error_message(str(e))}", exit_code=ExitCode.GENERAL_ERROR)

    success(f"Built {result.full_package_name} ({result.module_name}) in {result.destination_path}")


__all__ = ["build_command"]
