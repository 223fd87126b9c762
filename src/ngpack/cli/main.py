"""Main entry point for the ngpack CLI.

Commands:
    ngpack build: Build an Angular library package

Example:
    $ ngpack --help
    $ ngpack build --project projects/my-lib
"""

from __future__ import annotations

import sys
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_version

import click

from ngpack.cli.build import build_command


def _get_version() -> str:
    """Get the ngpack package version.

    Returns:
        Version string from package metadata, or 'unknown' if not installed.
    """
    try:
        return get_version("ngpack")
    except PackageNotFoundError:
        return "unknown"


@click.group(
    name="ngpack",
    help="ngpack - Package Angular libraries in the Angular package format.",
    epilog="Use 'ngpack <command> --help' for command-specific help.",
    context_settings={
        "help_option_names": ["-h", "--help"],
    },
)
@click.version_option(
    version=_get_version(),
    prog_name="ngpack",
    message="%(prog)s %(version)s",
)
def cli() -> None:
    """Root command group for the ngpack CLI."""


cli.add_command(build_command)


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the ngpack CLI.

    Args:
        argv: Command-line arguments (uses sys.argv if None).
    """
    try:
        cli(args=argv, standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
