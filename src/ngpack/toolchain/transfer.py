"""COPY_FILES stage: staged output into the distribution directory."""

from __future__ import annotations

import shutil
from pathlib import Path

import structlog

from ngpack.build.errors import BuildError, BuildException
from ngpack.build.paths import BUNDLES_DIR, FESM5_DIR, FESM2015_DIR
from ngpack.build.stages import BuildStage
from ngpack.schemas.package import SOURCES_DIRECTORY_NAME

logger = structlog.get_logger(__name__)

BUNDLE_DIRECTORIES = frozenset({FESM2015_DIR, FESM5_DIR, BUNDLES_DIR})
TYPE_FILE_SUFFIXES = (".d.ts", ".metadata.json")


def _is_distributed(relative: Path) -> bool:
    if relative.parts[0] == SOURCES_DIRECTORY_NAME:
        return False
    return relative.parts[0] in BUNDLE_DIRECTORIES or relative.name.endswith(TYPE_FILE_SUFFIXES)


def copy_source_files_to_destination(stage_dir: Path, destination: Path) -> list[Path]:
    """Copy bundles, type definitions and metadata from the staging directory.

    Copied: everything under ``fesm2015/``, ``fesm5/`` and ``bundles/``, and
    every ``*.d.ts`` and ``*.metadata.json`` file, keeping relative layout.
    The staged TypeScript sources are never copied.

    Args:
        stage_dir: Staging directory of the build.
        destination: Distribution directory.

    Returns:
        Destination paths of the copied files, sorted.

    Raises:
        BuildException: If a file cannot be copied (E501).
    """
    copied: list[Path] = []
    try:
        for source in sorted(stage_dir.rglob("*")):
            relative = source.relative_to(stage_dir)
            if not source.is_file() or not _is_distributed(relative):
                continue
            target = destination / relative
            target.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            copied.append(target)
    except OSError as e:
        raise BuildException(
            BuildError(
                stage=BuildStage.COPY_FILES,
                code="E501",
                message=f"Failed to copy staged files to {destination}",
                suggestion="Check the destination directory is writable",
                context={"stage_dir": str(stage_dir), "error": str(e)},
            )
        ) from e

    logger.debug("staged_files_copied", destination=str(destination), count=len(copied))
    return copied


__all__ = ["copy_source_files_to_destination"]
