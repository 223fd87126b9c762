"""WRITE_METADATA stage: the distribution's package.json and docs."""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Any

import structlog

from ngpack.build.errors import BuildError, BuildException
from ngpack.build.stages import BuildStage
from ngpack.schemas.artifacts import ArtifactPaths
from ngpack.schemas.package import PackageDescriptor

logger = structlog.get_logger(__name__)

REMOVED_FIELDS = ("scripts", "devDependencies", "ngPackage")
DOCUMENTATION_FILES = ("README.md", "LICENSE")


def distribution_package_json(package: dict[str, Any], paths: ArtifactPaths) -> dict[str, Any]:
    """Rewrite a project package.json for the distribution.

    Args:
        package: The project's package.json content.
        paths: Artifact paths relative to the distribution root.

    Returns:
        New package.json content; ``package`` is not modified.
    """
    result = {key: value for key, value in package.items() if key not in REMOVED_FIELDS}
    result.update(
        {
            "main": paths.main,
            "module": paths.module,
            "es2015": paths.es2015,
            "typings": paths.typings,
            "metadata": paths.metadata,
        }
    )
    return result


def write_package(descriptor: PackageDescriptor, paths: ArtifactPaths) -> Path:
    """Write ``<dest>/package.json`` and copy README.md and LICENSE.

    Args:
        descriptor: The package being built.
        paths: Artifact paths relative to the distribution root.

    Returns:
        Path of the written package.json.

    Raises:
        BuildException: If a file cannot be read or written (E502).
    """
    destination = descriptor.destination_path
    target = destination / "package.json"
    try:
        package = json.loads((descriptor.source_path / "package.json").read_text(encoding="utf-8"))
        destination.mkdir(parents=True, exist_ok=True)
        target.write_text(
            json.dumps(distribution_package_json(package, paths), indent=2) + "\n",
            encoding="utf-8",
        )
        for name in DOCUMENTATION_FILES:
            source = descriptor.source_path / name
            if source.is_file():
                shutil.copyfile(source, destination / name)
                logger.debug("documentation_copied", file=name)
    except (OSError, json.JSONDecodeError) as e:
        raise BuildException(
            BuildError(
                stage=BuildStage.WRITE_METADATA,
                code="E502",
                message=f"Failed to write package metadata to {destination}",
                suggestion="Check the destination directory is writable",
                context={"path": str(target), "error": str(e)},
            )
        ) from e

    logger.info("package_json_written", path=str(target))
    return target


__all__ = ["distribution_package_json", "write_package"]
