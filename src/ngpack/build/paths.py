"""Artifact path resolution.

Both resolvers are pure functions of the descriptor: no I/O, and repeated
calls with the same descriptor return equal results.

Layout (relative to the entry point's staging or distribution directory):

    fesm2015/<flat>.js          ES2015 flat module
    fesm5/<flat>.js             ES5 flat module
    bundles/<flat>.umd.js       UMD bundle
    bundles/<flat>.umd.min.js   minified UMD bundle
    <flat>.d.ts                 typings entry
    <flat>.metadata.json        Angular metadata entry
"""

from __future__ import annotations

from pathlib import PurePath, PurePosixPath

from ngpack.schemas.artifacts import ArtifactPaths
from ngpack.schemas.package import PackageDescriptor

FESM2015_DIR = "fesm2015"
FESM5_DIR = "fesm5"
BUNDLES_DIR = "bundles"


def _artifact_paths(base: PurePath, flat_module_file_name: str) -> ArtifactPaths:
    return ArtifactPaths(
        es2015=str(base / FESM2015_DIR / f"{flat_module_file_name}.js"),
        module=str(base / FESM5_DIR / f"{flat_module_file_name}.js"),
        main=str(base / BUNDLES_DIR / f"{flat_module_file_name}.umd.js"),
        main_min=str(base / BUNDLES_DIR / f"{flat_module_file_name}.umd.min.js"),
        typings=str(base / f"{flat_module_file_name}.d.ts"),
        metadata=str(base / f"{flat_module_file_name}.metadata.json"),
    )


def calculate_artifact_paths_for_build(descriptor: PackageDescriptor) -> ArtifactPaths:
    """Absolute output paths inside the entry point's staging directory.

    Args:
        descriptor: The package being built.

    Returns:
        Absolute paths of every distribution artifact.

    Example:
        >>> paths = calculate_artifact_paths_for_build(descriptor)
        >>> paths.main
        '/work/lib/.ng_build/bundles/lib.umd.js'
    """
    return _artifact_paths(descriptor.stage_directory, descriptor.flat_module_file_name)


def calculate_artifact_paths_for_package_json(descriptor: PackageDescriptor) -> ArtifactPaths:
    """Paths relative to the distribution root, as written into package.json.

    Args:
        descriptor: The package being built.

    Returns:
        POSIX paths relative to the entry point's package.json.

    Example:
        >>> calculate_artifact_paths_for_package_json(descriptor).module
        'fesm5/lib.js'
    """
    return _artifact_paths(PurePosixPath(), descriptor.flat_module_file_name)


__all__ = [
    "BUNDLES_DIR",
    "FESM2015_DIR",
    "FESM5_DIR",
    "calculate_artifact_paths_for_build",
    "calculate_artifact_paths_for_package_json",
]
