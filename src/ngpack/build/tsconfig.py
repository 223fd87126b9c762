"""Derivation of the ngc compiler configuration from a package descriptor."""

from __future__ import annotations

from typing import Any

from ngpack.schemas.package import PackageDescriptor
from ngpack.schemas.tsconfig import TsConfig

DEFAULT_COMPILER_OPTIONS: dict[str, Any] = {
    "target": "es2015",
    "module": "es2015",
    "moduleResolution": "node",
    "lib": ["dom", "es2015"],
    "declaration": True,
    "sourceMap": True,
    "inlineSources": True,
    "emitDecoratorMetadata": True,
    "experimentalDecorators": True,
    "importHelpers": True,
    "skipLibCheck": True,
    "stripInternal": True,
    "types": [],
}

DEFAULT_ANGULAR_COMPILER_OPTIONS: dict[str, Any] = {
    "annotateForClosureCompiler": True,
    "strictMetadataEmit": True,
    "skipTemplateCodegen": True,
}


def prepare_ts_config(descriptor: PackageDescriptor) -> TsConfig:
    """Build the compiler configuration for one entry point.

    The flat module output file is named after the descriptor's flat module
    file name and carries the full package name as its module id. Output goes
    to the entry point's staging directory.

    Args:
        descriptor: The package being built.

    Returns:
        Frozen compiler configuration.
    """
    angular_compiler_options = {
        **DEFAULT_ANGULAR_COMPILER_OPTIONS,
        "flatModuleOutFile": f"{descriptor.flat_module_file_name}.js",
        "flatModuleId": descriptor.full_package_name,
    }
    return TsConfig(
        root_names=(descriptor.entry_file,),
        base_path=descriptor.entry_file.parent,
        out_dir=descriptor.stage_directory,
        compiler_options=dict(DEFAULT_COMPILER_OPTIONS),
        angular_compiler_options=angular_compiler_options,
    )


__all__ = ["prepare_ts_config"]
