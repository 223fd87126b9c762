"""PackageDescriptor schema: the immutable identity of one library build.

A descriptor is produced by ``ngpack.build.loader.load_package_descriptor``
from ``ng-package.json`` and ``package.json`` and is never mutated while a
build runs.
"""

from __future__ import annotations

import re
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# npm package name, optionally scoped: "@scope/name" or "name"
PACKAGE_NAME_PATTERN = r"^(@[a-z0-9-~][a-z0-9-._~]*/)?[a-z0-9-~][a-z0-9-._~]*$"

# Inside the build directory; skipped when staged output is copied to dest
SOURCES_DIRECTORY_NAME = ".sources"


def default_module_name(full_package_name: str) -> str:
    """Derive a UMD module name from a package name.

    ``@my-org/my-lib`` becomes ``myOrg.myLib``.

    Args:
        full_package_name: The npm package name.

    Returns:
        Dotted, camel-cased identifier usable as a UMD global.
    """
    parts = full_package_name.lstrip("@").split("/")
    return ".".join(
        re.sub(r"[-_.]+([a-z0-9])", lambda m: m.group(1).upper(), part) for part in parts
    )


class PackageDescriptor(BaseModel):
    """Identity and locations of the library being packaged.

    Attributes:
        full_package_name: Canonical npm name (e.g. ``@my/lib``)
        module_name: Module identifier used by the bundler (UMD global name)
        source_path: Absolute project root (directory of ng-package.json)
        entry_file: Absolute path of the library's TypeScript entry file
        destination_path: Absolute distribution directory
        build_directory: Absolute working directory for intermediate output
        path_offset_from_source_root: Entry point directory relative to the root
        flat_module_file_name: Base file name of the flat module bundles
        lib_externals: Module ids excluded from the bundles
        umd_module_ids: External module id to UMD global name mapping

    Example:
        >>> descriptor = PackageDescriptor(
        ...     full_package_name="@my/lib",
        ...     module_name="my.lib",
        ...     source_path=Path("/work/lib"),
        ...     entry_file=Path("/work/lib/public_api.ts"),
        ...     destination_path=Path("/work/lib/dist"),
        ...     build_directory=Path("/work/lib/.ng_build"),
        ...     flat_module_file_name="lib",
        ... )
        >>> descriptor.scope
        '@my'
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    full_package_name: str = Field(
        ...,
        min_length=1,
        max_length=214,
        pattern=PACKAGE_NAME_PATTERN,
        description="Canonical npm package name",
    )
    module_name: str = Field(
        ...,
        min_length=1,
        pattern=r"^[A-Za-z_$][\w$]*(\.[A-Za-z_$][\w$]*)*$",
        description="Module identifier used by the bundler",
    )
    source_path: Path = Field(..., description="Project root")
    entry_file: Path = Field(..., description="TypeScript entry file")
    destination_path: Path = Field(..., description="Distribution directory")
    build_directory: Path = Field(..., description="Intermediate build directory")
    path_offset_from_source_root: str = Field(
        default="",
        description="Entry point directory relative to the project root",
    )
    flat_module_file_name: str = Field(
        ...,
        min_length=1,
        pattern=r"^[\w.-]+$",
        description="Base file name of the flat module bundles",
    )
    lib_externals: tuple[str, ...] = Field(
        default=(),
        description="Module ids treated as external (not bundled)",
    )
    umd_module_ids: dict[str, str] = Field(
        default_factory=dict,
        description="External module id -> UMD global name",
    )

    @field_validator("path_offset_from_source_root")
    @classmethod
    def _normalize_offset(cls, value: str) -> str:
        offset = value.replace("\\", "/").strip("/")
        if offset in ("", "."):
            return ""
        if offset.startswith("..") or "/../" in f"/{offset}/":
            raise ValueError(f"path offset must stay inside the project root: {value!r}")
        return offset

    @model_validator(mode="after")
    def _paths_are_absolute(self) -> PackageDescriptor:
        for name in ("source_path", "entry_file", "destination_path", "build_directory"):
            if not getattr(self, name).is_absolute():
                raise ValueError(f"{name} must be an absolute path")
        return self

    @property
    def scope(self) -> str | None:
        """The ``@scope`` part of the package name, if any."""
        if self.full_package_name.startswith("@"):
            return self.full_package_name.split("/", 1)[0]
        return None

    @property
    def package_name_without_scope(self) -> str:
        """The package name with any ``@scope/`` prefix removed."""
        return self.full_package_name.rsplit("/", 1)[-1]

    @property
    def node_modules(self) -> Path:
        """Third-party module installation directory of the project."""
        return self.source_path / "node_modules"

    @property
    def stage_directory(self) -> Path:
        """Staging directory for this entry point inside the build directory."""
        if self.path_offset_from_source_root:
            return self.build_directory / self.path_offset_from_source_root
        return self.build_directory

    @property
    def source_stage_directory(self) -> Path:
        """Directory receiving the inlined TypeScript sources before compilation."""
        if self.path_offset_from_source_root:
            return self.build_directory / SOURCES_DIRECTORY_NAME / self.path_offset_from_source_root
        return self.build_directory / SOURCES_DIRECTORY_NAME


__all__ = [
    "PACKAGE_NAME_PATTERN",
    "SOURCES_DIRECTORY_NAME",
    "PackageDescriptor",
    "default_module_name",
]
