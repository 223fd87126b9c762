"""Pydantic models shared by the ngpack pipeline."""

from __future__ import annotations

from ngpack.schemas.artifacts import (
    ArtifactPaths,
    BuildArtifacts,
    BuildResult,
    BundleConfig,
    ExtraArtifacts,
    TempArtifacts,
)
from ngpack.schemas.package import PackageDescriptor, default_module_name
from ngpack.schemas.tsconfig import TsConfig

__all__ = [
    "ArtifactPaths",
    "BuildArtifacts",
    "BuildResult",
    "BundleConfig",
    "ExtraArtifacts",
    "PackageDescriptor",
    "TempArtifacts",
    "TsConfig",
    "default_module_name",
]
