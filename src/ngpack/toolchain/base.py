"""Protocol of the delegated build stages.

The pipeline hands compilation, bundling, downleveling, minification, source
map remapping and file output to a ``Toolchain``. ``NodeToolchain`` is the
default implementation; tests pass a recording fake.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from ngpack.schemas.artifacts import ArtifactPaths, BuildArtifacts, BundleConfig
from ngpack.schemas.package import PackageDescriptor
from ngpack.schemas.tsconfig import TsConfig


@runtime_checkable
class Toolchain(Protocol):
    """Delegated compiler, bundler and post-processing stages.

    Every method raises ``ToolchainError`` (or ``BuildException`` for output
    failures) on failure. Implementations never swallow errors.
    """

    async def compile(self, ts_config: TsConfig, artifacts: BuildArtifacts) -> Path:
        """Compile ``artifacts.temp.ts_sources`` and return the ES2015 entry file."""
        ...

    async def bundle(self, config: BundleConfig) -> Path:
        """Bundle ``config.entry`` into ``config.dest`` and return it."""
        ...

    async def downlevel(self, entry: Path, dest: Path) -> Path:
        """Transpile an ES2015 flat module to ES5 at ``dest`` and return it."""
        ...

    async def minify(self, path: Path) -> Path:
        """Minify a bundle and return the minified file's path."""
        ...

    async def remap_source_map(self, path: Path) -> None:
        """Rewrite the source map of ``path`` to point at the original sources."""
        ...

    async def copy_files(self, descriptor: PackageDescriptor, stage_dir: Path) -> None:
        """Copy staged output into the distribution directory."""
        ...

    async def write_package(self, descriptor: PackageDescriptor, paths: ArtifactPaths) -> Path:
        """Write the distribution's package.json and return its path."""
        ...


__all__ = ["Toolchain"]
