"""ngpack: package Angular libraries in the Angular package format.

This package provides:
- build_package, transform_sources: the staged build pipeline
- BuildStage, BuildError, BuildException: structured error handling
- PackageDescriptor, BuildArtifacts, BuildResult: pipeline schemas
- StylesheetDispatcher: SASS/LESS/Stylus rendering by file extension
- NodeToolchain: ngc, rollup, tsc, uglifyjs and sorcery invocation

Example:
    >>> from ngpack import build_package
    >>> result = asyncio.run(build_package(Path("projects/my-lib")))
    >>> result.module_name
    'my.lib'

See Also:
    - ngpack.build: pipeline stages, loader and path resolution
    - ngpack.styles: stylesheet renderers
    - ngpack.toolchain: delegated Node tools
    - ngpack.telemetry: structlog and OpenTelemetry integration
"""

from __future__ import annotations

__version__ = "0.1.0"

from ngpack.build.errors import AssetInlineError, BuildError, BuildException
from ngpack.build.loader import load_package_descriptor
from ngpack.build.stages import BuildStage, build_package, transform_sources
from ngpack.schemas import BuildArtifacts, BuildResult, PackageDescriptor
from ngpack.styles import StylesheetDispatcher
from ngpack.toolchain import NodeToolchain, Toolchain, ToolchainError

__all__ = [
    "AssetInlineError",
    "BuildArtifacts",
    "BuildError",
    "BuildException",
    "BuildResult",
    "BuildStage",
    "NodeToolchain",
    "PackageDescriptor",
    "StylesheetDispatcher",
    "Toolchain",
    "ToolchainError",
    "__version__",
    "build_package",
    "load_package_descriptor",
    "transform_sources",
]
