"""Build pipeline for ngpack.

Transforms a library's TypeScript sources into:
- an ES2015 flat module (FESM2015),
- an ES5 flat module (FESM5),
- a UMD bundle and its minified variant,
each with source maps remapped to the original sources.

Example:
    >>> from ngpack.build.stages import build_package
    >>> result = asyncio.run(build_package(Path("projects/my-lib")))
    >>> result.full_package_name
    '@my/lib'
"""

from __future__ import annotations

from ngpack.build.errors import (
    ERROR_CODES,
    ArtifactStateError,
    AssetInlineError,
    BuildError,
    BuildException,
)
from ngpack.build.stages import BuildStage

__all__ = [
    "ArtifactStateError",
    "AssetInlineError",
    "BuildError",
    "BuildException",
    "BuildStage",
    "ERROR_CODES",
]
