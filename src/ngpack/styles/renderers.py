"""Stylesheet renderers, one per preprocessor language.

A renderer turns the source of one stylesheet into plain CSS. Renderers are
selected by file extension in ``ngpack.styles.dispatcher``; adding a language
means adding a class that satisfies ``StylesheetRenderer`` and registering it
under its extension.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable

import sass
import structlog

from ngpack.toolchain.process import run_tool

if TYPE_CHECKING:
    from ngpack.schemas.package import PackageDescriptor

logger = structlog.get_logger(__name__)

# Module prefix of ``@import "~pkg/file"`` pointing into node_modules
NODE_MODULES_PREFIX = "~"


@dataclass(frozen=True)
class RenderContext:
    """Project locations a renderer may resolve imports against.

    Attributes:
        project_root: Root of the library project.
        node_modules: Third-party module directory of the project.
        include_paths: Additional import search paths.
    """

    project_root: Path
    node_modules: Path
    include_paths: tuple[Path, ...] = field(default=())

    @classmethod
    def for_package(cls, descriptor: PackageDescriptor) -> RenderContext:
        return cls(project_root=descriptor.source_path, node_modules=descriptor.node_modules)

    def search_paths(self, stylesheet: Path) -> list[str]:
        """Import search paths for ``stylesheet``, nearest first, without duplicates."""
        paths = [
            stylesheet.parent,
            self.project_root,
            Path.cwd(),
            self.node_modules,
            *self.include_paths,
        ]
        return list(dict.fromkeys(str(path) for path in paths))


@runtime_checkable
class StylesheetRenderer(Protocol):
    """Renders one stylesheet language to CSS.

    Example:
        >>> class UpperCaseRenderer:
        ...     async def render(self, path: Path, content: str, context: RenderContext) -> str:
        ...         return content.upper()
    """

    async def render(self, path: Path, content: str, context: RenderContext) -> str:
        """Render stylesheet source to CSS.

        Args:
            path: Absolute path of the stylesheet.
            content: Source text of the stylesheet.
            context: Project locations for import resolution.

        Returns:
            Plain CSS.
        """
        ...


class PassthroughRenderer:
    """Returns the content unchanged. Used for ``.css`` and unknown extensions."""

    async def render(self, path: Path, content: str, context: RenderContext) -> str:
        return content


def _sass_candidates(target: Path) -> list[Path]:
    if target.suffix in (".scss", ".sass", ".css"):
        return [target, target.with_name(f"_{target.name}")]
    candidates = []
    for suffix in (".scss", ".sass", ".css"):
        candidates.append(target.with_name(f"{target.name}{suffix}"))
        candidates.append(target.with_name(f"_{target.name}{suffix}"))
    candidates.append(target / "_index.scss")
    candidates.append(target / "index.scss")
    return candidates


def resolve_import(url: str, node_modules: Path) -> str | None:
    """Map a ``~pkg/path`` SASS import onto the node_modules directory.

    Args:
        url: The URL as written in the ``@import`` statement.
        node_modules: Third-party module directory of the project.

    Returns:
        Path of the imported file, or None for URLs without the ``~`` prefix
        so that the default SASS resolution applies.

    Example:
        >>> resolve_import("~foo/bar", Path("/p/node_modules"))
        '/p/node_modules/foo/bar'
        >>> resolve_import("./local", Path("/p/node_modules")) is None
        True
    """
    if not url.startswith(NODE_MODULES_PREFIX):
        return None
    target = node_modules / url[len(NODE_MODULES_PREFIX) :]
    for candidate in _sass_candidates(target):
        if candidate.is_file():
            return str(candidate)
    return str(target)


class SassRenderer:
    """SASS and SCSS renderer backed by libsass.

    ``~pkg/path`` imports resolve into the project's node_modules. Compilation
    is CPU bound and runs in a worker thread.
    """

    def __init__(self, output_style: str = "expanded") -> None:
        self.output_style = output_style

    def _compile(self, path: Path, content: str, context: RenderContext) -> str:
        def importer(url: str) -> list[tuple[str]] | None:
            resolved = resolve_import(url, context.node_modules)
            if resolved is None:
                return None
            logger.debug("sass_import_resolved", url=url, path=resolved)
            return [(resolved,)]

        return sass.compile(
            string=content,
            indented=path.suffix == ".sass",
            include_paths=context.search_paths(path),
            importers=[(0, importer)],
            output_style=self.output_style,
        )

    async def render(self, path: Path, content: str, context: RenderContext) -> str:
        return await asyncio.to_thread(self._compile, path, content, context)


class LessRenderer:
    """LESS renderer running the ``lessc`` CLI."""

    async def render(self, path: Path, content: str, context: RenderContext) -> str:
        include_path = os.pathsep.join(context.search_paths(path))
        result = await run_tool(
            "lessc",
            [f"--include-path={include_path}", "-"],
            project_root=context.project_root,
            cwd=path.parent,
            stdin=content,
        )
        return result.stdout


class StylusRenderer:
    """Stylus renderer running the ``stylus`` CLI."""

    async def render(self, path: Path, content: str, context: RenderContext) -> str:
        args: list[str] = []
        for include in context.search_paths(path):
            args += ["--include", include]
        args += ["--resolve-url", "--print"]
        result = await run_tool(
            "stylus",
            args,
            project_root=context.project_root,
            cwd=path.parent,
            stdin=content,
        )
        return result.stdout


__all__ = [
    "LessRenderer",
    "PassthroughRenderer",
    "RenderContext",
    "SassRenderer",
    "StylesheetRenderer",
    "StylusRenderer",
    "resolve_import",
]
